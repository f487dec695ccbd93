"""
Feature Engineering Pipeline

This module turns the categorical survey columns into model-ready numeric
features and assembles the preprocessing steps that precede oversampling
and the classifier.
"""

import pandas as pd
import numpy as np
import logging
import time
from typing import Dict, List, Any

from sklearn.base import BaseEstimator, TransformerMixin

logger = logging.getLogger(__name__)

POSITIVE_TOKENS = {'yes', 'true', 'positive', 'y', '1'}


class CategoricalEncoder(BaseEstimator, TransformerMixin):
    """Handle categorical feature encoding with multiple strategies."""

    def __init__(self, method: str = 'binary'):
        """
        Initialize categorical encoder.

        Args:
            method: Encoding method ('binary', 'one_hot', 'label').
                'binary' maps two-level columns onto 0/1 and one-hot encodes the rest.
        """
        self.method = method

    def fit(self, X: pd.DataFrame, y=None):
        """Learn the categories of every categorical column."""
        start_time = time.time()
        logger.info(f"Fitting categorical encoder with method: {self.method}")

        if self.method not in ('binary', 'one_hot', 'label'):
            raise ValueError(f"Unknown encoding method: {self.method}")

        self.categorical_features_ = X.select_dtypes(include=['object', 'category', 'string', 'bool']).columns.tolist()
        self.categories_: Dict[str, List[str]] = {}
        self.binary_maps_: Dict[str, Dict[str, int]] = {}
        self.label_maps_: Dict[str, Dict[str, int]] = {}

        for feature in self.categorical_features_:
            categories = sorted(X[feature].dropna().astype(str).unique().tolist())
            self.categories_[feature] = categories

            if self.method == 'binary' and len(categories) <= 2:
                self.binary_maps_[feature] = self._binary_mapping(categories)
            elif self.method == 'label':
                self.label_maps_[feature] = {cat: i for i, cat in enumerate(categories)}

        self.feature_names_out_ = self._output_columns(X.columns)

        elapsed_time = time.time() - start_time
        logger.info(f"Fitted categorical encoder for {len(self.categorical_features_)} features in {elapsed_time:.2f} seconds")
        return self

    @staticmethod
    def _binary_mapping(categories: List[str]) -> Dict[str, int]:
        positives = [c for c in categories if c.lower() in POSITIVE_TOKENS]
        if positives:
            return {c: int(c in positives) for c in categories}
        # No recognizable positive token: the later value in sort order becomes 1
        return {c: i for i, c in enumerate(categories)}

    def _one_hot_features(self) -> List[str]:
        return [f for f in self.categorical_features_
                if self.method == 'one_hot' or (self.method == 'binary' and f not in self.binary_maps_)]

    def _output_columns(self, columns) -> List[str]:
        one_hot = set(self._one_hot_features())
        out = []
        for col in columns:
            if col in one_hot:
                out.extend(f"{col}_{cat}" for cat in self.categories_[col])
            else:
                out.append(col)
        return out

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Transform categorical features."""
        X_transformed = X.copy()

        for feature, mapping in self.binary_maps_.items():
            values = X_transformed[feature].astype(str)
            unseen = ~values.isin(mapping.keys())
            if unseen.any():
                logger.warning(f"{int(unseen.sum())} unseen values in '{feature}' encoded as 0")
            X_transformed[feature] = values.map(mapping).fillna(0).astype(int)

        for feature, mapping in self.label_maps_.items():
            X_transformed[feature] = X_transformed[feature].astype(str).map(mapping).fillna(-1).astype(int)

        one_hot = self._one_hot_features()
        if one_hot:
            dummies = {}
            for feature in one_hot:
                values = X_transformed[feature].astype(str)
                for cat in self.categories_[feature]:
                    dummies[f"{feature}_{cat}"] = (values == cat).astype(int)
            dummy_df = pd.DataFrame(dummies, index=X_transformed.index)
            X_transformed = pd.concat([X_transformed.drop(columns=one_hot), dummy_df], axis=1)

        return X_transformed[self.feature_names_out_]

    def get_feature_names_out(self, input_features=None):
        """Get output feature names."""
        return np.asarray(self.feature_names_out_, dtype=object)


def create_preprocessing_pipeline(config: Dict) -> List[Any]:
    """Create preprocessing steps from configuration (oversampling is added by the model pipeline)."""
    from .preprocessing import DataScaler

    pipeline_steps = []
    logger.info("Creating preprocessing pipeline...")

    encoding_config = config.get('feature_engineering', {}).get('categorical_encoding', {})
    pipeline_steps.append(CategoricalEncoder(method=encoding_config.get('method', 'binary')))

    # Scaling AFTER encoding; only the numeric measurements are rescaled
    scaling_config = config.get('feature_engineering', {}).get('scaling', {})
    if scaling_config.get('enabled', True):
        pipeline_steps.append(DataScaler(
            method=scaling_config.get('method', 'standard'),
            columns=config.get('data', {}).get('numeric_columns'),
        ))

    logger.info(f"Created preprocessing pipeline with {len(pipeline_steps)} steps")
    return pipeline_steps
