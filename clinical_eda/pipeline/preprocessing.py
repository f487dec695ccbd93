"""
Data preprocessing utilities for column normalization, label encoding, scaling and validation.
"""

import re
import pandas as pd
import numpy as np
import logging
import time
from typing import Dict, List, Optional, Sequence
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.preprocessing import StandardScaler, MinMaxScaler

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r'[^0-9a-zA-Z]+')


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with snake_case column names ("sudden weight loss" -> "sudden_weight_loss")."""
    renamed = {col: _NON_ALNUM.sub('_', str(col).strip()).strip('_').lower() for col in df.columns}
    return df.rename(columns=renamed)


def encode_label(series: pd.Series, positive_label: str, negative_label: Optional[str] = None) -> pd.Series:
    """
    Map a two-valued outcome column onto 0/1.

    Args:
        series: Outcome column
        positive_label: Value mapped to 1
        negative_label: Value mapped to 0; inferred when the column has exactly two values

    Returns:
        Integer series aligned with the input index
    """
    values = set(series.dropna().unique())
    if positive_label not in values:
        raise ValueError(f"Positive label {positive_label!r} not found in {sorted(map(str, values))}")

    if negative_label is None:
        others = values - {positive_label}
        if len(others) != 1:
            raise ValueError(f"Expected exactly one negative label, found {sorted(map(str, others))}")
        negative_label = others.pop()

    unknown = values - {positive_label, negative_label}
    if unknown or series.isnull().any():
        raise ValueError(f"Unexpected label values: {sorted(map(str, unknown)) or ['<missing>']}")

    return (series == positive_label).astype(int)


class DataValidator:
    """Validate data quality and consistency."""

    def __init__(self):
        self.validation_rules = {}
        self.key_columns: List[str] = []
        self.critical_features = set()

    def add_rule(self, feature: str, rule_type: str, critical: bool = False, **kwargs):
        """Add validation rule for a feature."""
        if feature not in self.validation_rules:
            self.validation_rules[feature] = []

        self.validation_rules[feature].append({
            'type': rule_type,
            'params': kwargs
        })
        if critical:
            self.critical_features.add(feature)

    def add_key_rule(self, columns: Sequence[str]):
        """Require the given columns to jointly identify each row."""
        self.key_columns = list(columns)
        self.critical_features.add('__key__')

    def validate(self, df: pd.DataFrame) -> Dict[str, List[str]]:
        """Validate dataframe against rules."""
        violations = {}

        for feature, rules in self.validation_rules.items():
            if feature not in df.columns:
                if feature in self.critical_features:
                    violations[feature] = ["required column is missing"]
                continue

            feature_violations = []

            for rule in rules:
                if rule['type'] == 'range':
                    min_val = rule['params'].get('min')
                    max_val = rule['params'].get('max')

                    if min_val is not None:
                        violation_count = (df[feature] < min_val).sum()
                        if violation_count > 0:
                            feature_violations.append(f"{violation_count} values below minimum {min_val}")

                    if max_val is not None:
                        violation_count = (df[feature] > max_val).sum()
                        if violation_count > 0:
                            feature_violations.append(f"{violation_count} values above maximum {max_val}")

                elif rule['type'] == 'categorical':
                    allowed_values = rule['params'].get('allowed_values', [])
                    invalid_mask = ~df[feature].isin(allowed_values) & df[feature].notnull()
                    violation_count = invalid_mask.sum()

                    if violation_count > 0:
                        feature_violations.append(f"{violation_count} invalid categorical values")

                elif rule['type'] == 'missing_rate':
                    max_missing_rate = rule['params'].get('max_rate', 0.1)
                    missing_rate = df[feature].isnull().mean()

                    if missing_rate > max_missing_rate:
                        feature_violations.append(f"Missing rate {missing_rate:.2%} exceeds {max_missing_rate:.2%}")

            if feature_violations:
                violations[feature] = feature_violations

        if self.key_columns:
            missing_keys = [c for c in self.key_columns if c not in df.columns]
            if missing_keys:
                violations['__key__'] = [f"key columns missing: {missing_keys}"]
            else:
                duplicate_count = int(df.duplicated(subset=self.key_columns).sum())
                if duplicate_count > 0:
                    violations['__key__'] = [f"{duplicate_count} duplicate rows for key {self.key_columns}"]

        return violations

    def check(self, df: pd.DataFrame) -> Dict[str, List[str]]:
        """Validate, log every violation, and raise if a critical field is affected."""
        violations = self.validate(df)
        for feature, messages in violations.items():
            for message in messages:
                logger.warning(f"Data quality issue in '{feature}': {message}")

        critical = sorted(f for f in violations if f in self.critical_features)
        if critical:
            details = "; ".join(f"{f}: {', '.join(violations[f])}" for f in critical)
            raise ValueError(f"Critical data quality violations: {details}")
        return violations

    def setup_symptom_rules(self,
                            symptom_columns: Sequence[str],
                            label_column: str = 'class',
                            labels: Sequence[str] = ('Positive', 'Negative')):
        """Setup validation rules for the symptom survey."""
        self.add_rule('age', 'range', min=0, max=120)
        self.add_rule('age', 'missing_rate', max_rate=0.0)
        self.add_rule('gender', 'categorical', allowed_values=['Male', 'Female'])

        for column in symptom_columns:
            self.add_rule(column, 'categorical', allowed_values=['Yes', 'No'])
            self.add_rule(column, 'missing_rate', max_rate=0.05)

        self.add_rule(label_column, 'categorical', critical=True, allowed_values=list(labels))
        self.add_rule(label_column, 'missing_rate', critical=True, max_rate=0.0)

    def setup_survival_rules(self,
                             key_columns: Sequence[str] = ('cancer_type', 'race', 'gender', 'year'),
                             value_column: str = 'survival_rate'):
        """Setup validation rules for the long-format survival series."""
        for column in key_columns:
            self.add_rule(column, 'missing_rate', critical=True, max_rate=0.0)
        self.add_rule('year', 'range', min=1900, max=2100)
        self.add_rule(value_column, 'range', min=0, max=100)
        self.add_rule(value_column, 'missing_rate', critical=True, max_rate=0.0)
        self.add_key_rule(key_columns)


class DataScaler(BaseEstimator, TransformerMixin):
    """Scale numeric features while leaving encoded indicator columns untouched."""

    def __init__(self, method: str = 'standard', columns: Optional[List[str]] = None):
        """
        Initialize scaler.

        Args:
            method: Scaling method ('standard', 'minmax')
            columns: Columns to scale; all numeric columns when None
        """
        self.method = method
        self.columns = columns

    def fit(self, X: pd.DataFrame, y=None):
        """Fit the scaler."""
        start_time = time.time()
        logger.info(f"Fitting data scaler with method: {self.method}")

        if self.columns is None:
            self.numeric_features_ = X.select_dtypes(include=[np.number]).columns.tolist()
        else:
            self.numeric_features_ = [col for col in self.columns if col in X.columns]

        if self.method == 'standard':
            self.scaler_ = StandardScaler()
        elif self.method == 'minmax':
            self.scaler_ = MinMaxScaler()
        else:
            raise ValueError(f"Unknown scaling method: {self.method}")

        if self.numeric_features_:
            self.scaler_.fit(X[self.numeric_features_])

        elapsed_time = time.time() - start_time
        logger.info(f"Fitted scaler for {len(self.numeric_features_)} numeric features in {elapsed_time:.2f} seconds")
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Transform by scaling numeric features."""
        X_transformed = X.copy()

        if self.numeric_features_:
            X_transformed[self.numeric_features_] = self.scaler_.transform(
                X_transformed[self.numeric_features_].astype(float)
            )

        return X_transformed
