"""
Model utilities for evaluation and comparison.
"""

import numpy as np
import pandas as pd
from typing import Dict, List, Optional
from sklearn.metrics import (
    roc_auc_score, f1_score, precision_score, recall_score,
    accuracy_score, confusion_matrix, classification_report
)
import logging

logger = logging.getLogger(__name__)


def get_decision_scores(model, X) -> Optional[np.ndarray]:
    """Continuous scores for the positive class, or None when the model exposes neither API."""
    if hasattr(model, 'predict_proba'):
        return model.predict_proba(X)[:, 1]
    if hasattr(model, 'decision_function'):
        return model.decision_function(X)
    return None


class ModelEvaluator:
    """Classification metrics for a binary outcome."""

    def calculate_metrics(self,
                          y_true: np.ndarray,
                          y_pred: np.ndarray,
                          y_score: Optional[np.ndarray] = None) -> Dict[str, float]:
        """
        Calculate evaluation metrics.

        Args:
            y_true: True binary labels
            y_pred: Predicted binary labels
            y_score: Optional probabilities or decision scores for the positive class

        Returns:
            Dictionary of metrics
        """
        y_true = np.asarray(y_true)
        y_pred = np.asarray(y_pred)
        metrics = {}

        metrics['accuracy'] = float(accuracy_score(y_true, y_pred))
        metrics['precision'] = float(precision_score(y_true, y_pred, zero_division=0))
        metrics['recall'] = float(recall_score(y_true, y_pred, zero_division=0))
        metrics['f1_score'] = float(f1_score(y_true, y_pred, zero_division=0))

        # Confusion matrix components
        tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
        metrics['true_negatives'] = int(tn)
        metrics['false_positives'] = int(fp)
        metrics['false_negatives'] = int(fn)
        metrics['true_positives'] = int(tp)

        metrics['specificity'] = float(tn / (tn + fp)) if (tn + fp) > 0 else 0.0
        metrics['sensitivity'] = float(tp / (tp + fn)) if (tp + fn) > 0 else 0.0

        if y_score is not None and len(np.unique(y_true)) == 2:
            metrics['roc_auc'] = float(roc_auc_score(y_true, y_score))

        return metrics

    def confusion_frame(self, y_true: np.ndarray, y_pred: np.ndarray,
                        labels: Optional[List[str]] = None) -> pd.DataFrame:
        """Confusion matrix with labelled actual/predicted axes."""
        labels = labels or ['Negative', 'Positive']
        cm = confusion_matrix(y_true, y_pred, labels=[0, 1])
        return pd.DataFrame(
            cm,
            index=pd.Index([f"actual {l}" for l in labels]),
            columns=pd.Index([f"predicted {l}" for l in labels]),
        )

    def slice_analysis(self,
                       y_true: np.ndarray,
                       y_pred: np.ndarray,
                       slice_feature: np.ndarray,
                       y_score: Optional[np.ndarray] = None,
                       min_size: int = 10) -> Dict[str, Dict[str, float]]:
        """
        Perform slice analysis across different subgroups.

        Args:
            y_true: True binary labels
            y_pred: Predicted binary labels
            slice_feature: Subgroup value per row (e.g. gender)
            y_score: Optional positive-class scores
            min_size: Slices with fewer rows are skipped

        Returns:
            Dictionary with metrics for each slice
        """
        y_true = np.asarray(y_true)
        y_pred = np.asarray(y_pred)
        slice_feature = np.asarray(slice_feature)
        slice_results = {}

        for value in np.unique(slice_feature):
            mask = slice_feature == value

            if np.sum(mask) < min_size:
                continue

            slice_metrics = self.calculate_metrics(
                y_true[mask], y_pred[mask], None if y_score is None else np.asarray(y_score)[mask]
            )
            slice_metrics['sample_size'] = int(np.sum(mask))
            slice_results[str(value)] = slice_metrics

        return slice_results

    def generate_classification_report(self, y_true: np.ndarray, y_pred: np.ndarray,
                                       target_names: Optional[List[str]] = None) -> str:
        """Generate detailed classification report."""
        return classification_report(y_true, y_pred, labels=[0, 1],
                                     target_names=target_names or ['Negative', 'Positive'],
                                     zero_division=0)


class ModelComparator:
    """Compare multiple models."""

    def __init__(self):
        self.results = {}

    def add_model(self, name: str, y_true: np.ndarray, y_pred: np.ndarray,
                  y_score: Optional[np.ndarray] = None):
        """Add model results for comparison."""
        evaluator = ModelEvaluator()
        self.results[name] = evaluator.calculate_metrics(y_true, y_pred, y_score)

    def add_metrics(self, name: str, metrics: Dict[str, float]):
        """Add precomputed metrics for a model."""
        self.results[name] = dict(metrics)

    def compare_models(self, sort_by: str = 'f1_score') -> pd.DataFrame:
        """Create comparison table, best first."""
        if not self.results:
            return pd.DataFrame()

        comparison_df = pd.DataFrame(self.results).T

        if sort_by in comparison_df.columns:
            comparison_df = comparison_df.sort_values(sort_by, ascending=False)

        return comparison_df

    def get_best_model(self, metric: str = 'f1_score') -> Optional[str]:
        """Get name of best performing model."""
        best_score = -np.inf
        best_model = None

        for model_name, metrics in self.results.items():
            if metric in metrics and metrics[metric] > best_score:
                best_score = metrics[metric]
                best_model = model_name

        return best_model
