"""Utility modules for evaluation and experiment tracking."""

from .experiment_tracking import ExperimentTracker, setup_experiment_tracking, tracked_run
from .model_utils import (
    ModelEvaluator,
    ModelComparator,
    get_decision_scores,
)

__all__ = [
    'ExperimentTracker',
    'setup_experiment_tracking',
    'tracked_run',
    'ModelEvaluator',
    'ModelComparator',
    'get_decision_scores',
]
