"""Descriptive statistics and survival-series analysis."""

from .descriptive import (
    class_balance,
    numeric_summary_by_label,
    categorical_rates_by_label,
    association_tests,
)
from .survival import (
    SURVIVAL_KEYS,
    SurvivalAnalysis,
    validate_survival_frame,
    filter_series,
    summarize_groups,
    disparity_by_year,
)

__all__ = [
    'class_balance',
    'numeric_summary_by_label',
    'categorical_rates_by_label',
    'association_tests',
    'SURVIVAL_KEYS',
    'SurvivalAnalysis',
    'validate_survival_frame',
    'filter_series',
    'summarize_groups',
    'disparity_by_year',
]
