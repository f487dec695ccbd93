"""Figures for the analysis reports."""

from .plots import (
    save_figure,
    plot_class_balance,
    plot_numeric_by_label,
    plot_categorical_rates,
    plot_confusion_matrix,
    plot_model_comparison,
    plot_feature_importance,
    plot_survival_trends,
    plot_metric_table,
)

__all__ = [
    'save_figure',
    'plot_class_balance',
    'plot_numeric_by_label',
    'plot_categorical_rates',
    'plot_confusion_matrix',
    'plot_model_comparison',
    'plot_feature_importance',
    'plot_survival_trends',
    'plot_metric_table',
]
