"""
Plotting helpers for the EDA and model reports.

Every function returns a matplotlib ``Figure`` so callers can embed it in a
report or write it to disk with ``save_figure``.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.figure import Figure
from sklearn.metrics import ConfusionMatrixDisplay

logger = logging.getLogger(__name__)

sns.set_theme(style="whitegrid")


def save_figure(fig: Figure, path: Union[str, Path], dpi: int = 150) -> Path:
    """Write a figure to disk and release it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    logger.info(f"Figure saved to {path}")
    return path


def plot_class_balance(y: pd.Series, title: str = "Outcome distribution") -> Figure:
    """Bar chart of label counts annotated with their share."""
    counts = y.value_counts().sort_index()
    fig, ax = plt.subplots(figsize=(6, 4))
    sns.barplot(x=counts.index.astype(str), y=counts.values, ax=ax,
                hue=counts.index.astype(str), palette="Set2", legend=False)
    total = counts.sum()
    for i, value in enumerate(counts.values):
        ax.text(i, value, f"{value} ({value / total:.0%})", ha="center", va="bottom")
    ax.set_xlabel(y.name or "label")
    ax.set_ylabel("Count")
    ax.set_title(title, fontweight="bold")
    fig.tight_layout()
    return fig


def plot_numeric_by_label(df: pd.DataFrame, column: str, label_col: str, bins: int = 20) -> Figure:
    """Histogram with density curves of one numeric column per outcome group, plus a boxplot."""
    fig, axes = plt.subplots(1, 2, figsize=(12, 4), gridspec_kw={"width_ratios": [2, 1]})
    sns.histplot(data=df, x=column, hue=label_col, bins=bins, kde=True,
                 stat="density", common_norm=False, ax=axes[0], palette="Set2")
    axes[0].set_title(f"Distribution of {column} by {label_col}", fontweight="bold")
    sns.boxplot(data=df, x=label_col, y=column, hue=label_col, ax=axes[1],
                palette="Set2", legend=False)
    axes[1].set_title(f"{column} by {label_col}", fontweight="bold")
    fig.tight_layout()
    return fig


def plot_categorical_rates(rates: pd.DataFrame, labels: Optional[Sequence[str]] = None,
                           title: str = "Symptom prevalence by outcome") -> Figure:
    """Grouped horizontal bars: share reporting each indicator within each outcome group."""
    labels = list(labels or [c for c in rates.columns if c != "difference"])
    long = (rates[labels]
            .rename_axis("indicator")
            .reset_index()
            .melt(id_vars="indicator", var_name="outcome", value_name="rate"))
    fig, ax = plt.subplots(figsize=(9, max(4, 0.45 * len(rates))))
    sns.barplot(data=long, y="indicator", x="rate", hue="outcome", ax=ax, palette="Set2")
    ax.set_xlim(0, 1)
    ax.set_xlabel("Share reporting symptom")
    ax.set_ylabel("")
    ax.set_title(title, fontweight="bold")
    fig.tight_layout()
    return fig


def plot_confusion_matrix(cm: Union[np.ndarray, pd.DataFrame],
                          display_labels: Sequence[str] = ("Negative", "Positive"),
                          title: str = "Confusion matrix") -> Figure:
    cm = cm.to_numpy() if isinstance(cm, pd.DataFrame) else np.asarray(cm)
    fig, ax = plt.subplots(figsize=(4.5, 4))
    ConfusionMatrixDisplay(cm, display_labels=list(display_labels)).plot(
        ax=ax, cmap="Blues", colorbar=False)
    ax.set_title(title, fontweight="bold")
    fig.tight_layout()
    return fig


def plot_model_comparison(comparison: pd.DataFrame,
                          metrics: Sequence[str] = ("accuracy", "f1_score", "precision", "recall"),
                          title: str = "Model comparison") -> Figure:
    """Grouped bars of selected metrics, one group per model."""
    metrics = [m for m in metrics if m in comparison.columns]
    long = (comparison[metrics]
            .rename_axis("model")
            .reset_index()
            .melt(id_vars="model", var_name="metric", value_name="score"))
    fig, ax = plt.subplots(figsize=(9, 4.5))
    sns.barplot(data=long, x="model", y="score", hue="metric", ax=ax, palette="Set2")
    ax.set_ylim(0, 1.05)
    ax.set_xlabel("")
    ax.set_title(title, fontweight="bold")
    ax.legend(loc="lower right")
    fig.tight_layout()
    return fig


def plot_feature_importance(importances: pd.Series, top_n: int = 15,
                            title: str = "Feature importance") -> Figure:
    top = importances.sort_values(ascending=False).head(top_n)
    fig, ax = plt.subplots(figsize=(8, max(3, 0.4 * len(top))))
    sns.barplot(x=top.values, y=top.index.astype(str), ax=ax,
                hue=top.index.astype(str), palette="viridis", legend=False)
    ax.set_xlabel("Importance")
    ax.set_ylabel("")
    ax.set_title(title, fontweight="bold")
    fig.tight_layout()
    return fig


def plot_survival_trends(df: pd.DataFrame,
                         value_col: str = "survival_rate",
                         hue: str = "race",
                         facet: str = "gender",
                         title: Optional[str] = None) -> Figure:
    """Survival rate over years, one line per ``hue`` value, one panel per ``facet`` value."""
    facets: List = sorted(df[facet].unique(), key=str) if facet in df.columns else [None]
    fig, axes = plt.subplots(1, len(facets), figsize=(6 * len(facets), 4), sharey=True, squeeze=False)
    for ax, level in zip(axes[0], facets):
        data = df if level is None else df[df[facet] == level]
        sns.lineplot(data=data, x="year", y=value_col, hue=hue, marker="o", ax=ax)
        ax.set_title(str(level) if level is not None else value_col)
        ax.set_ylabel("Survival rate (%)")
    if title:
        fig.suptitle(title, fontweight="bold")
    fig.tight_layout()
    return fig


def plot_metric_table(metrics: Dict[str, Dict[str, float]], metric: str = "f1_score",
                      title: str = "Validation vs test") -> Figure:
    """Side-by-side bars of one metric per model across partitions."""
    frame = pd.DataFrame({part: {m: v.get(metric, np.nan) for m, v in by_model.items()}
                          for part, by_model in metrics.items()})
    long = frame.rename_axis("model").reset_index().melt(id_vars="model", var_name="partition",
                                                           value_name=metric)
    fig, ax = plt.subplots(figsize=(8, 4))
    sns.barplot(data=long, x="model", y=metric, hue="partition", ax=ax, palette="Set2")
    ax.set_ylim(0, 1.05)
    ax.set_xlabel("")
    ax.set_title(title, fontweight="bold")
    fig.tight_layout()
    return fig
