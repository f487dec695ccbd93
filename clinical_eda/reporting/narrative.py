"""
Prose interpretation of analysis results.

Each helper turns one result table or metrics dict into a short paragraph
for the HTML report. Wording is deliberately plain; numbers come straight
from the inputs.
"""

from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

MODEL_DISPLAY_NAMES = {
    'random_forest': 'Random forest',
    'linear_svm': 'Linear SVM',
    'decision_tree': 'Decision tree',
}


def display_name(model_name: str) -> str:
    return MODEL_DISPLAY_NAMES.get(model_name, model_name.replace('_', ' ').capitalize())


def format_p_value(p: float) -> str:
    if p < 0.001:
        return "p < 0.001"
    return f"p = {p:.3f}"


def describe_class_balance(balance: pd.DataFrame, positive_label: str,
                           oversampling: bool = True) -> str:
    """balance: output of ``class_balance`` (count, proportion per label)."""
    total = int(balance['count'].sum())
    if positive_label not in balance.index:
        return f"The dataset contains {total} records and no '{positive_label}' cases."

    share = float(balance.loc[positive_label, 'proportion'])
    count = int(balance.loc[positive_label, 'count'])
    text = (f"The dataset contains {total} records, of which {count} ({share:.1%}) "
            f"are labelled '{positive_label}'.")
    minority = float(balance['proportion'].min())
    if minority < 0.4:
        text += f" The smaller class makes up {minority:.1%} of the data"
        text += (", so training folds are rebalanced with SMOTE before fitting." if oversampling
                 else " and no resampling is applied.")
    else:
        text += " The classes are reasonably balanced."
    return text


def describe_numeric_difference(df: pd.DataFrame, column: str, label_col: str) -> str:
    means = df.groupby(label_col)[column].mean()
    medians = df.groupby(label_col)[column].median()
    parts = [f"{label}: mean {means[label]:.1f}, median {medians[label]:.1f}" for label in means.index]
    return f"{column.replace('_', ' ').capitalize()} by outcome ({'; '.join(parts)})."


def describe_top_associations(rates: pd.DataFrame, tests: Optional[pd.DataFrame] = None,
                              top_n: int = 3, alpha: float = 0.05) -> str:
    """rates: output of ``categorical_rates_by_label``; tests: output of ``association_tests``."""
    if rates.empty:
        return "No categorical indicators were available to compare between outcome groups."

    labels = [c for c in rates.columns if c != 'difference']
    ordered = rates.sort_values('difference', key=np.abs, ascending=False) if 'difference' in rates else rates
    phrases = []
    for feature in ordered.index[:top_n]:
        shares = " vs ".join(f"{rates.loc[feature, l]:.0%} of {l}" for l in labels)
        phrase = f"{feature.replace('_', ' ')} ({shares}"
        if tests is not None and feature in tests.index:
            phrase += f", {format_p_value(float(tests.loc[feature, 'p_value']))}"
        phrases.append(phrase + ")")

    text = "The indicators that differ most between outcome groups are " + "; ".join(phrases) + "."
    if tests is not None and not tests.empty:
        n_sig = int((tests['p_value'] < alpha).sum())
        text += (f" {n_sig} of {len(tests)} categorical features show a significant association "
                 f"with the outcome at the {alpha:.0%} level (chi-square test).")
    return text


def describe_split(summary: pd.DataFrame, tolerance: float = 0.05) -> str:
    """summary: output of ``split_summary``.

    Partition rates count as matching when each lies within ``tolerance`` of the ``all`` row.
    """
    partitions = summary.drop(index='all', errors='ignore')
    parts = [f"{name} {int(row['rows'])} rows ({row['positive_rate']:.1%} positive)"
             for name, row in partitions.iterrows()]
    text = "The data was partitioned with stratification on the outcome: " + ", ".join(parts) + "."
    if 'all' not in summary.index:
        return text
    overall = summary.loc['all', 'positive_rate']
    drift = (partitions['positive_rate'] - overall).abs()
    if (drift <= tolerance).all():
        return text + " Matching positive rates across partitions confirm the stratification held."
    return (text + f" Positive rates drift up to {drift.max():.1%} from the overall {overall:.1%}, "
            "so the partitions are not equally balanced.")


def describe_model_result(model_name: str, metrics: Dict[str, float],
                          best_params: Optional[Dict[str, Any]] = None,
                          cv_score: Optional[float] = None,
                          partition: str = 'validation') -> str:
    text = (f"{display_name(model_name)} reached accuracy {metrics['accuracy']:.3f} and "
            f"F-measure {metrics['f1_score']:.3f} on the {partition} partition "
            f"(precision {metrics['precision']:.3f}, recall {metrics['recall']:.3f}).")
    fn = metrics.get('false_negatives')
    fp = metrics.get('false_positives')
    if fn is not None and fp is not None:
        text += f" It missed {fn} positive case{'s' if fn != 1 else ''} and raised {fp} false alarm{'s' if fp != 1 else ''}."
    if best_params:
        params = ", ".join(f"{k.replace('model__', '')}={v}" for k, v in sorted(best_params.items()))
        text += f" Grid search selected {params}"
        if cv_score is not None:
            text += f" (mean cross-validated F-measure {cv_score:.3f})"
        text += "."
    return text


def describe_model_comparison(comparison: pd.DataFrame, metric: str = 'f1_score',
                              partition: str = 'validation') -> str:
    if comparison.empty or metric not in comparison.columns:
        return "No models were evaluated."
    ordered = comparison.sort_values(metric, ascending=False)
    best = ordered.index[0]
    text = (f"On the {partition} partition, {display_name(best)} scored highest by "
            f"{metric.replace('_', ' ')} ({ordered.iloc[0][metric]:.3f}).")
    if len(ordered) > 1:
        runner_up = ordered.index[1]
        gap = ordered.iloc[0][metric] - ordered.iloc[1][metric]
        text += f" {display_name(runner_up)} followed at {ordered.iloc[1][metric]:.3f}"
        text += " (a negligible difference)." if gap < 0.01 else f" ({gap:.3f} lower)."
    return text


def describe_generalization(model_name: str, val_metrics: Dict[str, float],
                            test_metrics: Dict[str, float], metric: str = 'f1_score') -> str:
    val = val_metrics[metric]
    test = test_metrics[metric]
    delta = test - val
    if abs(delta) < 0.02:
        verdict = "essentially unchanged, suggesting the validation estimate was not optimistic"
    elif delta < 0:
        verdict = f"{abs(delta):.3f} lower, so the validation estimate was somewhat optimistic"
    else:
        verdict = f"{delta:.3f} higher than on validation"
    return (f"On the held-out test partition {display_name(model_name)} scored "
            f"{metric.replace('_', ' ')} {test:.3f}, {verdict}.")


def describe_survival_trends(summary: pd.DataFrame, top_n: int = 3) -> str:
    """summary: output of ``summarize_groups``."""
    if summary.empty:
        return "No survival series were available."
    ordered = summary.sort_values('trend_per_year', ascending=False)
    first_year = int(summary['first_year'].min())
    last_year = int(summary['last_year'].max())

    def _label(idx) -> str:
        return ", ".join(str(v) for v in (idx if isinstance(idx, tuple) else (idx,)))

    improving = [f"{_label(idx)} (+{row['trend_per_year']:.2f} points/year)"
                 for idx, row in ordered.head(top_n).iterrows() if row['trend_per_year'] > 0]
    declining = [f"{_label(idx)} ({row['trend_per_year']:.2f} points/year)"
                 for idx, row in ordered.iloc[::-1].head(top_n).iterrows() if row['trend_per_year'] < 0]

    text = f"Across {len(summary)} series between {first_year} and {last_year}, "
    text += ("the fastest improvement was for " + "; ".join(improving) + ".") if improving \
        else "no series showed improvement."
    if declining:
        text += " Declining series: " + "; ".join(declining) + "."
    return text


def describe_disparity(disparity: pd.DataFrame, group_col: str, reference: str) -> str:
    """disparity: output of ``disparity_by_year``."""
    others = disparity[disparity[group_col] != reference]
    if others.empty:
        return f"No groups other than {reference} were available for comparison."
    mean_gap = others.groupby(group_col)['gap'].mean().sort_values()
    parts = [f"{group} {gap:+.1f} points" for group, gap in mean_gap.items()]
    text = f"Relative to {reference}, average survival-rate gaps were: " + "; ".join(parts) + "."
    if mean_gap.iloc[0] < 0:
        text += f" The largest shortfall was for {mean_gap.index[0]}."
    else:
        text += f" No group fell below {reference} on average."
    return text
