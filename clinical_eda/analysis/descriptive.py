"""
Descriptive statistics grouped by outcome label.
"""

import logging
from typing import List, Optional

import numpy as np
import pandas as pd
from scipy.stats import chi2_contingency

logger = logging.getLogger(__name__)


def class_balance(y: pd.Series) -> pd.DataFrame:
    """Count and proportion of each label value."""
    counts = y.value_counts()
    return pd.DataFrame({
        'count': counts.astype(int),
        'proportion': counts / counts.sum(),
    }).rename_axis(y.name or 'label')


def numeric_summary_by_label(df: pd.DataFrame, label_col: str,
                             columns: Optional[List[str]] = None) -> pd.DataFrame:
    """count/mean/std/min/quartiles/max of each numeric column within each label group."""
    if label_col not in df.columns:
        raise ValueError(f"Label column '{label_col}' not found")
    if columns is None:
        columns = [c for c in df.select_dtypes(include=[np.number]).columns if c != label_col]
    if not columns:
        return pd.DataFrame()

    grouped = df.groupby(label_col)
    # One row per (feature, label)
    frames = {col: grouped[col].describe() for col in columns}
    return pd.concat(frames, names=['feature', label_col])


def categorical_rates_by_label(df: pd.DataFrame, label_col: str,
                               positive_value: str = 'Yes',
                               columns: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Share of each outcome group reporting each indicator.

    Args:
        df: Survey table
        label_col: Outcome column
        positive_value: Indicator value counted as "present"
        columns: Indicator columns; defaults to every column containing ``positive_value``

    Returns:
        DataFrame indexed by indicator with one column per label value,
        plus ``difference`` (second minus first label in sorted order, e.g. Positive - Negative)
    """
    if label_col not in df.columns:
        raise ValueError(f"Label column '{label_col}' not found")
    if columns is None:
        candidates = df.drop(columns=[label_col]).select_dtypes(include=['object', 'category', 'string'])
        columns = [c for c in candidates.columns if (candidates[c] == positive_value).any()]

    present = df[columns].eq(positive_value).astype(float)
    present[label_col] = df[label_col]
    rates = present.groupby(label_col)[columns].mean().T

    labels = sorted(rates.columns, key=str)
    if len(labels) == 2:
        rates['difference'] = rates[labels[1]] - rates[labels[0]]
        rates = rates.sort_values('difference', key=np.abs, ascending=False)
    rates.columns.name = None
    return rates


def association_tests(df: pd.DataFrame, label_col: str,
                      columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Chi-square test of independence between each categorical column and the label."""
    if label_col not in df.columns:
        raise ValueError(f"Label column '{label_col}' not found")
    if columns is None:
        columns = [c for c in df.select_dtypes(include=['object', 'category', 'string']).columns
                   if c != label_col]

    rows = []
    for col in columns:
        ct = pd.crosstab(df[col].astype(str), df[label_col].astype(str))
        if ct.shape[0] < 2 or ct.shape[1] < 2:
            logger.info(f"Skipping chi-square for '{col}': single level")
            continue
        chi2_stat, p, dof, _ = chi2_contingency(ct)
        n = ct.to_numpy().sum()
        r, c = ct.shape
        cramers_v = float(np.sqrt(chi2_stat / (n * min(r - 1, c - 1))))
        rows.append({'feature': col, 'chi2': float(chi2_stat), 'dof': int(dof),
                     'p_value': float(p), 'cramers_v': cramers_v})

    if not rows:
        return pd.DataFrame(columns=['chi2', 'dof', 'p_value', 'cramers_v'])
    return pd.DataFrame(rows).set_index('feature').sort_values('p_value')
