"""
Stratified train / validation / test partitioning.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

logger = logging.getLogger(__name__)

# A class needs one member in each of the three partitions
MIN_CLASS_MEMBERS = 3


@dataclass
class StratifiedSplitter:
    """Split rows into train/validation/test while preserving label proportions.

    The test partition is carved off first; the validation partition is then
    taken from what remains, so ``val_size`` is a fraction of the non-test rows.
    """
    test_size: float = 0.2
    val_size: float = 0.2
    random_state: int = 42

    def __post_init__(self):
        if not 0.0 < float(self.test_size) < 0.5:
            raise ValueError("test_size must be in (0, 0.5).")
        if not 0.0 < float(self.val_size) < 0.5:
            raise ValueError("val_size must be in (0, 0.5).")

    def split(self, X: pd.DataFrame, y: pd.Series) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        if len(X) != len(y):
            raise ValueError(f"X and y lengths differ: {len(X)} != {len(y)}")

        counts = y.value_counts()
        if len(counts) < 2:
            raise ValueError("Stratified split requires at least two classes")
        if counts.min() < MIN_CLASS_MEMBERS:
            raise ValueError(
                f"Every class needs at least {MIN_CLASS_MEMBERS} rows; got {counts.to_dict()}"
            )

        positions = np.arange(len(y))
        train_val_idx, test_idx = train_test_split(
            positions,
            test_size=float(self.test_size),
            stratify=y.to_numpy(),
            random_state=self.random_state,
        )
        train_idx, val_idx = train_test_split(
            train_val_idx,
            test_size=float(self.val_size),
            stratify=y.to_numpy()[train_val_idx],
            random_state=self.random_state,
        )

        logger.info(f"Split sizes: train={len(train_idx)}, validation={len(val_idx)}, test={len(test_idx)}")
        return train_idx, val_idx, test_idx


def split_summary(y: pd.Series, splits: Tuple[np.ndarray, np.ndarray, np.ndarray]) -> pd.DataFrame:
    """Rows and positive rate of each partition, plus the full data for reference."""
    rows = [{'partition': 'all', 'rows': len(y), 'positive_rate': float(y.mean())}]
    for name, idx in zip(('train', 'validation', 'test'), splits):
        part = y.iloc[idx]
        rows.append({'partition': name, 'rows': len(part), 'positive_rate': float(part.mean())})
    return pd.DataFrame(rows).set_index('partition')
