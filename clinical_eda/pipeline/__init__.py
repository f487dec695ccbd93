"""Pipeline utilities and shared components."""

from .feature_engineering import (
    CategoricalEncoder,
    create_preprocessing_pipeline
)

from .preprocessing import (
    DataValidator,
    DataScaler,
    encode_label,
    normalize_columns,
)

from .splitting import StratifiedSplitter, split_summary

__all__ = [
    'CategoricalEncoder',
    'create_preprocessing_pipeline',
    'DataValidator',
    'DataScaler',
    'encode_label',
    'normalize_columns',
    'StratifiedSplitter',
    'split_summary',
]
