"""
Configuration defaults and YAML loading for the analysis pipelines.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent.absolute()

DEFAULT_CONFIG: Dict[str, Any] = {
    'random_seed': 42,
    'data': {
        'source': {
            'type': 'local',
            'path': str(PROJECT_ROOT / 'data' / 'raw' / 'diabetes_symptoms.csv'),
        },
        'label_column': 'class',
        'positive_label': 'Positive',
        'numeric_columns': ['age'],
        'slice_column': 'gender',
    },
    'split': {
        'test_size': 0.2,
        'val_size': 0.2,
    },
    'feature_engineering': {
        'categorical_encoding': {
            'method': 'binary',
        },
        'scaling': {
            'enabled': True,
            'method': 'standard',
        },
    },
    'imbalance': {
        'method': 'smote',
        'smote': {
            'sampling_strategy': 'auto',
            'k_neighbors': 5,
        },
    },
    'models': ['random_forest', 'linear_svm', 'decision_tree'],
    'grid_search': {
        'random_forest': {
            'n_estimators': [100, 300],
            'max_depth': [None, 5, 10],
            'min_samples_leaf': [1, 3],
        },
        'linear_svm': {
            'C': [0.01, 0.1, 1.0, 10.0],
        },
        'decision_tree': {
            'max_depth': [3, 5, 8, None],
            'min_samples_leaf': [1, 5, 10],
            'criterion': ['gini', 'entropy'],
        },
    },
    'cross_validation': {
        'n_splits': 5,
        'scoring': 'f1',
    },
    'selection': {
        'metric': 'f1_score',
        'partition': 'validation',
    },
    'report': {
        'enabled': True,
        'title': 'Early-Stage Diabetes Symptoms: Exploratory Analysis',
        'filename': 'report.html',
    },
    'survival': {
        'source': {
            'type': 'query',
            'dataset_key': 'uscancerstats/cancer-survival-rates',
            'sql': 'SELECT * FROM survival_rates',
        },
        'value_column': 'survival_rate',
        'group_by': ['cancer_type', 'race', 'gender'],
        'disparity': {
            'group_col': 'race',
            'reference': 'White',
        },
        'report': {
            'title': 'Cancer Survival Rates by Race and Gender',
            'filename': 'survival_report.html',
        },
    },
    'dataset_service': {
        'base_url': 'https://api.data.world/v0',
        'token': '',
        'timeout_sec': 30,
    },
    'mlflow': {
        'enabled': False,
        'experiment_name': 'clinical_eda',
        'tracking_uri': 'file:./mlruns',
    },
}


def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``update`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(path: Optional[Union[str, Path]] = None,
                overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file layered over the defaults.

    Args:
        path: Optional YAML file. A missing file is an error.
        overrides: Optional dict applied last (e.g. from CLI flags)

    Returns:
        Complete configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        with open(path, 'r', encoding='utf-8') as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"Configuration root must be a mapping: {path}")
        config = deep_merge(config, file_config)
        logger.info(f"Loaded configuration from {path}")

    if overrides:
        config = deep_merge(config, overrides)

    service = config.setdefault('dataset_service', {})
    if not service.get('token'):
        service['token'] = os.getenv('DW_AUTH_TOKEN', '')

    return config


REDACTED = '***'
SECRET_KEYS = (('dataset_service', 'token'),)


def redacted_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``config`` safe to persist or log: credentials are masked."""
    safe = copy.deepcopy(config)
    for section, key in SECRET_KEYS:
        block = safe.get(section)
        if isinstance(block, dict) and block.get(key):
            block[key] = REDACTED
    return safe
