"""Test configuration and fixtures."""

import pytest
import pandas as pd
import numpy as np
import tempfile
from pathlib import Path

from clinical_eda.config import DEFAULT_CONFIG, deep_merge
from clinical_eda.data_generation import SymptomDataGenerator, SurvivalSeriesGenerator


@pytest.fixture
def symptom_data():
    """Seeded symptom survey, 60% positive."""
    return SymptomDataGenerator(seed=42).generate_dataset(num_individuals=200, positive_prevalence=0.6)


@pytest.fixture
def survival_data():
    """Small survival series: two cancer types, three races, both genders, five years."""
    return SurvivalSeriesGenerator(seed=7, noise_sd=0.5).generate_series(
        cancer_types=['Breast', 'Lung'],
        races=['White', 'Black', 'Hispanic'],
        years=range(2010, 2015),
    )


@pytest.fixture
def labelled_frame():
    """Tiny hand-written frame with mixed column kinds."""
    return pd.DataFrame({
        'Age': [40, 55, 33, 61, 47, 52],
        'Gender': ['Male', 'Female', 'Female', 'Male', 'Female', 'Male'],
        'Polyuria': ['Yes', 'No', 'Yes', 'Yes', 'No', 'No'],
        'sudden weight loss': ['No', 'No', 'Yes', 'Yes', 'No', 'Yes'],
        'class': ['Positive', 'Negative', 'Positive', 'Positive', 'Negative', 'Negative'],
    })


@pytest.fixture
def temp_directory():
    """Create temporary directory for testing."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_config():
    """Fast configuration: tiny grids, three folds, tracking off."""
    return deep_merge(DEFAULT_CONFIG, {
        'grid_search': {
            'random_forest': {'n_estimators': [20], 'max_depth': [None, 4]},
            'linear_svm': {'C': [0.1, 1.0]},
            'decision_tree': {'max_depth': [3, None]},
        },
        'cross_validation': {'n_splits': 3, 'scoring': 'f1'},
        'mlflow': {'enabled': False},
    })


@pytest.fixture(autouse=True)
def seed_numpy():
    np.random.seed(42)
