"""Synthetic datasets for offline runs and tests."""

from .generate_symptom_data import (
    SymptomDataGenerator,
    SurvivalSeriesGenerator,
    SYMPTOM_COLUMNS,
)

__all__ = ['SymptomDataGenerator', 'SurvivalSeriesGenerator', 'SYMPTOM_COLUMNS']
