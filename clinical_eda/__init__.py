"""
Clinical EDA

Exploratory analysis and classification reports for a diabetes symptom
survey, plus trend and disparity reports for cancer survival-rate series.
"""

__version__ = "1.0.0"

from .config import load_config
from .data_generation import SymptomDataGenerator, SurvivalSeriesGenerator
from .pipeline import (
    CategoricalEncoder,
    DataValidator,
    StratifiedSplitter,
)
from .utils import (
    ExperimentTracker,
    ModelEvaluator,
)

__all__ = [
    'load_config',
    'SymptomDataGenerator',
    'SurvivalSeriesGenerator',
    'CategoricalEncoder',
    'DataValidator',
    'StratifiedSplitter',
    'ExperimentTracker',
    'ModelEvaluator',
]
