"""popcross: predict, rank and plot candidate parent crosses."""

from .cohort import Cohort, build_cohort
from .config import AnalysisConfig, ReportConfig, Settings
from .data import BreedingData, recode_genotypes
from .engine import pop_predict
from .errors import DataFormatError, PopcrossError, PredictionError
from .markers import subsample_markers
from .pipeline import run_pipeline
from .prediction import CrossPredictions, predict_crosses
from .selection import parent_tally, select_best

__all__ = [
    "AnalysisConfig",
    "BreedingData",
    "Cohort",
    "CrossPredictions",
    "DataFormatError",
    "PopcrossError",
    "PredictionError",
    "ReportConfig",
    "Settings",
    "build_cohort",
    "parent_tally",
    "pop_predict",
    "predict_crosses",
    "recode_genotypes",
    "run_pipeline",
    "select_best",
    "subsample_markers",
]
