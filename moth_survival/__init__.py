"""
Moth Survival Analysis Package

Half-day interval reshaping and Cox proportional-hazards model selection for
adult moth survival under acclimation and exposure temperatures.
"""

__version__ = "0.1.0"

from . import descriptive
from . import diagnostics
from . import models
from . import plots
from . import report
from . import survival_analysis
from . import synthetic
from . import utils
from .exceptions import DataValidationError, ModelFitError, MothSurvivalError

__all__ = [
    "descriptive",
    "diagnostics",
    "models",
    "plots",
    "report",
    "survival_analysis",
    "synthetic",
    "utils",
    "DataValidationError",
    "ModelFitError",
    "MothSurvivalError",
]
