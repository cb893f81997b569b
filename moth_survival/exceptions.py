"""
Exceptions raised by the moth_survival package.
"""


class MothSurvivalError(Exception):
    """Base class for analysis errors."""


class DataValidationError(MothSurvivalError, ValueError):
    """The input dataset is malformed or internally inconsistent."""


class ModelFitError(MothSurvivalError):
    """A hazards model failed to converge or produced unusable estimates.

    Carries the name of the candidate model that failed so callers can
    report it next to the ranking table.
    """

    def __init__(self, model_name: str, message: str):
        super().__init__(f"[{model_name}] {message}")
        self.model_name = model_name
        self.message = message
