"""
Pipeline Errors
===============

Exception hierarchy shared by all pipeline stages.

Every error is fatal to a run; ``stage`` names the phase that failed so
the entry point can report it.
"""

from typing import List, Optional


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    stage = "pipeline"


class DataUnavailable(PipelineError):
    """A data source could not be fetched or parsed."""

    stage = "load"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Could not load data from {source}: {reason}")


class SchemaMismatch(PipelineError):
    """Expected columns or category values are absent or invalid."""

    stage = "schema"


class FitFailure(PipelineError):
    """The underlying estimator failed while fitting."""

    stage = "fit"

    def __init__(self, algorithm: str, reason: str, fold: Optional[int] = None):
        self.algorithm = algorithm
        self.fold = fold
        self.reason = reason
        where = f"fold {fold}" if fold is not None else "final fit"
        super().__init__(f"Fitting '{algorithm}' failed ({where}): {reason}")


class PredictionSchemaMismatch(PipelineError):
    """The table to predict lacks feature columns the model was fitted on."""

    stage = "predict"

    def __init__(self, missing_columns: List[str]):
        self.missing_columns = list(missing_columns)
        super().__init__(
            f"Prediction table is missing {len(self.missing_columns)} feature "
            f"column(s): {self.missing_columns}"
        )
