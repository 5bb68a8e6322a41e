"""Exception types raised by the cross prediction pipeline."""


class PopcrossError(Exception):
    """Base class for errors that abort a pipeline run."""


class DataFormatError(PopcrossError, ValueError):
    """Input tables do not have the shape or content the pipeline needs."""


class PredictionError(PopcrossError, RuntimeError):
    """The prediction engine could not process its inputs."""
