"""Errors raised by the pipeline for malformed inputs."""


class DataFormatError(ValueError):
    """An input file or table does not have the expected structure or contents."""


class IdentifierCollisionError(DataFormatError):
    """Two sample columns map onto the same patient identifier."""
