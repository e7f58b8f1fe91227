"""Custom exceptions for the gap inspection system."""


class GapCheckError(Exception):
    """Base application error."""
    pass


class CameraError(GapCheckError):
    """Camera access errors."""
    pass


class CameraOpenError(CameraError):
    """Capture device could not be opened at any attempted resolution."""
    pass


class ConfigError(GapCheckError):
    """Malformed settings record."""
    pass
