"""Exceptions raised by Touch Guard."""


class TouchGuardError(Exception):
    """Base class for Touch Guard errors."""


class InferenceError(TouchGuardError):
    """An embedding or segmentation call could not produce a result."""


class ConfigurationError(TouchGuardError):
    """A configuration value is outside its valid range."""
