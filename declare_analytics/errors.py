"""
Exception hierarchy for the analytics engine.

Only problems that make a run impossible are raised. A malformed row or
line is skipped and reported through
:class:`~declare_analytics.diagnostics.ParseDiagnostics` instead.
"""


class DeclareAnalyticsError(Exception):
    """Base class for all engine errors."""


class InputFileError(DeclareAnalyticsError, ValueError):
    """An input file is missing or unusable as a whole."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class MissingModelError(InputFileError):
    """The DECLARE model file is absent or could not be read."""


class EmptyModelError(InputFileError):
    """The model file was read but not a single constraint could be parsed."""
