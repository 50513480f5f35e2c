"""
Error types for Shekho.

All of them are recoverable: callers render an empty state, show a
non-blocking notice, or fall back to fresh progress.
"""


class ShekhoError(Exception):
    """Base class for Shekho errors."""


class ContentNotFound(ShekhoError, LookupError):
    """A unit key or lesson id has no curriculum entry."""


class SynthesisFailed(ShekhoError):
    """The speech synthesis collaborator returned an error or was unreachable."""


class CorruptProgressData(ShekhoError, ValueError):
    """Stored progress could not be parsed."""


class InvalidTransition(ShekhoError):
    """A view transition that the navigation state machine does not allow."""
