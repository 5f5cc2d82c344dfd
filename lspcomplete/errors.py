"""Exceptions raised by the completion engine."""


class CompletionError(Exception):
    """Base class for completion engine errors."""


class MalformedCompletionResponse(CompletionError):
    """A completion response could not be decoded into suggestions."""


class InvalidSettingsError(CompletionError, ValueError):
    """A configuration value has the wrong type or range."""


class ServerNotRunningError(CompletionError):
    """The analysis server process is not running."""
