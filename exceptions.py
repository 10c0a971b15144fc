"""
Custom exceptions for the draft session engine

Illegal draft actions are NOT exceptions: the state machine rejects them with
a (False, reason) result. Exceptions cover the boundaries - missing sessions,
transport failures, malformed configuration.
"""


class DraftEngineException(Exception):
    """Base exception for all draft engine errors."""
    pass


class APIException(DraftEngineException):
    """Exception for API-related errors."""
    pass


class IllegalTransitionError(DraftEngineException):
    """Raised when a caller insists on a draft action the state machine rejected."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class MissingReferenceError(DraftEngineException):
    """Raised when a unit or cost table id has no catalog entry."""
    pass


class SessionNotFoundError(DraftEngineException):
    """Raised when a draft session does not exist or has expired."""
    pass


class TransportError(DraftEngineException):
    """Raised when a spectator stream connection is interrupted."""
    pass


class ValidationException(DraftEngineException):
    """Exception for data validation errors."""
    pass


class ConfigurationException(DraftEngineException):
    """Exception for configuration-related errors."""
    pass
