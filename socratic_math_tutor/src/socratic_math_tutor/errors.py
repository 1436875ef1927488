"""
Engine Errors

Only InvalidStateError is meant to reach callers. The other two are
recovered inside the engine with a usable fallback.
"""

from typing import Optional


class SocraticEngineError(Exception):
    """Base class for dialogue engine errors."""


class InvalidStateError(SocraticEngineError):
    """Engine method called out of sequence. Session state is left untouched."""

    def __init__(self, operation: str, status, message: Optional[str] = None):
        self.operation = operation
        self.status = status
        status_name = getattr(status, "value", status)
        super().__init__(message or f"Cannot call {operation}() while engine is {status_name}")


class CompletionBackendError(SocraticEngineError):
    """The external completion call failed, timed out or returned nothing."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class MalformedProfileError(SocraticEngineError):
    """Student profile input is missing expected fields."""

    def __init__(self, message: str, missing_fields: Optional[list] = None):
        self.missing_fields = missing_fields or []
        super().__init__(message)
