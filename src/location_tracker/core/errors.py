"""Exceptions raised by the location registry."""

from typing import List, Optional


class LocationTrackerError(Exception):
    """Base class for all registry errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ReportValidationError(LocationTrackerError):
    """A location report is missing a required field or has the wrong type.

    Surfaced to callers as a 400 response. The registry state is never
    touched when this is raised.
    """

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []


class RegistryInternalError(LocationTrackerError):
    """Unexpected failure while storing or reading registry state."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    @property
    def error(self) -> str:
        """Text of the underlying failure, used in the 500 response body."""
        if self.cause is not None:
            return str(self.cause)
        return self.message
