"""Client-side error taxonomy."""

from typing import Optional


class ClientError(Exception):
    """Base class for client-side errors."""


class TransportError(ClientError):
    """The registry could not be reached (connection failure or timeout)."""


class RegistryResponseError(ClientError):
    """The registry answered with a non-success status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Registry returned {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class PositioningError(ClientError):
    """The device positioning subsystem failed."""


class PositionTimeoutError(PositioningError):
    """No position fix was acquired within the acquisition timeout."""

    def __init__(self, timeout_secs: float, message: Optional[str] = None):
        super().__init__(message or f"No position fix within {timeout_secs:g}s")
        self.timeout_secs = timeout_secs


class AgentStateError(ClientError):
    """The reporting agent was used in an invalid lifecycle state."""
