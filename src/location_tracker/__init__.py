"""Live location tracker: in-memory location registry with an HTTP API."""

__version__ = "1.0.0"
