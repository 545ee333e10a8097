"""
Data agent error types — one class per failure family of the session and
resolution pipeline.
"""

from typing import Any, Optional


class DataAgentError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConnectionError(DataAgentError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)


class RequestTimeoutError(DataAgentError):
    def __init__(self, message: str, request_id: Optional[str] = None):
        super().__init__("timeout", message, {"id": request_id} if request_id else None)


class SessionError(DataAgentError):
    def __init__(self, message: str, code: str = "session_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class CapabilityError(DataAgentError):
    """A completion, embedding or vector-store call failed."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("capability_error", message, details)


class AuthError(DataAgentError):
    def __init__(self, message: str, code: str = "auth_error"):
        super().__init__(code, message)


class ValidationError(DataAgentError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("validation_error", message, details)
