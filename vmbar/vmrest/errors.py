"""Errors raised by the vmrest client."""

from typing import Optional


class VMRestError(Exception):
    """Base class for every failure of a vmrest call."""

    message = "vmrest request failed"

    def __str__(self) -> str:
        return self.message


class InvalidRequest(VMRestError):
    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail

    @property
    def message(self) -> str:
        return f"Invalid request: {self.detail}" if self.detail else "Invalid request"


class NetworkError(VMRestError):
    def __init__(self, cause: Exception):
        super().__init__(cause)
        self.cause = cause

    @property
    def message(self) -> str:
        return f"Network error: {self.cause}"


class HttpError(VMRestError):
    def __init__(self, status_code: int, server_message: Optional[str] = None):
        super().__init__(status_code, server_message)
        self.status_code = status_code
        self.server_message = server_message

    @property
    def message(self) -> str:
        return f"HTTP {self.status_code}: {self.server_message or 'Unknown error'}"


class DecodingError(VMRestError):
    def __init__(self, cause: Exception):
        super().__init__(cause)
        self.cause = cause

    @property
    def message(self) -> str:
        return f"Failed to decode response: {self.cause}"


class AuthenticationFailed(VMRestError):
    message = "Authentication failed"


class PermissionDenied(VMRestError):
    message = "Permission denied"


class NotFound(VMRestError):
    message = "Resource not found"


class Conflict(VMRestError):
    message = "Resource state conflicts"
