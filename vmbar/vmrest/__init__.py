"""vmrest control-plane client."""

from .client import CONTENT_TYPE, VMRestClient
from .errors import (
    AuthenticationFailed,
    Conflict,
    DecodingError,
    HttpError,
    InvalidRequest,
    NetworkError,
    NotFound,
    PermissionDenied,
    VMRestError,
)

__all__ = [
    "CONTENT_TYPE",
    "VMRestClient",
    "AuthenticationFailed",
    "Conflict",
    "DecodingError",
    "HttpError",
    "InvalidRequest",
    "NetworkError",
    "NotFound",
    "PermissionDenied",
    "VMRestError",
]
