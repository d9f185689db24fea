"""Normalized errors raised by the n8n adapter.

Every failure path ends in exactly one ``N8nAPIError``: a short summary
suitable for end users, a stable code (an HTTP-like integer or a symbolic
string), and a free-text diagnostic assembled from the call context.
"""

from typing import Optional, Union

ErrorCode = Union[int, str]

TIMEOUT = "TIMEOUT"
CONNECTION_ERROR = "CONNECTION_ERROR"
DNS_ERROR = "DNS_ERROR"


class N8nAPIError(Exception):
    """Base class of the normalized error shape

    Args:
        message: Human-readable summary
        code: HTTP-like status or symbolic marker; defaults to the class code
        details: Diagnostic text with endpoint, request and upstream body
    """

    default_code: ErrorCode = 500

    def __init__(self, message: str, code: Optional[ErrorCode] = None, details: str = ""):
        super().__init__(message)
        self.message = message
        self.code = self.default_code if code is None else code
        self.details = details

    @property
    def http_status(self) -> int:
        return self.code if isinstance(self.code, int) else 500

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": {
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, code={self.code!r})"


class ValidationError(N8nAPIError):
    """Parameters are missing, mistyped or out of range (local or upstream 400)"""
    default_code = 400


class UnknownOperationError(N8nAPIError):
    """No operation is registered under the requested name"""
    default_code = 404


class AuthError(N8nAPIError):
    default_code = 401


class PermissionDeniedError(N8nAPIError):
    default_code = 403


class NotFoundError(N8nAPIError):
    default_code = 404


class BusinessRuleError(N8nAPIError):
    default_code = 422


class UpstreamServerError(N8nAPIError):
    default_code = 500


class UpstreamHTTPError(N8nAPIError):
    """Non-2xx status without a dedicated classification"""


class UpstreamTimeoutError(N8nAPIError):
    default_code = TIMEOUT


class UpstreamConnectionError(N8nAPIError):
    default_code = CONNECTION_ERROR


class DNSResolutionError(UpstreamConnectionError):
    default_code = DNS_ERROR


class UnexpectedError(N8nAPIError):
    default_code = 500


__all__ = [
    "AuthError",
    "BusinessRuleError",
    "CONNECTION_ERROR",
    "DNSResolutionError",
    "DNS_ERROR",
    "ErrorCode",
    "N8nAPIError",
    "NotFoundError",
    "PermissionDeniedError",
    "TIMEOUT",
    "UnexpectedError",
    "UnknownOperationError",
    "UpstreamConnectionError",
    "UpstreamHTTPError",
    "UpstreamServerError",
    "UpstreamTimeoutError",
    "ValidationError",
]
