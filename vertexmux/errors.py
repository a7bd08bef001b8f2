"""
Gateway error taxonomy and backend error classification.
"""
from enum import Enum
from typing import Dict, Any, Optional


class GatewayError(Exception):
    """
    Base class for errors surfaced to API callers.
    """
    status_code = 500
    error_type = "internal_error"

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.status_code,
            }
        }


class InvalidRequestError(GatewayError):
    status_code = 400
    error_type = "invalid_request_error"


class AuthenticationError(GatewayError):
    status_code = 401
    error_type = "authentication_error"


class RateLimitedError(GatewayError):
    status_code = 429
    error_type = "rate_limit_error"


class ModelNotFoundError(GatewayError):
    status_code = 404
    error_type = "model_not_found_error"


class InternalError(GatewayError):
    pass


class ErrorKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    MODEL_NOT_FOUND = "model_not_found"
    INTERNAL = "internal"


_ERROR_CLASSES = {
    ErrorKind.INVALID_REQUEST: InvalidRequestError,
    ErrorKind.AUTHENTICATION: AuthenticationError,
    ErrorKind.RATE_LIMITED: RateLimitedError,
    ErrorKind.MODEL_NOT_FOUND: ModelNotFoundError,
    ErrorKind.INTERNAL: InternalError,
}

_STATUS_KINDS = {
    401: ErrorKind.AUTHENTICATION,
    403: ErrorKind.AUTHENTICATION,
    404: ErrorKind.MODEL_NOT_FOUND,
    429: ErrorKind.RATE_LIMITED,
}

# Checked in order; the first matching group wins.
_MESSAGE_MARKERS = (
    (ErrorKind.AUTHENTICATION, ("authentication", "unauthorized", "api key")),
    (ErrorKind.RATE_LIMITED, ("quota", "rate limit", "resource exhausted")),
    (ErrorKind.MODEL_NOT_FOUND, ("not found",)),
)


def _status_code(exc: BaseException) -> Optional[int]:
    # google.genai.errors.APIError exposes `code`; httpx-style errors `status_code`
    for attr in ("code", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def classify_backend_error(exc: BaseException) -> ErrorKind:
    """
    Decide which caller-facing error a backend failure maps to.

    A structured HTTP status on the exception is preferred; the message text
    is only pattern-matched when no usable status is present.

    Args:
        exc (BaseException): The error raised by the backend client.

    Returns:
        ErrorKind: The classification.
    """
    if isinstance(exc, GatewayError):
        for kind, cls in _ERROR_CLASSES.items():
            if type(exc) is cls:
                return kind

    status = _status_code(exc)
    if status in _STATUS_KINDS:
        return _STATUS_KINDS[status]

    message = str(exc).lower()
    for kind, markers in _MESSAGE_MARKERS:
        if any(marker in message for marker in markers):
            return kind
    return ErrorKind.INTERNAL


def translate_backend_error(exc: BaseException) -> GatewayError:
    if isinstance(exc, GatewayError):
        return exc
    kind = classify_backend_error(exc)
    return _ERROR_CLASSES[kind](str(exc) or exc.__class__.__name__)
