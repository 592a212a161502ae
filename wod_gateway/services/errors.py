"""Failures raised by the AI proxy and mapped to HTTP responses by the controller."""

from __future__ import annotations

from wod_gateway.models import ErrorCode


class GatewayError(Exception):
    """Base class carrying everything needed to build an error response."""

    status_code = 500
    code = ErrorCode.INTERNAL_ERROR
    retryable = False

    def __init__(self, message: str, *, code: ErrorCode | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def body(self) -> dict:
        return {"error": self.message, "code": self.code.value}


class Unauthenticated(GatewayError):
    status_code = 401
    code = ErrorCode.UNAUTHENTICATED


class InvalidRequest(GatewayError):
    status_code = 400
    code = ErrorCode.INVALID_REQUEST


class ImageTooLarge(InvalidRequest):
    status_code = 413
    code = ErrorCode.IMAGE_TOO_LARGE


class QuotaExceeded(GatewayError):
    status_code = 429
    code = ErrorCode.QUOTA_EXCEEDED

    def __init__(self, message: str, *, limit: int):
        super().__init__("Daily limit reached")
        self.user_message = message
        self.limit = limit

    def body(self) -> dict:
        return {
            "error": self.message,
            "code": self.code.value,
            "message": self.user_message,
            "remaining": 0,
        }


class ServiceUnavailable(GatewayError):
    status_code = 503
    code = ErrorCode.SERVICE_UNAVAILABLE
    retryable = True


class ModelBackendError(GatewayError):
    """Model call failed; ``transient`` decides status and retryability."""

    def __init__(self, message: str, *, transient: bool, upstream_status: int | None = None):
        super().__init__(message)
        self.transient = transient
        self.upstream_status = upstream_status
        if transient:
            self.status_code = 503
            self.code = ErrorCode.MODEL_UNAVAILABLE
        else:
            self.status_code = 502
            self.code = ErrorCode.MODEL_BACKEND_ERROR
        self.retryable = transient


class ModelTimeout(ModelBackendError):
    def __init__(self, message: str = "Model request timed out"):
        super().__init__(message, transient=True)
        self.status_code = 504
        self.code = ErrorCode.MODEL_TIMEOUT


class MalformedModelOutput(GatewayError):
    status_code = 502
    code = ErrorCode.MALFORMED_MODEL_OUTPUT


__all__ = [
    "GatewayError",
    "Unauthenticated",
    "InvalidRequest",
    "ImageTooLarge",
    "QuotaExceeded",
    "ServiceUnavailable",
    "ModelBackendError",
    "ModelTimeout",
    "MalformedModelOutput",
]
