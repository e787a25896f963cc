from fastapi import HTTPException, status


class CRMError(HTTPException):
    """Base class for errors returned to HTTP callers in the error envelope."""

    error_type = "Error"
    default_detail = "Request failed"
    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str | None = None, headers: dict | None = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.default_detail,
            headers=headers,
        )


class ValidationError(CRMError):
    error_type = "ValidationError"
    default_detail = "Validation failed"
    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str | None = None, errors: list[dict] | None = None):
        super().__init__(detail)
        self.errors = errors or []


class InvalidCredentials(CRMError):
    error_type = "InvalidCredentials"
    default_detail = "Invalid credentials"
    status_code_default = status.HTTP_401_UNAUTHORIZED


class AuthenticationError(CRMError):
    error_type = "AuthenticationError"
    default_detail = "Invalid or expired token"
    status_code_default = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str | None = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class InvalidOrExpiredToken(CRMError):
    error_type = "InvalidOrExpiredToken"
    default_detail = "Invalid or expired reset token"
    status_code_default = status.HTTP_400_BAD_REQUEST


class PermissionDenied(CRMError):
    error_type = "PermissionDenied"
    default_detail = "Permission denied"
    status_code_default = status.HTTP_403_FORBIDDEN


class NotFoundError(CRMError):
    error_type = "NotFoundError"
    default_detail = "Resource not found"
    status_code_default = status.HTTP_404_NOT_FOUND


class ConflictError(CRMError):
    error_type = "ConflictError"
    default_detail = "Resource already exists"
    status_code_default = status.HTTP_409_CONFLICT


class RateLimitExceeded(CRMError):
    error_type = "RateLimitExceeded"
    default_detail = "Too many requests, please try again later."
    status_code_default = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, detail: str | None = None, retry_after: int = 1):
        super().__init__(detail, headers={"Retry-After": str(retry_after)})
        self.retry_after = retry_after


class InternalError(CRMError):
    error_type = "InternalError"
    default_detail = "Internal server error"
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR


class EmailDeliveryFailure(Exception):
    """Raised inside the notifier when the SMTP transport fails. Never reaches HTTP callers."""

    def __init__(self, recipient: str, reason: str):
        super().__init__(f"Failed to deliver email to {recipient}: {reason}")
        self.recipient = recipient
        self.reason = reason
