"""
Request middleware: bearer authentication, rate limiting and request logging.

AuthMiddleware runs on every request except PUBLIC_ROUTES:
  1. Decode JWT → extract user id, organization id, role
  2. Set request.state.user, user_id, organization_id, user_role,
     user_permissions
Route handlers then enforce RBAC with @require_permission.
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from crm.auth.helpers import decode_access_token
from crm.rbac import DEFAULT_ROLE, get_role_permissions
from crm.utils import Logger, error_response
from crm.utils.exceptions import AuthenticationError
from .rate_limit import FixedWindowLimiter, RateLimitMiddleware, RateLimitRule

request_logger = Logger("request")

REQUEST_ID_HEADER = "X-Request-ID"

# Routes that skip auth, matched exactly
PUBLIC_ROUTES = {
    "/health",
    "/openapi.json",
    "/api/docs",
    "/redoc",
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/forgot-password",
    "/api/auth/reset-password",
}

# Routes that skip auth, matched by prefix
PUBLIC_PREFIXES = (
    "/api/auth/verify-reset-token/",
    "/api/docs/",
)


def is_public(path: str) -> bool:
    path = path.rstrip("/") or "/"
    return path in PUBLIC_ROUTES or path.startswith(PUBLIC_PREFIXES)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _unauthorized(message: str):
    return error_response(
        message,
        code=401,
        error_type=AuthenticationError.error_type,
        headers={"WWW-Authenticate": "Bearer"},
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """JWT verification for every non-public route."""

    async def dispatch(self, request: Request, call_next):
        # Preflight is answered by the CORS middleware
        if request.method == "OPTIONS" or is_public(request.url.path):
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return _unauthorized("Access token required")

        if not auth_header.startswith("Bearer "):
            return _unauthorized("Invalid token format. Expected 'Bearer <token>'")

        token = auth_header.split(" ", 1)[1].strip()
        if not token:
            return _unauthorized("Access token required")

        try:
            payload = decode_access_token(token)
        except AuthenticationError as exc:
            return _unauthorized(exc.detail)

        role = payload.get("role") or DEFAULT_ROLE

        request.state.user = payload
        request.state.user_id = payload.get("sub")
        request.state.organization_id = payload.get("organization_id")
        request.state.user_role = role
        request.state.user_permissions = get_role_permissions(role)

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One line in, one line out per request, tagged with a request id that is
    echoed back in `X-Request-ID`. Level follows the status: warning for 4xx,
    error for 5xx.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        line = f"[{request_id}] {request.method} {request.url.path}"
        client = request.client.host if request.client else "unknown"
        started = time.perf_counter()

        request_logger.info(f"{line} from {client}")
        try:
            response = await call_next(request)
        except Exception:
            request_logger.exception(f"{line} -> 500 after {_elapsed_ms(started)}ms")
            raise

        status = response.status_code
        summary = f"{line} -> {status} in {_elapsed_ms(started)}ms"
        if status >= 500:
            request_logger.error(summary)
        elif status >= 400:
            request_logger.warning(summary)
        else:
            request_logger.info(summary)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


__all__ = [
    "AuthMiddleware",
    "RequestLoggingMiddleware",
    "RateLimitMiddleware",
    "RateLimitRule",
    "FixedWindowLimiter",
    "PUBLIC_ROUTES",
    "is_public",
]
