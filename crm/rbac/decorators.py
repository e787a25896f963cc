"""
Declarative permission checks for route handlers.

    @router.put("/current")
    @require_permission("organization:update")
    async def update_org(request: Request, ...):
        ...

The handler must take `request: Request`; the permissions come from
`request.state.user_permissions`, set by AuthMiddleware.
"""

from functools import wraps

from starlette.requests import Request

from crm.utils import Logger
from crm.utils.exceptions import InternalError, PermissionDenied
from .permissions import check_permission, parse_permission

logger = Logger("rbac")


def _request_from(args, kwargs) -> Request | None:
    request = kwargs.get("request")
    if isinstance(request, Request):
        return request
    return next((a for a in args if isinstance(a, Request)), None)


def require_permission(*permissions: str):
    """Every permission listed must be granted. Apply below the route decorator."""
    for permission in permissions:
        parse_permission(permission)

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = _request_from(args, kwargs)
            if request is None:
                raise InternalError(f"{func.__name__} is protected but takes no Request")

            granted: list[str] = getattr(request.state, "user_permissions", [])
            missing = [p for p in permissions if not check_permission(granted, p)]
            if missing:
                logger.warning(
                    f"Denied {request.method} {request.url.path} for user "
                    f"{getattr(request.state, 'user_id', None)} "
                    f"(role {getattr(request.state, 'user_role', None)}): needs {', '.join(missing)}"
                )
                raise PermissionDenied(f"Permission denied. Requires: {', '.join(missing)}")

            return await func(*args, **kwargs)

        return wrapper

    return decorator
