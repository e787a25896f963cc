from .roles import ROLES, DEFAULT_ROLE, get_role_permissions
from .permissions import check_permission, parse_permission
from .decorators import require_permission

__all__ = [
    "ROLES",
    "DEFAULT_ROLE",
    "get_role_permissions",
    "check_permission",
    "parse_permission",
    "require_permission",
]
