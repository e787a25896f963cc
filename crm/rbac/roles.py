"""
Role definitions and permission matrix.

Permission format:  "{module}:{action}"
  - Modules : organization, profile
  - Actions : read, update, *  (wildcard)
  - Wildcard: "*:*"  means ALL modules, ALL actions
"""

ROLES: dict[str, list[str]] = {
    "admin": [
        "*:*",  # everything, including tenant settings
    ],
    "manager": [
        "organization:read",
        "profile:*",
    ],
    "sales_rep": [
        "organization:read",
        "profile:*",
    ],
    "viewer": [
        "organization:read",
        "profile:read",
    ],
}

DEFAULT_ROLE = "viewer"


def get_role_permissions(role: str) -> list[str]:
    """Return the permission list for a given role name."""
    return ROLES.get(role, [])
