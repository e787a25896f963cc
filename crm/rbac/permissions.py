"""Matching `module:action` permission strings, with `*` wildcards."""

WILDCARD = "*"


def parse_permission(permission: str) -> tuple[str, str]:
    """`"profile:update"` -> `("profile", "update")`. Raises ValueError if malformed."""
    module, sep, action = permission.partition(":")
    if not sep or not module or not action or ":" in action:
        raise ValueError(f"Malformed permission '{permission}'. Expected 'module:action'.")
    return module, action


def _grants(granted: str, module: str, action: str) -> bool:
    try:
        g_module, g_action = parse_permission(granted)
    except ValueError:
        return False
    return g_module in (WILDCARD, module) and g_action in (WILDCARD, action)


def check_permission(user_permissions: list[str], required: str) -> bool:
    """
    True when any of `user_permissions` covers `required`.

      "*:*"            everything
      "profile:*"      every action on profile
      "profile:read"   exactly that
    """
    if not required:
        return False
    module, action = parse_permission(required)
    return any(_grants(p, module, action) for p in user_permissions)
