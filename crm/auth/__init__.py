from .service import AuthService, FORGOT_PASSWORD_MESSAGE, make_org_slug

__all__ = ["AuthService", "FORGOT_PASSWORD_MESSAGE", "make_org_slug"]
