"""FastAPI dependencies resolving the stores and notifier attached to the app."""

from fastapi import Depends, Request

from crm.auth.service import AuthService
from crm.notifications import EmailNotifier
from crm.stores import StoreRegistry
from crm.utils.exceptions import AuthenticationError


def get_stores(request: Request) -> StoreRegistry:
    stores = getattr(request.app.state, "stores", None)
    if stores is None:
        raise RuntimeError("Stores not initialized. Is the app lifespan running?")
    return stores


def get_notifier(request: Request) -> EmailNotifier:
    return request.app.state.notifier


def get_auth_service(
    stores: StoreRegistry = Depends(get_stores),
    notifier: EmailNotifier = Depends(get_notifier),
) -> AuthService:
    return AuthService(stores, notifier)


def get_current_user_id(request: Request) -> str:
    """User id set by the AuthMiddleware from the bearer token."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise AuthenticationError("Authentication required")
    return user_id


def get_current_organization_id(request: Request) -> str:
    org_id = getattr(request.state, "organization_id", None)
    if not org_id:
        raise AuthenticationError("Authentication required")
    return org_id
