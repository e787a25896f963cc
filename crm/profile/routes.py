"""
Profile Routes — user self-service endpoints.

These endpoints operate on the CURRENTLY LOGGED-IN user (from JWT).

Endpoints:
    PUT    /profile             Update own profile (name, avatar, preferences)
    POST   /change-password     Change own password
"""

from fastapi import APIRouter, Depends, Request

from crm.dependencies import get_current_user_id, get_stores
from crm.rbac import require_permission
from crm.stores import StoreRegistry
from crm.utils import success_response
from .schemas import ChangePasswordRequest, UpdateProfileRequest
from .service import ProfileService

profile_router = APIRouter()


@profile_router.put("/profile")
@require_permission("profile:update")
async def update_my_profile(
    request: Request,
    body: UpdateProfileRequest,
    user_id: str = Depends(get_current_user_id),
    stores: StoreRegistry = Depends(get_stores),
):
    svc = ProfileService(stores.users)
    user = await svc.update_profile(
        user_id, body.model_dump(exclude_unset=True, exclude_none=True)
    )
    return success_response(
        data={"user": user.model_dump(by_alias=True, mode="json")},
        message="Profile updated",
    )


@profile_router.post("/change-password")
@require_permission("profile:update")
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    user_id: str = Depends(get_current_user_id),
    stores: StoreRegistry = Depends(get_stores),
):
    """
    Change the current user's password.

    Requires the correct current password; the new one must differ from it.
    """
    svc = ProfileService(stores.users)
    await svc.change_password(user_id, body.current_password, body.new_password)
    return success_response(message="Password changed successfully")
