"""
Profile Service — user self-service operations.

Allows authenticated users to:
    - Update their name, avatar and preferences
    - Change their password (requires current password)
"""

from crm.auth.helpers import hash_password, verify_password
from crm.auth.schemas import UserPublic
from crm.stores import UserStore
from crm.utils import Logger, merge_non_null, utcnow
from crm.utils.exceptions import (
    AuthenticationError,
    NotFoundError,
    ValidationError,
)

logger = Logger("profile")

ALLOWED_FIELDS = {"first_name", "last_name", "avatar", "preferences"}


class ProfileService:
    def __init__(self, users: UserStore):
        self.users = users

    async def _get(self, user_id: str) -> dict:
        user = await self.users.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def update_profile(self, user_id: str, update_data: dict) -> UserPublic:
        """
        Update the current user's own profile.
        Cannot change email, role or organization via this endpoint.
        Preferences are merged into the stored ones.
        """
        clean = {
            k: v for k, v in update_data.items() if k in ALLOWED_FIELDS and v is not None
        }
        if not clean:
            raise ValidationError("No valid fields to update")

        user = await self._get(user_id)
        if "preferences" in clean:
            clean["preferences"] = merge_non_null(
                user.get("preferences"), clean["preferences"]
            )
        clean["updated_at"] = utcnow()

        updated = await self.users.update(user_id, clean)
        if not updated:
            raise NotFoundError("User not found")
        return UserPublic.from_doc(updated)

    async def change_password(
        self, user_id: str, current_password: str, new_password: str
    ) -> None:
        user = await self._get(user_id)

        if not verify_password(current_password, user.get("password", "")):
            raise AuthenticationError("Current password is incorrect")

        if verify_password(new_password, user.get("password", "")):
            raise ValidationError("New password cannot be the same as the current password")

        now = utcnow()
        await self.users.update(
            user_id,
            {
                "password": hash_password(new_password),
                "password_changed_at": now,
                "updated_at": now,
            },
        )
        logger.info(f"Password changed for user {user_id}")
