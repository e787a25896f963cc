"""
Profile schemas — user self-service for profile and password management.
"""

from typing import Optional

from pydantic import Field, field_validator

from crm.auth.schemas import CamelModel


class PreferencesUpdate(CamelModel):
    theme: Optional[str] = Field(None, pattern=r"^(light|dark)$")
    notifications: Optional[bool] = None
    timezone: Optional[str] = Field(None, min_length=1, max_length=64)


class UpdateProfileRequest(CamelModel):
    """PUT /users/profile — update own profile info."""
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    avatar: Optional[str] = Field(None, max_length=500)
    preferences: Optional[PreferencesUpdate] = None


class ChangePasswordRequest(CamelModel):
    """POST /users/change-password"""
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)

    @field_validator("new_password")
    @classmethod
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("Password must not be blank")
        return v
