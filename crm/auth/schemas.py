from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case input; dumps camelCase with by_alias."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _normalize_email(v):
    if isinstance(v, str):
        return v.strip().lower()
    return v


NormalizedEmail = Annotated[EmailStr, BeforeValidator(_normalize_email)]


# ── Requests ─────────────────────────────────────────────────────
class LoginRequest(CamelModel):
    """POST /auth/login"""
    email: NormalizedEmail
    password: str = Field(..., min_length=6)


class RegisterRequest(CamelModel):
    """POST /auth/register"""
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: NormalizedEmail
    password: str = Field(..., min_length=6, max_length=128)
    organization_name: str = Field(..., min_length=2, max_length=100)

    @field_validator("first_name", "last_name", "organization_name")
    @classmethod
    def strip_text(cls, v):
        v = " ".join(v.split())
        if not v:
            raise ValueError("must not be blank")
        return v


class ForgotPasswordRequest(CamelModel):
    """POST /auth/forgot-password"""
    email: NormalizedEmail


class ResetPasswordRequest(CamelModel):
    """POST /auth/reset-password"""
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("token", mode="before")
    @classmethod
    def strip_token(cls, v):
        return v.strip() if isinstance(v, str) else v


# ── Public projections ───────────────────────────────────────────
class UserPreferences(CamelModel):
    theme: str = "light"
    notifications: bool = True
    timezone: str = "UTC"


class UserPublic(CamelModel):
    """User as returned to clients. Never carries the password hash."""
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    organization_id: str
    avatar: Optional[str] = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "UserPublic":
        return cls(
            id=str(doc["_id"]),
            email=doc["email"],
            first_name=doc.get("first_name", ""),
            last_name=doc.get("last_name", ""),
            role=doc.get("role", "viewer"),
            organization_id=str(doc.get("organization_id", "")),
            avatar=doc.get("avatar"),
            preferences=UserPreferences(**(doc.get("preferences") or {})),
            last_login_at=doc.get("last_login_at"),
            created_at=doc.get("created_at"),
        )


class OrganizationSettings(CamelModel):
    currency: str = "USD"
    timezone: str = "UTC"
    date_format: str = "MM/DD/YYYY"
    industry: Optional[str] = None
    features: list[str] = Field(default_factory=lambda: ["contacts", "deals", "activities"])


class OrganizationPublic(CamelModel):
    id: str
    name: str
    slug: str
    plan: str
    settings: OrganizationSettings

    @classmethod
    def from_doc(cls, doc: dict) -> "OrganizationPublic":
        return cls(
            id=str(doc["_id"]),
            name=doc["name"],
            slug=doc["slug"],
            plan=doc.get("plan", "starter"),
            settings=OrganizationSettings(**(doc.get("settings") or {})),
        )


# ── Responses ────────────────────────────────────────────────────
class SessionData(CamelModel):
    user: UserPublic
    organization: Optional[OrganizationPublic] = None


class AuthResult(SessionData):
    token: str
