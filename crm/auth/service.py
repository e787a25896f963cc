"""Authentication service — login, registration, sessions and password reset."""

import re
from datetime import timedelta

from crm.config import settings
from crm.notifications import EmailNotifier
from crm.stores import StoreRegistry
from crm.utils import Logger, new_id, utcnow
from crm.utils.exceptions import (
    AuthenticationError,
    ConflictError,
    InvalidCredentials,
    InvalidOrExpiredToken,
    ValidationError,
)
from .helpers import (
    burn_password_check,
    create_access_token,
    hash_password,
    verify_password,
)
from .schemas import (
    AuthResult,
    OrganizationPublic,
    RegisterRequest,
    SessionData,
    UserPublic,
)

logger = Logger("auth")

FORGOT_PASSWORD_MESSAGE = (
    "If an account with that email exists, we have sent a password reset link."
)

BILLING_PERIOD = timedelta(days=30)


def make_org_slug(name: str) -> str:
    """`Acme, Inc.` -> `acme-inc`"""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class AuthService:
    def __init__(self, stores: StoreRegistry, notifier: EmailNotifier):
        self.users = stores.users
        self.organizations = stores.organizations
        self.reset_tokens = stores.reset_tokens
        self.notifier = notifier

    # ── Sessions ─────────────────────────────────────────────────
    def _issue_token(self, user: dict) -> str:
        return create_access_token(
            {
                "sub": str(user["_id"]),
                "email": user["email"],
                "organization_id": str(user.get("organization_id", "")),
                "role": user.get("role", "viewer"),
            }
        )

    async def _organization_for(self, user: dict) -> OrganizationPublic | None:
        org_id = user.get("organization_id")
        org = await self.organizations.find_by_id(org_id) if org_id else None
        return OrganizationPublic.from_doc(org) if org else None

    async def authenticate(self, email: str, password: str) -> AuthResult:
        """
        1. Look the user up by (normalized) email.
        2. Verify password; unknown email, wrong password and deactivated
           accounts all fail with the same InvalidCredentials.
        3. Record the login and return JWT + public user + organization.
        """
        user = await self.users.find_by_email(email)
        if not user:
            burn_password_check(password)
            raise InvalidCredentials()

        if not verify_password(password, user.get("password", "")):
            raise InvalidCredentials()

        if not user.get("is_active", True):
            raise InvalidCredentials()

        await self.users.update_last_login(user["_id"])
        user = await self.users.find_by_id(user["_id"]) or user

        token = self._issue_token(user)
        logger.info(f"User logged in: {user['_id']}")
        return AuthResult(
            token=token,
            user=UserPublic.from_doc(user),
            organization=await self._organization_for(user),
        )

    async def register(self, data: RegisterRequest) -> AuthResult:
        """Create a tenant (organization) with its first, admin, user."""
        if await self.users.find_by_email(data.email):
            raise ConflictError("User with this email already exists")

        slug = make_org_slug(data.organization_name)
        if not slug:
            raise ValidationError(
                "organizationName: must contain at least one letter or digit"
            )
        if await self.organizations.find_by_slug(slug):
            raise ConflictError("Organization with this name already exists")

        now = utcnow()
        org_doc = {
            "_id": new_id(),
            "name": data.organization_name,
            "slug": slug,
            "plan": "starter",
            "status": "active",
            "settings": {
                "currency": "USD",
                "timezone": "UTC",
                "date_format": "MM/DD/YYYY",
                "industry": None,
                "features": ["contacts", "deals", "activities"],
            },
            "billing": {
                "current_period_start": now,
                "current_period_end": now + BILLING_PERIOD,
            },
            "created_at": now,
            "updated_at": now,
        }
        org = await self.organizations.create(org_doc)

        user_doc = {
            "_id": new_id(),
            "email": data.email,
            "password": hash_password(data.password),
            "first_name": data.first_name,
            "last_name": data.last_name,
            "organization_id": org["_id"],
            "role": "admin",
            "is_active": True,
            "avatar": None,
            "preferences": {"theme": "light", "notifications": True, "timezone": "UTC"},
            "last_login_at": None,
            "created_at": now,
            "updated_at": now,
        }
        try:
            user = await self.users.create(user_doc)
        except ConflictError:
            # Lost a race on the email; release the slug
            await self.organizations.delete(org["_id"])
            raise

        logger.info(f"User registered: {user['_id']} (organization {org['_id']})")
        return AuthResult(
            token=self._issue_token(user),
            user=UserPublic.from_doc(user),
            organization=OrganizationPublic.from_doc(org),
        )

    async def get_session(self, user_id: str | None) -> SessionData:
        """Fresh user + organization for a verified bearer token."""
        user = await self.users.find_by_id(user_id) if user_id else None
        if not user or not user.get("is_active", True):
            raise AuthenticationError("Invalid or expired token")
        return SessionData(
            user=UserPublic.from_doc(user),
            organization=await self._organization_for(user),
        )

    async def send_welcome(self, email: str, user_name: str) -> None:
        result = await self.notifier.send_welcome_email(email, user_name)
        if not result.success:
            logger.error(f"Failed to send welcome email to {email}: {result.error}")

    # ── Password reset ───────────────────────────────────────────
    async def request_password_reset(self, email: str) -> None:
        """
        Runs after the generic forgot-password response has been sent.
        Only issues a token and mails it when the account exists.
        """
        user = await self.users.find_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown account")
            return

        record = await self.reset_tokens.issue(email, settings.reset_token_ttl)
        user_name = f"{user.get('first_name', '')} {user.get('last_name', '')}".strip()
        result = await self.notifier.send_password_reset_email(
            email, record.token, user_name or email
        )
        if not result.success:
            logger.error(f"Failed to send password reset email to {email}: {result.error}")
        else:
            logger.info(f"Password reset email sent to {email}")

    async def verify_reset_token(self, token: str) -> None:
        if not await self.reset_tokens.peek(token):
            raise InvalidOrExpiredToken()

    async def reset_password(self, token: str, new_password: str) -> None:
        # Consumed before the password write so a token can never be used twice.
        record = await self.reset_tokens.consume(token)
        if not record:
            raise InvalidOrExpiredToken()

        if not await self.users.set_password(record.email, hash_password(new_password)):
            raise InvalidOrExpiredToken()

        logger.info(f"Password reset successful for {record.email}")
