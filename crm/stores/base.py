"""
Store interfaces for users, organizations and password-reset tokens.

Records are plain dicts shaped like the stored documents (snake_case keys,
string `_id`, aware UTC datetimes). Two backends implement these:
`crm.stores.memory` (dicts, for development and tests) and
`crm.stores.mongo` (Motor collections with unique / TTL indexes).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from crm.utils import utcnow

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class ResetTokenRecord:
    token: str
    email: str
    expires_at: datetime
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class UserStore(ABC):
    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[dict]: ...

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[dict]: ...

    @abstractmethod
    async def create(self, doc: dict) -> dict:
        """Insert a user. Raises ConflictError if the email is taken."""

    @abstractmethod
    async def update(self, user_id: str, fields: dict) -> Optional[dict]:
        """Set `fields` on the user and return the updated record."""

    async def set_password(self, email: str, password_hash: str) -> bool:
        user = await self.find_by_email(email)
        if not user:
            return False
        now = utcnow()
        await self.update(
            user["_id"],
            {"password": password_hash, "password_changed_at": now, "updated_at": now},
        )
        return True

    async def update_last_login(self, user_id: str) -> None:
        await self.update(user_id, {"last_login_at": utcnow()})


class OrganizationStore(ABC):
    @abstractmethod
    async def find_by_id(self, org_id: str) -> Optional[dict]: ...

    @abstractmethod
    async def find_by_slug(self, slug: str) -> Optional[dict]: ...

    @abstractmethod
    async def create(self, doc: dict) -> dict:
        """Insert an organization. Raises ConflictError if the slug is taken."""

    @abstractmethod
    async def update(self, org_id: str, fields: dict) -> Optional[dict]: ...

    @abstractmethod
    async def delete(self, org_id: str) -> bool: ...


class ResetTokenStore(ABC):
    """
    Password-reset tokens keyed by token string.

    Lifecycle: issued -> consumed (reset) | expired (detected on touch or
    swept) | left outstanding.
    """

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    @abstractmethod
    async def issue(self, email: str, ttl: timedelta) -> ResetTokenRecord: ...

    @abstractmethod
    async def peek(self, token: str) -> Optional[ResetTokenRecord]:
        """Return the record if valid, without consuming it. Expired records are deleted."""

    @abstractmethod
    async def consume(self, token: str) -> Optional[ResetTokenRecord]:
        """Atomically remove and return a valid record; None if absent or expired."""

    @abstractmethod
    async def sweep_expired(self) -> int:
        """Delete every expired record. Returns the number removed."""
