"""In-process dict-backed stores. State lives as long as the process."""

import copy
import secrets
from datetime import timedelta
from typing import Optional

from crm.utils import utcnow
from crm.utils.exceptions import ConflictError
from .base import (
    Clock,
    OrganizationStore,
    ResetTokenRecord,
    ResetTokenStore,
    UserStore,
)


class InMemoryUserStore(UserStore):
    def __init__(self):
        self._by_id: dict[str, dict] = {}
        self._id_by_email: dict[str, str] = {}

    async def find_by_email(self, email: str) -> Optional[dict]:
        user_id = self._id_by_email.get(email)
        return copy.deepcopy(self._by_id[user_id]) if user_id else None

    async def find_by_id(self, user_id: str) -> Optional[dict]:
        user = self._by_id.get(user_id)
        return copy.deepcopy(user) if user else None

    async def create(self, doc: dict) -> dict:
        if doc["email"] in self._id_by_email:
            raise ConflictError("User with this email already exists")
        self._by_id[doc["_id"]] = copy.deepcopy(doc)
        self._id_by_email[doc["email"]] = doc["_id"]
        return copy.deepcopy(doc)

    async def update(self, user_id: str, fields: dict) -> Optional[dict]:
        user = self._by_id.get(user_id)
        if not user:
            return None
        user.update(copy.deepcopy(fields))
        return copy.deepcopy(user)


class InMemoryOrganizationStore(OrganizationStore):
    def __init__(self):
        self._by_id: dict[str, dict] = {}
        self._id_by_slug: dict[str, str] = {}

    async def find_by_id(self, org_id: str) -> Optional[dict]:
        org = self._by_id.get(org_id)
        return copy.deepcopy(org) if org else None

    async def find_by_slug(self, slug: str) -> Optional[dict]:
        org_id = self._id_by_slug.get(slug)
        return copy.deepcopy(self._by_id[org_id]) if org_id else None

    async def create(self, doc: dict) -> dict:
        if doc["slug"] in self._id_by_slug:
            raise ConflictError("Organization with this name already exists")
        self._by_id[doc["_id"]] = copy.deepcopy(doc)
        self._id_by_slug[doc["slug"]] = doc["_id"]
        return copy.deepcopy(doc)

    async def update(self, org_id: str, fields: dict) -> Optional[dict]:
        org = self._by_id.get(org_id)
        if not org:
            return None
        org.update(copy.deepcopy(fields))
        return copy.deepcopy(org)

    async def delete(self, org_id: str) -> bool:
        org = self._by_id.pop(org_id, None)
        if not org:
            return False
        self._id_by_slug.pop(org["slug"], None)
        return True


class InMemoryResetTokenStore(ResetTokenStore):
    """
    Reset tokens in a dict.

    None of the methods await between reading and writing a key, so a token
    cannot be consumed twice even with concurrent requests on the loop.
    Expired records are removed on touch and by `sweep_expired`, which the
    app lifespan runs periodically.
    """

    def __init__(self, clock: Clock = utcnow):
        super().__init__(clock)
        self._records: dict[str, ResetTokenRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def issue(self, email: str, ttl: timedelta) -> ResetTokenRecord:
        now = self.clock()
        record = ResetTokenRecord(
            token=secrets.token_hex(32),
            email=email,
            expires_at=now + ttl,
            created_at=now,
        )
        self._records[record.token] = record
        return record

    async def peek(self, token: str) -> Optional[ResetTokenRecord]:
        record = self._records.get(token)
        if record is None:
            return None
        if record.is_expired(self.clock()):
            del self._records[token]
            return None
        return record

    async def consume(self, token: str) -> Optional[ResetTokenRecord]:
        record = self._records.pop(token, None)
        if record is None or record.is_expired(self.clock()):
            return None
        return record

    async def sweep_expired(self) -> int:
        now = self.clock()
        expired = [t for t, r in self._records.items() if r.is_expired(now)]
        for token in expired:
            del self._records[token]
        return len(expired)
