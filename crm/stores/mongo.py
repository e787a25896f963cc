"""
MongoDB-backed stores (Motor).

Collections:
  users                  unique index on `email`
  organizations          unique index on `slug`
  password_reset_tokens  `_id` is the token; TTL index on `expires_at`
"""

import secrets
from datetime import timedelta
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from crm.utils import utcnow
from crm.utils.exceptions import ConflictError
from .base import (
    Clock,
    OrganizationStore,
    ResetTokenRecord,
    ResetTokenStore,
    UserStore,
)


def _to_record(doc: dict) -> ResetTokenRecord:
    return ResetTokenRecord(
        token=doc["_id"],
        email=doc["email"],
        expires_at=doc["expires_at"],
        created_at=doc["created_at"],
    )


class MongoUserStore(UserStore):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.users = db["users"]

    async def ensure_indexes(self) -> None:
        await self.users.create_index([("email", ASCENDING)], unique=True)
        await self.users.create_index([("organization_id", ASCENDING)])

    async def find_by_email(self, email: str) -> Optional[dict]:
        return await self.users.find_one({"email": email})

    async def find_by_id(self, user_id: str) -> Optional[dict]:
        return await self.users.find_one({"_id": user_id})

    async def create(self, doc: dict) -> dict:
        try:
            await self.users.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("User with this email already exists")
        return doc

    async def update(self, user_id: str, fields: dict) -> Optional[dict]:
        return await self.users.find_one_and_update(
            {"_id": user_id},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )


class MongoOrganizationStore(OrganizationStore):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.orgs = db["organizations"]

    async def ensure_indexes(self) -> None:
        await self.orgs.create_index([("slug", ASCENDING)], unique=True)

    async def find_by_id(self, org_id: str) -> Optional[dict]:
        return await self.orgs.find_one({"_id": org_id})

    async def find_by_slug(self, slug: str) -> Optional[dict]:
        return await self.orgs.find_one({"slug": slug})

    async def create(self, doc: dict) -> dict:
        try:
            await self.orgs.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("Organization with this name already exists")
        return doc

    async def update(self, org_id: str, fields: dict) -> Optional[dict]:
        return await self.orgs.find_one_and_update(
            {"_id": org_id},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )

    async def delete(self, org_id: str) -> bool:
        result = await self.orgs.delete_one({"_id": org_id})
        return result.deleted_count == 1


class MongoResetTokenStore(ResetTokenStore):
    """
    Reset tokens in `password_reset_tokens`.

    The TTL monitor only runs about once a minute, so expiry is still
    checked on every read.
    """

    def __init__(self, db: AsyncIOMotorDatabase, clock: Clock = utcnow):
        super().__init__(clock)
        self.tokens = db["password_reset_tokens"]

    async def ensure_indexes(self) -> None:
        await self.tokens.create_index(
            [("expires_at", ASCENDING)], expireAfterSeconds=0
        )
        await self.tokens.create_index([("email", ASCENDING)])

    async def issue(self, email: str, ttl: timedelta) -> ResetTokenRecord:
        now = self.clock()
        doc = {
            "_id": secrets.token_hex(32),
            "email": email,
            "expires_at": now + ttl,
            "created_at": now,
        }
        await self.tokens.insert_one(doc)
        return _to_record(doc)

    async def peek(self, token: str) -> Optional[ResetTokenRecord]:
        doc = await self.tokens.find_one({"_id": token})
        if not doc:
            return None
        record = _to_record(doc)
        if record.is_expired(self.clock()):
            await self.tokens.delete_one({"_id": token})
            return None
        return record

    async def consume(self, token: str) -> Optional[ResetTokenRecord]:
        doc = await self.tokens.find_one_and_delete({"_id": token})
        if not doc:
            return None
        record = _to_record(doc)
        if record.is_expired(self.clock()):
            return None
        return record

    async def sweep_expired(self) -> int:
        result = await self.tokens.delete_many({"expires_at": {"$lt": self.clock()}})
        return result.deleted_count
