from dataclasses import dataclass

from motor.motor_asyncio import AsyncIOMotorDatabase

from crm.utils import utcnow
from .base import Clock, OrganizationStore, ResetTokenStore, UserStore
from .memory import (
    InMemoryOrganizationStore,
    InMemoryResetTokenStore,
    InMemoryUserStore,
)
from .mongo import MongoOrganizationStore, MongoResetTokenStore, MongoUserStore


@dataclass
class StoreRegistry:
    """The three stores the auth flow works against, from one backend."""

    users: UserStore
    organizations: OrganizationStore
    reset_tokens: ResetTokenStore
    backend: str = "memory"

    @classmethod
    def in_memory(cls, clock: Clock = utcnow) -> "StoreRegistry":
        return cls(
            users=InMemoryUserStore(),
            organizations=InMemoryOrganizationStore(),
            reset_tokens=InMemoryResetTokenStore(clock),
            backend="memory",
        )

    @classmethod
    def for_mongo(cls, db: AsyncIOMotorDatabase, clock: Clock = utcnow) -> "StoreRegistry":
        return cls(
            users=MongoUserStore(db),
            organizations=MongoOrganizationStore(db),
            reset_tokens=MongoResetTokenStore(db, clock),
            backend="mongo",
        )

    async def ensure_indexes(self) -> None:
        for store in (self.users, self.organizations, self.reset_tokens):
            ensure = getattr(store, "ensure_indexes", None)
            if ensure is not None:
                await ensure()
