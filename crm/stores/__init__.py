from .base import ResetTokenRecord, UserStore, OrganizationStore, ResetTokenStore
from .memory import InMemoryUserStore, InMemoryOrganizationStore, InMemoryResetTokenStore
from .mongo import MongoUserStore, MongoOrganizationStore, MongoResetTokenStore
from .registry import StoreRegistry

__all__ = [
    "ResetTokenRecord",
    "UserStore",
    "OrganizationStore",
    "ResetTokenStore",
    "InMemoryUserStore",
    "InMemoryOrganizationStore",
    "InMemoryResetTokenStore",
    "MongoUserStore",
    "MongoOrganizationStore",
    "MongoResetTokenStore",
    "StoreRegistry",
]
