"""Storage backends for CoinLink."""

from .base import (
    LeaderboardEntry,
    LinkUsage,
    LoginSession,
    Store,
    StoreUnavailable,
    TokenRecord,
    Unchanged,
    UserRecord,
)
from .memory import InMemoryStore
from .sqlalchemy import AsyncSQLAlchemyStore

__all__ = [
    "LeaderboardEntry",
    "LinkUsage",
    "LoginSession",
    "Store",
    "StoreUnavailable",
    "TokenRecord",
    "Unchanged",
    "UserRecord",
    "InMemoryStore",
    "AsyncSQLAlchemyStore",
]
