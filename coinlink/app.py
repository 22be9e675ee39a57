"""Top level application object for CoinLink backends."""

from __future__ import annotations

from typing import Any

from .clock import Clock, SystemClock
from .config import CoinLinkConfig
from .domain.events import EventBus
from .domain.leaderboard import Leaderboard
from .domain.ledger import RewardLedger
from .domain.sweeper import SessionSweeper
from .domain.tokens import TokenManager
from .domain.users import UserService
from .storage.base import Store
from .storage.memory import InMemoryStore
from .storage.sqlalchemy import AsyncSQLAlchemyStore


class RewardApp:
    """Central dependency container used by the HTTP layer and workers."""

    def __init__(
        self,
        config: CoinLinkConfig,
        *,
        store: Store | None = None,
        clock: Clock | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        config.validate()
        self.config = config
        self.clock = clock or SystemClock()
        self.event_bus = event_bus or EventBus()

        self._sqlalchemy_store: AsyncSQLAlchemyStore | None = None
        self.store = store or self._wire_storage()

        zone = config.zone()
        self.users = UserService(self.store, self.clock)
        self.ledger = RewardLedger(self.store, self.clock, self.event_bus)
        self.tokens = TokenManager(
            self.store,
            self.clock,
            self.ledger,
            self.event_bus,
            config=config.tokens,
            reward=config.reward,
            zone=zone,
        )
        self.leaderboard = Leaderboard(self.store, self.clock, self.event_bus)
        self.sweeper = SessionSweeper(
            self.store,
            self.clock,
            self.event_bus,
            interval_seconds=config.sweeper.interval_seconds,
            zone=zone,
        )

    def _wire_storage(self) -> Store:
        backend = self.config.storage.backend
        if backend == "memory":
            return InMemoryStore()
        if backend == "sqlalchemy":
            dsn = self.config.storage.resolve_dsn()
            if not dsn:
                raise ValueError("SQLAlchemy backend requires a DSN")
            storage = AsyncSQLAlchemyStore(
                dsn,
                echo=self.config.storage.echo_sql,
                max_retries=self.config.storage.max_retries,
            )
            self._sqlalchemy_store = storage
            return storage
        raise ValueError(f"Unsupported storage backend {backend}")

    def snapshot(self) -> dict[str, Any]:
        """Export current configuration for debugging."""
        return {
            "storage": self.config.storage.backend,
            "daily_quota": self.config.tokens.daily_quota,
            "validity_seconds": self.config.tokens.validity_seconds,
            "min_dwell_seconds": self.config.tokens.min_dwell_seconds,
            "reward": {
                "coins": self.config.reward.coin_amount,
                "xp": self.config.reward.xp_amount,
            },
            "sweep_interval": self.config.sweeper.interval_seconds,
            "day_zone": self.config.day_zone,
        }

    async def init_backend(self) -> None:
        """Initialize storage backend resources (e.g., database tables)."""
        if self._sqlalchemy_store:
            await self._sqlalchemy_store.init_models()

    async def close(self) -> None:
        await self.sweeper.stop()
        if self._sqlalchemy_store:
            await self._sqlalchemy_store.dispose()
