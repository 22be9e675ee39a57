"""Configuration models for CoinLink."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


StorageBackend = Literal["memory", "sqlalchemy"]

_TRUTHY = {"1", "true", "yes"}


@dataclass(slots=True)
class StorageConfig:
    """Configure where user, token and leaderboard records live."""

    backend: StorageBackend = "memory"
    dsn: str | None = None
    echo_sql: bool = False
    max_retries: int = 10

    def resolve_dsn(self) -> str | None:
        if self.dsn:
            return self.dsn
        if self.backend == "sqlalchemy":
            return "sqlite+aiosqlite:///./coinlink.db"
        return None


@dataclass(slots=True)
class TokenConfig:
    """Rules for issuing and redeeming link tokens."""

    daily_quota: int = 20
    validity_seconds: int = 3600
    retention_seconds: int = 86400
    min_dwell_seconds: int = 15


@dataclass(slots=True)
class RewardPolicy:
    """Fixed reward granted for every successful redemption."""

    coin_amount: int = 30
    xp_amount: int = 5


@dataclass(slots=True)
class SweeperConfig:
    interval_seconds: int = 300


@dataclass(slots=True)
class CoinLinkConfig:
    """Top-level configuration container."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    tokens: TokenConfig = field(default_factory=TokenConfig)
    reward: RewardPolicy = field(default_factory=RewardPolicy)
    sweeper: SweeperConfig = field(default_factory=SweeperConfig)
    day_zone: str = "UTC"

    def zone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.day_zone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone {self.day_zone!r}") from exc

    def validate(self) -> None:
        """Raise ValueError when the settings cannot work together."""
        tokens = self.tokens
        if tokens.daily_quota < 1:
            raise ValueError("daily_quota must be at least 1")
        if tokens.validity_seconds <= 0:
            raise ValueError("validity_seconds must be positive")
        if tokens.min_dwell_seconds < 0:
            raise ValueError("min_dwell_seconds cannot be negative")
        if tokens.min_dwell_seconds >= tokens.validity_seconds:
            raise ValueError("min_dwell_seconds must be shorter than validity_seconds")
        # a token must stay expired for a while before the sweeper may purge it
        if tokens.retention_seconds < tokens.validity_seconds:
            raise ValueError("retention_seconds cannot be shorter than validity_seconds")
        if self.reward.coin_amount < 0 or self.reward.xp_amount < 0:
            raise ValueError("Reward amounts cannot be negative")
        if self.sweeper.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if self.storage.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.zone()

    @classmethod
    def from_env(cls) -> "CoinLinkConfig":
        """Create config from environment variables prefixed with COINLINK_."""
        prefix = "COINLINK_"

        storage = StorageConfig(
            backend=os.getenv(f"{prefix}STORAGE_BACKEND", "memory"),
            dsn=os.getenv(f"{prefix}STORAGE_DSN"),
            echo_sql=os.getenv(f"{prefix}STORAGE_ECHO_SQL", "false").lower() in _TRUTHY,
            max_retries=_int_env(f"{prefix}STORAGE_MAX_RETRIES", 10),
        )
        tokens = TokenConfig(
            daily_quota=_int_env(f"{prefix}DAILY_QUOTA", 20),
            validity_seconds=_int_env(f"{prefix}TOKEN_VALIDITY", 3600),
            retention_seconds=_int_env(f"{prefix}TOKEN_RETENTION", 86400),
            min_dwell_seconds=_int_env(f"{prefix}MIN_DWELL", 15),
        )
        reward = RewardPolicy(
            coin_amount=_int_env(f"{prefix}REWARD_COINS", 30),
            xp_amount=_int_env(f"{prefix}REWARD_XP", 5),
        )

        config = cls(
            storage=storage,
            tokens=tokens,
            reward=reward,
            sweeper=SweeperConfig(interval_seconds=_int_env(f"{prefix}SWEEP_INTERVAL", 300)),
            day_zone=os.getenv(f"{prefix}DAY_ZONE", "UTC") or "UTC",
        )
        config.validate()
        return config


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
