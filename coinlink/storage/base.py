"""Storage abstractions used by the CoinLink services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Protocol, Sequence


class StoreUnavailable(RuntimeError):
    """Raised when the backing store cannot complete an operation."""

    code = "store_unavailable"


class Unchanged(Exception):
    """Raise from an update function to leave the key untouched."""


UpdateFn = Callable[[Any], Any]


class Store(Protocol):
    async def get(self, key: str) -> Any | None:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...

    async def update(self, key: str, fn: UpdateFn) -> Any:
        """Atomically replace the value at ``key`` with ``fn(current)``.

        ``current`` is ``None`` when the key is absent. The function must be
        synchronous and free of side effects because backends may call it more
        than once. Raising :class:`Unchanged` keeps the current value, any
        other exception aborts the update and propagates. Returns the value
        stored once the update settles.
        """
        ...

    async def items(self, prefix: str) -> Sequence[tuple[str, Any]]:
        ...


def to_millis(moment: datetime) -> int:
    if moment.tzinfo is None or moment.tzinfo.utcoffset(moment) is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def from_millis(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


@dataclass(slots=True)
class LinkUsage:
    date: str
    count: int = 0

    def for_day(self, today: str) -> "LinkUsage":
        """Counter as seen on ``today``: a stale date reads as zero."""
        if self.date != today:
            return LinkUsage(date=today, count=0)
        return LinkUsage(date=self.date, count=self.count)


@dataclass(slots=True)
class LoginSession:
    session_id: str
    started_at: datetime


@dataclass(slots=True)
class UserRecord:
    uid: str
    coins: int = 0
    xp: int = 0
    level: int = 0
    rules_accepted: bool = False
    session: LoginSession | None = None
    links: dict[str, LinkUsage] = field(default_factory=dict)
    redeemed: dict[str, int] = field(default_factory=dict)
    frozen_at: datetime | None = None

    @property
    def is_frozen(self) -> bool:
        return self.coins < 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "coins": self.coins,
            "xp": self.xp,
            "level": self.level,
            "rulesAccepted": self.rules_accepted,
            "session": (
                {"id": self.session.session_id, "startedAt": to_millis(self.session.started_at)}
                if self.session
                else None
            ),
            "links": {
                link_id: {"date": usage.date, "count": usage.count}
                for link_id, usage in self.links.items()
            },
            "redeemed": dict(self.redeemed),
            "frozenAt": to_millis(self.frozen_at) if self.frozen_at else None,
        }

    @classmethod
    def from_dict(cls, uid: str, data: dict[str, Any] | None) -> "UserRecord":
        if not data:
            return cls(uid=uid)
        session = data.get("session")
        return cls(
            uid=uid,
            coins=int(data.get("coins", 0)),
            xp=int(data.get("xp", 0)),
            level=int(data.get("level", 0)),
            rules_accepted=bool(data.get("rulesAccepted", False)),
            session=(
                LoginSession(session_id=session["id"], started_at=from_millis(session["startedAt"]))
                if session
                else None
            ),
            links={
                link_id: LinkUsage(date=str(usage.get("date", "")), count=int(usage.get("count", 0)))
                for link_id, usage in (data.get("links") or {}).items()
            },
            redeemed={token: int(deadline) for token, deadline in (data.get("redeemed") or {}).items()},
            frozen_at=from_millis(data.get("frozenAt")),
        )


@dataclass(slots=True)
class TokenRecord:
    token_id: str
    uid: str
    link_id: str
    start_at: datetime
    delete_at: datetime
    expires_at: datetime | None = None
    used: bool = False
    used_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "uid": self.uid,
            "linkId": self.link_id,
            "startAt": to_millis(self.start_at),
            "expiresAt": to_millis(self.expires_at) if self.expires_at else None,
            "deleteAt": to_millis(self.delete_at),
            "used": self.used,
            "usedAt": to_millis(self.used_at) if self.used_at else None,
        }

    @classmethod
    def from_dict(cls, token_id: str, data: dict[str, Any]) -> "TokenRecord":
        return cls(
            token_id=token_id,
            uid=str(data["uid"]),
            link_id=str(data["linkId"]),
            start_at=from_millis(data["startAt"]),
            delete_at=from_millis(data["deleteAt"]),
            expires_at=from_millis(data.get("expiresAt")),
            used=bool(data.get("used", False)),
            used_at=from_millis(data.get("usedAt")),
        )


@dataclass(slots=True)
class LeaderboardEntry:
    uid: str
    game: str
    best_score: float | None
    joined_at: datetime
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "bestScore": self.best_score,
            "joinedAt": to_millis(self.joined_at),
            "updatedAt": to_millis(self.updated_at) if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, uid: str, game: str, data: dict[str, Any]) -> "LeaderboardEntry":
        return cls(
            uid=uid,
            game=game,
            best_score=data.get("bestScore"),
            joined_at=from_millis(data["joinedAt"]),
            updated_at=from_millis(data.get("updatedAt")),
        )
