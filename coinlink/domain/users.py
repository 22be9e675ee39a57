"""User-centric utilities."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Callable

from ..clock import Clock
from ..storage.base import LoginSession, Store, UserRecord
from ..storage.keys import user_key
from .exceptions import AccountFrozen, InvalidToken, ValidationError
from .progression import xp_to_next_level

logger = logging.getLogger(__name__)

SESSION_ID_BYTES = 16


def validate_uid(uid: str) -> str:
    if not isinstance(uid, str) or not uid.strip():
        raise ValidationError("Missing uid")
    if "/" in uid:
        raise ValidationError("uid cannot contain '/'")
    return uid


async def load_user(store: Store, uid: str) -> UserRecord:
    return UserRecord.from_dict(uid, await store.get(user_key(uid)))


async def update_user(store: Store, uid: str, change: Callable[[UserRecord], None]) -> UserRecord:
    """Apply ``change`` to the user record in one atomic store update.

    Absent users start from a blank record. ``change`` may raise to abort.
    """

    def transform(current: dict | None) -> dict:
        record = UserRecord.from_dict(uid, current)
        change(record)
        return record.to_dict()

    stored = await store.update(user_key(uid), transform)
    return UserRecord.from_dict(uid, stored)


@dataclass(slots=True)
class UserProfile:
    uid: str
    coins: int
    xp: int
    level: int
    xp_to_next: int | None
    rules_accepted: bool
    is_frozen: bool


class UserService:
    """Expose read/write operations for user state outside the reward flow."""

    def __init__(self, store: Store, clock: Clock) -> None:
        self._store = store
        self._clock = clock

    async def fetch(self, uid: str) -> UserProfile:
        record = await load_user(self._store, validate_uid(uid))
        return self._to_profile(record)

    async def accept_rules(self, uid: str) -> UserProfile:
        def accept(record: UserRecord) -> None:
            record.rules_accepted = True

        record = await update_user(self._store, validate_uid(uid), accept)
        return self._to_profile(record)

    async def open_session(self, uid: str) -> str:
        """Start a login session for a uid already verified by the identity provider."""
        validate_uid(uid)
        session_id = secrets.token_hex(SESSION_ID_BYTES)
        started_at = self._clock.now()

        def attach(record: UserRecord) -> None:
            record.session = LoginSession(session_id=session_id, started_at=started_at)

        await update_user(self._store, uid, attach)
        logger.info("Opened session for %s", uid)
        return session_id

    async def verify_session(self, uid: str, session_id: str) -> UserProfile:
        record = await load_user(self._store, validate_uid(uid))
        if record.session is None or not secrets.compare_digest(record.session.session_id, session_id or ""):
            raise InvalidToken("Session does not match")
        return self._to_profile(record)

    async def ensure_active(self, uid: str) -> UserProfile:
        """Reject frozen accounts; the gate every reward entry point should pass."""
        record = await load_user(self._store, validate_uid(uid))
        if record.is_frozen:
            raise AccountFrozen(f"Account {uid} is frozen")
        return self._to_profile(record)

    def _to_profile(self, record: UserRecord) -> UserProfile:
        return UserProfile(
            uid=record.uid,
            coins=record.coins,
            xp=record.xp,
            level=record.level,
            xp_to_next=xp_to_next_level(record.level, record.xp),
            rules_accepted=record.rules_accepted,
            is_frozen=record.is_frozen,
        )
