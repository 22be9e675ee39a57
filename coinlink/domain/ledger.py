"""Coin and XP bookkeeping on user records."""

from __future__ import annotations

import logging
from typing import Callable

from ..clock import Clock
from ..config import RewardPolicy
from ..storage.base import Store, UserRecord
from ..storage.keys import user_key
from .events import USER_FROZEN, EventBus
from .exceptions import InsufficientFunds, ValidationError
from .progression import apply_xp
from .users import load_user, update_user, validate_uid

logger = logging.getLogger(__name__)

FREEZE_SENTINEL = -1_000_000_000


class RewardLedger:
    """Apply coin and XP deltas through atomic store updates."""

    def __init__(self, store: Store, clock: Clock, event_bus: EventBus) -> None:
        self._store = store
        self._clock = clock
        self._events = event_bus

    async def balance(self, uid: str) -> int:
        record = await load_user(self._store, validate_uid(uid))
        return record.coins

    async def add_coins(self, uid: str, delta: int) -> int:
        _require_int(delta, "delta")

        def add(record: UserRecord) -> None:
            record.coins += delta

        record = await update_user(self._store, validate_uid(uid), add)
        return record.coins

    async def spend_coins(self, uid: str, cost: int) -> int:
        _require_int(cost, "cost")
        if cost <= 0:
            raise ValidationError("Cost must be positive")

        def spend(record: UserRecord) -> None:
            if record.coins < cost:
                raise InsufficientFunds(record.coins, cost)
            record.coins -= cost

        record = await update_user(self._store, validate_uid(uid), spend)
        return record.coins

    async def add_xp(self, uid: str, gained: int) -> tuple[int, int]:
        _require_int(gained, "gained")

        def grant(record: UserRecord) -> None:
            record.level, record.xp = apply_xp(record.level, record.xp, gained)

        record = await update_user(self._store, validate_uid(uid), grant)
        return record.level, record.xp

    async def credit_reward(
        self,
        uid: str,
        policy: RewardPolicy,
        *,
        claim: Callable[[UserRecord], None] | None = None,
    ) -> UserRecord:
        """Credit a reward's coins and XP in a single update.

        ``claim`` runs first inside the same update and may raise to abort the
        credit, which lets callers tie a one-time check to the reward.
        """

        def credit(record: UserRecord) -> None:
            if claim is not None:
                claim(record)
            record.coins += policy.coin_amount
            record.level, record.xp = apply_xp(record.level, record.xp, policy.xp_amount)

        return await update_user(self._store, validate_uid(uid), credit)

    async def freeze(self, uid: str, *, reason: str) -> None:
        """Overwrite the balance with the freeze sentinel, ignoring its prior value."""
        frozen_at = self._clock.now()

        def overwrite(current: dict | None) -> dict:
            record = UserRecord.from_dict(uid, current)
            record.coins = FREEZE_SENTINEL
            record.frozen_at = frozen_at
            return record.to_dict()

        await self._store.update(user_key(validate_uid(uid)), overwrite)
        logger.warning("Froze account %s: %s", uid, reason)
        await self._events.publish(USER_FROZEN, {"uid": uid, "reason": reason})


def _require_int(value: object, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")
