"""Single-use link tokens: issuance, redemption and the anti-abuse checks."""

from __future__ import annotations

import logging
import re
import secrets
from contextlib import suppress
from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from ..clock import Clock, calendar_day
from ..config import RewardPolicy, TokenConfig
from ..storage.base import LinkUsage, Store, TokenRecord, UserRecord, to_millis
from ..storage.keys import token_key
from .events import TOKEN_ISSUED, TOKEN_REDEEMED, EventBus
from .exceptions import AlreadyUsed, Expired, FraudDetected, InvalidToken, QuotaExceeded, ValidationError
from .ledger import RewardLedger
from .users import update_user, validate_uid

logger = logging.getLogger(__name__)

TOKEN_BYTES = 16
_TOKEN_RE = re.compile(rf"[0-9a-f]{{{TOKEN_BYTES * 2}}}")
_MAX_LINK_ID = 128


def generate_token_id() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def validate_link_id(link_id: str) -> str:
    if not isinstance(link_id, str) or not link_id.strip():
        raise ValidationError("Missing linkId")
    if len(link_id) > _MAX_LINK_ID:
        raise ValidationError("linkId is too long")
    return link_id


@dataclass(slots=True)
class TokenIssue:
    token: str
    count_today: int
    expires_at: datetime


@dataclass(slots=True)
class Redemption:
    token: str
    coins_added: int
    xp_added: int
    coins: int
    level: int
    xp: int
    leveled_up: bool


class TokenManager:
    """Issue, validate and retire redemption tokens."""

    def __init__(
        self,
        store: Store,
        clock: Clock,
        ledger: RewardLedger,
        event_bus: EventBus,
        *,
        config: TokenConfig,
        reward: RewardPolicy,
        zone: ZoneInfo,
    ) -> None:
        self._store = store
        self._clock = clock
        self._ledger = ledger
        self._events = event_bus
        self._config = config
        self._reward = reward
        self._zone = zone

    async def issue(self, uid: str, link_id: str) -> TokenIssue:
        validate_uid(uid)
        validate_link_id(link_id)
        now = self._clock.now()
        today = calendar_day(now, self._zone)
        quota = self._config.daily_quota

        def take_slot(record: UserRecord) -> None:
            usage = record.links.get(link_id, LinkUsage(date=today)).for_day(today)
            if usage.count >= quota:
                raise QuotaExceeded(link_id, usage.count, quota)
            usage.count += 1
            record.links[link_id] = usage

        record = await update_user(self._store, uid, take_slot)
        count_today = record.links[link_id].count

        token = TokenRecord(
            token_id=generate_token_id(),
            uid=uid,
            link_id=link_id,
            start_at=now,
            expires_at=now + timedelta(seconds=self._config.validity_seconds),
            delete_at=now + timedelta(seconds=self._config.retention_seconds),
        )
        await self._store.set(token_key(token.token_id), token.to_dict())

        logger.info("Issued token for %s on link %s (%d/%d today)", uid, link_id, count_today, quota)
        await self._events.publish(
            TOKEN_ISSUED,
            {"uid": uid, "link_id": link_id, "count_today": count_today},
        )
        return TokenIssue(token=token.token_id, count_today=count_today, expires_at=token.expires_at)

    async def fetch(self, token: str) -> TokenRecord | None:
        if not isinstance(token, str) or not _TOKEN_RE.fullmatch(token):
            return None
        raw = await self._store.get(token_key(token))
        return TokenRecord.from_dict(token, raw) if raw else None

    async def redeem(self, token: str, uid: str) -> Redemption:
        """Credit the reward for ``token`` exactly once.

        ``TOKEN_REDEEMED`` is published after the token is marked used. Listener
        errors for that event are logged and do not fail the redemption.
        """
        validate_uid(uid)
        if not isinstance(token, str) or not token:
            raise ValidationError("Missing token")

        record = await self.fetch(token)
        if record is None or record.uid != uid:
            raise InvalidToken("Unknown token")
        if record.used:
            raise AlreadyUsed("Token already redeemed")

        now = self._clock.now()
        if record.expires_at is not None and now > record.expires_at:
            raise Expired("Token expired")

        dwell = (now - record.start_at).total_seconds()
        if dwell < self._config.min_dwell_seconds:
            await self._ledger.freeze(uid, reason=f"token redeemed after {dwell:.1f}s")
            raise FraudDetected(uid, dwell)

        today = calendar_day(now, self._zone)
        now_ms = to_millis(now)
        quota = self._config.daily_quota
        level_before = 0

        def claim(user: UserRecord) -> None:
            nonlocal level_before
            if token in user.redeemed:
                raise AlreadyUsed("Token already redeemed")
            user.redeemed = {
                claimed: deadline for claimed, deadline in user.redeemed.items() if deadline > now_ms
            }
            user.redeemed[token] = to_millis(record.delete_at)
            usage = user.links.get(record.link_id, LinkUsage(date=today)).for_day(today)
            usage.count = min(usage.count + 1, quota)
            user.links[record.link_id] = usage
            level_before = user.level

        try:
            user = await self._ledger.credit_reward(uid, self._reward, claim=claim)
        except AlreadyUsed:
            # credited earlier but the token mark never landed
            with suppress(InvalidToken, AlreadyUsed):
                await self._mark_used(token, now)
            raise

        try:
            await self._mark_used(token, now)
        except InvalidToken:
            logger.warning("Token %s purged while %s was redeeming it", token, uid)
            raise

        logger.info("Redeemed token for %s on link %s", uid, record.link_id)
        # the redemption is committed; a listener failure must not surface as a redeem error
        try:
            await self._events.publish(
                TOKEN_REDEEMED,
                {
                    "uid": uid,
                    "link_id": record.link_id,
                    "coins_added": self._reward.coin_amount,
                    "xp_added": self._reward.xp_amount,
                },
            )
        except Exception:
            logger.exception("Listener for %s failed after %s redeemed token", TOKEN_REDEEMED, uid)
        return Redemption(
            token=token,
            coins_added=self._reward.coin_amount,
            xp_added=self._reward.xp_amount,
            coins=user.coins,
            level=user.level,
            xp=user.xp,
            leveled_up=user.level > level_before,
        )

    async def _mark_used(self, token: str, now: datetime) -> None:
        used_at = to_millis(now)

        def mark(current: dict | None) -> dict:
            if current is None:
                raise InvalidToken("Token was purged")
            if current.get("used"):
                raise AlreadyUsed("Token already redeemed")
            current["used"] = True
            current["usedAt"] = used_at
            return current

        await self._store.update(token_key(token), mark)
