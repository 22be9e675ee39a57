"""Periodic cleanup of expired tokens and stale link counters."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from ..clock import Clock, calendar_day
from ..storage.base import LinkUsage, Store, Unchanged, UserRecord, to_millis
from ..storage.keys import TOKENS_PREFIX, USERS_PREFIX, last_segment
from .events import SWEEP_COMPLETED, EventBus
from .users import update_user

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SweepReport:
    swept_at: datetime
    tokens_removed: int = 0
    users_scanned: int = 0
    counters_reset: int = 0
    claims_pruned: int = 0


class SessionSweeper:
    """Delete tokens past their retention deadline and reset stale counters.

    Token removal ignores the ``used`` flag: once ``deleteAt`` has passed the
    record goes whether it was redeemed or not. Counter resets follow the same
    rule as the on-read reset in the token manager, so both paths agree.
    """

    def __init__(
        self,
        store: Store,
        clock: Clock,
        event_bus: EventBus,
        *,
        interval_seconds: int,
        zone: ZoneInfo,
    ) -> None:
        self._store = store
        self._clock = clock
        self._events = event_bus
        self._interval = interval_seconds
        self._zone = zone
        self._task: asyncio.Task | None = None
        self._stop: asyncio.Event | None = None

    async def sweep(self) -> SweepReport:
        report = SweepReport(swept_at=self._clock.now())
        report.tokens_removed = await self.sweep_tokens()
        report.users_scanned, report.counters_reset, report.claims_pruned = (
            await self.reset_link_counters()
        )
        logger.info(
            "Sweep removed %d token(s), reset %d counter(s) across %d user(s)",
            report.tokens_removed,
            report.counters_reset,
            report.users_scanned,
        )
        await self._events.publish(
            SWEEP_COMPLETED,
            {
                "tokens_removed": report.tokens_removed,
                "counters_reset": report.counters_reset,
                "claims_pruned": report.claims_pruned,
            },
        )
        return report

    async def sweep_tokens(self) -> int:
        now_ms = to_millis(self._clock.now())
        removed = 0
        for key, value in await self._store.items(TOKENS_PREFIX):
            delete_at = (value or {}).get("deleteAt")
            if delete_at is not None and delete_at <= now_ms:
                await self._store.remove(key)
                removed += 1
        return removed

    async def reset_link_counters(self) -> tuple[int, int, int]:
        """Return ``(users_scanned, counters_reset, claims_pruned)``."""
        now = self._clock.now()
        now_ms = to_millis(now)
        today = calendar_day(now, self._zone)
        scanned = counters_reset = claims_pruned = 0

        for key, value in await self._store.items(USERS_PREFIX):
            scanned += 1
            if not _is_stale(value or {}, today, now_ms):
                continue
            reset = pruned = 0

            def refresh(record: UserRecord) -> None:
                nonlocal reset, pruned
                reset = pruned = 0
                for link_id, usage in list(record.links.items()):
                    if usage.date != today:
                        record.links[link_id] = LinkUsage(date=today, count=0)
                        reset += 1
                kept = {token: deadline for token, deadline in record.redeemed.items() if deadline > now_ms}
                pruned = len(record.redeemed) - len(kept)
                record.redeemed = kept
                if not reset and not pruned:
                    raise Unchanged

            await update_user(self._store, last_segment(key), refresh)
            counters_reset += reset
            claims_pruned += pruned
        return scanned, counters_reset, claims_pruned

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Sweep now, then once per interval until ``stop_event`` is set."""
        stop_event = stop_event or asyncio.Event()
        while not stop_event.is_set():
            try:
                await self.sweep()
            except Exception:
                logger.exception("Sweep failed, retrying in %ss", self._interval)
            with suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)

    def start(self) -> asyncio.Task:
        if self._task and not self._task.done():
            return self._task
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self.run(self._stop))
        return self._task

    async def stop(self) -> None:
        if self._stop is not None:
            self._stop.set()
        if self._task is not None:
            await self._task
        self._task = None
        self._stop = None


def _is_stale(data: dict, today: str, now_ms: int) -> bool:
    links = data.get("links") or {}
    if any(usage.get("date") != today for usage in links.values()):
        return True
    redeemed = data.get("redeemed") or {}
    return any(deadline <= now_ms for deadline in redeemed.values())
