import asyncio
import logging
from datetime import timedelta
from zoneinfo import ZoneInfo

import pytest

from coinlink.domain.events import SWEEP_COMPLETED, EventBus
from coinlink.domain.sweeper import SessionSweeper
from coinlink.storage.base import LinkUsage, StoreUnavailable, to_millis
from coinlink.storage.keys import token_key, user_key
from coinlink.storage.memory import InMemoryStore
from coinlink.testing import ManualClock, TokenFactory, UserFactory


async def _put_token(store, token):
    await store.set(token_key(token.token_id), token.to_dict())


@pytest.mark.asyncio()
async def test_sweep_removes_only_tokens_past_deadline(memory_app, manual_clock):
    factory = TokenFactory()
    now = manual_clock.now()
    old_used = factory.build("alice", start_at=now - timedelta(days=2), used=True)
    old_unused = factory.build("alice", start_at=now - timedelta(days=2))
    due_now = factory.build("alice", start_at=now - timedelta(days=1))
    fresh_used = factory.build("alice", start_at=now - timedelta(hours=2), used=True)
    fresh_unused = factory.build("alice", start_at=now)
    for token in (old_used, old_unused, due_now, fresh_used, fresh_unused):
        await _put_token(memory_app.store, token)

    removed = await memory_app.sweeper.sweep_tokens()

    assert removed == 3
    assert await memory_app.tokens.fetch(old_used.token_id) is None
    assert await memory_app.tokens.fetch(old_unused.token_id) is None
    assert await memory_app.tokens.fetch(due_now.token_id) is None
    assert (await memory_app.tokens.fetch(fresh_used.token_id)).used
    assert not (await memory_app.tokens.fetch(fresh_unused.token_id)).used


@pytest.mark.asyncio()
async def test_issued_tokens_are_purged_after_retention(memory_app, manual_clock):
    issued = await memory_app.tokens.issue("alice", "promo")
    manual_clock.advance(hours=23)
    assert await memory_app.sweeper.sweep_tokens() == 0
    manual_clock.advance(hours=1)
    assert await memory_app.sweeper.sweep_tokens() == 1
    assert await memory_app.tokens.fetch(issued.token) is None


@pytest.mark.asyncio()
async def test_sweep_resets_stale_counters(memory_app, manual_clock):
    users = UserFactory()
    stale = users.with_links("2024-01-14", {"promo": 3, "partner": 1})
    current = users.with_links("2024-01-15", {"promo": 2})
    for record in (stale, current):
        await memory_app.store.set(user_key(record.uid), record.to_dict())

    report = await memory_app.sweeper.sweep()

    assert report.users_scanned == 2
    assert report.counters_reset == 2
    refreshed = await memory_app.store.get(user_key(stale.uid))
    assert refreshed["links"] == {
        "promo": {"date": "2024-01-15", "count": 0},
        "partner": {"date": "2024-01-15", "count": 0},
    }
    untouched = await memory_app.store.get(user_key(current.uid))
    assert untouched["links"]["promo"] == {"date": "2024-01-15", "count": 2}


@pytest.mark.asyncio()
async def test_sweep_prunes_expired_claims(memory_app, manual_clock):
    record = UserFactory().build(coins=30)
    now_ms = to_millis(manual_clock.now())
    record.links = {"promo": LinkUsage(date="2024-01-15", count=1)}
    record.redeemed = {"a" * 32: now_ms - 1, "b" * 32: now_ms + 1000}
    await memory_app.store.set(user_key(record.uid), record.to_dict())

    report = await memory_app.sweeper.sweep()

    assert report.claims_pruned == 1
    stored = await memory_app.store.get(user_key(record.uid))
    assert list(stored["redeemed"]) == ["b" * 32]
    assert stored["coins"] == 30


@pytest.mark.asyncio()
async def test_counter_reset_uses_configured_zone():
    clock = ManualClock()
    store = InMemoryStore()
    # 2024-01-15 12:00 UTC is already 2024-01-16 in Kiritimati
    sweeper = SessionSweeper(
        store, clock, EventBus(), interval_seconds=300, zone=ZoneInfo("Pacific/Kiritimati")
    )
    record = UserFactory().with_links("2024-01-15", {"promo": 2})
    await store.set(user_key(record.uid), record.to_dict())

    await sweeper.reset_link_counters()

    stored = await store.get(user_key(record.uid))
    assert stored["links"]["promo"] == {"date": "2024-01-16", "count": 0}


@pytest.mark.asyncio()
async def test_start_sweeps_immediately_and_stops(memory_app):
    completed = []

    async def listener(payload):
        completed.append(payload)

    memory_app.event_bus.subscribe(SWEEP_COMPLETED, listener)
    memory_app.sweeper.start()
    await asyncio.sleep(0.01)
    await memory_app.sweeper.stop()
    assert len(completed) == 1


class FlakyStore(InMemoryStore):
    def __init__(self) -> None:
        super().__init__()
        self.failures = 1

    async def items(self, prefix):
        if self.failures:
            self.failures -= 1
            raise StoreUnavailable("scan timed out")
        return await super().items(prefix)


@pytest.mark.asyncio()
async def test_run_survives_failed_sweep(caplog):
    bus = EventBus()
    stop = asyncio.Event()
    sweeper = SessionSweeper(
        FlakyStore(), ManualClock(), bus, interval_seconds=0, zone=ZoneInfo("UTC")
    )

    async def finish(payload):
        stop.set()

    bus.subscribe(SWEEP_COMPLETED, finish)
    with caplog.at_level(logging.ERROR, logger="coinlink.domain.sweeper"):
        await asyncio.wait_for(sweeper.run(stop), timeout=5)
    assert "Sweep failed" in caplog.text
