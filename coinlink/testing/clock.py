"""Deterministic clock for tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone


@dataclass(slots=True)
class ManualClock:
    current: datetime = field(default_factory=lambda: datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc))

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 0, **kwargs: float) -> datetime:
        self.current += timedelta(seconds=seconds, **kwargs)
        return self.current

