"""Per-game best scores.

A user must join a game before scores are accepted; submissions for games the
user never joined are rejected without writing anything, which keeps
arbitrary game names out of the leaderboard namespace.

A fresh entry has no best score, so the first accepted submission is always a
record, negative scores included. Entries without a score rank last in ``top``.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

from ..clock import Clock
from ..storage.base import LeaderboardEntry, Store, Unchanged, to_millis
from ..storage.keys import leaderboard_key, leaderboard_prefix, last_segment
from .events import LEADERBOARD_RECORD, EventBus
from .exceptions import ValidationError
from .users import validate_uid

logger = logging.getLogger(__name__)

_GAME_RE = re.compile(r"[A-Za-z0-9_-]{1,64}")
# scores are persisted as JSON and must fit a signed 64-bit column
_SCORE_MIN = -(2**63)
_SCORE_MAX = 2**63 - 1


class _NotParticipating(Exception):
    pass


@dataclass(slots=True)
class ScoreResult:
    accepted: bool
    new_record: bool
    best_score: float | None = None


def validate_game(game: str) -> str:
    if not isinstance(game, str) or not _GAME_RE.fullmatch(game):
        raise ValidationError("Game must be 1-64 letters, digits, '-' or '_'")
    return game


def validate_score(score: object) -> float:
    if score is None:
        raise ValidationError("Missing score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValidationError("Score must be a number")
    if isinstance(score, int):
        if not _SCORE_MIN <= score <= _SCORE_MAX:
            raise ValidationError("Score out of range")
        return score
    if not math.isfinite(score):
        raise ValidationError("Score must be finite")
    return score


class Leaderboard:
    def __init__(self, store: Store, clock: Clock, event_bus: EventBus) -> None:
        self._store = store
        self._clock = clock
        self._events = event_bus

    async def join(self, uid: str, game: str) -> LeaderboardEntry:
        """Register participation; joining twice keeps the existing entry."""
        validate_uid(uid)
        validate_game(game)
        joined_at = self._clock.now()

        def create(current: dict | None) -> dict:
            if current is not None:
                raise Unchanged
            return LeaderboardEntry(uid=uid, game=game, best_score=None, joined_at=joined_at).to_dict()

        stored = await self._store.update(leaderboard_key(game, uid), create)
        return LeaderboardEntry.from_dict(uid, game, stored)

    async def entry(self, uid: str, game: str) -> LeaderboardEntry | None:
        raw = await self._store.get(leaderboard_key(validate_game(game), validate_uid(uid)))
        return LeaderboardEntry.from_dict(uid, game, raw) if raw else None

    async def submit_score(self, uid: str, game: str, score: object) -> ScoreResult:
        validate_uid(uid)
        validate_game(game)
        value = validate_score(score)
        updated_at = to_millis(self._clock.now())
        improved = False

        def improve(current: dict | None) -> dict:
            nonlocal improved
            improved = False
            if current is None:
                raise _NotParticipating
            best = current.get("bestScore")
            if best is not None and value <= best:
                raise Unchanged
            improved = True
            current["bestScore"] = value
            current["updatedAt"] = updated_at
            return current

        try:
            stored = await self._store.update(leaderboard_key(game, uid), improve)
        except _NotParticipating:
            logger.info("Rejected %s score from %s: not participating", game, uid)
            return ScoreResult(accepted=False, new_record=False)

        if improved:
            logger.info("New %s record for %s: %s", game, uid, value)
            await self._events.publish(LEADERBOARD_RECORD, {"uid": uid, "game": game, "score": value})
        return ScoreResult(accepted=True, new_record=improved, best_score=stored["bestScore"])

    async def top(self, game: str, limit: int = 10) -> list[LeaderboardEntry]:
        if limit <= 0:
            raise ValidationError("Limit must be positive")
        rows = await self._store.items(leaderboard_prefix(validate_game(game)))
        entries = [LeaderboardEntry.from_dict(last_segment(key), game, value) for key, value in rows]
        entries.sort(
            key=lambda entry: (
                entry.best_score is None,
                -(entry.best_score or 0),
                entry.updated_at or entry.joined_at,
            )
        )
        return entries[:limit]
