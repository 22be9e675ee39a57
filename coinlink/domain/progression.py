"""XP to level curve.

Every level ``i`` needs ``LEVEL_XP[i]`` experience to advance to ``i + 1``.
Players stop gaining XP at ``MAX_LEVEL``; their stored XP is clamped to
``XP_CAP``, one point below the total XP of the whole curve.
"""

from __future__ import annotations

from .exceptions import ValidationError

LEVEL_XP: tuple[int, ...] = (
    100, 150, 200, 250, 300,
    350, 400, 450, 500, 550,
    600, 650, 700, 750, 800,
)
MAX_LEVEL = len(LEVEL_XP)
XP_CAP = sum(LEVEL_XP) - 1


def apply_xp(level: int, xp: int, gained: int) -> tuple[int, int]:
    """Return ``(new_level, new_xp)`` after adding ``gained`` experience."""
    if gained < 0:
        raise ValidationError("XP gain cannot be negative")
    if level < 0:
        raise ValidationError("Level cannot be negative")

    if level >= MAX_LEVEL:
        return level, min(xp, XP_CAP)

    xp += gained
    while level < MAX_LEVEL and xp >= LEVEL_XP[level]:
        xp -= LEVEL_XP[level]
        level += 1
    if level == MAX_LEVEL:
        xp = min(xp, XP_CAP)
    return level, xp


def xp_to_next_level(level: int, xp: int) -> int | None:
    """XP still missing for the next level, ``None`` at the cap."""
    if level >= MAX_LEVEL:
        return None
    return max(0, LEVEL_XP[level] - xp)


def total_xp(level: int, xp: int) -> int:
    """Lifetime XP represented by ``(level, xp)``, used for ranking."""
    return sum(LEVEL_XP[: min(level, MAX_LEVEL)]) + xp
