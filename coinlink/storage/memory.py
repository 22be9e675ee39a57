"""In-memory storage backend for CoinLink."""

from __future__ import annotations

import copy
from typing import Any, Sequence

from .base import Store, Unchanged, UpdateFn


class InMemoryStore(Store):
    """Dict-backed store.

    ``update`` never awaits between reading and writing, so within one event
    loop it is atomic with respect to every other coroutine.
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    async def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def update(self, key: str, fn: UpdateFn) -> Any:
        current = copy.deepcopy(self._data.get(key))
        try:
            new_value = fn(current)
        except Unchanged:
            return copy.deepcopy(self._data.get(key))
        self._data[key] = copy.deepcopy(new_value)
        return copy.deepcopy(new_value)

    async def items(self, prefix: str) -> Sequence[tuple[str, Any]]:
        return [
            (key, copy.deepcopy(value))
            for key, value in sorted(self._data.items())
            if key.startswith(prefix)
        ]

    def dump(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)
