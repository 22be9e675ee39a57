"""Domain event dispatch."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, DefaultDict, Mapping

logger = logging.getLogger(__name__)

TOKEN_ISSUED = "token.issued"
TOKEN_REDEEMED = "token.redeemed"
USER_FROZEN = "user.frozen"
LEADERBOARD_RECORD = "leaderboard.record"
SWEEP_COMPLETED = "sweeper.completed"

EventPayload = Mapping[str, Any]
EventListener = Callable[[EventPayload], Awaitable[None]]


class EventBus:
    """Async pub-sub that lets integrations observe rewards and freezes.

    Listeners run sequentially in subscription order; an exception raised by a
    listener propagates to the publisher.
    """

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, list[EventListener]] = defaultdict(list)

    def subscribe(self, event_name: str, listener: EventListener) -> None:
        self._listeners[event_name].append(listener)

    async def publish(self, event_name: str, payload: EventPayload) -> None:
        listeners = list(self._listeners.get(event_name, ()))
        logger.debug("Publishing %s to %d listener(s)", event_name, len(listeners))
        for listener in listeners:
            await listener(payload)
