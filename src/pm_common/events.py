"""In-process notification bus for observers and indexers.

Events are plain dataclasses published after the emitting operation has
committed its state. Handlers are observers only: a failing handler is logged
and does not affect the ledger or the other handlers.
"""

import logging
from collections.abc import Callable
from dataclasses import asdict
from typing import Any

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def publish(self, event: Any) -> None:
        logger.info("event %s %s", type(event).__name__, asdict(event))
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler failed for %s", type(event).__name__)
