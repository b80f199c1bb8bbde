"""EventBus implementation for named-event pub/sub."""

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Callable, Protocol

from ..logging_config import get_logger

logger = get_logger(__name__)


EventHandler = Callable[..., Any]


class IEventBus(Protocol):
    """In-process emitter shared by the robot and every module it hosts."""

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe a handler to an event name."""
        ...

    def off(self, event: str, handler: EventHandler) -> None:
        """Remove a handler from an event name."""
        ...

    def emit(self, event: str, *args: Any) -> None:
        """Call subscribers in order; coroutine results are scheduled."""
        ...


class EventBus:
    """In-memory named-event bus."""

    def __init__(self):
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)
        self._pending: set[asyncio.Future] = set()

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe a handler to an event name."""
        self._subscribers[event].append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        """Remove a handler from an event name."""
        handlers = self._subscribers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def listeners(self, event: str) -> list[EventHandler]:
        """Handlers currently subscribed to an event."""
        return list(self._subscribers.get(event, []))

    def clear(self) -> None:
        """Drop every subscription."""
        self._subscribers.clear()

    def emit(self, event: str, *args: Any) -> None:
        """Call subscribers in order; coroutine results are scheduled."""
        for handler in self.listeners(event):
            try:
                result = handler(*args)
            except Exception as e:
                logger.error(
                    "Error in %s handler %r: %s", event, handler, e, exc_info=True
                )
                continue

            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._settle)

    def _settle(self, task: asyncio.Future) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Error in async event handler: %s", error, exc_info=error)

    async def drain(self) -> None:
        """Wait for scheduled async handlers to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
