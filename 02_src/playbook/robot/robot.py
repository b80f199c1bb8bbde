"""Robot: the host messaging runtime Playbook modules attach to."""

import re
from typing import Any, Callable

from ..brain import Brain
from ..errors import ConfigError, HandlerError
from ..event_bus import EventBus, EventHandler
from ..logging_config import get_logger
from ..models import ListenerType, SendResult, TextMessage
from ..utils import Middleware, Piece, parse_pattern
from .adapter import IAdapter, MemoryAdapter
from .listener import Listener, ListenerCallback, TextListener
from .response import Response

logger = get_logger(__name__)


class Robot:
    """Receives messages, dispatches them to listeners and delivers replies."""

    def __init__(
        self,
        name: str = "hubot",
        alias: str | None = None,
        adapter: Callable[["Robot"], IAdapter] = MemoryAdapter,
        brain: Brain | None = None,
    ):
        self.name = name
        self.alias = alias
        self.events = EventBus()
        self.brain = brain or Brain()
        self.listeners: list[Listener] = []
        self.middleware = {
            "receive": Middleware(self),
            "listener": Middleware(self),
            "response": Middleware(self),
        }
        self.adapter = adapter(self)
        self.playbook: Any = None

    # Events
    def on(self, event: str, handler: EventHandler) -> None:
        self.events.on(event, handler)

    def off(self, event: str, handler: EventHandler) -> None:
        self.events.off(event, handler)

    def emit(self, event: str, *args: Any) -> None:
        self.events.emit(event, *args)

    def emit_error(self, error: Exception, response: Response | None = None) -> None:
        """Log an error and pass it to `error` observers."""
        logger.error("%s", error, exc_info=error)
        self.events.emit("error", error, response)

    # Listeners
    def listen(
        self,
        listener_type: str,
        pattern: re.Pattern | str,
        options: dict | ListenerCallback | None = None,
        callback: ListenerCallback | None = None,
    ) -> Listener:
        """Add a text listener, `hear` for any message or `respond` when addressed."""
        if callable(options) and callback is None:
            options, callback = None, options
        try:
            listener_type = ListenerType(listener_type)
        except ValueError:
            raise ConfigError(f"Invalid listener type: {listener_type}") from None

        regex = parse_pattern(pattern)
        if listener_type is ListenerType.RESPOND:
            regex = self.respond_pattern(regex)
        listener = TextListener(self, regex, options, callback)
        self.listeners.append(listener)
        return listener

    def hear(self, pattern, options=None, callback=None) -> Listener:
        return self.listen(ListenerType.HEAR, pattern, options, callback)

    def respond(self, pattern, options=None, callback=None) -> Listener:
        return self.listen(ListenerType.RESPOND, pattern, options, callback)

    def respond_pattern(self, regex: re.Pattern) -> re.Pattern:
        """Extend a pattern to require the robot be addressed by name or alias."""
        names = [re.escape(self.name)]
        if self.alias:
            names.append(re.escape(self.alias))
        prefix = r"^\s*[@]?(?:" + "|".join(names) + r")[:,]?\s*"
        return re.compile(prefix + f"(?:{regex.pattern})", regex.flags)

    # Middleware
    def receive_middleware(self, piece: Piece) -> None:
        """Run before listeners, e.g. to reroute or finish messages."""
        self.middleware["receive"].register(piece)

    def listener_middleware(self, piece: Piece) -> None:
        """Run before each matched listener's callback."""
        self.middleware["listener"].register(piece)

    def response_middleware(self, piece: Piece) -> None:
        """Run before strings are delivered through the adapter."""
        self.middleware["response"].register(piece)

    # Messaging
    async def receive(self, message: TextMessage) -> None:
        """Process an inbound message through middleware and listeners."""
        context = {"response": Response(self, message)}
        try:
            await self.middleware["receive"].execute(context, self._process_listeners)
        except HandlerError as err:
            logger.warning("Receive middleware interrupted: %s", err)

    async def _process_listeners(self, context: dict, done: Callable[..., None]) -> None:
        message = context["response"].message
        for listener in list(self.listeners):
            if message.done:
                break
            await listener.call(message, self.middleware["listener"])
        done()

    async def deliver(self, response: Response, method: str, strings) -> SendResult:
        """Pass strings through response middleware then the adapter."""
        context = {"response": response, "strings": list(strings), "method": method}

        async def send(context: dict, done: Callable[..., None]) -> None:
            deliver_via = getattr(self.adapter, context["method"])
            await deliver_via(response.envelope, *context["strings"])
            done()

        await self.middleware["response"].execute(context, send)
        return SendResult(response=response, strings=context["strings"], method=method)

    async def shutdown(self) -> None:
        """Notify observers and wait for scheduled event handlers."""
        logger.info("Robot %s shutting down", self.name)
        self.events.emit("shutdown")
        await self.events.drain()
