"""Listeners bind a matcher to a callback."""

from __future__ import annotations

import inspect
import re
from typing import TYPE_CHECKING, Any, Callable

from ..errors import HandlerError
from ..logging_config import get_logger
from ..models import TextMessage
from ..utils import Middleware
from .response import Response

if TYPE_CHECKING:
    from .robot import Robot

logger = get_logger(__name__)

ListenerCallback = Callable[[Response], Any]
Matcher = Callable[[TextMessage], Any]


class Listener:
    """Calls back with a Response when the matcher accepts a message."""

    def __init__(
        self,
        robot: Robot,
        matcher: Matcher,
        options: dict | None,
        callback: ListenerCallback,
    ):
        if not callable(callback):
            raise TypeError("Listener callback must be callable")
        self.robot = robot
        self.matcher = matcher
        self.options = {"id": None, **(options or {})}
        self.callback = callback

    async def call(self, message: TextMessage, middleware: Middleware) -> bool:
        """Run the callback through listener middleware if the message matches."""
        match = self.matcher(message)
        if not match:
            return False

        response = Response(self.robot, message, match if isinstance(match, re.Match) else None)

        async def execute(context: dict, done: Callable[..., None]) -> None:
            try:
                result = self.callback(context["response"])
                if inspect.isawaitable(result):
                    await result
            except Exception as err:
                error = HandlerError(
                    f"Listener {self.options['id']} callback failed: {err}"
                )
                error.__cause__ = err
                self.robot.emit_error(error, context["response"])
            finally:
                done()

        try:
            await middleware.execute({"listener": self, "response": response}, execute)
        except HandlerError as err:
            logger.warning("Listener middleware interrupted: %s", err)
        return True


class TextListener(Listener):
    """Listener matching message text against a regex."""

    def __init__(
        self,
        robot: Robot,
        regex: re.Pattern,
        options: dict | None,
        callback: ListenerCallback,
    ):
        self.regex = regex
        super().__init__(robot, self._match, options, callback)

    def _match(self, message: TextMessage) -> re.Match | None:
        if not isinstance(message, TextMessage) or message.text is None:
            return None
        return self.regex.search(message.text)
