"""Dialogue: a participant's ongoing exchange, moving from path to path."""

import asyncio
import inspect
import re
from collections.abc import Mapping, Sequence
from typing import Any, Awaitable, Callable

from ..base import Config, Emitter, Identity
from ..config import dialogue_defaults
from ..errors import HandlerError
from ..logging_config import get_logger, log_context
from ..models import SendResult
from .path import BranchCallback, Path

logger = get_logger(__name__)

TimeoutHandler = Callable[["Dialogue"], Any]


class Dialogue:
    """
    Controls which path is current and for how long.

    Replies passed to `receive` are matched against the current path. Any new
    path replaces the previous one and restarts the countdown; a reply that
    closes the path without a new one being added ends the dialogue.

    Args:
        response: Response that started the dialogue
        options: `send_replies` (reply to user instead of room), `timeout`
            (milliseconds allowed for each reply) and `timeout_text` (sent on
            timeout, None to stay silent)
        key: Key name for this instance

    Example:
        async def hello(response):
            dialogue = Dialogue(response, {"timeout": 10000})
            await dialogue.add_path("Turn left or right?", [
                (r"/left/", "Ok, going left!"),
                (r"/right/", "Ok, going right!"),
            ])
    """

    path_class = Path

    def __init__(self, response: Any, options: Mapping | None = None, key: str | None = None):
        self.identity = Identity.create("dialogue", key)
        self.robot = getattr(response, "robot", None)
        self.events = Emitter(self, self.robot)
        self.config = Config().configure(options or {}).defaults(dialogue_defaults())
        response.dialogue = self
        self.response = response
        self.path: Path | None = None
        self.countdown: asyncio.TimerHandle | None = None
        self.ended = False
        self.failed = False
        self.scene: Any = None
        self._timeout_handler: TimeoutHandler | None = None
        self._receiving = asyncio.Lock()
        self._tasks: set[asyncio.Future] = set()

    def end(self) -> bool:
        """
        Shut down and emit `end`, for the scene to release participants.

        Returns:
            False if already ended
        """
        if self.ended:
            return False
        self.clear_timeout()
        if self.path is not None:
            logger.debug(
                "Dialogue %s ended %scomplete",
                self.identity.id,
                "" if self.complete else "in",
            )
        else:
            logger.debug("Dialogue %s ended before paths added", self.identity.id)
        self.ended = True
        self.events.emit("end", self.response)
        return True

    @property
    def complete(self) -> bool:
        """Whether the last path was closed by a handler that didn't fail."""
        return self.path is not None and self.path.closed and not self.failed

    async def send(self, *strings: str) -> SendResult:
        """Send or reply with strings, as configured, emitting `send`."""
        if self.config.get("send_replies"):
            result = await self.response.reply(*strings)
        else:
            result = await self.response.send(*strings)
        self.events.emit(
            "send",
            result.response,
            {"strings": result.strings, "method": result.method, "received": self.response},
        )
        return result

    def on_timeout(self, handler: TimeoutHandler) -> None:
        """Replace the default timeout behaviour (sending `timeout_text`)."""
        self._timeout_handler = handler

    def clear_timeout(self) -> None:
        """Stop the countdown, if any."""
        if self.countdown is not None:
            self.countdown.cancel()
            self.countdown = None

    def start_timeout(self) -> asyncio.TimerHandle | None:
        """(Re)start the countdown for a reply."""
        self.clear_timeout()
        if self.ended:
            return None
        loop = asyncio.get_running_loop()
        self.countdown = loop.call_later(self.config["timeout"] / 1000, self._expire)
        return self.countdown

    def _expire(self) -> None:
        # Handle is consumed once fired, so later clears are no-ops
        self.countdown = None
        self.events.emit("timeout", self.response)
        try:
            if self._timeout_handler is not None:
                result = self._timeout_handler(self)
            elif self.config.get("timeout_text") is not None:
                result = self.send(self.config["timeout_text"])
            else:
                result = None
            if inspect.isawaitable(result):
                self._spawn(result)
        except Exception as err:
            self._report(err, "timeout handler")
        self.end()

    def _report(self, err: Exception, where: str) -> None:
        error = HandlerError(f"{self.identity.id}: {where} failed: {err}")
        error.__cause__ = err
        self.events.emit_error(error, self.response)

    def _spawn(self, awaitable: Awaitable, report: bool = True) -> asyncio.Future:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)

        def settle(task: asyncio.Future) -> None:
            self._tasks.discard(task)
            if task.cancelled():
                return
            error = task.exception()
            if error is not None and report:
                self._report(error, "background task")

        task.add_done_callback(settle)
        return task

    async def _path_ready(self, sent: asyncio.Future | None, path: Path) -> Path:
        if sent is not None:
            await sent
        return path

    def add_path(
        self,
        prompt: str | Sequence | None = None,
        branches: Sequence | Mapping | None = None,
        options: Mapping | str | None = None,
        key: str | None = None,
    ) -> asyncio.Future:
        """
        Replace the current path, sending a prompt first if given.

        The prompt is optional, so branches may come first, with options and
        key shifting along. A path without a key takes the dialogue's key. The
        countdown restarts if the path has branches.

        Example:
            await dialogue.add_path([(r"/left/", "Ok, going left!")], {"catch_message": "Huh?"})

        Returns:
            Future resolving with the new path once the prompt is sent
        """
        if prompt is not None and not isinstance(prompt, str):
            if not isinstance(prompt, Sequence):
                self.events.error(f"Invalid prompt for path: {prompt!r}")
            if branches is None:
                branches = prompt
            elif isinstance(branches, Mapping) and key is None:
                branches, options, key = prompt, branches, options
            else:
                self.events.error("Path branches given twice")
            prompt = None

        if self.ended:
            logger.warning("Dialogue %s ended, path not added", self.identity.id, extra=log_context(self))
            return self._spawn(self._path_ready(None, self.path), report=False)

        path = self.path_class(self.robot, branches, options, key)
        if path.identity.key is None and self.identity.key is not None:
            path.identity.key = self.identity.key
        sent = self._spawn(self.send(prompt)) if prompt is not None else None
        self.path = path
        self.events.emit("path", path)
        if path.branches:
            self.start_timeout()
        return self._spawn(self._path_ready(sent, path), report=False)

    def add_branch(
        self,
        pattern: re.Pattern | str,
        message: str | Sequence[str] | BranchCallback | None = None,
        callback: BranchCallback | None = None,
    ) -> None:
        """Add a branch to the current path (created if needed), restarting the countdown."""
        if self.ended:
            logger.warning("Dialogue %s ended, branch not added", self.identity.id, extra=log_context(self))
            return
        if self.path is None:
            self.add_path()
        self.path.add_branch(pattern, message, callback)
        self.start_timeout()

    async def receive(self, response: Any) -> dict | bool:
        """
        Match a reply against the current path.

        A matching branch stops the countdown, the handler decides whether to
        continue by adding paths or branches. If the path is left closed the
        dialogue ends. The given response replaces the prior one, so later
        sends go to the latest channel.

        Returns:
            Merged handler results, or False if the dialogue is over
        """
        if self.ended or self.path is None:
            return False

        async with self._receiving:
            if self.ended or self.path is None:
                return False
            logger.debug("Dialogue %s received %r", self.identity.id, response.message.text)
            response.dialogue = self
            self.response = response
            try:
                handled = self.path.match(response)
                if response.match:
                    self.clear_timeout()
                result = await handled
            except Exception as err:
                self.failed = True
                self._report(err, "branch handler")
                self.end()
                return False
            if self.path.closed:
                self.end()
            return result

    def __repr__(self) -> str:
        state = "ended" if self.ended else "active"
        return f"<Dialogue {self.identity.id} {state} path={self.path!r}>"
