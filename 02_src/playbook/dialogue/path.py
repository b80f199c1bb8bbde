"""Path: one turn of branches to match a reply against."""

import asyncio
import inspect
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields, is_dataclass
from typing import Any, Awaitable, Callable

from ..base import Config, Emitter, Identity
from ..logging_config import get_logger
from ..utils import parse_pattern

logger = get_logger(__name__)

BranchCallback = Callable[[Any], Any]
Handler = Callable[[Any], Awaitable[dict]]


@dataclass
class Branch:
    """Matching pattern and the handler to run when it matches."""

    pattern: re.Pattern
    handler: Handler


def _as_mapping(value: Any) -> Mapping | None:
    if isinstance(value, Mapping):
        return value
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in fields(value)}
    return None


async def _settle(*parts: Any) -> dict:
    """Await any awaitable parts and merge their mapping values."""
    awaitables = [part for part in parts if inspect.isawaitable(part)]
    resolved = iter(await asyncio.gather(*awaitables))
    merged: dict = {}
    for part in parts:
        value = next(resolved) if inspect.isawaitable(part) else part
        mapping = _as_mapping(value)
        if mapping is not None:
            merged.update(mapping)
    return merged


class Path:
    """
    Branches for the current turn of a conversation.

    A path is opened when branches are added and closed when one matches,
    unless the matched handler adds more. Branches are tried in the order
    they were added and the first match wins.

    Args:
        robot: Robot instance
        branches: Tuples of (pattern, message and/or callback)
        options: `catch_message` and/or `catch_callback` for unmatched replies
        key: Key name for this instance

    Example:
        path = Path(robot, [
            (r"/door 1/", "foo"),
            (r"/door 2/", "bar", on_bar),
            (r"/door 3/", on_baz),
        ])
    """

    def __init__(
        self,
        robot: Any,
        branches: Sequence | None = None,
        options: Mapping | None = None,
        key: str | None = None,
    ):
        self.identity = Identity.create("path", key)
        self.events = Emitter(self, robot)
        self.robot = robot
        self.config = Config().configure(options or {})
        self.branches: list[Branch] = []
        self.closed = True

        if branches:
            if not isinstance(branches, Sequence) or isinstance(branches, str):
                self.events.error("Branches must be a list")
            if not isinstance(branches[0], (list, tuple)):
                branches = [branches]
            for branch in branches:
                self.add_branch(*branch)

    def add_branch(
        self,
        pattern: re.Pattern | str,
        message: str | Sequence[str] | BranchCallback | None = None,
        callback: BranchCallback | None = None,
    ) -> None:
        """
        Add a branch to match replies, sending a message and/or calling back.

        Adding a branch always reopens the path.
        """
        try:
            regex = parse_pattern(pattern)
        except ValueError as e:
            self.events.error(f"Invalid pattern for branch: {e}")
        if callable(message) and callback is None:
            message, callback = None, message
        if message is not None and not isinstance(message, (str, Sequence)):
            self.events.error(f"Invalid message for branch: {message!r}")
        if callback is not None and not callable(callback):
            self.events.error(f"Invalid callback for branch: {callback!r}")
        if message is None and callback is None:
            self.events.error("Missing args for branch")

        self.branches.append(Branch(pattern=regex, handler=self.get_handler(message, callback)))
        self.closed = False

    def get_handler(
        self,
        message: str | Sequence[str] | None,
        callback: BranchCallback | None,
    ) -> Handler:
        """Build a handler that sends the message and/or calls back."""
        strings = [message] if isinstance(message, str) else list(message or [])

        def handler(response: Any) -> Awaitable[dict]:
            sent = called = None
            if strings:
                if response.dialogue is not None:
                    sent = response.dialogue.send(*strings)
                else:
                    sent = response.reply(*strings)
            if callback is not None:
                try:
                    called = callback(response)
                except Exception:
                    if inspect.iscoroutine(sent):
                        sent.close()
                    raise
            return _settle(sent, called)

        return handler

    def add_catch(
        self,
        message: str | Sequence[str] | BranchCallback | None = None,
        callback: BranchCallback | None = None,
    ) -> None:
        """Set what happens when a reply matches no branch."""
        if callable(message) and callback is None:
            message, callback = None, message
        if message is None and callback is None:
            self.events.error("Missing args for catch")
        self.config["catch_message"] = message
        self.config["catch_callback"] = callback

    def catch_handler(self) -> Handler | None:
        """Handler for unmatched replies, if configured."""
        message = self.config.get("catch_message")
        callback = self.config.get("catch_callback")
        if message is None and callback is None:
            return None
        return self.get_handler(message, callback)

    def match(self, response: Any) -> Awaitable[dict | None]:
        """
        Match a reply against branches, running the matched handler.

        The path closes before the handler runs, so a handler adding branches
        leaves it open. Without a match the catch handler runs, which doesn't
        change whether the path is closed.

        Returns:
            Awaitable resolving with the merged handler results, empty when
            nothing matched and there is no catch
        """
        text = response.message.text or ""
        matched = None
        for branch in self.branches:
            response.match = branch.pattern.search(text)
            if response.match:
                matched = branch
                break

        if matched is not None:
            self.closed = True
            self.events.emit("match", response)
            return matched.handler(response)

        catch = self.catch_handler()
        if catch is not None:
            self.events.emit("catch", response)
            return catch(response)

        logger.debug("No branch matched %r", text)
        self.events.emit("mismatch", response)
        return _settle()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<Path {self.identity.id} {state} branches={len(self.branches)}>"
