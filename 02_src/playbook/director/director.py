"""Director: conversation firewall for listeners and scenes."""

import inspect
import re
from collections.abc import Mapping
from typing import Any, Callable

from ..base import Config, Emitter, Identity
from ..config import director_defaults, director_names
from ..logging_config import get_logger
from ..models import DirectorScope, DirectorType
from ..utils import parse_pattern

logger = get_logger(__name__)

Authorise = Callable[[str, Any], Any]


class Director:
    """
    Allows listed users (or rooms) into scenes and listeners, or blocks them.

    A whitelist lets listed names through and blocks anyone else. A blacklist
    blocks listed names and lets anyone else through. If given, `authorise`
    decides for names not on the list, called with the name and response and
    returning a bool (or an awaitable of one).

    Lists start from env vars `WHITELIST_USERNAMES`, `WHITELIST_ROOMS`,
    `BLACKLIST_USERNAMES` or `BLACKLIST_ROOMS`, depending on type and scope.

    Args:
        robot: Robot instance
        authorise: Fallback access check for unlisted names
        options: `type` (whitelist or blacklist), `scope` (username or room)
            and `denied_reply` (env `DENIED_REPLY`)
        key: Key name for this instance

    Example:
        admins_only = Director(robot, lambda name, response: platform.is_admin(name))
    """

    def __init__(
        self,
        robot: Any,
        authorise: Authorise | None = None,
        options: Mapping | None = None,
        key: str | None = None,
    ):
        if isinstance(authorise, Mapping) and options is None:
            authorise, options = None, authorise
        self.identity = Identity.create("director", key)
        self.events = Emitter(self, robot)
        self.robot = robot
        self.config = Config().configure(options or {}).defaults(director_defaults())
        if authorise is not None and not callable(authorise):
            self.events.error("Invalid authorise function")
        self.authorise = authorise

        try:
            self.type = DirectorType(self.config["type"])
        except ValueError:
            self.events.error(f"Invalid type: {self.config['type']!r}")
        try:
            self.scope = DirectorScope(self.config["scope"])
        except ValueError:
            self.events.error(f"Invalid scope: {self.config['scope']!r}")

        self.names: list[str] = director_names(self.type.value, self.scope.value)
        logger.info("New %s director %s", self.scope.value, self.type.value)

    def add(self, names: str | list[str]) -> "Director":
        """Add usernames or rooms to the list."""
        names = [names] if isinstance(names, str) else list(names)
        logger.info("Adding %s to %s %s", names, self.identity.id, self.type.value)
        for name in names:
            if name not in self.names:
                self.names.append(name)
        return self

    def remove(self, names: str | list[str]) -> "Director":
        """Remove usernames or rooms from the list."""
        names = [names] if isinstance(names, str) else list(names)
        logger.info("Removing %s from %s %s", names, self.identity.id, self.type.value)
        self.names = [name for name in self.names if name not in names]
        return self

    def name_of(self, response: Any) -> str | None:
        """Username or room of a response, relative to the director scope."""
        if self.scope is DirectorScope.ROOM:
            return response.message.room
        return response.message.user.name

    def is_allowed(self, response: Any) -> Any:
        """
        Check the list, falling back to `authorise` for unlisted names.

        Returns:
            bool, or the awaitable `authorise` returned
        """
        name = self.name_of(response)
        listed = name in self.names
        if self.type is DirectorType.BLACKLIST:
            if listed:
                return False
            if self.authorise is None:
                return True
        else:
            if listed:
                return True
            if self.authorise is None:
                return False
        return self.authorise(name, response)

    async def process(self, response: Any) -> bool:
        """Allow or deny, emitting `allow` or `deny` and replying if configured."""
        allowed = self.is_allowed(response)
        if inspect.isawaitable(allowed):
            allowed = await allowed
        allowed = bool(allowed)
        user = response.message.user.name
        if allowed:
            logger.debug("%s allowed %s on %r", self.identity.id, user, response.message.text)
            self.events.emit("allow", response)
        else:
            logger.info("%s denied %s on %r", self.identity.id, user, response.message.text)
            self.events.emit("deny", response)
            if self.config.get("denied_reply"):
                await response.reply(self.config["denied_reply"])
        return allowed

    def direct_match(self, pattern: re.Pattern | str) -> "Director":
        """Control access to any listener matching a pattern."""
        regex = parse_pattern(pattern)
        logger.info("Now directing access to listeners matching %s", regex.pattern)

        async def direct(context: dict, next_: Callable[..., None], done: Callable[..., None]) -> None:
            response = context["response"]
            if not regex.search(response.message.text or ""):
                next_(done)
                return
            await self._gate(response, next_, done)

        self.robot.listener_middleware(direct)
        return self

    def direct_listener(self, listener_id: str) -> "Director":
        """
        Control access to listeners by id.

        A scene's listeners all share the scene id, so this covers all of them.
        """
        logger.info("Now directing access to listener %s", listener_id)

        async def direct(context: dict, next_: Callable[..., None], done: Callable[..., None]) -> None:
            if context["listener"].options.get("id") != listener_id:
                next_(done)
                return
            await self._gate(context["response"], next_, done)

        self.robot.listener_middleware(direct)
        return self

    def direct_scene(self, scene: Any) -> "Director":
        """Control entry to a scene, whether by its listeners or `enter`."""
        logger.info("Now directing access to %s", scene.identity.id)

        async def direct(context: dict, next_: Callable[..., None], done: Callable[..., None]) -> None:
            if await self.process(context["response"]):
                next_(done)
            else:
                done()

        scene.register_middleware(direct)
        return self

    async def _gate(self, response: Any, next_: Callable[..., None], done: Callable[..., None]) -> None:
        if await self.process(response):
            next_(done)
            return
        response.message.finish()
        done()

    def __repr__(self) -> str:
        return f"<Director {self.identity.id} {self.scope.value} {self.type.value} names={self.names}>"
