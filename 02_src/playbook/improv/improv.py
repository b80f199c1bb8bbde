"""Improv: renders message templates with user, app and brain data."""

import re
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from typing import Any, Callable

from ..base import Config, Identity
from ..config import improv_defaults
from ..errors import ConfigError
from ..logging_config import get_logger
from ..utils import PathSyntaxError, defaults_deep, get_path, set_path, unset_path

logger = get_logger(__name__)

BRAIN_KEY = "improv"
EXPRESSION = re.compile(r"\$\{\s*(.*?)\s*\}")

Extension = Callable[[dict], Mapping | None]


class Improv:
    """
    Registry of template data, rendering `${ ... }` expressions in sends.

    Expressions are data paths like `${ this.user.name }` or `${ user.name }`,
    looked up in the merged data. Nothing else is evaluated. Unknown paths
    render as the fallback, or replace the whole string if a replacement is
    configured.

    One registry is attached to a robot's response middleware, so every send
    and reply is rendered. Attaching to a new robot keeps the existing
    config, data and extensions.

    Args:
        options: `save` (merge brain data), `fallback` and `replacement`

    Example:
        improv = Improv().attach(robot)
        improv.remember("app.name", "Playbook")
        await response.send("Hello ${ user.name }, welcome to ${ app.name }")
    """

    def __init__(self, options: Mapping | None = None):
        self.identity = Identity.create("improv")
        self.config = Config().configure(options or {}).defaults(improv_defaults())
        self.robot: Any = None
        self.context: dict = {}
        self.extensions: list[Extension] = []

    def attach(self, robot: Any) -> "Improv":
        """Render a robot's responses, adding the middleware only once."""
        if not isinstance(robot.brain.get(BRAIN_KEY), dict):
            robot.brain.set(BRAIN_KEY, {})
        if self.middleware not in robot.middleware["response"].stack:
            robot.response_middleware(self.middleware)
            logger.debug("Improv attached to %s", robot.name)
        self.robot = robot
        return self

    def configure(self, options: Mapping) -> "Improv":
        self.config.configure(options)
        return self

    def extend(self, func: Extension) -> "Improv":
        """
        Add a function providing more data when rendering.

        It's called with the merged data so far and returns data to merge
        (without overriding existing keys), or changes the data in place.
        """
        if not callable(func):
            raise ConfigError(f"{self.identity.id}: Extension must be callable")
        self.extensions.append(func)
        return self

    def remember(self, path: str, value: Any) -> "Improv":
        """Add data at a path."""
        set_path(self.context, path, value)
        return self

    def forget(self, path: str) -> "Improv":
        """Remove data at a path."""
        unset_path(self.context, path)
        return self

    def merge_data(self, user: Any = None) -> dict:
        """Context data, merged with the user, brain data and extensions."""
        if is_dataclass(user) and not isinstance(user, type):
            user = asdict(user)
        sources: list[Mapping | None] = [self.context, {"user": user or {}}]
        if self.config.get("save") and self.robot is not None:
            sources.append(self.robot.brain.get(BRAIN_KEY))
        merged = defaults_deep({}, *sources)
        for func in self.extensions:
            extra = func(merged)
            if isinstance(extra, Mapping) and extra is not merged:
                defaults_deep(merged, extra)
        return merged

    def parse(self, strings: list[str], data: Mapping) -> list[str]:
        """Render expressions in each string with the data."""
        return [self._render(string, data) if isinstance(string, str) else string for string in strings]

    def _render(self, string: str, data: Mapping) -> str:
        unknown = False

        def lookup(match: re.Match) -> str:
            nonlocal unknown
            try:
                value = get_path(data, match.group(1))
            except (KeyError, PathSyntaxError):
                value = None
            if value is None:
                unknown = True
                logger.warning("'%s' unknown in improv context for message: %s", match.group(1), string)
                return str(self.config.get("fallback"))
            return str(value)

        rendered = EXPRESSION.sub(lookup, string)
        if unknown and self.config.get("replacement") is not None:
            return self.config["replacement"]
        return rendered

    def middleware(self, context: dict, next_: Callable[..., None], done: Callable[..., None]) -> None:
        """Render strings on their way to the adapter, if they hold expressions."""
        strings = context["strings"]
        if any(EXPRESSION.search(string) for string in strings if isinstance(string, str)):
            data = self.merge_data(context["response"].message.user)
            context["strings"] = self.parse(strings, data)
        next_(done)

    def reset(self) -> None:
        """Wipe config, data and extensions, detaching the robot."""
        self.config = Config().defaults(improv_defaults())
        self.context = {}
        self.extensions = []
        self.robot = None

    def __repr__(self) -> str:
        robot = self.robot.name if self.robot is not None else None
        return f"<Improv {self.identity.id} robot={robot}>"
