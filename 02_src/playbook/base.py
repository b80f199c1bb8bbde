"""Capabilities composed into every Playbook module.

A module owns an `Identity` (name, unique id, optional key), a `Config`
(options merged with defaults) and an `Emitter` (events routed through the
robot, tagged with the module so observers can target one instance).
"""

import itertools
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, NoReturn

from .errors import ConfigError

_ids = itertools.count(1)


@dataclass
class Identity:
    """Name, unique id and optional key of a module instance."""

    name: str
    id: str
    key: str | None = None

    @classmethod
    def create(cls, name: str, key: str | None = None) -> "Identity":
        if not isinstance(name, str) or not name:
            raise ConfigError("constructor: Module requires a name")
        if key is not None and not isinstance(key, str):
            raise ConfigError(f"constructor: Key must be a string, got {key!r}")
        return cls(name=name, id=f"{name}_{next(_ids)}", key=key)


class Config(dict):
    """Module options, merged with defaults."""

    def configure(self, options: Mapping) -> "Config":
        """Merge in options, overriding existing values."""
        if not isinstance(options, Mapping):
            raise ConfigError("Non-object received for config")
        self.update(options)
        return self

    def defaults(self, settings: Mapping) -> "Config":
        """Fill missing settings without overriding existing values."""
        if not isinstance(settings, Mapping):
            raise ConfigError("Non-object received for defaults")
        for key, value in settings.items():
            self.setdefault(key, value)
        return self


class Emitter:
    """Emits and subscribes to robot events on behalf of one module."""

    def __init__(self, owner: Any, robot: Any):
        if robot is None or not callable(getattr(robot, "emit", None)):
            raise ConfigError("constructor: Module requires a robot object")
        self.owner = owner
        self.robot = robot

    def emit(self, event: str, *args: Any) -> None:
        """Emit through the robot with the owner prepended to the args."""
        self.robot.emit(event, self.owner, *args)

    def on(self, event: str, callback: Callable[..., Any]) -> Callable[..., Any]:
        """Call back on robot events emitted by the owner only."""

        def relay(instance: Any = None, *args: Any) -> Any:
            if instance is self.owner:
                return callback(*args)
            return None

        self.robot.on(event, relay)
        return relay

    def emit_error(self, error: Exception, response: Any = None) -> None:
        """Pass an error to the robot's error observers."""
        self.robot.emit_error(error, response)

    def error(self, message: str) -> NoReturn:
        """Emit then raise a ConfigError scoped to the owner's id."""
        identity = getattr(self.owner, "identity", None)
        error = ConfigError(f"{identity.id if identity else 'constructor'}: {message}")
        self.emit_error(error)
        raise error
