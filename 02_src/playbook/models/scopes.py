"""Enumerations for scopes and types."""

from enum import Enum


class SceneScope(str, Enum):
    """How a scene addresses its participants."""

    USER = "user"
    ROOM = "room"
    DIRECT = "direct"


class ListenerType(str, Enum):
    """Robot listener variants."""

    HEAR = "hear"
    RESPOND = "respond"


class DirectorType(str, Enum):
    """Director list behaviour."""

    WHITELIST = "whitelist"
    BLACKLIST = "blacklist"


class DirectorScope(str, Enum):
    """What a director checks against its list."""

    USERNAME = "username"
    ROOM = "room"
