"""Playbook: conversation flows for chat bots."""

from .app import Application, IApplication
from .base import Config, Emitter, Identity
from .brain import Brain, BrainStorage, IBrainStorage
from .dialogue import Branch, Dialogue, Path
from .director import Director
from .errors import AlreadyEngagedError, ConfigError, HandlerError, PlaybookError
from .event_bus import EventBus, IEventBus
from .improv import Improv
from .models import (
    DirectorScope,
    DirectorType,
    Envelope,
    ListenerType,
    SceneScope,
    SendResult,
    TextMessage,
    User,
)
from .outline import Bit, Outline
from .playbook import Playbook
from .robot import IAdapter, MemoryAdapter, Response, Robot
from .scene import Scene
from .transcript import Transcript
from .utils import Middleware, parse_pattern

__all__ = [
    # Application
    "Application",
    "IApplication",
    "Playbook",
    # Errors
    "PlaybookError",
    "ConfigError",
    "HandlerError",
    "AlreadyEngagedError",
    # Models
    "User",
    "TextMessage",
    "Envelope",
    "SendResult",
    "SceneScope",
    "ListenerType",
    "DirectorType",
    "DirectorScope",
    # Host runtime
    "Robot",
    "Response",
    "IAdapter",
    "MemoryAdapter",
    "EventBus",
    "IEventBus",
    "Brain",
    "BrainStorage",
    "IBrainStorage",
    # Modules
    "Identity",
    "Config",
    "Emitter",
    "Path",
    "Branch",
    "Dialogue",
    "Scene",
    "Director",
    "Transcript",
    "Improv",
    "Bit",
    "Outline",
    # Utils
    "Middleware",
    "parse_pattern",
]
