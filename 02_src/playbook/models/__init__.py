"""Core data models for Playbook."""

from .messages import Envelope, TextMessage, User
from .results import SendResult
from .scopes import DirectorScope, DirectorType, ListenerType, SceneScope

__all__ = [
    # Messages
    "User",
    "TextMessage",
    "Envelope",
    # Results
    "SendResult",
    # Scopes
    "SceneScope",
    "ListenerType",
    "DirectorType",
    "DirectorScope",
]
