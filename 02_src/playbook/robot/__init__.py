"""Host messaging runtime."""

from .adapter import IAdapter, MemoryAdapter
from .listener import Listener, ListenerCallback, TextListener
from .response import Response
from .robot import Robot

__all__ = [
    "IAdapter",
    "MemoryAdapter",
    "Listener",
    "ListenerCallback",
    "TextListener",
    "Response",
    "Robot",
]
