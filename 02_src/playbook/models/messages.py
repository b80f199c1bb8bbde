"""Message-related data models."""

import uuid
from dataclasses import dataclass, field


@dataclass
class User:
    """A chat user as seen by the bot."""

    id: str
    name: str
    room: str | None = None


@dataclass
class TextMessage:
    """An inbound text message."""

    user: User
    text: str
    room: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    done: bool = False

    def __post_init__(self):
        if self.room is None:
            self.room = self.user.room

    def finish(self) -> None:
        """Stop any further processing of this message."""
        self.done = True


@dataclass
class Envelope:
    """Addressing for an outbound message."""

    room: str | None
    user: User
    message: TextMessage
