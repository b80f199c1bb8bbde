"""Response: the context for handling one inbound message."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from ..models import Envelope, SendResult, TextMessage

if TYPE_CHECKING:
    from .robot import Robot


class Response:
    """Wraps an inbound message with the means to answer it."""

    def __init__(self, robot: Robot, message: TextMessage, match: re.Match | None = None):
        self.robot = robot
        self.message = message
        self.match = match
        # Set by collaborators handling the message
        self.dialogue: Any = None
        self.bit: Any = None

    @property
    def envelope(self) -> Envelope:
        return Envelope(room=self.message.room, user=self.message.user, message=self.message)

    async def send(self, *strings: str) -> SendResult:
        """Send strings to the message's room."""
        return await self.robot.deliver(self, "send", strings)

    async def reply(self, *strings: str) -> SendResult:
        """Send strings addressed to the message's user."""
        return await self.robot.deliver(self, "reply", strings)

    def finish(self) -> None:
        """Stop further listeners from processing the message."""
        self.message.finish()

    def __repr__(self) -> str:
        return f"<Response {self.message.user.name}@{self.message.room}: {self.message.text!r}>"
