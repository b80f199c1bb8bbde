"""Adapters deliver the robot's messages to a chat platform."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from ..models import Envelope, TextMessage, User

if TYPE_CHECKING:
    from .robot import Robot


class IAdapter(Protocol):
    """Outbound side of a chat platform."""

    async def send(self, envelope: Envelope, *strings: str) -> None:
        """Send strings to the envelope's room."""
        ...

    async def reply(self, envelope: Envelope, *strings: str) -> None:
        """Send strings addressed to the envelope's user."""
        ...


class MemoryAdapter:
    """Keeps every line in memory as (room, speaker, text)."""

    def __init__(self, robot: Robot):
        self.robot = robot
        self.messages: list[tuple[str | None, str, str]] = []

    async def send(self, envelope: Envelope, *strings: str) -> None:
        for string in strings:
            self.messages.append((envelope.room, self.robot.name, string))

    async def reply(self, envelope: Envelope, *strings: str) -> None:
        await self.send(envelope, *[f"@{envelope.user.name} {string}" for string in strings])

    async def receive(self, user: User, text: str, room: str | None = None) -> TextMessage:
        """Record a user's text and pass it to the robot."""
        message = TextMessage(user=user, text=text, room=room)
        self.messages.append((message.room, user.name, text))
        await self.robot.receive(message)
        return message

    def clear(self) -> None:
        self.messages.clear()
