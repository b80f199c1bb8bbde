"""Outcome data models."""

from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass
class SendResult:
    """Resolved outcome of a send or reply through the response pipeline."""

    response: Any  # the Response the strings were sent through
    strings: list[str] = field(default_factory=list)
    method: Literal["send", "reply"] = "send"
