"""Bit: the schema of one node in an outline."""

import re
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..models import ListenerType, SceneScope


class Bit(BaseModel):
    """
    A named step of conversation.

    A bit with `listen` is an entry point, adding a scene listener for its
    condition. Any bit's `next` keys become branches once it's done, matched
    against the conditions of those bits. `reply`, `timeout` (milliseconds)
    and `timeout_text` configure the dialogue while the bit is current.
    """

    model_config = ConfigDict(frozen=False, extra="forbid")

    key: str
    send: list[str] = Field(default_factory=list)
    catch: str | None = None
    condition: Any = None
    listen: ListenerType | None = None
    scope: SceneScope | None = None
    options: dict[str, Any] = Field(default_factory=dict)
    reply: bool | None = None
    timeout: int | None = Field(default=None, gt=0)
    timeout_text: str | None = Field(
        default=None, validation_alias=AliasChoices("timeout_text", "timeoutText")
    )
    next: list[str] | None = None

    @field_validator("key")
    @classmethod
    def key_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("key can't be empty")
        return value

    @field_validator("send", "next", mode="before")
    @classmethod
    def cast_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("condition")
    @classmethod
    def condition_type(cls, value: Any) -> Any:
        if value is None or isinstance(value, (str, re.Pattern)):
            return value
        raise ValueError(f"condition must be a string or compiled pattern, got {type(value).__name__}")
