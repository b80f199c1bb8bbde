"""Outline: a mesh of bits setting up scenes, dialogues and paths."""

import re
from collections.abc import Mapping, Sequence
from functools import partial
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..base import Config, Emitter, Identity
from ..errors import ConfigError
from ..logging_config import get_logger
from ..utils import parse_pattern
from .models import Bit

logger = get_logger(__name__)


class Outline:
    """
    Conversation model built from bits.

    Bits with a `listen` type are entry points, each adding a scene listener
    through the robot's playbook. Every other bit is reached through the
    `next` keys of a prior bit, which can lead back to any bit, including
    itself. Keys in `next` must belong to a loaded bit.

    Args:
        robot: Robot instance, using a playbook to set up scenes
        bits: Bit instances or their attributes
        options: `setup_scenes` (default True) to add scene listeners on load
        key: Key name for this instance

    Example:
        outline = Outline.from_yaml(robot, Path("conversation.yml"))
    """

    def __init__(
        self,
        robot: Any,
        bits: Sequence[Bit | Mapping],
        options: Mapping | None = None,
        key: str | None = None,
    ):
        self.identity = Identity.create("outline", key)
        self.events = Emitter(self, robot)
        self.robot = robot
        self.config = Config().configure(options or {}).defaults({"setup_scenes": True})
        self.bits: dict[str, Bit] = {}
        self.scenes: list[Any] = []

        if bits is None or isinstance(bits, (str, Mapping)) or not isinstance(bits, Sequence):
            self.events.error("Bits must be a list")
        for attributes in bits:
            bit = self._load_bit(attributes)
            if bit.key in self.bits:
                self.events.error(f"Duplicate key for bit: {bit.key}")
            self.bits[bit.key] = bit
        self._validate()

        if self.config["setup_scenes"]:
            self.setup_scenes()

    @classmethod
    def from_yaml(
        cls,
        robot: Any,
        source: str | Path,
        options: Mapping | None = None,
        key: str | None = None,
    ) -> "Outline":
        """
        Load bits from YAML text or a file, as a list or under a `bits` key.
        """
        text = source.read_text(encoding="utf-8") if isinstance(source, Path) else source
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid outline YAML: {e}") from e
        if isinstance(data, Mapping):
            data = data.get("bits")
        if not isinstance(data, list):
            raise ConfigError("Outline YAML must hold a list of bits")
        return cls(robot, data, options, key)

    def _load_bit(self, attributes: Bit | Mapping) -> Bit:
        if isinstance(attributes, Bit):
            return attributes
        if not isinstance(attributes, Mapping):
            self.events.error(f"Invalid bit: {attributes!r}")
        if not attributes.get("key"):
            self.events.error("Missing key for bit")
        try:
            return Bit.model_validate(dict(attributes))
        except ValidationError as e:
            self.events.error(f"Invalid bit {attributes.get('key')}: {e}")

    def _validate(self) -> None:
        for bit in self.bits.values():
            if bit.listen is not None and bit.condition is None:
                self.events.error(f"Missing condition for listener bit: {bit.key}")
            if bit.condition is not None:
                self.parse_condition(bit.condition)
            for next_key in bit.next or []:
                if next_key not in self.bits:
                    self.events.error(f"Bit {bit.key} leads to unknown bit: {next_key}")
                if self.bits[next_key].condition is None:
                    self.events.error(f"Bit {bit.key} leads to bit without condition: {next_key}")

    def get_by_key(self, key: str) -> Bit:
        bit = self.bits.get(key)
        if bit is None:
            self.events.error(f"Invalid key ({key}) requested")
        return bit

    def parse_condition(self, condition: str | re.Pattern) -> re.Pattern:
        try:
            return parse_pattern(condition)
        except ValueError:
            self.events.error(f"Condition ({condition!r}) can't be cast as regex")

    def setup_scenes(self) -> "Outline":
        """Add a scene listener for each bit with a `listen` type."""
        playbook = getattr(self.robot, "playbook", None)
        if playbook is None:
            self.events.error("Can't set up scenes without a playbook using the robot")
        for bit in self.bits.values():
            if bit.listen is None:
                continue
            options = dict(bit.options)
            if bit.scope is not None:
                options["scope"] = bit.scope.value
            scene = playbook.scene_listen(
                bit.listen,
                self.parse_condition(bit.condition),
                options,
                bit.key,
                partial(self.bit_callback, bit),
            )
            self.scenes.append(scene)
            logger.debug("Outline %s listening for bit %s", self.identity.id, bit.key)
        return self

    def setup_dialogue(self, response: Any) -> Any:
        """Key and configure the open dialogue for the response's bit."""
        dialogue = response.dialogue
        bit = response.bit
        options = dict(bit.options)
        if bit.reply is not None:
            options["send_replies"] = bit.reply
        if bit.timeout is not None:
            options["timeout"] = bit.timeout
        if bit.timeout_text is not None:
            options["timeout_text"] = bit.timeout_text
        dialogue.identity.key = bit.key
        dialogue.config.configure(options)
        return dialogue

    async def bit_callback(self, bit: Bit, response: Any) -> None:
        """Do a bit: send its strings then add branches to the next bits."""
        response.bit = bit
        dialogue = self.setup_dialogue(response)
        if bit.send:
            await dialogue.send(*bit.send)
        if bit.next:
            await self.setup_path(response)

    async def setup_path(self, response: Any) -> Any:
        """Add a path with a branch for each of the bit's next bits."""
        bit = response.bit
        branches = []
        for next_key in bit.next or []:
            next_bit = self.get_by_key(next_key)
            branches.append(
                (self.parse_condition(next_bit.condition), partial(self.bit_callback, next_bit))
            )
        options = dict(bit.options)
        if bit.catch:
            options["catch_message"] = bit.catch
        return await response.dialogue.add_path(None, branches, options, bit.key)

    def __repr__(self) -> str:
        return f"<Outline {self.identity.id} bits={list(self.bits)}>"
