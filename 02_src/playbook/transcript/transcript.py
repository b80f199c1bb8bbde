"""Transcript: records conversation events for analytics and lookups."""

import re
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from ..base import Config, Emitter, Identity
from ..logging_config import get_logger
from ..utils import get_path, is_subset, set_path

logger = get_logger(__name__)

BRAIN_KEY = "transcripts"
_MISSING = object()


def _is_module(value: Any) -> bool:
    return hasattr(value, "identity") and hasattr(value, "config")


def _is_response(value: Any) -> bool:
    return hasattr(value, "robot") and hasattr(value, "message")


def _pick(source: Any, paths: list[str]) -> dict:
    """Nested dict of the values found at each path, skipping missing ones."""
    picked: dict = {}
    for path in paths:
        value = get_path(source, path, _MISSING)
        if value is not _MISSING:
            set_path(picked, path, _plain(value))
    return picked


def _plain(value: Any) -> Any:
    """Convert event values to JSON-friendly data."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, re.Match):
        return [value.group(0), *value.groups()]
    if _is_module(value):
        return {"name": value.identity.name, "id": value.identity.id, "key": value.identity.key}
    if _is_response(value):
        message = value.message
        return {"user": {"id": message.user.id, "name": message.user.name}, "room": message.room, "text": message.text}
    if is_dataclass(value) and not isinstance(value, type):
        return _plain(asdict(value))
    if isinstance(value, Mapping):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_plain(item) for item in value]
    return repr(value)


class Transcript:
    """
    Records conversation events, with meta about the user, message and module.

    Records either go to the robot's brain (searchable with any history it
    loaded) or stay in memory. Nothing is recorded until one of the `record_*`
    methods is called.

    Args:
        robot: Robot instance
        options: `save` (keep records in the brain), `events` (names to
            record), `instance_atts`, `response_atts` and `message_atts`
            (paths of attributes to copy into each record)
        key: Key name for this instance

    Example:
        match_records = Transcript(robot, {"response_atts": ["match"], "events": ["match"]})
        match_records.record_all()
    """

    def __init__(self, robot: Any, options: Mapping | None = None, key: str | None = None):
        self.identity = Identity.create("transcript", key)
        self.events = Emitter(self, robot)
        self.robot = robot
        self.config = Config().configure(options or {}).defaults(
            {
                "save": True,
                "events": ["match", "mismatch", "catch", "send"],
                "instance_atts": ["name", "key", "id"],
                "response_atts": ["match"],
                "message_atts": ["user.id", "user.name", "room", "text"],
            }
        )
        for name in ("events", "instance_atts", "response_atts", "message_atts"):
            if isinstance(self.config[name], str):
                self.config[name] = [self.config[name]]

        self._records: list[dict] = []
        self._subscriptions: list[tuple[str, Callable[..., Any]]] = []
        if self.config["save"] and not isinstance(self.robot.brain.get(BRAIN_KEY), list):
            self.robot.brain.set(BRAIN_KEY, [])

    @property
    def records(self) -> list[dict]:
        """Current records, fetched from the brain each time when saving."""
        if self.config["save"]:
            records = self.robot.brain.get(BRAIN_KEY)
            if not isinstance(records, list):
                records = []
                self.robot.brain.set(BRAIN_KEY, records)
            return records
        return self._records

    def record_event(self, event: str, *args: Any) -> dict:
        """
        Record an event with whatever details its args provide.

        Events emitted by modules pass the module instance first, usually
        followed by the response. Any other args are kept as `strings` for
        sends, or `other`.
        """
        args = list(args)
        instance = args.pop(0) if args and _is_module(args[0]) else None
        response = args.pop(0) if args and _is_response(args[0]) else None

        record: dict = {"time": datetime.now(timezone.utc).isoformat(), "event": event}
        if self.identity.key is not None:
            record["key"] = self.identity.key
        if instance is not None and self.config["instance_atts"]:
            record["instance"] = _pick(instance.identity, self.config["instance_atts"])
        if response is not None and self.config["response_atts"]:
            record["response"] = _pick(response, self.config["response_atts"])
        if response is not None and self.config["message_atts"]:
            record["message"] = _pick(response.message, self.config["message_atts"])

        if event == "send" and args and isinstance(args[0], Mapping) and "strings" in args[0]:
            record["strings"] = list(args[0]["strings"])
            record["method"] = args[0].get("method")
        elif args:
            record["other"] = _plain(args)

        self.records.append(record)
        self.events.emit("record", record)
        return record

    def _subscribe(self, event: str, handler: Callable[..., Any]) -> Callable[..., Any]:
        self.robot.on(event, handler)
        self._subscriptions.append((event, handler))
        return handler

    def _unsubscribe(self, event: str, handler: Callable[..., Any]) -> None:
        self.robot.off(event, handler)
        if (event, handler) in self._subscriptions:
            self._subscriptions.remove((event, handler))

    def _recorder(self, event: str, accept: Callable[..., bool] | None = None) -> Callable[..., None]:
        def record(*args: Any) -> None:
            if accept is None or accept(*args):
                self.record_event(event, *args)

        return record

    def record_all(self) -> None:
        """Record configured events from every module and the robot itself."""
        for event in self.config["events"]:
            self._subscribe(event, self._recorder(event))

    def record_dialogue(self, dialogue: Any) -> None:
        """Record configured events from a dialogue and its current path."""

        def owned(instance: Any = None, *_: Any) -> bool:
            return instance is dialogue or (dialogue.path is not None and instance is dialogue.path)

        handlers = [(event, self._subscribe(event, self._recorder(event, owned))) for event in self.config["events"]]

        def release(instance: Any = None, *_: Any) -> None:
            if instance is not dialogue:
                return
            for event, handler in handlers:
                self._unsubscribe(event, handler)
            self._unsubscribe("end", release)

        # Subscribed after the recorders so an `end` record is still written
        self._subscribe("end", release)

    def record_scene(self, scene: Any) -> None:
        """Record entries and exits of a scene, and events of dialogues it enters."""

        def entered(response: Any, dialogue: Any) -> None:
            self.record_event("enter", scene, response)
            self.record_dialogue(dialogue)

        def exited(response: Any, *args: Any) -> None:
            self.record_event("exit", scene, response, *args)

        self._subscriptions.append(("enter", scene.events.on("enter", entered)))
        self._subscriptions.append(("exit", scene.events.on("exit", exited)))

    def record_director(self, director: Any) -> None:
        """Record allow and deny events of a director, regardless of configured events."""
        for event in ("allow", "deny"):
            recorder = self._recorder(event)
            relay = director.events.on(event, lambda *args, recorder=recorder: recorder(director, *args))
            self._subscriptions.append((event, relay))

    def stop(self) -> None:
        """Stop recording anything."""
        for event, handler in self._subscriptions:
            self.robot.off(event, handler)
        self._subscriptions.clear()

    def find_records(self, subset: Mapping, return_path: str | None = None) -> list:
        """
        Filter records matching a subset, e.g. user name or instance key.

        Example:
            transcript.find_records({"message": {"user": {"name": "jon"}}}, "message.text")
        """
        found = [record for record in self.records if is_subset(subset, record)]
        if return_path is None:
            return found
        return [get_path(record, return_path, None) for record in found]

    def find_key_matches(
        self,
        key: str,
        capture_group: int | None = None,
        user_id: str | None = None,
    ) -> list:
        """
        Matches recorded for instances with a key, e.g. answers in one dialogue.

        Args:
            key: Instance key to filter on
            capture_group: Return only this group of each match
            user_id: Only matches from this user, needs `user.id` in `message_atts`

        Example:
            latest_color = transcript.find_key_matches("pick-a-color", 1, user_id="u1")[-1]
        """
        path = "response.match"
        if capture_group is not None:
            path += f"[{capture_group}]"
        subset: dict = {"instance": {"key": key}}
        if user_id is not None:
            subset["message"] = {"user": {"id": user_id}}
        return self.find_records(subset, path)

    def __repr__(self) -> str:
        return f"<Transcript {self.identity.id} records={len(self.records)}>"
