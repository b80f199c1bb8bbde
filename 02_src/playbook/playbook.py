"""Playbook: creates and keeps track of the modules used with a robot."""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Callable

from .dialogue import Dialogue
from .director import Authorise, Director
from .errors import ConfigError
from .improv import Improv
from .logging_config import get_logger
from .models import ListenerType
from .outline import Bit, Outline
from .scene import Scene
from .transcript import Transcript

logger = get_logger(__name__)


class Playbook:
    """
    Entry point for conversation modules, one per application.

    Modules created through the playbook are bound to its robot and kept, so
    they can be shut down together.

    Example:
        playbook = Playbook().use(robot)
        playbook.scene_hear(r"/hello/", lambda response: response.dialogue.add_path(...))
    """

    def __init__(self):
        self.robot: Any = None
        self.improv = Improv()
        self.dialogues: list[Dialogue] = []
        self.scenes: list[Scene] = []
        self.directors: list[Director] = []
        self.transcripts: list[Transcript] = []
        self.outlines: list[Outline] = []

    def use(self, robot: Any, improvise: bool = True) -> "Playbook":
        """Attach to a robot, rendering its responses with Improv by default."""
        if robot.playbook is self:
            return self
        self.robot = robot
        robot.playbook = self
        logger.info("Playbook using %s bot", robot.name)
        if improvise:
            self.improvise()
        return self

    def _require_robot(self) -> Any:
        if self.robot is None:
            raise ConfigError("Playbook must use a robot first")
        return self.robot

    def dialogue(self, response: Any, options: Mapping | None = None, key: str | None = None) -> Dialogue:
        """Create a dialogue for a response, outside of any scene."""
        dialogue = Dialogue(response, options, key)
        self.dialogues.append(dialogue)
        return dialogue

    def scene(self, options: Mapping | None = None, key: str | None = None) -> Scene:
        scene = Scene(self._require_robot(), options, key)
        self.scenes.append(scene)
        return scene

    async def scene_enter(
        self,
        response: Any,
        options: Mapping | None = None,
        key: str | None = None,
        callback: Callable[[dict], Any] | None = None,
    ) -> Dialogue | None:
        """Create a scene and enter the response's participants straight away."""
        scene = self.scene(options, key)
        return await scene.enter(response, callback=callback)

    def scene_listen(
        self,
        listener_type: str,
        pattern: Any,
        options: Mapping | Callable | None = None,
        key: str | Callable | None = None,
        callback: Callable[[Any], Any] | None = None,
    ) -> Scene:
        """Create a scene with a listener to enter it, the callback given last."""
        if callback is None and callable(key):
            key, callback = None, key
        if callback is None and callable(options):
            options, callback = None, options
        if isinstance(options, str) and key is None:
            options, key = None, options
        scene = self.scene(options, key)
        scene.listen(listener_type, pattern, callback)
        return scene

    def scene_hear(self, pattern: Any, options=None, key=None, callback=None) -> Scene:
        return self.scene_listen(ListenerType.HEAR, pattern, options, key, callback)

    def scene_respond(self, pattern: Any, options=None, key=None, callback=None) -> Scene:
        return self.scene_listen(ListenerType.RESPOND, pattern, options, key, callback)

    def director(
        self,
        authorise: Authorise | Mapping | None = None,
        options: Mapping | None = None,
        key: str | None = None,
    ) -> Director:
        director = Director(self._require_robot(), authorise, options, key)
        self.directors.append(director)
        return director

    def transcript(self, options: Mapping | None = None, key: str | None = None) -> Transcript:
        transcript = Transcript(self._require_robot(), options, key)
        self.transcripts.append(transcript)
        return transcript

    def transcribe(self, instance: Any, options: Mapping | None = None, key: str | None = None) -> Transcript:
        """Create a transcript recording a dialogue, scene or director."""
        transcript = self.transcript(options, key)
        if isinstance(instance, Dialogue):
            transcript.record_dialogue(instance)
        elif isinstance(instance, Scene):
            transcript.record_scene(instance)
        elif isinstance(instance, Director):
            transcript.record_director(instance)
        else:
            raise ConfigError(f"Can't transcribe {instance!r}")
        return transcript

    def improvise(self, options: Mapping | None = None) -> Improv:
        """Attach Improv to the robot, with any options."""
        self.improv.attach(self._require_robot())
        if options:
            self.improv.configure(options)
        return self.improv

    def outline(
        self,
        bits: Sequence[Bit | Mapping] | str | Path,
        options: Mapping | None = None,
        key: str | None = None,
    ) -> Outline:
        """Load an outline from bits, YAML text or a YAML file, setting up its scenes."""
        robot = self._require_robot()
        if isinstance(bits, (str, Path)):
            outline = Outline.from_yaml(robot, bits, options, key)
        else:
            outline = Outline(robot, bits, options, key)
        self.outlines.append(outline)
        return outline

    def shutdown(self) -> None:
        """Exit every scene and end every dialogue."""
        logger.info("Playbook shutting down")
        engaged = [dialogue for scene in self.scenes for dialogue in scene.engaged.values()]
        for scene in self.scenes:
            scene.exit_all()
        for dialogue in [*engaged, *self.dialogues]:
            dialogue.end()

    def reset(self) -> "Playbook":
        """Shut down and forget all modules, detaching from the robot."""
        self.shutdown()
        for transcript in self.transcripts:
            transcript.stop()
        self.improv.reset()
        self.dialogues.clear()
        self.scenes.clear()
        self.directors.clear()
        self.transcripts.clear()
        self.outlines.clear()
        if self.robot is not None and self.robot.playbook is self:
            self.robot.playbook = None
        self.robot = None
        return self
