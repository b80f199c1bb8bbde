"""Scene: engages participants in dialogue, isolated from global listeners."""

import inspect
import re
from collections.abc import Mapping
from typing import Any, Callable

from ..base import Config, Emitter, Identity
from ..dialogue import Dialogue
from ..errors import AlreadyEngagedError, HandlerError
from ..logging_config import get_logger, log_context
from ..models import ListenerType, SceneScope
from ..utils import Middleware, Piece, parse_pattern

logger = get_logger(__name__)

SceneCallback = Callable[[Any], Any]


class Scene:
    """
    Conducts participation in dialogue.

    Listeners added through the scene enter the audience into a new dialogue.
    Once engaged, the audience's messages are routed to that dialogue and
    never reach global listeners, until they exit. The audience is either:

    - user: the user, in any room
    - room: everyone in the room
    - direct: the user in that room only

    Args:
        robot: Robot instance
        options: `scope` (user, room or direct) and any dialogue options,
            `send_replies` defaults to True for room scope
        key: Key name for this instance
    """

    def __init__(self, robot: Any, options: Mapping | None = None, key: str | None = None):
        self.identity = Identity.create("scene", key)
        self.events = Emitter(self, robot)
        self.robot = robot
        self.config = Config().configure(options or {}).defaults({"scope": "user"})
        try:
            self.scope = SceneScope(self.config["scope"])
        except ValueError:
            self.events.error(f"Invalid scene scope: {self.config['scope']!r}")
        if self.scope is SceneScope.ROOM:
            self.config.defaults({"send_replies": True})

        self.enter_middleware = Middleware(self)
        self.engaged: dict[str, Dialogue] = {}
        self._relays: dict[Dialogue, tuple[Callable, Callable]] = {}
        self.robot.receive_middleware(self._intercept)

    def emit_error(self, error: Exception, response: Any = None) -> None:
        self.events.emit_error(error, response)

    async def _intercept(self, context: dict, next_: Callable[..., None], done: Callable[..., None]) -> None:
        """Route messages from engaged participants to their dialogue."""
        response = context["response"]
        participants = self.who_speaks(response)
        dialogue = self.engaged.get(participants)
        if dialogue is None:
            logger.debug("%s not engaged, continue as normal", participants)
            next_(done)
            return

        logger.debug("%s is engaged, routing to %s", participants, dialogue.identity.id)
        response.finish()
        await dialogue.receive(response)
        done()

    def listen(self, listener_type: str, pattern: re.Pattern | str, callback: SceneCallback) -> Any:
        """
        Add a listener that enters the audience, then calls back.

        The callback only runs if the audience wasn't already engaged and no
        enter middleware vetoed it. It receives the response, with the new
        dialogue as `response.dialogue`, to add paths and branches.

        Example:
            scene = Scene(robot, {"scope": "user"})

            async def hello(response):
                await response.dialogue.add_path("Hi, how are you?", [...])

            scene.respond(r"/hello/", hello)
        """
        if listener_type not in (ListenerType.HEAR, ListenerType.RESPOND):
            self.events.error(f"Invalid listener type: {listener_type!r}")
        try:
            regex = parse_pattern(pattern)
        except ValueError as e:
            self.events.error(f"Invalid regex for listener: {e}")
        if not callable(callback):
            self.events.error("Invalid callback for listener")

        async def enter_then_call(response: Any) -> None:
            try:
                dialogue = await self.enter(response)
            except AlreadyEngagedError as err:
                logger.debug("%s", err)
                return
            except HandlerError as err:
                logger.warning("Scene %s enter interrupted: %s", self.identity.id, err)
                return
            if dialogue is None:
                return
            result = callback(response)
            if inspect.isawaitable(result):
                await result

        options = {"id": self.identity.id, "scene": self}
        return self.robot.listen(listener_type, regex, options, enter_then_call)

    def hear(self, pattern: re.Pattern | str, callback: SceneCallback) -> Any:
        return self.listen(ListenerType.HEAR, pattern, callback)

    def respond(self, pattern: re.Pattern | str, callback: SceneCallback) -> Any:
        return self.listen(ListenerType.RESPOND, pattern, callback)

    def who_speaks(self, response: Any) -> str:
        """Participants id for a message, relative to the scene scope."""
        message = response.message
        if self.scope is SceneScope.ROOM:
            return str(message.room)
        if self.scope is SceneScope.USER:
            return str(message.user.id)
        return f"{message.user.id}_{message.room}"

    def register_middleware(self, piece: Piece) -> None:
        """
        Add a piece to the enter middleware, to continue or veto entry.

        Pieces are called with `(context, next, done)`, the context holding
        `response`, `participants`, `options` and `key`.
        """
        self.enter_middleware.register(piece)

    async def enter(
        self,
        response: Any,
        options: Mapping | None = None,
        key: str | None = None,
        callback: Callable[[dict], Any] | None = None,
    ) -> Dialogue | None:
        """
        Run enter middleware then engage the participants in a new dialogue.

        Args:
            response: Response from the participants
            options: Dialogue options, overriding the scene config
            key: Key for the dialogue, defaults to the scene's key
            callback: Called with the final context once middleware completes

        Returns:
            The new dialogue, or None if a middleware piece vetoed entry

        Raises:
            AlreadyEngagedError: The participants are already in a dialogue
            HandlerError: A middleware piece failed
        """
        participants = self.who_speaks(response)
        if self.in_dialogue(participants):
            raise AlreadyEngagedError(f"{self.identity.id}: {participants} already engaged")

        context = {
            "response": response,
            "participants": participants,
            "options": {**self.config, **(options or {})},
            "key": key,
        }
        await self.enter_middleware.execute(context, self.process_enter, callback)
        return context.get("dialogue")

    def process_enter(self, context: dict, done: Callable[..., None]) -> Dialogue:
        """
        Engage the participants, as the final step of enter middleware.

        All further messages from the participants go to the new dialogue,
        until it ends or they exit the scene.
        """
        participants = context["participants"]
        if self.in_dialogue(participants):
            raise AlreadyEngagedError(f"{self.identity.id}: {participants} already engaged")

        dialogue = Dialogue(
            context["response"],
            context.get("options"),
            context.get("key") or self.identity.key,
        )
        dialogue.scene = self

        def on_timeout(response: Any) -> None:
            self._release(dialogue, response, "timeout")

        def on_end(response: Any) -> None:
            self._release(dialogue, response, "complete" if dialogue.complete else "incomplete")
            self._detach(dialogue)

        self._relays[dialogue] = (
            dialogue.events.on("timeout", on_timeout),
            dialogue.events.on("end", on_end),
        )

        self.engaged[participants] = dialogue
        self.events.emit("enter", context["response"], dialogue)
        logger.info(
            "Engaging %s %s in dialogue",
            self.scope.value,
            participants,
            extra=log_context(self, participants=participants, dialogue=dialogue.identity.id),
        )
        context["dialogue"] = dialogue
        done()
        return dialogue

    def _detach(self, dialogue: Dialogue) -> None:
        relays = self._relays.pop(dialogue, None)
        if relays is not None:
            self.robot.off("timeout", relays[0])
            self.robot.off("end", relays[1])

    def _release(self, dialogue: Dialogue, response: Any, status: str) -> None:
        # Only the dialogue still engaged may release its participants
        if self.engaged.get(self.who_speaks(response)) is dialogue:
            self.exit(response, status)

    def exit(self, response: Any, status: str = "unknown") -> bool:
        """
        Disengage participants from dialogue, e.g. on timeout or error.

        Returns:
            False if the participants weren't engaged
        """
        participants = self.who_speaks(response)
        dialogue = self.engaged.pop(participants, None)
        if dialogue is None:
            logger.debug("Cannot disengage %s, not in scene", participants)
            return False
        dialogue.clear_timeout()
        self._detach(dialogue)
        self.events.emit("exit", response, status)
        logger.info(
            "Disengaged %s %s (%s)",
            self.scope.value,
            participants,
            status,
            extra=log_context(self, participants=participants, status=status),
        )
        return True

    def exit_all(self) -> None:
        """Disengage everyone, e.g. at shutdown."""
        logger.info("Disengaging all in %s scene", self.scope.value)
        for dialogue in self.engaged.values():
            dialogue.clear_timeout()
            self._detach(dialogue)
        self.engaged.clear()

    def get_dialogue(self, participants: str) -> Dialogue | None:
        return self.engaged.get(participants)

    def in_dialogue(self, participants: str) -> bool:
        return participants in self.engaged

    def __repr__(self) -> str:
        return f"<Scene {self.identity.id} scope={self.scope.value} engaged={len(self.engaged)}>"
