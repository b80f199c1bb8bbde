"""Application bootstrap and lifecycle management."""

import inspect
import os
from typing import Any, Callable, Protocol

from .brain import BrainStorage, IBrainStorage
from .config import resolve_db_path
from .logging_config import get_logger
from .playbook import Playbook
from .robot import MemoryAdapter, Robot
from .transcript import Transcript

logger = get_logger(__name__)

Script = Callable[[Robot], Any]

TRANSCRIPT_EVENTS = ["enter", "exit", "match", "mismatch", "catch", "send", "timeout", "end"]


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        db_path: str | None = None,
        name: str = "hubot",
        scripts: list[Script] | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._name = name
        self._scripts = list(scripts or [])

        # Components (will be initialized in start())
        self._storage: IBrainStorage | None = None
        self._robot: Robot | None = None
        self._playbook: Playbook | None = None
        self._transcript: Transcript | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = BrainStorage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Robot, playbook and scripts (depend on the loaded brain)
        await self._build()
        logger.info("All components initialized successfully")

    async def _build(self) -> None:
        self._robot = Robot(name=self._name)
        await self._robot.brain.load(self._storage)

        self._playbook = Playbook().use(self._robot)
        self._transcript = self._playbook.transcript({"events": TRANSCRIPT_EVENTS})
        self._transcript.record_all()
        logger.info("Robot %s using playbook", self._robot.name)

        for script in self._scripts:
            result = script(self._robot)
            if inspect.isawaitable(result):
                await result
        logger.info("Loaded %s scripts", len(self._scripts))

    async def _teardown(self) -> None:
        if self._playbook:
            self._playbook.shutdown()
        if self._robot:
            await self._robot.shutdown()

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        await self._teardown()
        if self._robot and self._storage:
            await self._robot.brain.save(self._storage)
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        # 1. Stop conversations in progress
        await self._teardown()

        # 2. Clear storage
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

            # 3. Fresh robot with the same scripts
            await self._build()
            logger.info("Reset complete")

    @property
    def storage(self) -> IBrainStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def robot(self) -> Robot:
        """Get robot instance."""
        if not self._robot:
            raise RuntimeError("Application not started")
        return self._robot

    @property
    def playbook(self) -> Playbook:
        """Get playbook instance."""
        if not self._playbook:
            raise RuntimeError("Application not started")
        return self._playbook

    @property
    def adapter(self) -> MemoryAdapter:
        """Get the robot's adapter."""
        return self.robot.adapter

    @property
    def transcript(self) -> Transcript:
        """Get the transcript recording all events."""
        if not self._transcript:
            raise RuntimeError("Application not started")
        return self._transcript
