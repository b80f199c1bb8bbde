"""Pytest configuration and fixtures."""

import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def robot():
    """Create robot with in-memory adapter."""
    from playbook.robot import Robot

    return Robot(name="hubot")


@pytest.fixture
def adapter(robot):
    """The robot's memory adapter, recording every line."""
    return robot.adapter


@pytest.fixture
def alice():
    from playbook.models import User

    return User(id="u1", name="alice", room="testing")


@pytest.fixture
def bob():
    from playbook.models import User

    return User(id="u2", name="bob", room="testing")


@pytest.fixture
def make_response(robot):
    """Build a response as a listener would for a user's text."""
    from playbook.models import TextMessage
    from playbook.robot import Response

    def make(user, text, room=None):
        return Response(robot, TextMessage(user=user, text=text, room=room))

    return make


@pytest.fixture
def errors(robot):
    """Errors emitted through the robot."""
    caught = []
    robot.on("error", lambda error, response=None: caught.append(error))
    return caught


@pytest_asyncio.fixture
async def playbook(robot):
    """Create playbook using the robot, shut down after the test."""
    from playbook import Playbook

    pb = Playbook().use(robot)
    yield pb
    pb.shutdown()
    await robot.shutdown()


@pytest_asyncio.fixture
async def brain_storage():
    """Create in-memory brain storage for testing."""
    from playbook.brain import BrainStorage

    st = BrainStorage(":memory:")
    await st.init()
    yield st
    await st.close()


async def settle(delay: float = 0.01) -> None:
    """Let scheduled callbacks and tasks run."""
    await asyncio.sleep(delay)


@pytest.fixture
def wait():
    return settle
