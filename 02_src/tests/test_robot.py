"""Tests for the host robot runtime."""

import pytest

from playbook.errors import ConfigError, HandlerError
from playbook.models import SendResult


class TestRobotListen:
    """Tests for adding listeners."""

    @pytest.mark.asyncio
    async def test_hear(self, robot, adapter, alice):
        """Test that hear listeners match any message."""
        heard = []
        robot.hear(r"/hello (\w+)/", lambda response: heard.append(response.match.group(1)))

        await adapter.receive(alice, "hello world")

        assert heard == ["world"]

    @pytest.mark.asyncio
    async def test_respond_requires_address(self, robot, adapter, alice):
        """Test that respond listeners only match when the robot is addressed."""
        heard = []
        robot.respond(r"/ping/", lambda response: heard.append(response.message.text))

        await adapter.receive(alice, "ping")
        await adapter.receive(alice, "hubot ping")
        await adapter.receive(alice, "@hubot: ping")

        assert heard == ["hubot ping", "@hubot: ping"]

    @pytest.mark.asyncio
    async def test_respond_to_alias(self, alice):
        from playbook.robot import Robot

        robot = Robot(name="hubot", alias="bot")
        heard = []
        robot.respond("ping", heard.append)

        await robot.adapter.receive(alice, "bot, ping")

        assert len(heard) == 1

    def test_invalid_listener_type(self, robot):
        with pytest.raises(ConfigError):
            robot.listen("shout", "/hello/", lambda response: None)

    def test_options_slot_callback(self, robot):
        """Test that the callback can be given in place of options."""
        listener = robot.hear("hello", lambda response: None)
        assert listener.options == {"id": None}

    @pytest.mark.asyncio
    async def test_finished_message_stops_listeners(self, robot, adapter, alice):
        """Test that finishing a message skips later listeners."""
        calls = []

        def first(response):
            calls.append("first")
            response.finish()

        robot.hear("hello", first)
        robot.hear("hello", lambda response: calls.append("second"))
        await adapter.receive(alice, "hello")

        assert calls == ["first"]

    @pytest.mark.asyncio
    async def test_listener_error_emitted(self, robot, adapter, alice, errors):
        """Test that listener callback errors are emitted, not raised."""

        def failing(response):
            raise RuntimeError("Test error")

        robot.hear("hello", failing)
        await adapter.receive(alice, "hello")

        assert len(errors) == 1
        assert isinstance(errors[0], HandlerError)
        assert isinstance(errors[0].__cause__, RuntimeError)


class TestRobotMiddleware:
    """Tests for the robot's middleware stacks."""

    @pytest.mark.asyncio
    async def test_receive_middleware_can_block(self, robot, adapter, alice):
        heard = []
        robot.hear("hello", heard.append)

        def block(context, next_, done):
            context["response"].finish()
            done()

        robot.receive_middleware(block)
        await adapter.receive(alice, "hello")

        assert heard == []

    @pytest.mark.asyncio
    async def test_listener_middleware_sees_listener(self, robot, adapter, alice):
        seen = []

        def spy(context, next_, done):
            seen.append(context["listener"].options["id"])
            next_(done)

        robot.listener_middleware(spy)
        robot.hear("hello", {"id": "greeting"}, lambda response: None)
        await adapter.receive(alice, "hello")

        assert seen == ["greeting"]

    @pytest.mark.asyncio
    async def test_response_middleware_rewrites(self, robot, adapter, alice, make_response):
        def shout(context, next_, done):
            context["strings"] = [string.upper() for string in context["strings"]]
            next_(done)

        robot.response_middleware(shout)
        result = await make_response(alice, "hi").send("hello")

        assert isinstance(result, SendResult)
        assert result.strings == ["HELLO"]
        assert result.method == "send"
        assert adapter.messages[-1] == ("testing", "hubot", "HELLO")

    @pytest.mark.asyncio
    async def test_receive_middleware_error(self, robot, adapter, alice, errors):
        """Test that failing receive middleware doesn't reach the adapter."""
        heard = []
        robot.hear("hello", heard.append)

        def failing(context, next_, done):
            raise RuntimeError("Test error")

        robot.receive_middleware(failing)
        await adapter.receive(alice, "hello")

        assert heard == []
        assert len(errors) == 1


class TestMemoryAdapter:
    """Tests for the in-memory adapter."""

    @pytest.mark.asyncio
    async def test_reply_prefixes_user(self, adapter, alice, make_response):
        await make_response(alice, "hi").reply("hello", "again")

        assert adapter.messages == [
            ("testing", "hubot", "@alice hello"),
            ("testing", "hubot", "@alice again"),
        ]

    @pytest.mark.asyncio
    async def test_receive_records_user_text(self, adapter, alice):
        message = await adapter.receive(alice, "hello", "other")

        assert message.room == "other"
        assert adapter.messages == [("other", "alice", "hello")]

    @pytest.mark.asyncio
    async def test_shutdown_emits(self, robot):
        calls = []
        robot.on("shutdown", lambda: calls.append("shutdown"))

        await robot.shutdown()

        assert calls == ["shutdown"]
