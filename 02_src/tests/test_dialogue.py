"""Tests for Dialogue."""

import asyncio

import pytest

from playbook.dialogue import Dialogue, Path
from playbook.errors import ConfigError, HandlerError


def bot_lines(adapter):
    return [text for _, speaker, text in adapter.messages if speaker == "hubot"]


@pytest.fixture
def dialogue(alice, make_response):
    return Dialogue(make_response(alice, "hello"), {"timeout": 1000})


class TestDialogueSetup:
    """Tests for creating dialogues."""

    def test_defaults(self, alice, make_response, monkeypatch):
        monkeypatch.delenv("DIALOGUE_TIMEOUT", raising=False)
        monkeypatch.delenv("DIALOGUE_TIMEOUT_TEXT", raising=False)
        response = make_response(alice, "hello")
        dialogue = Dialogue(response)

        assert dialogue.config["send_replies"] is False
        assert dialogue.config["timeout"] == 30000
        assert dialogue.config["timeout_text"] == "Timed out! Please start again."
        assert response.dialogue is dialogue
        assert dialogue.ended is False
        assert dialogue.path is None

    def test_env_defaults(self, alice, make_response, monkeypatch):
        monkeypatch.setenv("DIALOGUE_TIMEOUT", "500")
        dialogue = Dialogue(make_response(alice, "hello"))
        assert dialogue.config["timeout"] == 500

    def test_requires_response_with_robot(self):
        with pytest.raises(ConfigError):
            Dialogue(None)

    def test_identity(self, dialogue, alice, make_response):
        other = Dialogue(make_response(alice, "hello"), key="my-key")
        assert dialogue.identity.name == "dialogue"
        assert dialogue.identity.id != other.identity.id
        assert other.identity.key == "my-key"


class TestDialogueSend:
    """Tests for sending from a dialogue."""

    @pytest.mark.asyncio
    async def test_send(self, robot, adapter, dialogue):
        sent = []
        robot.on("send", lambda instance, response, details: sent.append((instance, details)))

        result = await dialogue.send("one", "two")

        assert result.strings == ["one", "two"]
        assert bot_lines(adapter) == ["one", "two"]
        assert sent[0][0] is dialogue
        assert sent[0][1]["strings"] == ["one", "two"]
        assert sent[0][1]["method"] == "send"
        assert sent[0][1]["received"] is dialogue.response

    @pytest.mark.asyncio
    async def test_send_replies(self, adapter, alice, make_response):
        dialogue = Dialogue(make_response(alice, "hello"), {"send_replies": True})
        result = await dialogue.send("hi")

        assert result.method == "reply"
        assert bot_lines(adapter) == ["@alice hi"]


class TestDialoguePaths:
    """Tests for adding paths and branches."""

    @pytest.mark.asyncio
    async def test_add_path_sends_prompt(self, robot, adapter, dialogue):
        paths = []
        robot.on("path", lambda instance, path: paths.append(path))

        path = await dialogue.add_path("Turn left or right?", [("/left/", "Ok, left!")])

        assert isinstance(path, Path)
        assert dialogue.path is path
        assert paths == [path]
        assert bot_lines(adapter) == ["Turn left or right?"]
        assert dialogue.countdown is not None
        dialogue.end()

    @pytest.mark.asyncio
    async def test_add_path_without_branches(self, dialogue):
        """Test that the countdown only starts once there are branches."""
        await dialogue.add_path()
        assert dialogue.countdown is None

    @pytest.mark.asyncio
    async def test_add_path_branches_only(self, adapter, dialogue, alice, make_response):
        """Test that branches can be given without a prompt."""
        path = await dialogue.add_path([("/left/", "went left")])

        assert bot_lines(adapter) == []
        assert len(path.branches) == 1
        assert path.closed is False
        assert dialogue.countdown is not None

        await dialogue.receive(make_response(alice, "left"))
        assert bot_lines(adapter) == ["went left"]
        assert dialogue.ended is True

    @pytest.mark.asyncio
    async def test_add_path_branches_then_options(self, dialogue):
        path = await dialogue.add_path([("/left/", "went left")], {"catch_message": "Huh?"}, "turn")

        assert len(path.branches) == 1
        assert path.config["catch_message"] == "Huh?"
        assert path.identity.key == "turn"
        dialogue.end()

    @pytest.mark.asyncio
    async def test_add_path_invalid_prompt(self, adapter, dialogue):
        with pytest.raises(ConfigError):
            dialogue.add_path(42)
        with pytest.raises(ConfigError):
            dialogue.add_path([("/a/", "a")], [("/b/", "b")])
        await asyncio.sleep(0.01)

        assert bot_lines(adapter) == []
        assert dialogue.path is None

    @pytest.mark.asyncio
    async def test_add_path_replaces_path(self, dialogue):
        first = await dialogue.add_path(None, [("/a/", "a")])
        second = await dialogue.add_path(None, [("/b/", "b")])

        assert dialogue.path is second
        assert first is not second
        dialogue.end()

    @pytest.mark.asyncio
    async def test_path_inherits_key(self, alice, make_response):
        dialogue = Dialogue(make_response(alice, "hello"), key="dialogue-key")
        inherited = await dialogue.add_path(None, [("/a/", "a")])
        own = await dialogue.add_path(None, [("/a/", "a")], key="path-key")

        assert inherited.identity.key == "dialogue-key"
        assert own.identity.key == "path-key"
        dialogue.end()

    @pytest.mark.asyncio
    async def test_add_path_invalid_branches(self, adapter, dialogue):
        """Test that bad branches fail before anything is sent."""
        with pytest.raises(ConfigError):
            dialogue.add_path("prompt", [("/a/",)])
        await asyncio.sleep(0.01)

        assert bot_lines(adapter) == []
        assert dialogue.path is None

    @pytest.mark.asyncio
    async def test_add_branch_creates_path(self, dialogue):
        dialogue.add_branch("/yes/", "ok")

        assert isinstance(dialogue.path, Path)
        assert len(dialogue.path.branches) == 1
        assert dialogue.countdown is not None
        dialogue.end()

    @pytest.mark.asyncio
    async def test_add_branch_restarts_timeout(self, dialogue):
        dialogue.add_branch("/yes/", "ok")
        first = dialogue.countdown
        dialogue.add_branch("/no/", "ok")

        assert dialogue.countdown is not first
        assert first.cancelled()
        dialogue.end()


class TestDialogueReceive:
    """Tests for receiving replies."""

    @pytest.mark.asyncio
    async def test_receive_match_ends(self, robot, adapter, dialogue, alice, make_response):
        """Test that a match without new branches ends the dialogue."""
        ended = []
        robot.on("end", lambda instance, response: ended.append(instance))
        await dialogue.add_path(None, [("/left/", "Ok, going left!")])

        result = await dialogue.receive(make_response(alice, "left"))

        assert result["strings"] == ["Ok, going left!"]
        assert bot_lines(adapter) == ["Ok, going left!"]
        assert dialogue.ended is True
        assert dialogue.countdown is None
        assert ended == [dialogue]

    @pytest.mark.asyncio
    async def test_receive_replaces_response(self, dialogue, alice, make_response):
        dialogue.add_branch("/left/", "ok")
        response = make_response(alice, "left")
        await dialogue.receive(response)

        assert dialogue.response is response
        assert response.dialogue is dialogue

    @pytest.mark.asyncio
    async def test_receive_without_path(self, dialogue, alice, make_response):
        assert await dialogue.receive(make_response(alice, "left")) is False

    @pytest.mark.asyncio
    async def test_receive_after_end(self, adapter, dialogue, alice, make_response):
        """Test that an ended dialogue ignores replies."""
        dialogue.add_branch("/left/", "ok")
        path = dialogue.path
        dialogue.end()

        assert await dialogue.receive(make_response(alice, "left")) is False
        assert dialogue.path is path
        assert path.closed is False
        assert dialogue.countdown is None
        assert bot_lines(adapter) == []

    @pytest.mark.asyncio
    async def test_mismatch_keeps_countdown(self, dialogue, alice, make_response):
        dialogue.add_branch("/left/", "ok")
        countdown = dialogue.countdown

        await dialogue.receive(make_response(alice, "right"))

        assert dialogue.ended is False
        assert dialogue.countdown is countdown
        dialogue.end()

    @pytest.mark.asyncio
    async def test_catch_keeps_dialogue_open(self, adapter, dialogue, alice, make_response):
        await dialogue.add_path(None, [("/left/", "ok")], {"catch_message": "left?"})

        await dialogue.receive(make_response(alice, "right"))

        assert bot_lines(adapter) == ["left?"]
        assert dialogue.ended is False
        assert dialogue.countdown is not None
        dialogue.end()

    @pytest.mark.asyncio
    async def test_handler_adds_branch(self, dialogue, alice, make_response):
        """Test that a handler adding branches keeps the dialogue going."""

        async def ask_again(res):
            await asyncio.sleep(0)
            res.dialogue.add_branch("/again/", "done")

        dialogue.add_branch("/go/", ask_again)
        await dialogue.receive(make_response(alice, "go"))

        assert dialogue.ended is False
        assert dialogue.path.closed is False

        await dialogue.receive(make_response(alice, "again"))
        assert dialogue.ended is True

    @pytest.mark.asyncio
    async def test_handler_error(self, dialogue, alice, make_response, errors):
        """Test that a failing handler is emitted and ends the dialogue."""

        async def failing(res):
            raise RuntimeError("Test error")

        dialogue.add_branch("/go/", failing)
        result = await dialogue.receive(make_response(alice, "go"))

        assert result is False
        assert dialogue.ended is True
        assert dialogue.failed is True
        assert dialogue.complete is False
        assert len(errors) == 1
        assert isinstance(errors[0], HandlerError)
        assert isinstance(errors[0].__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_replies_processed_in_order(self, dialogue, alice, make_response):
        """Test that a reply waits for the previous one to be handled."""

        async def first(res):
            await asyncio.sleep(0.01)
            res.dialogue.add_branch("/two/", lambda res: {"second": True})

        dialogue.add_branch("/one/", first)
        results = await asyncio.gather(
            dialogue.receive(make_response(alice, "one")),
            dialogue.receive(make_response(alice, "two")),
        )

        assert results == [{}, {"second": True}]
        assert dialogue.ended is True

    def test_end_is_idempotent(self, robot, dialogue):
        ended = []
        robot.on("end", lambda instance, response: ended.append(instance))

        assert dialogue.end() is True
        assert dialogue.end() is False
        assert ended == [dialogue]


class TestDialogueTimeout:
    """Tests for the reply countdown."""

    @pytest.mark.asyncio
    async def test_async_conversation(self, adapter, alice, make_response):
        """Test that replies within each countdown never time out."""
        dialogue = Dialogue(make_response(alice, "async"), {"timeout": 50})
        state = {}

        async def start(res):
            await res.dialogue.send("Counting...")
            await asyncio.sleep(state["ms"] / 1000)
            await res.dialogue.send("Done!")
            res.dialogue.end()

        def count(res):
            state["ms"] = int(res.match.group(1))
            return res.dialogue.add_path("Say start", [("/start/", start)])

        await dialogue.add_path("Say count", [(r"/count (.*)/", count)])
        await dialogue.receive(make_response(alice, "count 20"))
        await dialogue.receive(make_response(alice, "start"))
        await asyncio.sleep(0.08)

        assert bot_lines(adapter) == ["Say count", "Say start", "Counting...", "Done!"]
        assert dialogue.ended is True

    @pytest.mark.asyncio
    async def test_timeout_sends_text_once(self, robot, adapter, alice, make_response):
        """Test that an unanswered path times out and ends the dialogue."""
        events = []
        robot.on("timeout", lambda instance, response: events.append("timeout"))
        robot.on("end", lambda instance, response: events.append("end"))
        dialogue = Dialogue(make_response(alice, "hi"), {"timeout": 50, "timeout_text": "Too slow"})

        await dialogue.add_path("How long?", [(r"/wait (.*)/", "ok")])
        await asyncio.sleep(0.1)

        assert bot_lines(adapter) == ["How long?", "Too slow"]
        assert events == ["timeout", "end"]
        assert dialogue.ended is True
        assert dialogue.countdown is None

    @pytest.mark.asyncio
    async def test_timeout_text_none(self, adapter, alice, make_response):
        dialogue = Dialogue(make_response(alice, "hi"), {"timeout": 10, "timeout_text": None})

        dialogue.add_branch("/wait/", "ok")
        await asyncio.sleep(0.05)

        assert bot_lines(adapter) == []
        assert dialogue.ended is True

    @pytest.mark.asyncio
    async def test_match_clears_timeout(self, adapter, alice, make_response):
        """Test that a slow handler for a match never times out."""
        dialogue = Dialogue(make_response(alice, "hi"), {"timeout": 20, "timeout_text": "Too slow"})

        async def slow(res):
            await asyncio.sleep(0.05)

        dialogue.add_branch("/go/", slow)
        await dialogue.receive(make_response(alice, "go"))
        await asyncio.sleep(0.03)

        assert "Too slow" not in bot_lines(adapter)

    @pytest.mark.asyncio
    async def test_on_timeout_override(self, adapter, alice, make_response):
        dialogue = Dialogue(make_response(alice, "hi"), {"timeout": 10})
        calls = []
        dialogue.on_timeout(lambda d: calls.append(d))

        dialogue.add_branch("/wait/", "ok")
        await asyncio.sleep(0.05)

        assert calls == [dialogue]
        assert bot_lines(adapter) == []
        assert dialogue.ended is True

    @pytest.mark.asyncio
    async def test_on_timeout_error(self, alice, make_response, errors):
        """Test that a failing timeout handler is emitted and still ends."""
        dialogue = Dialogue(make_response(alice, "hi"), {"timeout": 10})

        def failing(d):
            raise RuntimeError("Test error")

        dialogue.on_timeout(failing)
        dialogue.add_branch("/wait/", "ok")
        await asyncio.sleep(0.05)

        assert dialogue.ended is True
        assert len(errors) == 1
        assert isinstance(errors[0], HandlerError)

    @pytest.mark.asyncio
    async def test_async_on_timeout_error(self, alice, make_response, errors):
        dialogue = Dialogue(make_response(alice, "hi"), {"timeout": 10})

        async def failing(d):
            raise RuntimeError("Test error")

        dialogue.on_timeout(failing)
        dialogue.add_branch("/wait/", "ok")
        await asyncio.sleep(0.05)

        assert dialogue.ended is True
        assert len(errors) == 1

    @pytest.mark.asyncio
    async def test_clear_timeout_idempotent(self, dialogue):
        dialogue.add_branch("/wait/", "ok")
        dialogue.clear_timeout()
        dialogue.clear_timeout()
        assert dialogue.countdown is None
        dialogue.end()
