"""Tests for Path."""

import re

import pytest

from playbook.dialogue import Path
from playbook.errors import ConfigError


class TestPathBranches:
    """Tests for adding branches."""

    def test_new_path_is_closed(self, robot):
        path = Path(robot)
        assert path.closed is True
        assert path.branches == []

    def test_branches_from_constructor(self, robot):
        path = Path(robot, [("/door 1/", "foo"), ("/door 2/", "bar", lambda res: None)])

        assert len(path.branches) == 2
        assert path.branches[0].pattern.pattern == "door 1"
        assert path.closed is False

    def test_single_branch_tuple(self, robot):
        path = Path(robot, ("/door 1/", "foo"))
        assert len(path.branches) == 1

    def test_add_branch_reopens(self, robot):
        """Test that adding a branch opens a path, even after closing."""
        path = Path(robot)
        path.add_branch("/yes/", "ok")
        path.closed = True
        path.add_branch("/no/", "ok")
        assert path.closed is False

    def test_callback_in_message_slot(self, robot):
        path = Path(robot)
        path.add_branch("/yes/", lambda res: None)
        assert len(path.branches) == 1

    def test_invalid_pattern(self, robot, errors):
        path = Path(robot)
        with pytest.raises(ConfigError):
            path.add_branch("/door (/", "foo")
        assert isinstance(errors[0], ConfigError)
        assert path.branches == []

    def test_missing_args(self, robot):
        path = Path(robot)
        with pytest.raises(ConfigError, match="Missing args for branch"):
            path.add_branch("/yes/")

    def test_invalid_message(self, robot):
        path = Path(robot)
        with pytest.raises(ConfigError):
            path.add_branch("/yes/", 42)

    def test_invalid_callback(self, robot):
        path = Path(robot)
        with pytest.raises(ConfigError):
            path.add_branch("/yes/", "ok", "not callable")

    def test_branches_must_be_list(self, robot):
        with pytest.raises(ConfigError):
            Path(robot, "/yes/")

    def test_add_catch(self, robot):
        path = Path(robot)
        path.add_catch("sorry?")
        assert path.config["catch_message"] == "sorry?"
        with pytest.raises(ConfigError):
            path.add_catch()


class TestPathMatch:
    """Tests for matching replies."""

    @pytest.mark.asyncio
    async def test_first_match_wins(self, robot, alice, make_response):
        calls = []
        path = Path(robot, [
            ("/door/", lambda res: calls.append("first")),
            ("/door 2/", lambda res: calls.append("second")),
        ])
        response = make_response(alice, "door 2")

        await path.match(response)

        assert calls == ["first"]
        assert response.match.group(0) == "door"

    @pytest.mark.asyncio
    async def test_closes_before_handler(self, robot, alice, make_response):
        """Test that a handler sees the path closed and can reopen it."""
        seen = []
        path = Path(robot)

        def handler(res):
            seen.append(path.closed)
            path.add_branch("/again/", "ok")

        path.add_branch("/go/", handler)
        await path.match(make_response(alice, "go"))

        assert seen == [True]
        assert path.closed is False

    @pytest.mark.asyncio
    async def test_match_sends_reply_without_dialogue(self, robot, adapter, alice, make_response):
        path = Path(robot, [("/hi/", ["hello", "there"])])
        await path.match(make_response(alice, "hi"))

        assert adapter.messages == [
            ("testing", "hubot", "@alice hello"),
            ("testing", "hubot", "@alice there"),
        ]

    @pytest.mark.asyncio
    async def test_match_merges_results(self, robot, alice, make_response):
        """Test that mapping results from handlers are merged."""

        async def callback(res):
            return {"answer": res.match.group(1)}

        path = Path(robot, [(re.compile(r"pick (\w+)"), callback)])
        result = await path.match(make_response(alice, "pick blue"))

        assert result == {"answer": "blue"}

    @pytest.mark.asyncio
    async def test_match_emits(self, robot, alice, make_response):
        events = []
        robot.on("match", lambda instance, res: events.append((instance, res.message.text)))
        path = Path(robot, [("/yes/", "ok")])

        await path.match(make_response(alice, "yes"))

        assert events == [(path, "yes")]

    @pytest.mark.asyncio
    async def test_catch_keeps_closed_state(self, robot, adapter, alice, make_response):
        """Test that a caught reply doesn't close the path."""
        events = []
        robot.on("catch", lambda instance, res: events.append("catch"))
        path = Path(robot, [("/yes/", "ok")], {"catch_message": "say yes"})

        await path.match(make_response(alice, "no"))

        assert path.closed is False
        assert events == ["catch"]
        assert adapter.messages == [("testing", "hubot", "@alice say yes")]

    @pytest.mark.asyncio
    async def test_catch_callback(self, robot, alice, make_response):
        caught = []
        path = Path(robot, [("/yes/", "ok")], {"catch_callback": lambda res: caught.append(res.message.text)})

        await path.match(make_response(alice, "nope"))

        assert caught == ["nope"]

    @pytest.mark.asyncio
    async def test_mismatch(self, robot, alice, make_response):
        events = []
        robot.on("mismatch", lambda instance, res: events.append("mismatch"))
        path = Path(robot, [("/yes/", "ok")])
        response = make_response(alice, "no")

        result = await path.match(response)

        assert result == {}
        assert response.match is None
        assert path.closed is False
        assert events == ["mismatch"]

    @pytest.mark.asyncio
    async def test_handler_error_raises(self, robot, alice, make_response):
        """Test that a raising callback propagates from match."""

        def failing(res):
            raise RuntimeError("Test error")

        path = Path(robot, [("/yes/", "ok", failing)])
        with pytest.raises(RuntimeError):
            await path.match(make_response(alice, "yes"))
