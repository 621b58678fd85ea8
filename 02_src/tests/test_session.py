"""Tests for Session."""

import asyncio

import pytest
import pytest_asyncio

from conftest import API_URL, VALID_KEY
from vex import Vex, VexBlockError


@pytest_asyncio.fixture
async def make_vex(http_client):
    """Factory for clients on the scripted HTTP client; all closed at teardown."""
    clients: list[Vex] = []

    def _make(**config) -> Vex:
        vex = Vex(
            api_key=VALID_KEY,
            config={"api_url": API_URL, **config},
            http_client=http_client,
        )
        clients.append(vex)
        return vex

    yield _make
    for vex in clients:
        await vex.close()


def answer(output):
    def capture(ctx) -> None:
        ctx.record(output)

    return capture


async def ingested(vex: Vex, handler) -> list[dict]:
    """Close the client and return every event it delivered."""
    await vex.close()
    return [event for body in handler.bodies for event in body["events"]]


class TestSessionIdentity:
    """Tests for session identity."""

    @pytest.mark.asyncio
    async def test_generated_id(self, make_vex):
        """Test that sessions get distinct UUIDs by default."""
        vex = make_vex()
        first = vex.session(agent_id="agent-1")
        second = vex.session(agent_id="agent-1")
        assert len(first.session_id) == 36
        assert first.session_id != second.session_id
        assert first.agent_id == "agent-1"
        assert first.sequence == 0
        assert first.history == []

    @pytest.mark.asyncio
    async def test_custom_id(self, make_vex, handler):
        """Test that a caller-supplied id is used on every event."""
        vex = make_vex()
        session = vex.session(agent_id="agent-1", session_id="my-session")
        await session.trace(answer("a"), input="q")

        events = await ingested(vex, handler)
        assert session.session_id == "my-session"
        assert events[0]["session_id"] == "my-session"


class TestSessionTurns:
    """Tests for sequencing and history."""

    @pytest.mark.asyncio
    async def test_sequence_numbers(self, make_vex, handler):
        """Test that turns are numbered 0, 1, 2."""
        vex = make_vex()
        session = vex.session(agent_id="agent-1")
        for i in range(3):
            await session.trace(answer(f"a{i}"), input=f"q{i}")

        events = await ingested(vex, handler)
        assert [e["sequence_number"] for e in events] == [0, 1, 2]
        assert session.sequence == 3

    @pytest.mark.asyncio
    async def test_history_grows(self, make_vex, handler):
        """Test that each turn carries the turns before it."""
        vex = make_vex()
        session = vex.session(agent_id="agent-1")
        await session.trace(answer("Paris"), input="capital?", task="geo")
        await session.trace(answer("2M"), input="population?")

        events = await ingested(vex, handler)
        assert "conversation_history" not in events[0]
        assert events[1]["conversation_history"] == [
            {"sequence_number": 0, "input": "capital?", "output": "Paris", "task": "geo"}
        ]

    @pytest.mark.asyncio
    async def test_history_window(self, make_vex, handler):
        """Test that history is capped at the window size, oldest dropped first."""
        vex = make_vex(conversation_window_size=2)
        session = vex.session(agent_id="agent-1")
        for i in range(4):
            await session.trace(answer(f"a{i}"), input=f"q{i}")

        events = await ingested(vex, handler)
        last = events[3]["conversation_history"]
        assert [turn["sequence_number"] for turn in last] == [1, 2]
        assert [turn.sequence_number for turn in session.history] == [2, 3]

    @pytest.mark.asyncio
    async def test_history_is_a_copy(self, make_vex):
        """Test that mutating the returned history leaves the session alone."""
        vex = make_vex()
        session = vex.session(agent_id="agent-1")
        await session.trace(answer("a"), input="q")

        session.history.clear()

        assert len(session.history) == 1

    @pytest.mark.asyncio
    async def test_sticky_metadata(self, make_vex, handler):
        """Test that session metadata is applied to every turn."""
        vex = make_vex()
        session = vex.session(agent_id="agent-1", metadata={"user": "u1"})

        def capture(ctx) -> None:
            ctx.set_metadata("model", "gpt-4")
            ctx.record("a")

        await session.trace(capture, input="q")
        await session.trace(capture, input="q2")

        events = await ingested(vex, handler)
        assert all(e["metadata"] == {"user": "u1", "model": "gpt-4"} for e in events)

    @pytest.mark.asyncio
    async def test_parent_execution_id(self, make_vex, handler):
        """Test that a parent execution id is attached to the turn."""
        vex = make_vex()
        session = vex.session(agent_id="agent-1")
        await session.trace(answer("a"), input="q", parent_execution_id="parent-1")

        events = await ingested(vex, handler)
        assert events[0]["parent_execution_id"] == "parent-1"

    @pytest.mark.asyncio
    async def test_callback_error_consumes_nothing(self, make_vex):
        """Test that a failing callback leaves the session untouched."""
        vex = make_vex()
        session = vex.session(agent_id="agent-1")

        def boom(ctx) -> None:
            raise ValueError("agent crashed")

        with pytest.raises(ValueError):
            await session.trace(boom, input="q")

        assert session.sequence == 0
        assert session.history == []

    @pytest.mark.asyncio
    async def test_blocked_turn_is_consumed(self, make_vex, handler):
        """Test that a blocked turn keeps its number and enters history."""
        handler.script(
            (200, {"action": "block", "confidence": 0.1}),
            (200, {"action": "pass", "confidence": 0.9}),
        )
        vex = make_vex(mode="sync")
        session = vex.session(agent_id="agent-1")

        with pytest.raises(VexBlockError):
            await session.trace(answer("Berlin"), input="capital?")
        await session.trace(answer("Paris"), input="capital?")

        assert session.sequence == 2
        second = handler.bodies[1]
        assert second["sequence_number"] == 1
        assert second["conversation_history"][0]["output"] == "Berlin"

    @pytest.mark.asyncio
    async def test_concurrent_turns_stay_contiguous(self, make_vex, handler):
        """Test that overlapping turns are serialised into distinct numbers."""
        vex = make_vex()
        session = vex.session(agent_id="agent-1")

        async def slow(ctx) -> None:
            await asyncio.sleep(0.01)
            ctx.record("a")

        await asyncio.gather(*(session.trace(slow, input=i) for i in range(3)))

        events = await ingested(vex, handler)
        by_seq = sorted(events, key=lambda e: e["sequence_number"])
        assert [e["sequence_number"] for e in by_seq] == [0, 1, 2]
        assert [len(e.get("conversation_history", [])) for e in by_seq] == [0, 1, 2]
