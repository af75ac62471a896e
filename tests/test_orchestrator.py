"""Tests for the orchestrator core."""

from __future__ import annotations

import asyncio

import pytest

from nanocode.llm.client import LLMClient
from nanocode.llm.errors import ConfigError, DecodeError, TransportError
from nanocode.llm.profiles import Credentials
from nanocode.llm.types import Message, Role, TextBlock, ToolInvocation, ToolResultBlock
from nanocode.orchestrator.core import CANCELLED_RESULT, LoopState, Orchestrator
from nanocode.session.snapshot import Snapshot
from nanocode.tools.registry import ToolRegistry
from tests.mock_tools import EchoTool, RecordingTool, SlowTool
from tests.mock_transports import (
    ScriptedTransport,
    anthropic_body,
    anthropic_stream,
    anthropic_text_events,
    anthropic_tool_events,
    openai_body,
    openai_call,
    openai_text_chunk,
    sse,
    text,
    tool_use,
)

KEYS = Credentials(anthropic="ak", gemini="gk")


@pytest.fixture
def recorder():
    return RecordingTool()


@pytest.fixture
def registry(recorder):
    reg = ToolRegistry()
    reg.register(EchoTool())
    reg.register(recorder)
    return reg


def _make_orchestrator(registry, replies, model="claude-3-7-sonnet-20250219", **kwargs):
    transport = ScriptedTransport(replies)
    orch = Orchestrator(
        client=LLMClient(transport=transport),
        registry=registry,
        credentials=KEYS,
        model=model,
        **kwargs,
    )
    return orch, transport


class TestToolLoop:
    async def test_two_rounds_then_final_text(self, registry, recorder):
        states: list[LoopState] = []
        orch, transport = _make_orchestrator(
            registry,
            [
                [
                    anthropic_stream(
                        anthropic_tool_events("t1", "record", ['{"n": 1}'], index=0),
                        anthropic_tool_events("t2", "record", ['{"n": 2}'], index=1),
                    )
                ],
                [anthropic_stream(anthropic_text_events("All done."))],
            ],
            on_state_change=states.append,
        )

        result = await orch.run_turn("do two things")

        assert result.rounds == 2
        assert result.final_text == "All done."
        assert transport.call_count == 2
        assert states.count(LoopState.REQUEST_IN_FLIGHT) == 2
        assert orch.state is LoopState.AWAITING_TURN
        assert recorder.calls == [{"n": 1}, {"n": 2}]

        conv = orch.conversation
        assert [m.role for m in conv] == [Role.USER, Role.ASSISTANT, Role.USER, Role.ASSISTANT]
        assert conv[0].content == [TextBlock("do two things")]
        assert conv[1].content == [
            ToolInvocation("t1", "record", {"n": 1}),
            ToolInvocation("t2", "record", {"n": 2}),
        ]
        assert conv[2].content == [
            ToolResultBlock("t1", "call 1"),
            ToolResultBlock("t2", "call 2"),
        ]
        assert conv[3].content == [TextBlock("All done.")]

    async def test_second_request_carries_results(self, registry):
        orch, transport = _make_orchestrator(
            registry,
            [
                anthropic_body(tool_use("t1", "echo", {"message": "hi"})),
                anthropic_body(text("ok")),
            ],
            stream=False,
        )
        await orch.run_turn("echo hi")

        second = transport.requests[1]
        assert second["messages"][-1] == {
            "role": "user",
            "content": [{"type": "tool_result", "tool_use_id": "t1", "content": "hi"}],
        }
        assert "stream" not in second

    async def test_text_and_tools_kept_in_one_message(self, registry):
        orch, _ = _make_orchestrator(
            registry,
            [
                anthropic_body(text("Checking."), tool_use("t1", "echo", {"message": "x"})),
                anthropic_body(text("Done.")),
            ],
            stream=False,
        )
        await orch.run_turn("go")
        assert orch.conversation[1].content == [
            TextBlock("Checking."),
            ToolInvocation("t1", "echo", {"message": "x"}),
        ]

    async def test_openai_dialect_loop(self, registry):
        orch, transport = _make_orchestrator(
            registry,
            [
                openai_body(tool_calls=[openai_call("c1", "echo", {"message": "hey"})]),
                openai_body(content="fine"),
            ],
            model="gemini-2.5-flash",
            stream=False,
            system_prompt="be brief",
        )
        result = await orch.run_turn("hi")

        assert result.final_text == "fine"
        second = transport.requests[1]
        assert second["messages"][0] == {"role": "system", "content": "be brief"}
        assert second["messages"][-1] == {"role": "tool", "tool_call_id": "c1", "content": "hey"}


class TestUnknownTool:
    async def test_unknown_tool_becomes_error_result(self, registry):
        orch, transport = _make_orchestrator(
            registry,
            [
                anthropic_body(tool_use("t1", "frobnicate", {})),
                anthropic_body(text("Sorry.")),
            ],
            stream=False,
        )
        result = await orch.run_turn("try it")

        assert result.rounds == 2
        assert transport.call_count == 2
        (block,) = orch.conversation[2].content
        assert block.invocation_id == "t1"
        assert "unknown tool frobnicate" in block.content

    async def test_non_object_arguments_become_error_result(self, registry):
        orch, _ = _make_orchestrator(
            registry,
            [
                anthropic_body(tool_use("t1", "echo", ["x"])),
                anthropic_body(text("Hm.")),
            ],
            stream=False,
        )
        await orch.run_turn("go")
        assert "must be a JSON object" in orch.conversation[2].content[0].content


class TestEmptyResponse:
    async def test_empty_content_appends_nothing(self, registry):
        orch, _ = _make_orchestrator(registry, [anthropic_body()], stream=False)
        result = await orch.run_turn("hello")

        assert result.rounds == 1
        assert result.final_text == ""
        assert len(orch.conversation) == 1
        assert orch.state is LoopState.AWAITING_TURN

    async def test_zero_choices(self, registry):
        orch, _ = _make_orchestrator(
            registry, [b'{"choices": []}'], model="gemini-2.5-flash", stream=False
        )
        await orch.run_turn("hello")
        assert len(orch.conversation) == 1

    async def test_blank_input_is_ignored(self, registry):
        orch, transport = _make_orchestrator(registry, [])
        result = await orch.run_turn("   ")
        assert result.rounds == 0
        assert transport.call_count == 0
        assert len(orch.conversation) == 0


class TestFailures:
    async def test_transport_error_keeps_committed_messages(self, registry):
        orch, _ = _make_orchestrator(
            registry,
            [
                anthropic_body(tool_use("t1", "echo", {"message": "x"})),
                TransportError("HTTP Error 500: boom", status_code=500),
            ],
            stream=False,
        )
        with pytest.raises(TransportError):
            await orch.run_turn("go")

        assert orch.state is LoopState.AWAITING_TURN
        assert [m.role for m in orch.conversation] == [Role.USER, Role.ASSISTANT, Role.USER]

    async def test_mid_stream_drop_commits_nothing_from_round(self, registry):
        streamed: list[str] = []
        orch, _ = _make_orchestrator(
            registry,
            [[sse(openai_text_chunk("partial ")), TransportError("Connection dropped")]],
            model="gemini-2.5-flash",
            on_text=streamed.append,
        )
        with pytest.raises(TransportError):
            await orch.run_turn("go")

        assert streamed == ["partial "]
        assert len(orch.conversation) == 1

    async def test_decode_error_propagates(self, registry):
        orch, _ = _make_orchestrator(registry, [b"not json"], stream=False)
        with pytest.raises(DecodeError):
            await orch.run_turn("go")
        assert orch.state is LoopState.AWAITING_TURN

    async def test_missing_key_fails_before_anything_is_stored(self, registry):
        orch, transport = _make_orchestrator(registry, [], model="gpt-4o")
        with pytest.raises(ConfigError):
            await orch.run_turn("go")
        assert len(orch.conversation) == 0
        assert transport.call_count == 0


class TestCancellation:
    async def test_cancel_during_request_appends_nothing(self, registry):
        gate = asyncio.Event()
        transport = ScriptedTransport([anthropic_body(text("late"))], block=gate)
        orch = Orchestrator(
            client=LLMClient(transport=transport),
            registry=registry,
            credentials=KEYS,
            model="claude-3-7-sonnet-20250219",
            stream=False,
        )

        task = asyncio.create_task(orch.run_turn("go"))
        while transport.call_count == 0:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(orch.conversation) == 1
        assert orch.state is LoopState.AWAITING_TURN

    async def test_cancel_during_tools_answers_every_invocation(self, registry):
        slow = SlowTool()
        registry.register(slow)
        orch, _ = _make_orchestrator(
            registry,
            [
                anthropic_body(
                    tool_use("t1", "echo", {"message": "a"}),
                    tool_use("t2", "slow", {}),
                    tool_use("t3", "echo", {"message": "c"}),
                )
            ],
            stream=False,
        )

        task = asyncio.create_task(orch.run_turn("go"))
        await slow.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        results = orch.conversation[2].content
        assert results == [
            ToolResultBlock("t1", "a"),
            ToolResultBlock("t2", CANCELLED_RESULT),
            ToolResultBlock("t3", CANCELLED_RESULT),
        ]


class TestCallbacks:
    async def test_stream_text_and_tool_hooks(self, registry):
        streamed: list[str] = []
        calls: list[str] = []
        results: list[str] = []
        orch, _ = _make_orchestrator(
            registry,
            [
                [anthropic_stream(
                    anthropic_text_events("Hi "),
                    anthropic_tool_events("t1", "echo", ['{"message": "m"}'], index=1),
                )],
                [anthropic_stream(anthropic_text_events("bye"))],
            ],
            on_text=streamed.append,
            on_tool_call=lambda inv: calls.append(inv.name),
            on_tool_result=lambda inv, r: results.append(r.text),
        )
        await orch.run_turn("go")

        assert streamed == ["Hi ", "bye"]
        assert calls == ["echo"]
        assert results == ["m"]

    async def test_buffered_text_reported_once(self, registry):
        seen: list[str] = []
        orch, _ = _make_orchestrator(
            registry, [anthropic_body(text("whole answer"))], stream=False, on_text=seen.append
        )
        await orch.run_turn("go")
        assert seen == ["whole answer"]

    async def test_indicator_started_and_stopped(self, registry):
        events: list[str] = []

        class FakeIndicator:
            def start(self):
                events.append("start")

            def stop(self):
                events.append("stop")

        orch, _ = _make_orchestrator(
            registry,
            [[anthropic_stream(anthropic_text_events("x"))]],
            indicator=FakeIndicator(),
        )
        await orch.run_turn("go")
        assert events[0] == "start"
        assert events[1] == "stop"


class TestModelAndHistory:
    async def test_set_model_switches_profile_next_turn(self, registry):
        orch, transport = _make_orchestrator(
            registry,
            [anthropic_body(text("a")), openai_body(content="b")],
            stream=False,
        )
        await orch.run_turn("one")
        orch.set_model("gemini-2.5-flash")
        await orch.run_turn("two")

        assert transport.profiles[0].endpoint_host == "api.anthropic.com"
        assert transport.profiles[1].endpoint_host == "generativelanguage.googleapis.com"
        assert transport.requests[1]["model"] == "gemini-2.5-flash"

    def test_reset_and_load_snapshot(self, registry):
        orch, _ = _make_orchestrator(registry, [])
        orch.conversation.append(Message.user_text("x"))
        orch.reset()
        assert len(orch.conversation) == 0

        orch.load_snapshot(Snapshot(model="gpt-4o", messages=[Message.user_text("restored")]))
        assert orch.model == "gpt-4o"
        assert orch.conversation[0].text() == "restored"

        orch.load_snapshot(Snapshot(model=None, messages=[]))
        assert orch.model == "gpt-4o"
