"""
Scripted transports and stream builders for testing.

``ScriptedTransport`` stands in for ``HttpTransport`` so the real
``LLMClient`` can be exercised without a network.  Each scripted reply is
either a JSON body (buffered), a list of byte chunks (streamed) or an
exception to raise.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from nanocode.llm.transport import ResponseEnvelope


def sse(*payloads: Any, done: bool = False) -> bytes:
    """Encode payloads as ``data:`` lines."""
    lines = [f"data: {json.dumps(p)}\n\n" for p in payloads]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


# ---------------------------------------------------------------------------
# Anthropic event builders
# ---------------------------------------------------------------------------

def anthropic_text_events(text: str, index: int = 0) -> list[dict]:
    return [
        {
            "type": "content_block_start",
            "index": index,
            "content_block": {"type": "text", "text": ""},
        },
        {
            "type": "content_block_delta",
            "index": index,
            "delta": {"type": "text_delta", "text": text},
        },
        {"type": "content_block_stop", "index": index},
    ]


def anthropic_tool_events(
    call_id: str, name: str, fragments: list[str], index: int = 0
) -> list[dict]:
    events = [
        {
            "type": "content_block_start",
            "index": index,
            "content_block": {"type": "tool_use", "id": call_id, "name": name, "input": {}},
        }
    ]
    for frag in fragments:
        events.append(
            {
                "type": "content_block_delta",
                "index": index,
                "delta": {"type": "input_json_delta", "partial_json": frag},
            }
        )
    events.append({"type": "content_block_stop", "index": index})
    return events


def anthropic_stream(*blocks: list[dict]) -> bytes:
    events: list[dict] = [{"type": "message_start", "message": {"content": []}}]
    for block in blocks:
        events.extend(block)
    events.append({"type": "message_stop"})
    return sse(*events)


def anthropic_body(*content: dict) -> bytes:
    return json.dumps(
        {"type": "message", "role": "assistant", "content": list(content)}
    ).encode("utf-8")


def tool_use(call_id: str, name: str, arguments: Any) -> dict:
    return {"type": "tool_use", "id": call_id, "name": name, "input": arguments}


def text(value: str) -> dict:
    return {"type": "text", "text": value}


# ---------------------------------------------------------------------------
# OpenAI-compatible builders
# ---------------------------------------------------------------------------

def openai_text_chunk(value: str) -> dict:
    return {"choices": [{"index": 0, "delta": {"content": value}}]}


def openai_tool_chunk(
    call_id: str | None = None,
    name: str | None = None,
    arguments: str | None = None,
    index: int = 0,
) -> dict:
    entry: dict[str, Any] = {"index": index, "function": {}}
    if call_id is not None:
        entry["id"] = call_id
        entry["type"] = "function"
    if name is not None:
        entry["function"]["name"] = name
    if arguments is not None:
        entry["function"]["arguments"] = arguments
    return {"choices": [{"index": 0, "delta": {"tool_calls": [entry]}}]}


def openai_body(content: str | None = None, tool_calls: list[dict] | None = None) -> bytes:
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    return json.dumps({"choices": [{"index": 0, "message": message}]}).encode("utf-8")


def openai_call(call_id: str, name: str, arguments: Any) -> dict:
    return {
        "id": call_id,
        "type": "function",
        "function": {"name": name, "arguments": json.dumps(arguments)},
    }


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class ScriptedTransport:
    """
    Replays scripted replies in order, one per ``send``.

    Parameters
    ----------
    replies:
        ``bytes`` for a buffered body, ``list[bytes]`` for streamed chunks,
        or an ``Exception`` instance to raise.
    block:
        When set, ``send`` waits on this event before replying.
    """

    def __init__(self, replies: list[Any], block: asyncio.Event | None = None) -> None:
        self._replies = list(replies)
        self._block = block
        self.requests: list[dict] = []
        self.profiles: list = []
        self.chunks_sent = 0

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def send(self, profile, body, streaming, on_chunk=None) -> ResponseEnvelope:
        self.requests.append(body)
        self.profiles.append(profile)
        if self._block is not None:
            await self._block.wait()
        if not self._replies:
            raise AssertionError("ScriptedTransport ran out of replies")

        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, list):
            for chunk in reply:
                if isinstance(chunk, Exception):
                    raise chunk
                self.chunks_sent += 1
                if on_chunk is not None:
                    on_chunk(chunk)
            return ResponseEnvelope(200, b"".join(reply), streamed=True)
        return ResponseEnvelope(200, reply)
