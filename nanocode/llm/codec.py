"""
Wire codec: conversation <-> provider JSON.

Pure functions, no I/O.  Two dialects are supported:

``Dialect.ANTHROPIC``
    ``{model, max_tokens, system, tools, messages}``.  Tool invocations stay
    inline in assistant messages as ``tool_use`` blocks; tool results are
    user-role ``tool_result`` blocks.

``Dialect.OPENAI_COMPAT``
    ``{model, tools, messages}``.  The system prompt is the leading message,
    invocations become ``tool_calls`` whose ``arguments`` is a JSON *string*,
    and each tool result is its own ``role: tool`` message.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from nanocode.llm.errors import DecodeError
from nanocode.llm.profiles import Dialect, ProviderProfile
from nanocode.llm.types import (
    ContentBlock,
    Conversation,
    Message,
    Role,
    TextBlock,
    ToolInvocation,
    ToolResultBlock,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 8192


@dataclass(frozen=True)
class ToolDefinition:
    """Dialect-neutral tool schema."""

    name: str
    description: str
    parameters: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Tool schemas
# ---------------------------------------------------------------------------

def build_tool_schemas(
    definitions: list[ToolDefinition], dialect: Dialect
) -> list[dict]:
    if dialect is Dialect.ANTHROPIC:
        return [
            {
                "name": d.name,
                "description": d.description,
                "input_schema": d.parameters,
            }
            for d in definitions
        ]
    if dialect is Dialect.OPENAI_COMPAT:
        return [
            {
                "type": "function",
                "function": {
                    "name": d.name,
                    "description": d.description,
                    "parameters": d.parameters,
                },
            }
            for d in definitions
        ]
    raise ValueError(f"Unsupported dialect: {dialect!r}")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

def encode_request(
    conversation: Conversation | list[Message],
    profile: ProviderProfile,
    tool_schemas: list[dict],
    system_prompt: str = "",
    max_tokens: int = DEFAULT_MAX_TOKENS,
    stream: bool = False,
) -> dict:
    """Build the request body for *profile*'s dialect."""
    messages = list(conversation)

    if profile.dialect is Dialect.ANTHROPIC:
        body: dict[str, Any] = {
            "model": profile.model,
            "max_tokens": max_tokens,
            "system": system_prompt,
        }
        if tool_schemas:
            body["tools"] = tool_schemas
        body["messages"] = [m.to_dict() for m in messages]
    elif profile.dialect is Dialect.OPENAI_COMPAT:
        body = {"model": profile.model}
        if tool_schemas:
            body["tools"] = tool_schemas
        wire: list[dict] = []
        if system_prompt:
            wire.append({"role": "system", "content": system_prompt})
        for msg in messages:
            wire.extend(_openai_messages(msg))
        body["messages"] = wire
    else:
        raise ValueError(f"Unsupported dialect: {profile.dialect!r}")

    if stream:
        body["stream"] = True
    return body


def _openai_messages(msg: Message) -> list[dict]:
    if msg.role is Role.ASSISTANT:
        out: dict[str, Any] = {"role": "assistant"}
        text = msg.text()
        if text:
            out["content"] = text
        calls = [
            {
                "id": inv.id,
                "type": "function",
                "function": {
                    "name": inv.name,
                    "arguments": json.dumps(inv.arguments),
                },
            }
            for inv in msg.tool_invocations()
        ]
        if calls:
            out["tool_calls"] = calls
        return [out]

    wire: list[dict] = []
    for block in msg.content:
        if isinstance(block, ToolResultBlock):
            wire.append(
                {
                    "role": "tool",
                    "tool_call_id": block.invocation_id,
                    "content": block.content,
                }
            )
    text = msg.text()
    if text:
        wire.append({"role": "user", "content": text})
    return wire


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

def _load_body(raw_body: bytes | str | dict | list) -> dict:
    if isinstance(raw_body, bytes):
        raw_body = raw_body.decode("utf-8", errors="replace")
    if isinstance(raw_body, str):
        try:
            data = json.loads(raw_body)
        except json.JSONDecodeError as exc:
            raise DecodeError(
                f"Response is not valid JSON: {exc}\n"
                f"Response body:\n{raw_body[:500]}"
            ) from exc
    else:
        data = raw_body

    # Some gateways wrap the response object in a one-element array.
    if isinstance(data, list) and data and isinstance(data[0], dict):
        data = data[0]
    if not isinstance(data, dict):
        raise DecodeError("Response is neither a JSON object nor an object array")

    error = data.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else None
        raise DecodeError(f"API error: {message or json.dumps(error)}")
    return data


def parse_arguments(raw: Any, call_id: str) -> Any:
    """Parse an OpenAI-style argument string; empty means ``{}``."""
    if isinstance(raw, (dict, list)):
        return raw
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(
            f"Tool call {call_id} has malformed arguments: {exc}"
        ) from exc


def decode_response(
    raw_body: bytes | str | dict | list, profile: ProviderProfile
) -> list[ContentBlock]:
    """
    Convert a complete (non-streamed) response into content blocks.

    An empty ``content`` array or zero ``choices`` decodes to ``[]``.
    """
    data = _load_body(raw_body)

    if profile.dialect is Dialect.ANTHROPIC:
        return _decode_anthropic(data)
    if profile.dialect is Dialect.OPENAI_COMPAT:
        return _decode_openai(data)
    raise ValueError(f"Unsupported dialect: {profile.dialect!r}")


def _decode_anthropic(data: dict) -> list[ContentBlock]:
    content = data.get("content") or []
    if not isinstance(content, list):
        raise DecodeError("Anthropic response 'content' is not an array")

    blocks: list[ContentBlock] = []
    for item in content:
        if not isinstance(item, dict):
            raise DecodeError("Anthropic content block is not an object")
        kind = item.get("type")
        try:
            if kind == "text":
                blocks.append(TextBlock(text=item["text"]))
            elif kind == "tool_use":
                blocks.append(
                    ToolInvocation(
                        id=item["id"],
                        name=item["name"],
                        arguments=item.get("input", {}),
                    )
                )
            else:
                logger.debug("Skipping content block of type %r", kind)
        except KeyError as exc:
            raise DecodeError(f"{kind} block is missing field {exc}") from exc
    return blocks


def _decode_openai(data: dict) -> list[ContentBlock]:
    choices = data.get("choices") or []
    if not choices:
        return []

    message = choices[0].get("message") or {}
    blocks: list[ContentBlock] = []

    text = message.get("content")
    if isinstance(text, str) and text:
        blocks.append(TextBlock(text=text))

    for call in message.get("tool_calls") or []:
        if not isinstance(call, dict):
            raise DecodeError(f"Malformed tool call entry: {call!r}")
        if call.get("type", "function") != "function":
            logger.debug("Skipping tool call of type %r", call.get("type"))
            continue
        try:
            call_id = call["id"]
            func = call["function"]
            name = func["name"]
        except (KeyError, TypeError) as exc:
            raise DecodeError(f"Malformed tool call entry: {call!r}") from exc
        blocks.append(
            ToolInvocation(
                id=call_id,
                name=name,
                arguments=parse_arguments(func.get("arguments"), call_id),
            )
        )
    return blocks
