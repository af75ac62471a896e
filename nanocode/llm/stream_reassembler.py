"""
Reassembles a streamed response into content blocks.

Design goals:
  - Split the raw byte stream into ``data:`` event records.  Partial lines
    are buffered as bytes, so chunk boundaries (even inside a multi-byte
    character) never change the result.
  - Fold events into a ``StreamAccumulator`` strictly in arrival order.
  - Tool-call arguments arrive as partial-JSON fragments that are only valid
    once concatenated; they are parsed exactly once, when the block closes.
  - Heartbeats, comments and malformed lines are skipped, never fatal.
  - The finished block list is always ``[TextBlock?] + invocations`` in the
    order they were opened, whichever dialect produced them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator

from nanocode.llm.errors import DecodeError
from nanocode.llm.profiles import Dialect
from nanocode.llm.types import ContentBlock, TextBlock, ToolInvocation

logger = logging.getLogger(__name__)

TextCallback = Callable[[str], None]

_DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class RawEvent:
    """One decoded ``data:`` record, or the end-of-stream sentinel."""

    payload: dict | None = None
    end: bool = False


END_OF_STREAM = RawEvent(end=True)


class EventSplitter:
    """Turns arbitrary byte ranges into ``RawEvent`` objects."""

    def __init__(self) -> None:
        self._buffer = b""

    def feed(self, chunk: bytes) -> Iterator[RawEvent]:
        self._buffer += chunk
        while b"\n" in self._buffer:
            line, self._buffer = self._buffer.split(b"\n", 1)
            event = self._parse_line(line)
            if event is not None:
                yield event

    def flush(self) -> Iterator[RawEvent]:
        """Emit whatever trailing line the server left without a newline."""
        if self._buffer:
            line, self._buffer = self._buffer, b""
            event = self._parse_line(line)
            if event is not None:
                yield event

    @staticmethod
    def _parse_line(raw: bytes) -> RawEvent | None:
        line = raw.decode("utf-8", errors="replace").rstrip("\r")
        if not line.startswith("data:"):
            # Blank separators, "event:" names and ":" heartbeats.
            return None

        data_str = line[len("data:"):].strip()
        if data_str == _DONE_SENTINEL:
            return END_OF_STREAM

        try:
            payload = json.loads(data_str)
        except json.JSONDecodeError:
            logger.debug("Skipping non-JSON stream line: %s", data_str[:200])
            return None
        if not isinstance(payload, dict):
            logger.debug("Skipping non-object stream payload: %s", data_str[:200])
            return None
        return RawEvent(payload=payload)


@dataclass
class _OpenToolCall:
    id: str
    name: str
    args: list[str] = field(default_factory=list)


@dataclass
class StreamAccumulator:
    """Working state for one in-flight streamed response."""

    text_parts: list[str] = field(default_factory=list)
    current: _OpenToolCall | None = None
    finished: list[ToolInvocation] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def open_call(self, call_id: str, name: str) -> None:
        self.close_call()
        self.current = _OpenToolCall(id=call_id, name=name)

    def close_call(self) -> None:
        call = self.current
        if call is None:
            return
        self.current = None

        raw_args = "".join(call.args)
        if not raw_args.strip():
            arguments: object = {}
        else:
            try:
                arguments = json.loads(raw_args)
            except json.JSONDecodeError as exc:
                self.errors.append(
                    f"tool call {call.id} ({call.name}) has malformed arguments: {exc}"
                )
                return
        self.finished.append(
            ToolInvocation(id=call.id, name=call.name, arguments=arguments)
        )

    def blocks(self) -> list[ContentBlock]:
        out: list[ContentBlock] = []
        text = "".join(self.text_parts)
        if text:
            out.append(TextBlock(text=text))
        out.extend(self.finished)
        return out


class StreamReassembler:
    """
    Folds a provider event stream into a final content-block list.

    Parameters
    ----------
    dialect:
        Which event shapes to expect.
    on_text:
        Called with each plain-text increment as soon as it arrives.  Never
        called with tool-call text.
    on_first_event:
        Called once, with the first decoded event or end-of-stream marker.
        Keepalive comments and blank lines do not count.
    """

    def __init__(
        self,
        dialect: Dialect,
        on_text: TextCallback | None = None,
        on_first_event: Callable[[], None] | None = None,
    ) -> None:
        self.dialect = dialect
        self._on_text = on_text
        self._on_first_event = on_first_event
        self._splitter = EventSplitter()
        self._acc = StreamAccumulator()
        self._ended = False
        self._finished = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def ended(self) -> bool:
        """``True`` once a terminal event has been seen."""
        return self._ended

    def feed(self, chunk: bytes) -> None:
        """Feed one raw byte range from the transport."""
        for event in self._splitter.feed(chunk):
            self.apply(event)

    def apply(self, event: RawEvent) -> None:
        """Fold a single event into the accumulator."""
        if self._finished:
            raise RuntimeError("StreamReassembler already finished")
        if self._ended:
            return
        if self._on_first_event is not None:
            hook, self._on_first_event = self._on_first_event, None
            hook()
        if event.end:
            self._ended = True
            return
        if event.payload is None:
            return

        try:
            if self.dialect is Dialect.ANTHROPIC:
                self._apply_anthropic(event.payload)
            elif self.dialect is Dialect.OPENAI_COMPAT:
                self._apply_openai(event.payload)
            else:
                raise ValueError(f"Unsupported dialect: {self.dialect!r}")
        except (KeyError, TypeError, AttributeError) as exc:
            logger.debug(
                "Skipping malformed %s event (%s): %r",
                self.dialect.value,
                exc,
                event.payload,
            )

    def finish(self) -> list[ContentBlock]:
        """
        Close the stream and return the finished blocks.

        May be called exactly once.  Raises ``DecodeError`` if a tool call's
        arguments did not parse or the provider reported an error mid-stream.
        """
        if self._finished:
            raise RuntimeError("StreamReassembler already finished")
        for event in self._splitter.flush():
            self.apply(event)
        self._finished = True
        self._acc.close_call()

        if self._acc.errors:
            raise DecodeError("; ".join(self._acc.errors))
        return self._acc.blocks()

    # ------------------------------------------------------------------
    # Dialect handlers
    # ------------------------------------------------------------------

    def _emit_text(self, text: str) -> None:
        if not text:
            return
        self._acc.text_parts.append(text)
        if self._on_text is not None:
            self._on_text(text)

    def _apply_anthropic(self, payload: dict) -> None:
        kind = payload.get("type")

        if kind == "content_block_start":
            block = payload["content_block"]
            if block["type"] == "tool_use":
                self._acc.open_call(block["id"], block["name"])

        elif kind == "content_block_delta":
            delta = payload["delta"]
            delta_type = delta["type"]
            if delta_type == "text_delta":
                self._emit_text(delta["text"])
            elif delta_type == "input_json_delta":
                if self._acc.current is not None:
                    self._acc.current.args.append(delta["partial_json"])

        elif kind == "content_block_stop":
            self._acc.close_call()

        elif kind == "message_stop":
            self._ended = True

        elif kind == "error":
            error = payload.get("error") or {}
            self._acc.errors.append(
                f"API error: {error.get('message') or json.dumps(error)}"
            )
            self._ended = True

    def _apply_openai(self, payload: dict) -> None:
        if payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else error
            self._acc.errors.append(f"API error: {message}")
            self._ended = True
            return

        choices = payload.get("choices") or []
        if not choices:
            return
        delta = choices[0].get("delta") or {}

        content = delta.get("content")
        if isinstance(content, str):
            self._emit_text(content)

        for entry in delta.get("tool_calls") or []:
            func = entry.get("function") or {}
            if entry.get("id"):
                # Only one call is open at a time; a new id closes the last.
                self._acc.open_call(entry["id"], func.get("name") or "")
            elif self._acc.current is None:
                logger.debug("Dropping tool-call fragment with no open call: %r", entry)
                continue
            elif func.get("name"):
                self._acc.current.name += func["name"]

            fragment = func.get("arguments")
            if fragment:
                self._acc.current.args.append(fragment)
