"""Provider-agnostic conversation model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Union


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class TextBlock:
    text: str

    def to_dict(self) -> dict:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolInvocation:
    """
    A tool call requested by the model.

    *id* is opaque and provider-assigned; it is echoed back unchanged in the
    matching ``ToolResultBlock``.  *arguments* is any JSON value, normally an
    object.
    """

    id: str
    name: str
    arguments: Any = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": "tool_use",
            "id": self.id,
            "name": self.name,
            "input": self.arguments,
        }


@dataclass(frozen=True)
class ToolResultBlock:
    invocation_id: str
    content: str

    def to_dict(self) -> dict:
        return {
            "type": "tool_result",
            "tool_use_id": self.invocation_id,
            "content": self.content,
        }


ContentBlock = Union[TextBlock, ToolInvocation, ToolResultBlock]


def block_from_dict(data: dict) -> ContentBlock:
    """Restore a block from its tagged dict form."""
    kind = data.get("type")
    if kind == "text":
        return TextBlock(text=data["text"])
    if kind == "tool_use":
        return ToolInvocation(
            id=data["id"], name=data["name"], arguments=data.get("input", {})
        )
    if kind == "tool_result":
        content = data.get("content", "")
        if not isinstance(content, str):
            # Anthropic also allows a list of text blocks here.
            content = "".join(
                part.get("text", "") for part in content if isinstance(part, dict)
            )
        return ToolResultBlock(invocation_id=data["tool_use_id"], content=content)
    raise ValueError(f"Unknown content block type: {kind!r}")


@dataclass
class Message:
    """A single message in a conversation."""

    role: Role
    content: list[ContentBlock] = field(default_factory=list)

    @classmethod
    def user_text(cls, text: str) -> Message:
        return cls(role=Role.USER, content=[TextBlock(text)])

    def tool_invocations(self) -> list[ToolInvocation]:
        return [b for b in self.content if isinstance(b, ToolInvocation)]

    def text(self) -> str:
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    def is_empty(self) -> bool:
        return not self.content

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "content": [b.to_dict() for b in self.content],
        }

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        role = Role(data["role"])
        raw = data.get("content", [])
        if isinstance(raw, str):
            blocks: list[ContentBlock] = [TextBlock(raw)] if raw else []
        else:
            blocks = [block_from_dict(b) for b in raw]
        return cls(role=role, content=blocks)


class Conversation:
    """
    Ordered list of messages.

    Append-only while a turn runs.  Empty messages are never stored, and a
    ``ToolResultBlock`` must answer an invocation id seen earlier.
    """

    def __init__(self, messages: list[Message] | None = None) -> None:
        self._messages: list[Message] = []
        self._invocation_ids: set[str] = set()
        if messages:
            self.replace(messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def append(self, message: Message) -> bool:
        """Append *message*; returns ``False`` if it was empty and dropped."""
        if message.is_empty():
            return False
        for block in message.content:
            if (
                isinstance(block, ToolResultBlock)
                and block.invocation_id not in self._invocation_ids
            ):
                raise ValueError(
                    f"Tool result references unknown invocation id "
                    f"{block.invocation_id!r}"
                )
        self._messages.append(message)
        self._invocation_ids.update(b.id for b in message.tool_invocations())
        return True

    def clear(self) -> None:
        self._messages.clear()
        self._invocation_ids.clear()

    def replace(self, messages: list[Message]) -> None:
        """Swap in a loaded history.  Empty messages are dropped."""
        self._messages = [m for m in messages if not m.is_empty()]
        self._invocation_ids = {
            inv.id for m in self._messages for inv in m.tool_invocations()
        }

    def to_list(self) -> list[dict]:
        return [m.to_dict() for m in self._messages]
