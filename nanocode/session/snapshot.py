"""
Conversation snapshots -- save and restore a conversation as JSON.

File shape::

    {"model": "<model name>", "messages": [<message>, ...]}

Each message serializes its content blocks with an explicit ``type`` tag
(``text`` / ``tool_use`` / ``tool_result``).  A bare array of messages is
accepted on load and yields ``model=None``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from nanocode.llm.types import Conversation, Message

logger = logging.getLogger(__name__)


class SnapshotError(Exception):
    """A snapshot could not be written or read back."""


@dataclass
class Snapshot:
    model: str | None
    messages: list[Message] = field(default_factory=list)


def save_snapshot(path: str | Path, model: str, conversation: Conversation) -> Path:
    p = Path(path).expanduser()
    doc = {"model": model, "messages": conversation.to_list()}
    try:
        p.write_text(json.dumps(doc, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        raise SnapshotError(f"Could not write {p}: {e}") from e
    logger.info("Saved %d message(s) to %s", len(conversation), p)
    return p


def load_snapshot(path: str | Path) -> Snapshot:
    p = Path(path).expanduser()
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise SnapshotError(f"Could not read {p}: {e}") from e
    except json.JSONDecodeError as e:
        raise SnapshotError(f"{p} is not valid JSON: {e}") from e

    if isinstance(raw, list):
        model, items = None, raw
    elif isinstance(raw, dict) and isinstance(raw.get("messages"), list):
        model, items = raw.get("model") or None, raw["messages"]
    else:
        raise SnapshotError(f"{p} does not contain a conversation")

    try:
        messages = [Message.from_dict(item) for item in items]
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotError(f"{p} contains a malformed message: {e}") from e

    logger.info("Loaded %d message(s) from %s", len(messages), p)
    return Snapshot(model=model, messages=messages)
