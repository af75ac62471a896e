"""
Filesystem tools: read, write and edit files.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

from nanocode.tools.base import Tool, ToolRisk, fail, ok
from nanocode.types import ToolResult


def _read_text(path: str) -> str | None:
    try:
        return Path(path).expanduser().read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


class ReadTool(Tool):
    @property
    def name(self) -> str:
        return "read"

    @property
    def description(self) -> str:
        return "Read file with line numbers (file path, not directory)"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {"type": "string"},
                "offset": {"type": "integer"},
                "limit": {"type": "integer"},
            },
            "required": ["path"],
        }

    async def execute(
        self, path: str = "", offset: int = 0, limit: int | None = None, **_: Any
    ) -> ToolResult:
        text = _read_text(path)
        if text is None:
            return fail(f"error: could not open {path}")

        lines = text.splitlines()
        offset = max(int(offset or 0), 0)
        if offset >= len(lines):
            return ok("")
        end = len(lines) if limit is None or int(limit) < 0 else offset + int(limit)

        out = [
            f"{idx:4}| {line}\n"
            for idx, line in enumerate(lines[offset:end], start=offset + 1)
        ]
        return ok("".join(out))


class WriteTool(Tool):
    @property
    def name(self) -> str:
        return "write"

    @property
    def description(self) -> str:
        return "Write content to file"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {"type": "string"},
                "content": {"type": "string"},
            },
            "required": ["path", "content"],
        }

    @property
    def risk_level(self) -> ToolRisk:
        return ToolRisk.WRITE

    async def execute(self, path: str = "", content: str = "", **_: Any) -> ToolResult:
        try:
            Path(path).expanduser().write_text(content, encoding="utf-8")
        except OSError:
            return fail(f"error: could not open {path} for writing")
        return ok("ok")


class EditTool(Tool):
    @property
    def name(self) -> str:
        return "edit"

    @property
    def description(self) -> str:
        return "Replace old with new in file (old must be unique unless all=true)"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {"type": "string"},
                "old": {"type": "string"},
                "new": {"type": "string"},
                "all": {"type": "boolean"},
            },
            "required": ["path", "old", "new"],
        }

    @property
    def risk_level(self) -> ToolRisk:
        return ToolRisk.WRITE

    async def execute(
        self,
        path: str = "",
        old: str = "",
        new: str = "",
        all: bool = False,
        **_: Any,
    ) -> ToolResult:
        text = _read_text(path)
        if text is None:
            return fail(f"error: could not open {path}")
        if not old:
            return fail("error: old_string must not be empty")

        count = text.count(old)
        if count == 0:
            return fail("error: old_string not found")
        if count > 1 and not all:
            return fail(
                f"error: old_string appears {count} times, must be unique (use all=true)"
            )

        text = text.replace(old, new) if all else text.replace(old, new, 1)
        try:
            Path(path).expanduser().write_text(text, encoding="utf-8")
        except OSError:
            return fail(f"error: could not open {path} for writing")
        return ok("ok")
