"""
Search tools: find files by glob pattern, search contents by regex.
"""
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Iterator

from nanocode.tools.base import Tool, fail, ok
from nanocode.types import ToolResult

MAX_GREP_HITS = 50


def glob_to_regex(pattern: str) -> re.Pattern:
    """``**`` matches across directories, ``*`` within one, ``?`` one char."""
    out = ["^"]
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "*":
            if pattern[i + 1:i + 2] == "*":
                out.append(".*")
                i += 1
            else:
                out.append("[^/]*")
        elif ch == "?":
            out.append(".")
        else:
            out.append(re.escape(ch))
        i += 1
    out.append("$")
    return re.compile("".join(out))


def _walk_files(root: Path) -> Iterator[Path]:
    # os.walk skips unreadable directories instead of raising.
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            p = Path(dirpath) / filename
            if p.is_file():
                yield p


def _mtime(p: Path) -> float:
    try:
        return p.stat().st_mtime
    except OSError:
        return 0.0


class GlobTool(Tool):
    @property
    def name(self) -> str:
        return "glob"

    @property
    def description(self) -> str:
        return "Find files by pattern, sorted by mtime"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "pat": {"type": "string"},
                "path": {"type": "string"},
            },
            "required": ["pat"],
        }

    async def execute(self, pat: str = "", path: str = ".", **_: Any) -> ToolResult:
        root = Path(path or ".")
        if not root.exists():
            return ok("none")

        regex = glob_to_regex(pat)
        matched: list[Path] = []
        for p in _walk_files(root):
            rel = p.relative_to(root).as_posix()
            # Lenient on purpose: relative path, bare filename, or the full
            # path when the pattern itself names directories.
            if (
                regex.match(rel)
                or regex.match(p.name)
                or ("/" in pat and regex.match(p.as_posix()))
            ):
                matched.append(p)

        if not matched:
            return ok("none")
        matched.sort(key=_mtime, reverse=True)
        return ok("\n".join(str(p) for p in matched))


class GrepTool(Tool):
    @property
    def name(self) -> str:
        return "grep"

    @property
    def description(self) -> str:
        return "Search files for regex pattern"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "pat": {"type": "string"},
                "path": {"type": "string"},
            },
            "required": ["pat"],
        }

    async def execute(self, pat: str = "", path: str = ".", **_: Any) -> ToolResult:
        try:
            regex = re.compile(pat)
        except re.error:
            return fail("error: invalid regex pattern")

        root = Path(path or ".")
        if not root.exists():
            return ok("none")

        files = [root] if root.is_file() else _walk_files(root)
        hits: list[str] = []
        for p in files:
            try:
                with p.open("r", encoding="utf-8", errors="replace") as f:
                    for line_num, line in enumerate(f, start=1):
                        line = line.rstrip("\n")
                        if regex.search(line):
                            hits.append(f"{p}:{line_num}:{line}")
                            if len(hits) >= MAX_GREP_HITS:
                                return ok("\n".join(hits))
            except OSError:
                continue

        return ok("\n".join(hits) if hits else "none")
