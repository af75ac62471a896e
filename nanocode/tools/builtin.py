from __future__ import annotations

from nanocode.tools.base import Tool
from nanocode.tools.filesystem import EditTool, ReadTool, WriteTool
from nanocode.tools.registry import ToolRegistry
from nanocode.tools.search import GlobTool, GrepTool
from nanocode.tools.shell import BashTool, PythonTool
from nanocode.tools.web import FetchUrlTool


def builtin_tools(fetch_max_chars: int = 20_000) -> list[Tool]:
    return [
        ReadTool(),
        WriteTool(),
        EditTool(),
        GlobTool(),
        GrepTool(),
        BashTool(),
        FetchUrlTool(max_chars=fetch_max_chars),
        PythonTool(),
    ]


def default_registry(
    disabled: list[str] | tuple[str, ...] = (),
    fetch_max_chars: int = 20_000,
) -> ToolRegistry:
    registry = ToolRegistry()
    for tool in builtin_tools(fetch_max_chars):
        if tool.name not in disabled:
            registry.register(tool)
    return registry
