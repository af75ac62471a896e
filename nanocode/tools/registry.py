from __future__ import annotations

import logging
from typing import Any

from nanocode.llm.codec import ToolDefinition
from nanocode.llm.errors import ToolDispatchError
from nanocode.tools.base import Tool, ToolRisk
from nanocode.types import ErrorCode, ToolResult

logger = logging.getLogger(__name__)


class ToolRegistry:
    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool, *, overwrite: bool = False) -> None:
        if tool.name in self._tools and not overwrite:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def require(self, name: str) -> Tool:
        t = self.get(name)
        if not t:
            raise ToolDispatchError(
                f"error: unknown tool {name}", code=ErrorCode.UNKNOWN_TOOL
            )
        return t

    def list(self, max_risk: ToolRisk | None = None) -> list[Tool]:
        tools = list(self._tools.values())
        if max_risk is None:
            return sorted(tools, key=lambda t: t.name)
        return sorted(
            [t for t in tools if t.risk_level <= max_risk],
            key=lambda t: t.name,
        )

    def definitions(self) -> list[ToolDefinition]:
        return [t.definition() for t in self.list()]

    async def invoke(self, name: str, arguments: Any) -> ToolResult:
        """
        Run tool *name* with *arguments*.

        Raises ``ToolDispatchError`` when the tool is unknown or the
        arguments are not a JSON object.  Exceptions raised by the tool
        itself come back as a failed ``ToolResult``.
        """
        tool = self.require(name)
        if not isinstance(arguments, dict):
            raise ToolDispatchError(
                f"error: arguments for {name} must be a JSON object",
                code=ErrorCode.INVALID_ARGUMENTS,
            )

        try:
            result = await tool.execute(**arguments)
        except Exception as e:
            logger.warning("Tool %s raised: %s", name, e)
            return ToolResult(
                success=False,
                content=f"error: {e}",
                error=f"error: {e}",
                error_code=ErrorCode.TOOL_EXCEPTION,
            )

        if not result.success:
            logger.warning("Tool %s failed: %s", name, result.error)
            if result.error_code is None:
                result.error_code = ErrorCode.TOOL_FAILED
        return result
