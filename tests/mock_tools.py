"""Mock tool implementations for testing."""

import asyncio

from nanocode.tools.base import Tool, ToolRisk
from nanocode.types import ToolResult


class EchoTool(Tool):
    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "Echoes the input message back."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Message to echo"},
            },
            "required": ["message"],
        }

    async def execute(self, **kwargs) -> ToolResult:
        return ToolResult(success=True, content=str(kwargs.get("message", "")))


class RecordingTool(Tool):
    """Appends each call's arguments to ``calls`` and returns a numbered result."""

    def __init__(self, name: str = "record") -> None:
        self._name = name
        self.calls: list[dict] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "Records its calls."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    @property
    def risk_level(self) -> ToolRisk:
        return ToolRisk.WRITE

    async def execute(self, **kwargs) -> ToolResult:
        self.calls.append(kwargs)
        return ToolResult(success=True, content=f"call {len(self.calls)}")


class FailingTool(Tool):
    @property
    def name(self) -> str:
        return "failing"

    @property
    def description(self) -> str:
        return "Always reports a failure."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, **kwargs) -> ToolResult:
        return ToolResult(success=False, content="", error="error: it broke")


class ExplodingTool(Tool):
    @property
    def name(self) -> str:
        return "exploding"

    @property
    def description(self) -> str:
        return "Raises instead of returning."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    @property
    def risk_level(self) -> ToolRisk:
        return ToolRisk.SHELL

    async def execute(self, **kwargs) -> ToolResult:
        raise RuntimeError("kaboom")


class SlowTool(Tool):
    """Blocks until ``release`` is set; ``started`` is set on entry."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    @property
    def name(self) -> str:
        return "slow"

    @property
    def description(self) -> str:
        return "Waits until released."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, **kwargs) -> ToolResult:
        self.started.set()
        await self.release.wait()
        return ToolResult(success=True, content="done")
