from enum import IntEnum
from abc import ABC, abstractmethod

from nanocode.llm.codec import ToolDefinition
from nanocode.types import ToolResult


class ToolRisk(IntEnum):
    READ_ONLY = 10
    WRITE = 20
    NETWORK = 30
    SHELL = 40


def normalize_schema(schema: dict) -> dict:
    s = dict(schema or {})
    s.setdefault("type", "object")
    s.setdefault("properties", {})
    return s


def ok(content: str) -> ToolResult:
    return ToolResult(success=True, content=content)


def fail(message: str) -> ToolResult:
    return ToolResult(success=False, content=message, error=message)


class Tool(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def parameters(self) -> dict: ...

    @property
    def risk_level(self) -> ToolRisk:
        return ToolRisk.READ_ONLY

    @abstractmethod
    async def execute(self, **kwargs) -> ToolResult: ...

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=normalize_schema(self.parameters),
        )
