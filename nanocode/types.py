from dataclasses import dataclass, field


@dataclass
class ToolResult:
    success: bool
    content: str
    error: str | None = None
    error_code: str | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def text(self) -> str:
        """The string fed back to the model, success or failure alike."""
        if self.success:
            return self.content
        return self.error or self.content


class ErrorCode:
    UNKNOWN_TOOL = "unknown_tool"
    INVALID_ARGUMENTS = "invalid_arguments"
    TOOL_EXCEPTION = "tool_exception"
    TOOL_FAILED = "tool_failed"
    CANCELLED = "cancelled"
