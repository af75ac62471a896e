"""Output formatting utilities for the CLI."""

from __future__ import annotations

import json
import shutil

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from nanocode.llm.types import ToolInvocation
from nanocode.tools.base import Tool, ToolRisk
from nanocode.types import ToolResult

RISK_COLORS = {
    ToolRisk.READ_ONLY: "green",
    ToolRisk.WRITE: "yellow",
    ToolRisk.NETWORK: "magenta",
    ToolRisk.SHELL: "bold red",
}

MARKER = "⏺"
PREVIEW_CHARS = 60
ARG_PREVIEW_CHARS = 50


def argument_preview(arguments: object) -> str:
    """First argument value, JSON-encoded and cut to 50 chars."""
    if not isinstance(arguments, dict) or not arguments:
        return ""
    first = next(iter(arguments.values()))
    return json.dumps(first, ensure_ascii=False)[:ARG_PREVIEW_CHARS]


def result_preview(text: str) -> str:
    first, sep, _ = text.partition("\n")
    if sep:
        return first[:PREVIEW_CHARS] + " ... + lines"
    if len(text) > PREVIEW_CHARS:
        return text[:PREVIEW_CHARS] + "..."
    return text


class OutputFormatter:
    """Rich-based output formatting for the nanocode CLI."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def separator(self) -> None:
        width = min(shutil.get_terminal_size().columns, 80)
        self.console.print("─" * width, style="dim")

    def format_header(self, model: str, cwd: str) -> None:
        self.console.print(
            f"[bold]nanocode[/bold] [dim]|[/dim] {model} [dim]|[/dim] {cwd}\n"
            "[dim]Type /help for commands, /q to exit.[/dim]"
        )

    def format_status(self, message: str) -> None:
        self.console.print(Text(f"{MARKER} {message}", style="green"))

    def format_error(self, message: str) -> None:
        self.console.print(Text(f"{MARKER} {message}", style="red"))

    def format_tool_call(self, inv: ToolInvocation) -> None:
        line = Text("\n")
        line.append(f"{MARKER} {inv.name}", style="green")
        line.append("(")
        line.append(argument_preview(inv.arguments), style="dim")
        line.append(")")
        self.console.print(line)

    def format_tool_result(self, result: ToolResult) -> None:
        style = "dim" if result.success else "dim red"
        self.console.print(Text(f"  ⎿  {result_preview(result.text)}", style=style))

    def format_tool_list(self, tools: list[Tool]) -> None:
        table = Table(title="Registered Tools", show_lines=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Risk", no_wrap=True)
        table.add_column("Description")

        for t in tools:
            color = RISK_COLORS.get(t.risk_level, "white")
            table.add_row(t.name, Text(t.risk_level.name, style=color), t.description)

        self.console.print(table)

    def format_config(self, config: dict) -> None:
        dumped = json.dumps(config, indent=2, default=str)
        self.console.print(Syntax(dumped, "json", theme="monokai"))

    def render_activity(self, frame: str) -> None:
        # Raw writes: rich strips carriage returns from printed text.
        if self.console.is_terminal:
            self.console.file.write(f"\r\x1b[2m{MARKER} {frame}\x1b[0m")
            self.console.file.flush()

    def clear_activity(self) -> None:
        if self.console.is_terminal:
            self.console.file.write("\r\x1b[2K")
            self.console.file.flush()
