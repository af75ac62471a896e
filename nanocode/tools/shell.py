"""
Process tools: run a shell command or a Python snippet.
"""
from __future__ import annotations

import asyncio
import sys
from typing import Any

from nanocode.tools.base import Tool, ToolRisk, fail, ok
from nanocode.types import ToolResult

# Cap captured output to keep tool results a sane size.
_MAX_OUTPUT_BYTES = 100 * 1024


async def _run(proc: asyncio.subprocess.Process, timeout: float | None) -> ToolResult:
    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        try:
            proc.kill()
            await asyncio.wait_for(proc.wait(), timeout=5)
        except (ProcessLookupError, asyncio.TimeoutError):
            pass
        return fail(f"error: command timed out after {timeout}s")
    except asyncio.CancelledError:
        # A cancelled turn must not leave the command running.
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        raise

    output = stdout[:_MAX_OUTPUT_BYTES].decode("utf-8", errors="replace")
    output = output.rstrip("\r\n")
    if len(stdout) > _MAX_OUTPUT_BYTES:
        output += "\n... (output truncated)"
    return ok(output or "(empty)")


class BashTool(Tool):
    def __init__(self, timeout: float | None = 300.0) -> None:
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "bash"

    @property
    def description(self) -> str:
        return "Run shell command"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {"cmd": {"type": "string"}},
            "required": ["cmd"],
        }

    @property
    def risk_level(self) -> ToolRisk:
        return ToolRisk.SHELL

    async def execute(self, cmd: str = "", **_: Any) -> ToolResult:
        try:
            proc = await asyncio.create_subprocess_shell(
                cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            return fail(f"error: could not start shell: {e}")
        return await _run(proc, self._timeout)


class PythonTool(Tool):
    def __init__(self, timeout: float | None = 300.0) -> None:
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "execute_python"

    @property
    def description(self) -> str:
        return "Run a Python script and return its combined output"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {"code": {"type": "string"}},
            "required": ["code"],
        }

    @property
    def risk_level(self) -> ToolRisk:
        return ToolRisk.SHELL

    async def execute(self, code: str = "", **_: Any) -> ToolResult:
        try:
            proc = await asyncio.create_subprocess_exec(
                sys.executable,
                "-c",
                code,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            return fail(f"error: could not start interpreter: {e}")
        return await _run(proc, self._timeout)
