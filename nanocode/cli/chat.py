"""Interactive chat session handler."""

from __future__ import annotations

import asyncio
import logging
import os
import signal

from rich.console import Console
from rich.text import Text

from nanocode.cli.output import MARKER, OutputFormatter
from nanocode.llm.errors import ConfigError, LLMError
from nanocode.llm.types import ToolInvocation
from nanocode.orchestrator.core import LoopState, Orchestrator
from nanocode.session.snapshot import SnapshotError, load_snapshot, save_snapshot
from nanocode.types import ToolResult

logger = logging.getLogger(__name__)

KNOWN_MODELS = (
    "gemini-2.5-flash",
    "gemini-2.5-pro",
    "claude-3-5-sonnet-20241022",
    "claude-3-5-haiku-20241022",
    "gpt-4o",
    "gpt-4o-mini",
    "o1-preview",
    "o1-mini",
    "o3-mini",
)

EXIT_COMMANDS = ("/q", "/exit", "exit")


class ChatHandler:
    """
    Manages the interactive chat loop.

    Handles streamed output, slash commands and snapshot save/load.  The
    orchestrator's callbacks are wired to this handler on construction.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        console: Console | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.console = console or Console()
        self.formatter = OutputFormatter(self.console)
        self._running = True
        self._text_open = False

        orchestrator.on_text = self.on_text
        orchestrator.on_tool_call = self.on_tool_call
        orchestrator.on_tool_result = self.on_tool_result
        orchestrator.on_state_change = self.on_state_change

    # -- orchestrator callbacks ------------------------------------------

    def on_text(self, text: str) -> None:
        if not self._text_open:
            self._text_open = True
            self.console.print(Text(f"\n{MARKER} ", style="cyan"), end="")
        self.console.print(text, end="", markup=False, highlight=False)

    def on_tool_call(self, inv: ToolInvocation) -> None:
        self._close_text()
        self.formatter.format_tool_call(inv)

    def on_tool_result(self, inv: ToolInvocation, result: ToolResult) -> None:
        self.formatter.format_tool_result(result)

    def on_state_change(self, state: LoopState) -> None:
        if state is LoopState.REQUEST_IN_FLIGHT:
            self._text_open = False
        elif state is LoopState.AWAITING_TURN:
            self._close_text()

    def _close_text(self) -> None:
        if self._text_open:
            self._text_open = False
            self.console.print()

    # -- commands --------------------------------------------------------

    async def handle_command(self, command: str) -> bool:
        """
        Handle slash commands. Returns True if the command was handled.
        """
        parts = command.strip().split(None, 1)
        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd in EXIT_COMMANDS:
            self._running = False
            return True

        if cmd == "/c":
            self.orchestrator.reset()
            self.formatter.format_status("Cleared conversation")
            return True

        if cmd == "/model":
            if not arg:
                self.console.print(f"  Active model: [bold]{self.orchestrator.model}[/bold]")
                self.console.print(f"  Known models: {', '.join(KNOWN_MODELS)}")
            else:
                self.orchestrator.set_model(arg)
                self.formatter.format_status(f"Switched model to: {arg}")
            return True

        if cmd == "/save":
            if not arg:
                self.formatter.format_error("Usage: /save <file>")
                return True
            try:
                path = save_snapshot(arg, self.orchestrator.model, self.orchestrator.conversation)
            except SnapshotError as e:
                self.formatter.format_error(str(e))
            else:
                self.formatter.format_status(f"Saved conversation and model context to {path}")
            return True

        if cmd == "/load":
            if not arg:
                self.formatter.format_error("Usage: /load <file>")
                return True
            try:
                snapshot = load_snapshot(arg)
            except SnapshotError as e:
                self.formatter.format_error(str(e))
                return True
            self.orchestrator.load_snapshot(snapshot)
            if snapshot.model:
                self.formatter.format_status(
                    f"Loaded conversation and restored model from {arg} "
                    f"(model: {snapshot.model})"
                )
            else:
                self.formatter.format_status(f"Loaded legacy conversation from {arg}")
            return True

        if cmd == "/tools":
            self.formatter.format_tool_list(self.orchestrator.registry.list())
            return True

        if cmd == "/help":
            self.console.print(
                "  [bold]Commands:[/bold]\n"
                "  /model <name>  - Switch model (no name: show current)\n"
                "  /save <file>   - Save conversation and model\n"
                "  /load <file>   - Load a saved conversation\n"
                "  /c             - Clear conversation\n"
                "  /tools         - List available tools\n"
                "  /help          - Show this help\n"
                "  /q, /exit      - Exit\n"
            )
            return True

        return False

    # -- turns -----------------------------------------------------------

    async def handle_input(self, user_input: str) -> None:
        """
        Run one turn; errors and interrupts are reported, not raised.

        While the turn runs, SIGINT cancels the turn instead of the session,
        so Ctrl-C works the same way every time.
        """
        loop = asyncio.get_running_loop()
        turn = asyncio.ensure_future(self.orchestrator.run_turn(user_input))
        previous = signal.getsignal(signal.SIGINT)
        trapped = self._trap_interrupt(loop, turn)
        try:
            await turn
        except LLMError as e:
            self._close_text()
            self.formatter.format_error(f"API Error: {e}")
        except ConfigError as e:
            self._close_text()
            self.formatter.format_error(f"Error: {e}")
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling() > 0:
                # The session itself is being cancelled, not just the turn.
                turn.cancel()
                raise
            self._close_text()
            self.formatter.format_error("Interrupted")
        finally:
            if trapped:
                loop.remove_signal_handler(signal.SIGINT)
                if previous is not None:
                    signal.signal(signal.SIGINT, previous)

    @staticmethod
    def _trap_interrupt(loop: asyncio.AbstractEventLoop, turn: asyncio.Future) -> bool:
        try:
            loop.add_signal_handler(signal.SIGINT, turn.cancel)
        except (NotImplementedError, RuntimeError):
            # Windows loops and non-main threads have no signal handlers.
            logger.debug("Ctrl-C will not interrupt this turn")
            return False
        return True

    async def run_loop(self) -> None:
        """Main interactive loop."""
        self.formatter.format_header(self.orchestrator.model, os.getcwd())

        while self._running:
            self.formatter.separator()
            try:
                user_input = await asyncio.get_running_loop().run_in_executor(
                    None, lambda: input("❯ ").strip()
                )
            except (EOFError, KeyboardInterrupt, asyncio.CancelledError):
                self.console.print()
                break
            self.formatter.separator()

            if not user_input:
                continue

            if user_input.startswith("/") or user_input in EXIT_COMMANDS:
                if await self.handle_command(user_input):
                    continue

            await self.handle_input(user_input)
