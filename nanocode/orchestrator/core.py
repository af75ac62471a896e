"""
Orchestrator core -- the agentic loop that drives one conversation.

The orchestrator:
1. Appends the user's message to the conversation
2. Sends the conversation to the active provider profile
3. Appends the assistant's content blocks as one message
4. Runs every tool invocation in order and appends the results as one message
5. Loops until the assistant answers without tool invocations
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from nanocode.llm.client import LLMClient
from nanocode.llm.errors import LLMError, ToolDispatchError
from nanocode.llm.profiles import Credentials, ProviderProfile, select_profile
from nanocode.llm.types import (
    ContentBlock,
    Conversation,
    Message,
    Role,
    ToolInvocation,
    ToolResultBlock,
)
from nanocode.orchestrator.indicator import ActivityIndicator
from nanocode.tools.registry import ToolRegistry
from nanocode.types import ToolResult

if TYPE_CHECKING:
    from nanocode.session.snapshot import Snapshot

logger = logging.getLogger(__name__)

CANCELLED_RESULT = "error: cancelled"


class LoopState(str, Enum):
    AWAITING_TURN = "awaiting_turn"
    REQUEST_IN_FLIGHT = "request_in_flight"
    STREAMING = "streaming"
    BUFFERED = "buffered"
    BLOCKS_READY = "blocks_ready"
    TOOLS_EXECUTING = "tools_executing"


@dataclass
class TurnResult:
    rounds: int
    final_text: str


class Orchestrator:
    """
    Main agentic loop.

    Parameters
    ----------
    client : LLMClient
        Performs one request/response exchange.
    registry : ToolRegistry
        Tools the model may call.
    credentials : Credentials
        API keys used to build the provider profile each turn.
    model : str
        Active model name; replace it between turns with ``set_model``.
    system_prompt : str
        System prompt sent with every request.
    stream : bool
        Request streamed responses.
    on_text : callable
        Receives plain text as it arrives: each streamed increment, or the
        whole text of a buffered response.
    on_tool_call / on_tool_result : callable
        Called before and after each tool invocation.
    indicator : ActivityIndicator
        Started before each request, stopped on the first chunk.
    on_state_change : callable
        Receives every ``LoopState`` transition.
    """

    def __init__(
        self,
        client: LLMClient,
        registry: ToolRegistry,
        credentials: Credentials,
        model: str,
        system_prompt: str = "",
        stream: bool = True,
        openai_api_base: str = "",
        on_text: Callable[[str], None] | None = None,
        on_tool_call: Callable[[ToolInvocation], None] | None = None,
        on_tool_result: Callable[[ToolInvocation, ToolResult], None] | None = None,
        indicator: ActivityIndicator | None = None,
        on_state_change: Callable[[LoopState], None] | None = None,
    ) -> None:
        self.client = client
        self.registry = registry
        self.credentials = credentials
        self.model = model
        self.system_prompt = system_prompt
        self.stream = stream
        self.openai_api_base = openai_api_base
        self.on_text = on_text
        self.on_tool_call = on_tool_call
        self.on_tool_result = on_tool_result
        self.indicator = indicator
        self.on_state_change = on_state_change
        self.conversation = Conversation()
        self.state = LoopState.AWAITING_TURN

    def set_model(self, model: str) -> None:
        self.model = model

    def reset(self) -> None:
        self.conversation.clear()

    def load_snapshot(self, snapshot: Snapshot) -> None:
        self.conversation.replace(snapshot.messages)
        if snapshot.model:
            self.model = snapshot.model

    def _set_state(self, state: LoopState) -> None:
        self.state = state
        logger.debug("Loop state: %s", state.value)
        if self.on_state_change is not None:
            self.on_state_change(state)

    async def run_turn(self, user_input: str) -> TurnResult:
        """
        Process one user message through the full loop.

        Returns once the assistant answers without tool invocations.
        ``TransportError`` and ``DecodeError`` propagate after the state is
        back at ``AWAITING_TURN``; messages committed before the failed
        request stay in the conversation.
        """
        if not user_input.strip():
            return TurnResult(rounds=0, final_text="")

        # One profile per turn; a missing key fails before anything is stored.
        profile = select_profile(self.model, self.credentials, self.openai_api_base)
        self.conversation.append(Message.user_text(user_input))

        rounds = 0
        final_text = ""
        try:
            while True:
                rounds += 1
                try:
                    blocks = await self._request(profile)
                except LLMError as e:
                    logger.warning("Round %d failed: %s", rounds, e)
                    raise

                self._set_state(LoopState.BLOCKS_READY)
                message = Message(role=Role.ASSISTANT, content=blocks)
                self.conversation.append(message)
                final_text = message.text()
                if not self.stream and final_text and self.on_text is not None:
                    self.on_text(final_text)

                invocations = message.tool_invocations()
                if not invocations:
                    break

                self._set_state(LoopState.TOOLS_EXECUTING)
                await self._run_tools(invocations)
        finally:
            self._set_state(LoopState.AWAITING_TURN)

        return TurnResult(rounds=rounds, final_text=final_text)

    async def _request(self, profile: ProviderProfile) -> list[ContentBlock]:
        self._set_state(LoopState.REQUEST_IN_FLIGHT)
        if self.indicator is not None:
            self.indicator.start()
        try:
            blocks = await self.client.complete(
                self.conversation,
                profile,
                self.registry.definitions(),
                system_prompt=self.system_prompt,
                stream=self.stream,
                on_text=self.on_text,
                on_first_chunk=self._on_first_chunk,
            )
        finally:
            if self.indicator is not None:
                self.indicator.stop()

        if not self.stream:
            self._set_state(LoopState.BUFFERED)
        return blocks

    def _on_first_chunk(self) -> None:
        if self.indicator is not None:
            self.indicator.stop()
        self._set_state(LoopState.STREAMING)

    async def _run_tools(self, invocations: list[ToolInvocation]) -> None:
        """
        Run *invocations* in order and append their results as one message.

        On cancellation the invocations not yet answered get a cancelled
        result, so every invocation in the conversation keeps its answer.
        """
        results: list[ToolResultBlock] = []
        try:
            for inv in invocations:
                if self.on_tool_call is not None:
                    self.on_tool_call(inv)
                result = await self._invoke(inv)
                results.append(ToolResultBlock(invocation_id=inv.id, content=result.text))
                if self.on_tool_result is not None:
                    self.on_tool_result(inv, result)
        except asyncio.CancelledError:
            for inv in invocations[len(results):]:
                results.append(
                    ToolResultBlock(invocation_id=inv.id, content=CANCELLED_RESULT)
                )
            self.conversation.append(Message(role=Role.USER, content=results))
            raise

        self.conversation.append(Message(role=Role.USER, content=results))

    async def _invoke(self, inv: ToolInvocation) -> ToolResult:
        try:
            return await self.registry.invoke(inv.name, inv.arguments)
        except ToolDispatchError as e:
            logger.warning("Dispatch of %s failed: %s", inv.name, e)
            return ToolResult(
                success=False,
                content=str(e),
                error=str(e),
                error_code=e.code,
            )
