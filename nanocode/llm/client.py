"""
LLM client -- one request/response exchange, normalized to content blocks.

The client is the only piece the agent loop talks to when it needs a model
response.  It:

  1. Encodes the conversation for the profile's dialect.
  2. Sends it through the transport, streamed or buffered.
  3. Reassembles the event stream (or decodes the buffered body) into an
     ordered ``ContentBlock`` list.

Transport and decode failures propagate as ``TransportError`` /
``DecodeError``; nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Callable

from nanocode.llm.codec import (
    DEFAULT_MAX_TOKENS,
    ToolDefinition,
    build_tool_schemas,
    decode_response,
    encode_request,
)
from nanocode.llm.profiles import ProviderProfile
from nanocode.llm.stream_reassembler import StreamReassembler, TextCallback
from nanocode.llm.transport import HttpTransport
from nanocode.llm.types import ContentBlock, Conversation

logger = logging.getLogger(__name__)


class LLMClient:
    def __init__(
        self,
        transport: HttpTransport | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self.transport = transport or HttpTransport()
        self.max_tokens = max_tokens

    async def complete(
        self,
        conversation: Conversation,
        profile: ProviderProfile,
        tools: list[ToolDefinition],
        system_prompt: str = "",
        stream: bool = True,
        on_text: TextCallback | None = None,
        on_first_chunk: Callable[[], None] | None = None,
    ) -> list[ContentBlock]:
        """
        Run one exchange and return the assistant's content blocks.

        *on_text* receives streamed plain text as it arrives.  *on_first_chunk*
        fires once, when the first event of a streamed body is decoded.
        """
        body = encode_request(
            conversation,
            profile,
            build_tool_schemas(tools, profile.dialect),
            system_prompt=system_prompt,
            max_tokens=self.max_tokens,
            stream=stream,
        )
        logger.info(
            "REQUEST: model=%s dialect=%s tools=%d messages=%d stream=%s",
            profile.model,
            profile.dialect.value,
            len(tools),
            len(body["messages"]),
            stream,
        )

        if not stream:
            envelope = await self.transport.send(profile, body, streaming=False)
            return decode_response(envelope.body, profile)

        reassembler = StreamReassembler(
            profile.dialect, on_text=on_text, on_first_event=on_first_chunk
        )
        await self.transport.send(
            profile, body, streaming=True, on_chunk=reassembler.feed
        )
        blocks = reassembler.finish()
        logger.debug("Reassembled %d block(s)", len(blocks))
        return blocks
