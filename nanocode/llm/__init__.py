"""LLM subsystem -- content model, provider profiles, wire codec and streaming."""

from nanocode.llm.client import LLMClient
from nanocode.llm.errors import DecodeError, LLMError, TransportError
from nanocode.llm.profiles import Credentials, Dialect, ProviderProfile, select_profile
from nanocode.llm.stream_reassembler import StreamReassembler
from nanocode.llm.transport import HttpTransport
from nanocode.llm.types import (
    ContentBlock,
    Conversation,
    Message,
    Role,
    TextBlock,
    ToolInvocation,
    ToolResultBlock,
)

__all__ = [
    "ContentBlock",
    "Conversation",
    "Credentials",
    "DecodeError",
    "Dialect",
    "HttpTransport",
    "LLMClient",
    "LLMError",
    "Message",
    "ProviderProfile",
    "Role",
    "StreamReassembler",
    "TextBlock",
    "ToolInvocation",
    "ToolResultBlock",
    "TransportError",
    "select_profile",
]
