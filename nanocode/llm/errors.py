"""Exceptions raised by the LLM subsystem."""

from __future__ import annotations


class LLMError(Exception):
    """Base class for failures that end the current round."""


class TransportError(LLMError):
    """
    Connection, DNS, TLS or HTTP status failure.

    *status_code* is ``None`` when no response was received at all.  *body*
    holds whatever bytes of an error response were read.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: bytes = b"",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DecodeError(LLMError):
    """Malformed or dialect-unexpected response JSON."""


class ToolDispatchError(Exception):
    """
    A tool invocation could not be dispatched.

    Never ends a round: the loop turns it into a ``ToolResultBlock`` so the
    model sees the failure.
    """

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code


class ConfigError(Exception):
    """Configuration is missing or unusable."""
