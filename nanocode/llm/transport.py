"""
HTTP transport for provider requests.

One ``httpx.AsyncClient`` (and so one TLS connection) per call, a single
POST, no connection reuse and no retries.  A failure is reported once and
the caller decides what to do.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable

import httpx

from nanocode.llm.errors import TransportError
from nanocode.llm.profiles import ProviderProfile

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[bytes], None]


@dataclass
class ResponseEnvelope:
    """A completed exchange: status plus the full body as received."""

    status_code: int
    body: bytes
    streamed: bool = False


def _describe(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.ConnectTimeout):
        return f"Connection timed out: {exc}"
    if isinstance(exc, httpx.ConnectError):
        # DNS and TLS handshake failures surface here as well.
        return f"Could not connect: {exc}"
    if isinstance(exc, httpx.TimeoutException):
        return f"Request timed out: {exc}"
    if isinstance(exc, (httpx.ReadError, httpx.RemoteProtocolError)):
        return f"Connection dropped: {exc}"
    return f"HTTP Error: {exc}"


def _status_error(status_code: int, body: bytes) -> TransportError:
    text = body.decode("utf-8", errors="replace")
    return TransportError(
        f"HTTP Error {status_code}: {text[:1000]}",
        status_code=status_code,
        body=body,
    )


class HttpTransport:
    """
    Sends one request per call.

    Parameters
    ----------
    timeout:
        httpx timeout in seconds, applied to connect and each read.
    client_transport:
        Optional ``httpx.AsyncBaseTransport`` handed to the client; tests pass
        an ``httpx.MockTransport`` here.
    """

    def __init__(
        self,
        timeout: float = 120.0,
        client_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._client_transport = client_transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._client_transport,
        )

    async def send(
        self,
        profile: ProviderProfile,
        body: dict,
        streaming: bool,
        on_chunk: ChunkCallback | None = None,
    ) -> ResponseEnvelope:
        """
        POST *body* to the profile's endpoint.

        With *streaming* set, *on_chunk* receives each byte range as it
        arrives and the accumulated body is returned once the server closes
        the stream.  Non-2xx responses raise ``TransportError`` carrying the
        status and the error body; error bodies never reach *on_chunk*.
        """
        payload = json.dumps(body).encode("utf-8")
        headers = profile.headers()
        logger.debug(
            "POST %s model=%s stream=%s bytes=%d",
            profile.url,
            profile.model,
            streaming,
            len(payload),
        )

        try:
            async with self._client() as client:
                if not streaming:
                    resp = await client.post(profile.url, content=payload, headers=headers)
                    if not resp.is_success:
                        raise _status_error(resp.status_code, resp.content)
                    return ResponseEnvelope(resp.status_code, resp.content)

                async with client.stream(
                    "POST", profile.url, content=payload, headers=headers
                ) as resp:
                    if not resp.is_success:
                        raise _status_error(resp.status_code, await resp.aread())

                    parts: list[bytes] = []
                    async for chunk in resp.aiter_bytes():
                        if not chunk:
                            continue
                        parts.append(chunk)
                        if on_chunk is not None:
                            on_chunk(chunk)
                    return ResponseEnvelope(
                        resp.status_code, b"".join(parts), streamed=True
                    )
        except httpx.HTTPError as exc:
            logger.warning("Request to %s failed: %s", profile.endpoint_host, exc)
            raise TransportError(_describe(exc)) from exc
