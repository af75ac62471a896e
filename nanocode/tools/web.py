"""
Network tool: fetch a URL and return its text.
"""
from __future__ import annotations

import re
from typing import Any

import httpx

from nanocode.tools.base import Tool, ToolRisk, fail, ok
from nanocode.types import ToolResult

_SCRIPT_STYLE = re.compile(r"<(script|style)\b.*?</\1>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]+>")
_BLANK_LINES = re.compile(r"\n\s*\n+")


def html_to_text(html: str) -> str:
    text = _SCRIPT_STYLE.sub("", html)
    text = _TAG.sub("", text)
    return _BLANK_LINES.sub("\n\n", text).strip()


class FetchUrlTool(Tool):
    def __init__(
        self,
        max_chars: int = 20_000,
        timeout: float = 30.0,
        client_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._max_chars = max_chars
        self._timeout = timeout
        self._client_transport = client_transport

    @property
    def name(self) -> str:
        return "fetch_url"

    @property
    def description(self) -> str:
        return "Fetch a URL and return its text content"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {"url": {"type": "string"}},
            "required": ["url"],
        }

    @property
    def risk_level(self) -> ToolRisk:
        return ToolRisk.NETWORK

    async def execute(self, url: str = "", **_: Any) -> ToolResult:
        if not url.startswith(("http://", "https://")):
            return fail(f"error: unsupported URL {url!r}")

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._client_transport,
            ) as client:
                resp = await client.get(url)
        except httpx.HTTPError as e:
            return fail(f"error: fetch failed: {e}")

        if not resp.is_success:
            return fail(f"error: HTTP {resp.status_code} fetching {url}")

        text = resp.text
        if "html" in resp.headers.get("content-type", ""):
            text = html_to_text(text)
        if len(text) > self._max_chars:
            text = text[: self._max_chars] + "\n... (truncated)"
        return ok(text or "(empty)")
