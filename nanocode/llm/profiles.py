"""
Provider profiles: which host, path, auth scheme and wire dialect a model
name maps to.

Exactly two dialects exist.  Adding a third is a code change to this module,
the codec and the stream reassembler.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

from nanocode.llm.errors import ConfigError

ANTHROPIC_VERSION = "2023-06-01"


class Dialect(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI_COMPAT = "openai_compat"


class AuthScheme(str, Enum):
    X_API_KEY = "x-api-key"
    BEARER = "bearer"


@dataclass(frozen=True)
class ProviderProfile:
    dialect: Dialect
    endpoint_host: str
    endpoint_path: str
    auth_scheme: AuthScheme
    model: str
    api_key: str = ""
    scheme: str = "https"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.endpoint_host}{self.endpoint_path}"

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_scheme is AuthScheme.X_API_KEY:
            headers["x-api-key"] = self.api_key
        elif self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if self.dialect is Dialect.ANTHROPIC:
            headers["anthropic-version"] = ANTHROPIC_VERSION
        return headers


@dataclass(frozen=True)
class Credentials:
    anthropic: str = ""
    openrouter: str = ""
    gemini: str = ""
    openai: str = ""

    def any(self) -> bool:
        return bool(self.anthropic or self.openrouter or self.gemini or self.openai)


_OPENAI_PREFIXES = ("gpt-", "o1", "o3", "o4")


def _require(key: str, env_hint: str, model: str) -> str:
    if not key:
        raise ConfigError(f"Model {model!r} needs {env_hint} to be set")
    return key


def _split_base(base: str) -> tuple[str, str, str]:
    parts = urlsplit(base if "://" in base else f"https://{base}")
    path = parts.path.rstrip("/") + "/chat/completions"
    return parts.scheme or "https", parts.netloc, path


def select_profile(
    model: str,
    credentials: Credentials,
    openai_api_base: str = "",
) -> ProviderProfile:
    """
    Map *model* to a ``ProviderProfile``.

    Routing order:
      - ``vendor/model`` names go to OpenRouter (Anthropic dialect, bearer).
      - ``gemini*`` / ``learnlm*`` go to Google's OpenAI-compatible endpoint.
      - With *openai_api_base* configured, every other model except
        ``claude*`` goes to that server.
      - ``gpt-*`` / ``o1*`` / ``o3*`` / ``o4*`` go to OpenAI.
      - Anything else goes to Anthropic directly.

    Raises ``ConfigError`` if the key for the chosen route is missing.
    """
    if "/" in model:
        return ProviderProfile(
            dialect=Dialect.ANTHROPIC,
            endpoint_host="openrouter.ai",
            endpoint_path="/api/v1/messages",
            auth_scheme=AuthScheme.BEARER,
            model=model,
            api_key=_require(credentials.openrouter, "OPENROUTER_API_KEY", model),
        )

    if "gemini" in model or "learnlm" in model:
        return ProviderProfile(
            dialect=Dialect.OPENAI_COMPAT,
            endpoint_host="generativelanguage.googleapis.com",
            endpoint_path="/v1beta/openai/chat/completions",
            auth_scheme=AuthScheme.BEARER,
            model=model,
            api_key=_require(credentials.gemini, "GEMINI_API_KEY", model),
        )

    if openai_api_base and not model.startswith("claude"):
        # Local OpenAI-compatible servers usually run without a key.
        scheme, host, path = _split_base(openai_api_base)
        return ProviderProfile(
            dialect=Dialect.OPENAI_COMPAT,
            endpoint_host=host,
            endpoint_path=path,
            auth_scheme=AuthScheme.BEARER,
            model=model,
            api_key=credentials.openai,
            scheme=scheme,
        )

    if model.startswith(_OPENAI_PREFIXES):
        return ProviderProfile(
            dialect=Dialect.OPENAI_COMPAT,
            endpoint_host="api.openai.com",
            endpoint_path="/v1/chat/completions",
            auth_scheme=AuthScheme.BEARER,
            model=model,
            api_key=_require(credentials.openai, "OPENAI_API_KEY", model),
        )

    return ProviderProfile(
        dialect=Dialect.ANTHROPIC,
        endpoint_host="api.anthropic.com",
        endpoint_path="/v1/messages",
        auth_scheme=AuthScheme.X_API_KEY,
        model=model,
        api_key=_require(credentials.anthropic, "ANTHROPIC_API_KEY", model),
    )
