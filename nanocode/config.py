"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < env files < env vars < CLI flags
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from nanocode.llm.errors import ConfigError
from nanocode.llm.profiles import Credentials

DEFAULT_MODEL = "claude-3-7-sonnet-20250219"
OPENROUTER_DEFAULT_MODEL = "anthropic/claude-3-7-sonnet"
GEMINI_DEFAULT_MODEL = "gemini-2.5-flash"


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LLMConfig:
    model: str = ""
    max_tokens: int = 8192
    stream: bool = True
    timeout_seconds: int = 120
    openai_api_base: str = ""
    anthropic_api_key_env: str = "ANTHROPIC_API_KEY"
    openrouter_api_key_env: str = "OPENROUTER_API_KEY"
    gemini_api_key_env: str = "GEMINI_API_KEY"
    openai_api_key_env: str = "OPENAI_API_KEY"


@dataclass
class AgentConfig:
    system_prompt: str = "Concise coding assistant."


@dataclass
class ToolsConfig:
    disabled: list[str] = field(default_factory=list)
    fetch_max_chars: int = 20_000


@dataclass
class LoggingConfig:
    level: str = "WARNING"


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class NanocodeConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    """Walk obj via dotpath and set the final attribute."""
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if target_type is int:
        return int(value)
    if target_type is list:
        return [s.strip() for s in value.split(",") if s.strip()]
    return value


def _build_section(cls: type, raw: dict) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in raw.items() if k in valid_fields}
    return cls(**filtered)


def load_env_file(path: str | Path) -> None:
    """
    Load ``KEY=value`` lines into ``os.environ``.

    Existing variables win.  ``#`` comments and blank lines are skipped and a
    value wrapped in double quotes is unquoted.
    """
    p = Path(path).expanduser()
    if not p.is_file():
        return
    for line in p.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        if len(val) >= 2 and val[0] == '"' and val[-1] == '"':
            val = val[1:-1]
        os.environ.setdefault(key, val)


ENV_FILES = ("~/.nanocoderc", ".nanocoderc", ".env")


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

_ENV_MAP: dict[str, tuple[str, type]] = {
    "NANOCODE_LLM_MODEL":         ("llm.model", str),
    "NANOCODE_LLM_MAX_TOKENS":    ("llm.max_tokens", int),
    "NANOCODE_LLM_STREAM":        ("llm.stream", bool),
    "NANOCODE_LLM_TIMEOUT":       ("llm.timeout_seconds", int),
    "NANOCODE_OPENAI_API_BASE":   ("llm.openai_api_base", str),
    "NANOCODE_SYSTEM_PROMPT":     ("agent.system_prompt", str),
    "NANOCODE_TOOLS_DISABLED":    ("tools.disabled", list),
    "NANOCODE_FETCH_MAX_CHARS":   ("tools.fetch_max_chars", int),
    "NANOCODE_LOG_LEVEL":         ("logging.level", str),
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: dict[str, Any] | None = None,
    env_files: tuple[str, ...] = ENV_FILES,
) -> NanocodeConfig:
    """
    Build a NanocodeConfig by layering sources in precedence order:

        defaults  <  config file  <  env files  <  env vars  <  CLI flags

    Parameters
    ----------
    config_path : path to YAML config file (optional)
    cli_overrides : dict of dotpath -> value CLI flag overrides
    env_files : ``KEY=value`` files loaded into the environment first
    """
    raw: dict[str, Any] = {}

    # --- 1. Config file ---
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.is_file():
            with p.open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
            if not isinstance(raw, dict):
                raise ConfigError(f"{p}: top level must be a mapping")

    cfg = NanocodeConfig(
        llm=_build_section(LLMConfig, raw.get("llm") or {}),
        agent=_build_section(AgentConfig, raw.get("agent") or {}),
        tools=_build_section(ToolsConfig, raw.get("tools") or {}),
        logging=_build_section(LoggingConfig, raw.get("logging") or {}),
    )

    # --- 2. Env files (never override the real environment) ---
    for env_file in env_files:
        load_env_file(env_file)

    # --- 3. Env var overrides ---
    for env_var, (dotpath, target_type) in _ENV_MAP.items():
        val = os.environ.get(env_var)
        if val is not None:
            try:
                _apply_dotpath(cfg, dotpath, _coerce(val, target_type))
            except ValueError as exc:
                raise ConfigError(f"{env_var}: {exc}") from exc

    # The bare MODEL variable is honoured for compatibility.
    if not cfg.llm.model and os.environ.get("MODEL"):
        cfg.llm.model = os.environ["MODEL"]

    # --- 4. CLI flag overrides ---
    if cli_overrides:
        for dotpath, value in cli_overrides.items():
            if value is not None:
                _apply_dotpath(cfg, dotpath, value)

    return cfg


def resolve_credentials(cfg: NanocodeConfig) -> Credentials:
    """
    Read API keys from the environment variables named in ``cfg.llm``.

    Raises ``ConfigError`` when no key at all is available.
    """
    creds = Credentials(
        anthropic=os.environ.get(cfg.llm.anthropic_api_key_env, ""),
        openrouter=os.environ.get(cfg.llm.openrouter_api_key_env, ""),
        gemini=os.environ.get(cfg.llm.gemini_api_key_env, ""),
        openai=os.environ.get(cfg.llm.openai_api_key_env, ""),
    )
    if not creds.any() and not cfg.llm.openai_api_base:
        raise ConfigError(
            "Must set GEMINI_API_KEY, OPENROUTER_API_KEY, ANTHROPIC_API_KEY "
            "or OPENAI_API_KEY in environment."
        )
    return creds


def default_model(cfg: NanocodeConfig, credentials: Credentials) -> str:
    """Pick the starting model when none was configured explicitly."""
    if cfg.llm.model:
        return cfg.llm.model
    if credentials.openrouter:
        return OPENROUTER_DEFAULT_MODEL
    if credentials.gemini and not credentials.anthropic:
        return GEMINI_DEFAULT_MODEL
    if cfg.llm.openai_api_base and not credentials.anthropic:
        raise ConfigError(
            f"Set llm.model (or MODEL) to a model served at {cfg.llm.openai_api_base}"
        )
    return DEFAULT_MODEL
