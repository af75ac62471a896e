"""
Main CLI application for nanocode.

Usage:
    nanocode chat [--model NAME] [--config PATH] [--no-stream] [--verbose]
    nanocode tools list
    nanocode config show
    nanocode version
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from nanocode.config import (
    NanocodeConfig,
    default_model,
    load_config,
    resolve_credentials,
)
from nanocode.llm.errors import ConfigError

app = typer.Typer(name="nanocode", help="nanocode - a small terminal coding assistant")
tools_app = typer.Typer(help="Tool management")
config_app = typer.Typer(help="Configuration management")

app.add_typer(tools_app, name="tools")
app.add_typer(config_app, name="config")

console = Console()
err_console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_config_path() -> Path | None:
    """Find config file in standard locations."""
    candidates = [
        Path.cwd() / "nanocode.yaml",
        Path.cwd() / "nanocode.yml",
        Path.home() / ".config" / "nanocode" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=False)],
        force=True,
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load(config: Path | None, overrides: dict | None = None) -> NanocodeConfig:
    try:
        return load_config(config or _get_config_path(), cli_overrides=overrides)
    except ConfigError as e:
        err_console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(1)


def _build_chat(cfg: NanocodeConfig):
    """Wire up the full stack for chat."""
    from nanocode.cli.chat import ChatHandler
    from nanocode.cli.output import OutputFormatter
    from nanocode.llm.client import LLMClient
    from nanocode.llm.transport import HttpTransport
    from nanocode.orchestrator.core import Orchestrator
    from nanocode.orchestrator.indicator import ActivityIndicator
    from nanocode.tools.builtin import default_registry

    credentials = resolve_credentials(cfg)
    registry = default_registry(
        disabled=cfg.tools.disabled, fetch_max_chars=cfg.tools.fetch_max_chars
    )
    client = LLMClient(
        transport=HttpTransport(timeout=float(cfg.llm.timeout_seconds)),
        max_tokens=cfg.llm.max_tokens,
    )

    formatter = OutputFormatter(console)
    orchestrator = Orchestrator(
        client=client,
        registry=registry,
        credentials=credentials,
        model=default_model(cfg, credentials),
        system_prompt=cfg.agent.system_prompt,
        stream=cfg.llm.stream,
        openai_api_base=cfg.llm.openai_api_base,
        indicator=ActivityIndicator(formatter.render_activity, formatter.clear_activity),
    )
    return ChatHandler(orchestrator=orchestrator, console=console)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def chat(
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    no_stream: bool = typer.Option(False, "--no-stream", help="Disable streamed responses"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Start an interactive chat session."""
    cfg = _load(
        config,
        {
            "llm.model": model,
            "llm.stream": False if no_stream else None,
            "logging.level": "DEBUG" if verbose else None,
        },
    )
    _setup_logging(cfg.logging.level)

    try:
        handler = _build_chat(cfg)
    except ConfigError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    asyncio.run(handler.run_loop())


@tools_app.command("list")
def tools_list(
    max_risk: Optional[str] = typer.Option(None, help="Max risk level filter"),
):
    """List built-in tools."""
    from nanocode.cli.output import OutputFormatter
    from nanocode.tools.base import ToolRisk
    from nanocode.tools.builtin import default_registry

    cfg = _load(None)
    registry = default_registry(disabled=cfg.tools.disabled)

    risk_filter = None
    if max_risk:
        risk_map = {r.name: r for r in ToolRisk}
        risk_filter = risk_map.get(max_risk.upper())
        if risk_filter is None:
            err_console.print(f"[red]Unknown risk level:[/red] {max_risk}")
            raise typer.Exit(1)

    OutputFormatter(console).format_tool_list(registry.list(max_risk=risk_filter))


@config_app.command("show")
def config_show(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
):
    """Show effective config."""
    from nanocode.cli.output import OutputFormatter

    cfg = _load(config)
    OutputFormatter(console).format_config(cfg.to_dict())


@app.command()
def version():
    """Show version."""
    console.print("nanocode v0.1.0")


def main():
    app()


if __name__ == "__main__":
    main()
