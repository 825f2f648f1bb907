"""Shared utilities used across CLI command modules."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from ..components import DEFAULT_REGISTRY
from ..config import get_settings


def _configure_logging(verbose: bool) -> None:
    """Configure logging for worldable."""
    level = logging.DEBUG if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("worldable").setLevel(level)

    # Suppress noisy third-party loggers
    for noisy_logger in ["httpcore", "httpcore.http11", "httpcore.connection", "httpx"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)


def _resolve_db_path(db_path: Optional[str] = None) -> Path:
    """Resolve the database path from --db, the group-level --db, or settings."""
    if db_path is not None:
        return Path(db_path)
    ctx = click.get_current_context(silent=True)
    while ctx is not None:
        if ctx.obj and ctx.obj.get("db_path"):
            return Path(ctx.obj["db_path"])
        ctx = ctx.parent
    return Path(get_settings().db_path)


def _selected_components(options: dict[str, bool]) -> list[str]:
    """Component flags that were passed, in registry order."""
    return [c for c in DEFAULT_REGISTRY.components if options.get(c)]


def _prompt_components(action: str) -> list[str]:
    """Ask for a comma-separated component list ("all" selects everything)."""
    click.echo(f"No components specified. Please select components to {action}:", err=True)
    click.echo(f"  all, {', '.join(DEFAULT_REGISTRY.components)}", err=True)
    answer = click.prompt("Components (comma-separated)", default="all", err=True)
    chosen = [part.strip().lower() for part in answer.split(",") if part.strip()]
    if "all" in chosen:
        return ["all"]
    return chosen


def _component_options(action: str):
    """Decorator adding one ``--<component>`` flag per registered component."""

    def decorator(func):
        for component in reversed(DEFAULT_REGISTRY.components):
            func = click.option(f"--{component}", component, is_flag=True, help=f"{action} {component}")(func)
        return func

    return decorator
