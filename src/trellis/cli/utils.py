"""
CLI utility helpers -- target loading and output formatting.
"""

from __future__ import annotations

import importlib
import json
from collections.abc import Iterable
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from trellis.framework.handler import HandlerBuilder, HandlerDescriptor
from trellis.framework.metadata import HandlerMetadata
from trellis.framework.registry import HandlerRegistry

console = Console()
err_console = Console(stderr=True)


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    err_console.print(f"[bold red]Error[/bold red]: {message}")
    raise typer.Exit(code=1)


# ── Target loading ───────────────────────────────────────────────────────


def load_target(target: str) -> Any:
    """Import ``module:attribute`` and return the attribute."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise typer.BadParameter(f"expected 'module:attribute', got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"cannot import {module_name!r}: {e}") from e
    obj: Any = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise typer.BadParameter(f"{module_name!r} has no attribute {attr!r}") from e
    return obj


def collect_descriptors(obj: Any) -> list[HandlerDescriptor]:
    """
    Flatten a target into descriptors.

    Accepts a HandlerRegistry, a descriptor, a builder (finalized here), or
    any iterable of those.
    """
    if isinstance(obj, HandlerRegistry):
        return obj.list_handlers()
    if isinstance(obj, HandlerDescriptor):
        return [obj]
    if isinstance(obj, HandlerBuilder):
        return [obj.build()]
    if isinstance(obj, Iterable) and not isinstance(obj, str | bytes):
        descriptors: list[HandlerDescriptor] = []
        for item in obj:
            descriptors.extend(collect_descriptors(item))
        return descriptors
    raise typer.BadParameter(f"not a handler, registry or list of handlers: {type(obj).__name__}")


# ── Output helpers ───────────────────────────────────────────────────────


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_metadata_table(snapshots: list[HandlerMetadata], *, title: str = "") -> None:
    """Render metadata snapshots as a Rich table."""
    if not snapshots:
        console.print("[dim]No handlers.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in ("kind", "identifier", "label", "versions", "validation", "hooks", "tags"):
        table.add_column(col, overflow="fold")
    for meta in snapshots:
        groups = [name for name, enabled in meta.validation.model_dump().items() if enabled]
        table.add_row(
            meta.kind,
            meta.identifier,
            meta.label or "",
            ", ".join(meta.versions) or ("base" if meta.has_base_handler else ""),
            ", ".join(groups),
            str(meta.before_hooks),
            ", ".join(meta.tags),
        )
    console.print(table)
