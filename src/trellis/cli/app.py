"""
Root Typer application for the trellis CLI.

Commands load declarations from a ``module:attribute`` target, so any
importable module that builds a HandlerRegistry (or a list of handlers)
can be documented without starting a server.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from typer import Typer

from trellis.cli.utils import collect_descriptors, console, fail, load_target, print_json, print_metadata_table
from trellis.core.errors import TrellisError
from trellis.core.settings import get_settings
from trellis.framework.handler import HandlerDescriptor
from trellis.framework.logging import configure_logging
from trellis.framework.metadata import MetadataReporter
from trellis.framework.openapi import SpecEmitter

app = Typer(
    name="trellis",
    help="trellis -- declarative request handlers: inspect and document declarations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from trellis import __version__

        typer.echo(f"trellis {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """trellis CLI -- inspect handlers and generate OpenAPI documents."""
    configure_logging()


# ── Commands ─────────────────────────────────────────────────────────────


def _descriptors(target: str) -> list[HandlerDescriptor]:
    """Load ``target`` and flatten it; incomplete builders exit with status 1."""
    obj = load_target(target)
    try:
        return collect_descriptors(obj)
    except TrellisError as e:
        fail(e.message)


@app.command("openapi")
def openapi_cmd(
    target: str = typer.Argument(..., help="module:attribute naming a registry or handlers"),
    out: Path | None = typer.Option(None, "--out", "-o", help="Write to this file instead of stdout"),
    title: str | None = typer.Option(None, "--title", help="info.title (defaults to settings)"),
    api_version: str | None = typer.Option(None, "--api-version", help="info.version (defaults to settings)"),
) -> None:
    """Generate the OpenAPI document for every declared route."""
    settings = get_settings()
    descriptors = _descriptors(target)
    try:
        document = SpecEmitter().to_document(
            descriptors,
            title=title or settings.openapi_title,
            version=api_version or settings.openapi_version,
            prefix=settings.api_prefix,
        )
    except TrellisError as e:
        fail(e.message)

    if out is None:
        print_json(document)
        return
    out.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
    console.print(f"[green]Wrote[/green] {len(document['paths'])} path(s) to {out}")


@app.command("inspect")
def inspect_cmd(
    target: str = typer.Argument(..., help="module:attribute naming a registry or handlers"),
    kind: str | None = typer.Option(None, "--kind", "-k", help="Only show this kind (route, event, cron, task)"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Show a metadata snapshot of every declared handler."""
    reporter = MetadataReporter()
    snapshots = [reporter.snapshot(d) for d in _descriptors(target)]
    if kind is not None:
        snapshots = [s for s in snapshots if s.kind == kind.lower()]

    if as_json:
        print_json([s.model_dump() for s in snapshots])
        return
    print_metadata_table(snapshots, title="Handlers")
