"""Command-line interface for formula-preview."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import click

from formula_preview import __version__


@click.group()
@click.version_option(version=__version__, prog_name="formula-preview")
def main() -> None:
    """formula-preview -- tabulate formula(...) expressions over sample grids."""


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

_RANGE_OPT_RE = re.compile(r"^(?P<variable>[^=]+)=(?P<start>-?\d+):(?P<end>-?\d+)(?::(?P<step>-?\d+))?$")


def _parse_range_options(ranges: tuple[str, ...]) -> dict[str, Any]:
    from formula_preview.directives import RangeDirective

    directives: dict[str, RangeDirective] = {}
    for item in ranges:
        m = _RANGE_OPT_RE.match(item.strip())
        if not m:
            raise click.ClickException(
                f"Invalid --range format: {item!r}. Use name=start:end[:step]."
            )
        variable = m.group("variable").strip()
        directives[variable] = RangeDirective(
            variable=variable,
            start=int(m.group("start")),
            end=int(m.group("end")),
            step=int(m.group("step")) if m.group("step") else 1,
        )
    return directives


def _load_config(project: str | None) -> dict[str, Any]:
    from formula_preview.logging.events import set_project_dir
    from formula_preview.project import load_preview_config, resolve_config

    if project is None:
        return resolve_config()
    project_dir = Path(project)
    set_project_dir(project_dir)
    try:
        return resolve_config(load_preview_config(project_dir))
    except ValueError as exc:
        raise click.ClickException(str(exc))


def _read_text(file: str) -> str:
    return Path(file).read_text(encoding="utf-8")


_PROJECT_OPTION = click.option(
    "--project",
    default=None,
    type=click.Path(exists=True, file_okay=False),
    help="Directory holding formula_preview.yaml (also enables the event log).",
)


# ---------------------------------------------------------------------------
# Scan commands
# ---------------------------------------------------------------------------


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--marker", default="formula", help="Marker word preceding the formula.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def spans(file: str, marker: str, as_json: bool) -> None:
    """List formula spans found in FILE."""
    from formula_preview.spans import locate_formula_spans, offset_to_position

    text = _read_text(file)
    found = locate_formula_spans(text, marker)

    if as_json:
        out = [
            {"start": s.start, "end": s.end, "text": s.text(text)}
            for s in found
        ]
        click.echo(json.dumps(out, indent=2))
        return

    if not found:
        click.echo("No formulas found.")
        return
    for s in found:
        line, col = offset_to_position(text, s.start)
        click.echo(f"  {line + 1}:{col + 1:<6} [{s.start}, {s.end})  {s.text(text)}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def directives(file: str, as_json: bool) -> None:
    """List range directives found in FILE."""
    from formula_preview.directives import parse_range_directives

    found = parse_range_directives(_read_text(file))

    if as_json:
        click.echo(json.dumps({k: v.model_dump() for k, v in found.items()}, indent=2))
        return

    if not found:
        click.echo("No range directives found.")
        return
    for name, d in found.items():
        click.echo(f"  {name:20s} range({d.start}, {d.end}, {d.step})  line {d.line}")


# ---------------------------------------------------------------------------
# Preview commands
# ---------------------------------------------------------------------------


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--offset", type=int, default=None, help="Character offset inside a formula.")
@click.option("--line", type=int, default=None, help="1-based line inside a formula (with --col).")
@click.option("--col", type=int, default=None, help="1-based column inside a formula (with --line).")
@_PROJECT_OPTION
def preview(file: str, offset: int | None, line: int | None, col: int | None, project: str | None) -> None:
    """Render previews for the formulas in FILE.

    With a position, only the formula containing it is shown.
    """
    from formula_preview.documents import DocumentStore
    from formula_preview.spans import offset_to_position, position_to_offset

    if offset is not None and (line is not None or col is not None):
        raise click.ClickException("Use either --offset or --line/--col, not both.")
    if (line is None) != (col is None):
        raise click.ClickException("--line and --col must be given together.")

    text = _read_text(file)
    try:
        store = DocumentStore(_load_config(project))
    except ValueError as exc:
        raise click.ClickException(str(exc))
    uri = Path(file).resolve().as_uri()
    store.on_open(uri, text)

    if line is not None and col is not None:
        offset = position_to_offset(text, line - 1, col - 1)

    if offset is not None:
        result = store.hover(uri, offset)
        if result is None:
            raise click.ClickException(f"No formula at offset {offset}.")
        click.echo(result)
        return

    previews = store.previews(uri)
    if not previews:
        click.echo("No formulas found.")
        return
    for i, (span, rendered) in enumerate(previews):
        if i:
            click.echo("")
        ln, ch = offset_to_position(text, span.start)
        click.echo(f"formula({span.text(text)})  @ {ln + 1}:{ch + 1}")
        click.echo(rendered)


@main.command("eval")
@click.argument("expression")
@click.option("--range", "ranges", multiple=True, help="Sample range as name=start:end[:step].")
@_PROJECT_OPTION
def eval_cmd(expression: str, ranges: tuple[str, ...], project: str | None) -> None:
    """Render a preview of a bare EXPRESSION."""
    from formula_preview.preview import render_preview

    directives_ = _parse_range_options(ranges)
    click.echo(render_preview(expression, directives_, _load_config(project)))


# ---------------------------------------------------------------------------
# Init
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", type=click.Path(file_okay=False))
def init(directory: str) -> None:
    """Write a default formula_preview.yaml into DIRECTORY."""
    from formula_preview.project import scaffold_config

    try:
        path = scaffold_config(Path(directory))
    except FileExistsError as e:
        raise click.ClickException(str(e))
    click.echo(f"Created {path}")


# ---------------------------------------------------------------------------
# Serve
# ---------------------------------------------------------------------------


@main.command()
@_PROJECT_OPTION
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@click.option("--port", type=int, default=None, help="Port (auto-select if omitted).")
def serve(project: str | None, host: str, port: int | None) -> None:
    """Run the local preview HTTP service."""
    import socket

    import uvicorn

    from formula_preview.ui.server import create_app

    try:
        app = create_app(Path(project) if project else None)
    except ValueError as exc:
        raise click.ClickException(str(exc))

    if port is None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind((host, 0))
            port = s.getsockname()[1]

    click.echo(f"Serving previews at http://{host}:{port}")
    click.echo("Press Ctrl+C to stop")

    try:
        uvicorn.run(app, host=host, port=port, log_level="warning")
    except KeyboardInterrupt:
        click.echo("\nStopped.")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command("events")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--uri", default=None, help="Filter by document URI.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
def events_cmd(
    directory: str,
    level: str | None,
    event_type: str | None,
    uri: str | None,
    limit: int,
) -> None:
    """Show structured event log for DIRECTORY."""
    from formula_preview.logging.sink import EventSink

    sink = EventSink(Path(directory))
    events = sink.read_global(level=level, event_type=event_type, uri=uri, limit=limit)

    if not events:
        click.echo("No events found.")
        return

    for evt in events:
        ts = evt.get("ts", "")
        lvl = evt.get("level", "").upper()
        etype = evt.get("event_type", "")
        msg = evt.get("message", "")
        err = evt.get("error_code")
        line = f"[{ts}] {lvl:7s} {etype}: {msg}"
        if err:
            line += f"  ({err})"
        click.echo(line)


if __name__ == "__main__":
    main()
