"""Preview event schema and the process-wide emit functions.

Events carry a UTC ``...Z`` timestamp, a level, a type and a free-form
context.  ``emit()`` and its level shortcuts write through the sink set
up by ``set_project_dir``; without one they do nothing.  They never
raise: a failing write is reported on stderr at most once a minute.
"""

from __future__ import annotations

import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    preview_rendered = "preview_rendered"
    preview_cell_error = "preview_cell_error"
    preview_too_many_variables = "preview_too_many_variables"

    directive_skipped = "directive_skipped"
    range_truncated = "range_truncated"

    document_opened = "document_opened"
    document_changed = "document_changed"
    document_closed = "document_closed"


# Error codes
CELL_EVAL_ERROR = "cell_eval_error"
TOO_MANY_VARIABLES = "too_many_variables"
DIRECTIVE_MALFORMED = "directive_malformed"
RANGE_TRUNCATED = "range_truncated"


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class PreviewEvent(BaseModel):
    """One line of the event log."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


# ---------------------------------------------------------------------------
# Context hygiene
# ---------------------------------------------------------------------------

_MAX_VALUE_LEN = 256
_TRUNCATION_SUFFIX = "...[truncated]"


def truncate_context(context: dict[str, Any]) -> dict[str, Any]:
    """Copy *context*, cutting strings longer than 256 characters.

    Dict values are handled recursively and list values element-wise, so
    a pasted document or a huge expression cannot bloat the log.
    """
    return {key: _shorten(value) for key, value in context.items()}


def _shorten(value: Any) -> Any:
    if isinstance(value, dict):
        return truncate_context(value)
    if isinstance(value, list):
        return [_shorten(item) for item in value]
    if isinstance(value, str) and len(value) > _MAX_VALUE_LEN:
        return value[:_MAX_VALUE_LEN] + _TRUNCATION_SUFFIX
    return value


# Context keys every event of a type must carry.  An event missing one is
# still written, as a warning listing the missing keys.
_REQUIRED_CONTEXT: dict[EventType, frozenset[str]] = {
    EventType.preview_rendered: frozenset({"expression"}),
    EventType.preview_cell_error: frozenset({"expression"}),
    EventType.preview_too_many_variables: frozenset({"expression"}),
    EventType.directive_skipped: frozenset({"line"}),
    EventType.range_truncated: frozenset({"variable"}),
    EventType.document_opened: frozenset({"uri"}),
    EventType.document_changed: frozenset({"uri"}),
    EventType.document_closed: frozenset({"uri"}),
}


def _check_attribution(event: PreviewEvent) -> PreviewEvent:
    missing = _REQUIRED_CONTEXT.get(EventType(event.event_type), frozenset()) - set(event.context)
    if not missing:
        return event
    context = {**event.context, "_missing_attribution": sorted(missing)}
    return event.model_copy(update={"level": EventLevel.warning, "context": context})


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def make_document_event(
    event_type: EventType,
    message: str,
    *,
    uri: str,
    version: int | None = None,
    level: EventLevel = EventLevel.info,
    extra: dict[str, Any] | None = None,
) -> PreviewEvent:
    """Event attributed to a document by its URI (and version, if known)."""
    context: dict[str, Any] = {"uri": uri}
    if version is not None:
        context["version"] = version
    context.update(extra or {})
    return PreviewEvent(level=level, event_type=event_type, message=message, context=context)


def make_preview_event(
    event_type: EventType,
    level: EventLevel,
    message: str,
    *,
    expression: str,
    variables: list[str] | None = None,
    error_code: str | None = None,
    extra: dict[str, Any] | None = None,
) -> PreviewEvent:
    """Event attributed to one preview by its raw expression text."""
    context: dict[str, Any] = {"expression": expression}
    if variables is not None:
        context["variables"] = list(variables)
    context.update(extra or {})
    return PreviewEvent(
        level=level,
        event_type=event_type,
        message=message,
        context=context,
        error_code=error_code,
    )


# ---------------------------------------------------------------------------
# Process-wide sink
# ---------------------------------------------------------------------------

_sink: Any = None  # EventSink | None
_project_dir: Path | None = None


def set_project_dir(project_dir: Any) -> None:
    """Send subsequent events to ``<project_dir>/logs``.

    ``logging_fsync`` and ``logging_tail_bytes`` are taken from the
    project's ``formula_preview.yaml``.  An unreadable config still
    enables logging, with default options.
    """
    global _sink, _project_dir
    from formula_preview.logging.sink import EventSink
    from formula_preview.project import load_preview_config

    _project_dir = Path(project_dir)

    options: dict[str, Any] = {}
    try:
        cfg = load_preview_config(_project_dir)
        options["fsync"] = bool(cfg.get("logging_fsync", False))
        if cfg.get("logging_tail_bytes") is not None:
            options["tail_bytes"] = int(cfg["logging_tail_bytes"])
    except (OSError, ValueError, TypeError) as exc:
        _stderr_warning(f"could not read logging options: {exc}")

    _sink = EventSink(_project_dir, **options)


def reset_sink() -> None:
    """Stop logging; later events are discarded."""
    global _sink, _project_dir
    _sink = None
    _project_dir = None


_STDERR_INTERVAL_SECS = 60.0
_last_stderr_ts: float | None = None


def _stderr_warning(msg: str) -> None:
    global _last_stderr_ts
    now = time.monotonic()
    if _last_stderr_ts is not None and now - _last_stderr_ts < _STDERR_INTERVAL_SECS:
        return
    _last_stderr_ts = now
    try:
        print(f"[formula-preview] {msg}", file=sys.stderr)
    except (OSError, ValueError):
        pass


# ---------------------------------------------------------------------------
# Emit
# ---------------------------------------------------------------------------


def emit(event: PreviewEvent, *, doc_id: str | None = None) -> None:
    """Log *event* globally and, given *doc_id*, in that document's log.

    Never raises.
    """
    sink = _sink
    if sink is None:
        return
    try:
        event = event.model_copy(update={"context": truncate_context(event.context)})
        sink.write(_check_attribution(event), doc_id=doc_id)
    except Exception:
        _stderr_warning(f"logging failed: {traceback.format_exc()}")


def emit_warning(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
    doc_id: str | None = None,
) -> None:
    event = PreviewEvent(
        level=EventLevel.warning,
        event_type=event_type,
        message=message,
        context=context or {},
        error_code=error_code,
    )
    emit(event, doc_id=doc_id)
