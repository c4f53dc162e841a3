"""Structured event logging for formula-preview.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from formula_preview.logging.events import (
    EventLevel,
    EventType,
    PreviewEvent,
    emit,
    emit_warning,
    make_document_event,
    make_preview_event,
    reset_sink,
    set_project_dir,
    truncate_context,
)
from formula_preview.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "PreviewEvent",
    "emit",
    "emit_warning",
    "make_document_event",
    "make_preview_event",
    "reset_sink",
    "set_project_dir",
    "truncate_context",
]
