"""Per-document cache of formula spans and range directives.

The store is owned by whoever hosts the engine (CLI, HTTP service,
editor bridge).  Each cache entry is rebuilt from the full text and
swapped in with a single assignment, so readers always see either the
old or the new entry, never a mix.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from formula_preview.directives import RangeDirective, parse_range_directives
from formula_preview.logging.events import EventType, emit, make_document_event
from formula_preview.preview import render_preview
from formula_preview.project import resolve_config
from formula_preview.spans import FormulaSpan, locate_formula_spans, span_at
from formula_preview.utils.hash import document_id


class DocumentCache(BaseModel):
    """Scan result for one version of one document."""

    uri: str
    version: int = 0
    text: str
    spans: list[FormulaSpan] = Field(default_factory=list)
    directives: dict[str, RangeDirective] = Field(default_factory=dict)

    @property
    def doc_id(self) -> str:
        return document_id(self.uri)

    def span_text(self, span: FormulaSpan) -> str:
        return span.text(self.text)


def build_document_cache(uri: str, text: str, version: int = 0, marker: str = "formula") -> DocumentCache:
    """Scan *text* once for spans and directives."""
    return DocumentCache(
        uri=uri,
        version=version,
        text=text,
        spans=locate_formula_spans(text, marker),
        directives=parse_range_directives(text, doc_id=document_id(uri)),
    )


class DocumentStore:
    """Document caches keyed by URI, with open/change/close hooks."""

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config = resolve_config(config)
        self._caches: dict[str, DocumentCache] = {}

    def __contains__(self, uri: object) -> bool:
        return uri in self._caches

    def __len__(self) -> int:
        return len(self._caches)

    def uris(self) -> list[str]:
        return sorted(self._caches)

    def get(self, uri: str) -> DocumentCache | None:
        return self._caches.get(uri)

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def on_open(self, uri: str, text: str, version: int = 0) -> DocumentCache:
        cache = self._rebuild(uri, text, version)
        self._emit(EventType.document_opened, "Document opened", cache)
        return cache

    def on_change(self, uri: str, text: str, version: int | None = None) -> DocumentCache:
        """Recompute and replace the cache for *uri*.

        A change for an unknown document behaves like an open.  Without
        an explicit *version* the previous version is incremented.
        """
        previous = self._caches.get(uri)
        if version is None:
            version = previous.version + 1 if previous is not None else 0
        cache = self._rebuild(uri, text, version)
        self._emit(EventType.document_changed, "Document changed", cache)
        return cache

    def on_close(self, uri: str) -> bool:
        """Drop the cache for *uri*; ``True`` if one existed."""
        cache = self._caches.pop(uri, None)
        if cache is None:
            return False
        self._emit(EventType.document_closed, "Document closed", cache)
        return True

    def clear(self) -> None:
        self._caches.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def span_at(self, uri: str, offset: int) -> FormulaSpan | None:
        cache = self._caches.get(uri)
        if cache is None:
            return None
        return span_at(cache.spans, offset)

    def hover(self, uri: str, offset: int) -> str | None:
        """Preview text for the span containing *offset*.

        Returns ``None`` for an unknown document or when no span
        contains the offset.
        """
        cache = self._caches.get(uri)
        if cache is None:
            return None
        span = span_at(cache.spans, offset)
        if span is None:
            return None
        return self._render(cache, span)

    def previews(self, uri: str) -> list[tuple[FormulaSpan, str]]:
        """Preview text for every span of *uri*, in document order."""
        cache = self._caches.get(uri)
        if cache is None:
            return []
        return [(span, self._render(cache, span)) for span in cache.spans]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _rebuild(self, uri: str, text: str, version: int) -> DocumentCache:
        cache = build_document_cache(uri, text, version, marker=self.config["marker"])
        self._caches[uri] = cache
        return cache

    def _render(self, cache: DocumentCache, span: FormulaSpan) -> str:
        return render_preview(
            cache.span_text(span),
            cache.directives,
            self.config,
            doc_id=cache.doc_id,
        )

    def _emit(self, event_type: EventType, message: str, cache: DocumentCache) -> None:
        emit(
            make_document_event(
                event_type,
                message,
                uri=cache.uri,
                version=cache.version,
                extra={"spans": len(cache.spans), "directives": len(cache.directives)},
            ),
            doc_id=cache.doc_id,
        )
