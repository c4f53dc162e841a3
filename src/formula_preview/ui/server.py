"""FastAPI server exposing the preview engine to editor hosts.

Routes are thin wrappers over one :class:`DocumentStore`, held on
``app.state`` so every app instance owns its own document caches.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from pydantic import BaseModel

from formula_preview.directives import RangeDirective
from formula_preview.documents import DocumentCache, DocumentStore
from formula_preview.spans import offset_to_position, position_to_offset


def create_app(project_dir: Path | None = None, config: dict[str, Any] | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        project_dir: Optional directory with ``formula_preview.yaml``; also
            enables the event log under ``<project_dir>/logs``.
        config: Explicit configuration, merged over the file config.

    Returns:
        Configured FastAPI instance.

    Raises:
        ValueError: If the resulting configuration is invalid.
    """
    from formula_preview import __version__
    from formula_preview.logging.events import set_project_dir
    from formula_preview.project import load_preview_config, resolve_config

    merged: dict[str, Any] = {}
    if project_dir is not None:
        set_project_dir(project_dir)
        merged.update(load_preview_config(project_dir))
    if config:
        merged.update(config)

    app = FastAPI(title="formula-preview", version=__version__)
    app.state.store = DocumentStore(resolve_config(merged))
    app.include_router(_api_router())
    return app


def _store(request: Request) -> DocumentStore:
    return request.app.state.store


# ---------------------------------------------------------------------------
# Request/response models
# ---------------------------------------------------------------------------


class DocumentRequest(BaseModel):
    uri: str
    text: str
    version: int | None = None


class CloseRequest(BaseModel):
    uri: str


class RangeSpec(BaseModel):
    start: int
    end: int
    step: int = 1


class PreviewRequest(BaseModel):
    expression: str
    directives: dict[str, RangeSpec] = {}


def _summary(cache: DocumentCache) -> dict[str, Any]:
    spans = []
    for span in cache.spans:
        line, character = offset_to_position(cache.text, span.start)
        spans.append({
            "start": span.start,
            "end": span.end,
            "line": line,
            "character": character,
            "text": cache.span_text(span),
        })
    return {
        "uri": cache.uri,
        "version": cache.version,
        "spans": spans,
        "directives": {k: v.model_dump() for k, v in cache.directives.items()},
    }


def _api_router():
    from fastapi import APIRouter

    from formula_preview import __version__
    from formula_preview.preview import build_preview

    router = APIRouter(prefix="/api")

    @router.get("/health")
    async def health() -> dict[str, Any]:
        return {"ok": True, "version": __version__}

    # -- Document lifecycle --

    @router.post("/documents/open")
    async def open_document(req: DocumentRequest, request: Request) -> dict[str, Any]:
        cache = _store(request).on_open(req.uri, req.text, req.version or 0)
        return _summary(cache)

    @router.post("/documents/change")
    async def change_document(req: DocumentRequest, request: Request) -> dict[str, Any]:
        cache = _store(request).on_change(req.uri, req.text, req.version)
        return _summary(cache)

    @router.post("/documents/close")
    async def close_document(req: CloseRequest, request: Request) -> dict[str, Any]:
        return {"closed": _store(request).on_close(req.uri)}

    @router.get("/documents")
    async def get_document(request: Request, uri: str = Query(...)) -> dict[str, Any]:
        cache = _store(request).get(uri)
        if cache is None:
            raise HTTPException(404, f"Unknown document: {uri}")
        return _summary(cache)

    # -- Hover --

    @router.get("/documents/hover")
    async def hover(
        request: Request,
        uri: str = Query(...),
        offset: int | None = Query(None, ge=0),
        line: int | None = Query(None, ge=0),
        character: int | None = Query(None, ge=0),
    ) -> dict[str, Any]:
        store = _store(request)
        cache = store.get(uri)
        if cache is None:
            raise HTTPException(404, f"Unknown document: {uri}")
        if offset is None:
            if line is None or character is None:
                raise HTTPException(400, "Give either offset or line and character")
            offset = position_to_offset(cache.text, line, character)

        span = store.span_at(uri, offset)
        if span is None:
            return {"preview": None, "span": None}
        return {
            "preview": store.hover(uri, offset),
            "span": {"start": span.start, "end": span.end, "text": cache.span_text(span)},
        }

    # -- Stateless preview --

    @router.post("/preview")
    async def preview(req: PreviewRequest, request: Request) -> dict[str, Any]:
        directives = {
            name: RangeDirective(variable=name, start=r.start, end=r.end, step=r.step)
            for name, r in req.directives.items()
        }
        result = build_preview(req.expression, directives, _store(request).config)
        return {
            "preview": result.text,
            "variables": result.variables,
            "canonical": result.canonical,
            "message": result.message,
        }

    return router
