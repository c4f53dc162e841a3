"""Append-only NDJSON event logs for preview and document events.

Layout under the project directory::

    logs/events.ndjson               every event
    logs/documents/<doc_id>.ndjson   events attributed to one document

Each event is one ``json.dumps(..., sort_keys=True)`` line.  Appends hold
an exclusive ``fcntl.flock`` and reads a shared one; where ``fcntl`` is
missing (Windows) files are opened without locks.
"""

from __future__ import annotations

import json
import os
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from formula_preview.logging.events import PreviewEvent

try:
    import fcntl
except ImportError:  # pragma: no cover - non-POSIX
    fcntl = None  # type: ignore[assignment]

# doc ids become file names, so only plain id characters are accepted
_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+$")

_DEFAULT_TAIL_BYTES = 2 * 1024 * 1024
_MAX_READ_LIMIT = 2000


@contextmanager
def _flocked(fd: int, operation: int) -> Iterator[None]:
    """Hold ``flock(fd, operation)`` for the duration of the block."""
    if fcntl is None:
        yield
        return
    fcntl.flock(fd, operation)
    try:
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)


def _drop_partial_first_line(data: bytes) -> bytes:
    newline = data.find(b"\n")
    return data[newline + 1:] if newline >= 0 else data


class EventSink:
    """Writes and reads the NDJSON event logs of one project directory."""

    def __init__(self, project_dir: Path, *, fsync: bool = False, tail_bytes: int | None = None) -> None:
        self.logs_dir = project_dir / "logs"
        self.documents_dir = self.logs_dir / "documents"
        self._fsync = fsync
        self._tail_bytes = _DEFAULT_TAIL_BYTES if tail_bytes is None else tail_bytes

        self.documents_dir.mkdir(parents=True, exist_ok=True)

    @property
    def global_log(self) -> Path:
        return self.logs_dir / "events.ndjson"

    def document_log(self, doc_id: str) -> Path | None:
        """Path of the per-document log, or ``None`` for an unsafe id."""
        if not _SAFE_ID_RE.match(doc_id):
            return None
        return self.documents_dir / f"{doc_id}.ndjson"

    def write(self, event: PreviewEvent, *, doc_id: str | None = None) -> None:
        """Append *event* to the global log and, given *doc_id*, its document log."""
        payload = json.dumps(event.model_dump(mode="json"), sort_keys=True, default=str) + "\n"
        data = payload.encode("utf-8")

        self._append(self.global_log, data)
        if doc_id:
            path = self.document_log(doc_id)
            if path is not None:
                self._append(path, data)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def read_global(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        uri: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Most recent events first, optionally filtered.

        Only the tail of the log (``tail_bytes``) is read, so very old
        events may be out of reach.
        """
        wanted = {"level": level, "event_type": event_type}

        def keep(event: dict[str, Any]) -> bool:
            if any(value and event.get(key) != value for key, value in wanted.items()):
                return False
            return not uri or event.get("context", {}).get("uri") == uri

        matched = [e for e in reversed(self._load(self.global_log)) if keep(e)]
        return matched[:min(limit, _MAX_READ_LIMIT)]

    def read_document_log(self, doc_id: str) -> list[dict[str, Any]]:
        """Events logged for *doc_id*, oldest first."""
        path = self.document_log(doc_id)
        return self._load(path) if path is not None else []

    # ------------------------------------------------------------------
    # File access
    # ------------------------------------------------------------------

    def _append(self, path: Path, data: bytes) -> None:
        fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_APPEND)
        try:
            with _flocked(fd, fcntl.LOCK_EX if fcntl else 0):
                os.write(fd, data)
                if self._fsync:
                    os.fsync(fd)
        finally:
            os.close(fd)

    def _load(self, path: Path) -> list[dict[str, Any]]:
        """Parse the tail of an NDJSON file; unreadable lines are skipped."""
        if not path.exists():
            return []
        events: list[dict[str, Any]] = []
        for raw in self._tail(path).splitlines():
            raw = raw.strip()
            if not raw:
                continue
            try:
                events.append(json.loads(raw))
            except json.JSONDecodeError:
                continue
        return events

    def _tail(self, path: Path) -> str:
        """Last ``tail_bytes`` of *path*, cut at a line boundary."""
        fd = os.open(str(path), os.O_RDONLY)
        try:
            with _flocked(fd, fcntl.LOCK_SH if fcntl else 0):
                size = os.fstat(fd).st_size
                offset = max(0, size - self._tail_bytes)
                os.lseek(fd, offset, os.SEEK_SET)
                data = os.read(fd, size - offset)
        finally:
            os.close(fd)
        if offset:
            data = _drop_partial_first_line(data)
        return data.decode("utf-8", errors="replace")
