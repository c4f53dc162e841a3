"""Hashing helpers for stable document identifiers."""

from __future__ import annotations

import hashlib


def sha256_bytes(data: bytes) -> str:
    """Compute SHA-256 hex digest of raw bytes.

    Args:
        data: Bytes to hash.

    Returns:
        Hex-encoded SHA-256 digest.
    """
    return hashlib.sha256(data).hexdigest()


def sha256_text(text: str) -> str:
    """Compute SHA-256 hex digest of a UTF-8 encoded string."""
    return sha256_bytes(text.encode("utf-8"))


def document_id(uri: str) -> str:
    """Return a short, path-safe identifier for a document URI.

    URIs may contain ``/``, ``:`` and other characters that must never
    reach a file name, so per-document logs are keyed by this digest.
    """
    return sha256_text(uri)[:16]
