"""
Text helpers shared by ingestion, validation and the answer pipeline.

All functions are pure (no I/O, no store, no LLM).
"""

from __future__ import annotations

import re
import uuid

from agentic_rag.core.exceptions import InputValidationError

_INVALID_NAME_CHARS = re.compile(r"[^a-z0-9._]+")
_REPEATED_DOTS = re.compile(r"\.{2,}")
_NAME_EDGES = "._"
MIN_COLLECTION_NAME = 3
MAX_COLLECTION_NAME = 512


def normalize_collection_name(name: str | None) -> str:
    """
    Normalize a user-supplied name into a vector-store collection name.

    Lowercases, maps every run of characters outside ``[a-z0-9.]`` to a
    single ``_``, collapses repeated dots and trims ``.`` / ``_`` from both
    ends, so "Report (1).txt" becomes "report_1_.txt".
    Blank input gives "" so callers can fall back to a default; anything
    else that does not leave 3-512 valid characters raises
    InputValidationError.
    """
    raw = (name or "").strip()
    if not raw:
        return ""
    normalized = _INVALID_NAME_CHARS.sub("_", raw.lower())
    normalized = _REPEATED_DOTS.sub(".", normalized).strip(_NAME_EDGES)
    if not MIN_COLLECTION_NAME <= len(normalized) <= MAX_COLLECTION_NAME:
        raise InputValidationError(
            f"Collection name '{raw}' must contain {MIN_COLLECTION_NAME}-{MAX_COLLECTION_NAME} "
            "letters, digits, dots or underscores"
        )
    return normalized


def normalize_chunk_text(text: str | None) -> str:
    """
    Canonical form used for exact duplicate detection.

    Trims, folds CRLF/CR to LF and tabs to spaces.
    """
    if not text or not text.strip():
        return ""
    return (
        text.strip()
        .replace("\r\n", "\n")
        .replace("\r", "\n")
        .replace("\t", " ")
        .strip()
    )


def truncate_text(text: str, max_length: int) -> str:
    """Cut *text* to *max_length* characters, ending with '...' when shortened."""
    if not text or len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def count_words(text: str | None) -> int:
    """Number of whitespace-delimited words."""
    return len((text or "").split())


def new_correlation_id() -> str:
    """Short id attached to every pipeline run for log correlation."""
    return uuid.uuid4().hex[:8]
