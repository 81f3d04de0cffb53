"""
Hierarchical text chunking.

Text is cut by the coarsest unit that keeps chunks under ``max_size``:

  paragraph → sentence → word → character

Chunking runs in two passes:

  1. Flatten: the text becomes a stream of units.  A paragraph that fits
     is one unit; one that does not is replaced by its sentences, an
     oversized sentence by its words, an oversized word by character runs.
     Each unit remembers the separator that stood in front of it.
  2. Pack: units are packed greedily into a buffer.  When the next unit
     does not fit, the buffer is flushed and the next buffer is seeded
     with a word-aligned overlap suffix of the flushed one.  If the unit
     leaves no room for that seed, it is cut one level finer first.

The character level only exists so that a single oversized "word" (URLs,
base64 blobs) still respects the size bound.

All functions here are pure: no I/O, no store, no embeddings.
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass
from typing import Callable, NamedTuple

from agentic_rag.core.config import settings
from agentic_rag.core.exceptions import InputValidationError
from agentic_rag.schemas.document import Chunk, Document
from agentic_rag.utils.logging import get_logger

logger = get_logger("agentic_rag.vector_logic.chunking")

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n")
_SENTENCE_END = re.compile(r"[.!?]\s+")


def split_paragraphs(text: str) -> list[str]:
    """Blank-line-delimited paragraphs, trimmed, empties dropped."""
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def split_sentences(text: str) -> list[str]:
    """
    Split on ``.``/``!``/``?`` followed by whitespace and an uppercase letter.

    Requiring the capital keeps abbreviations such as "e.g. the" together.
    """
    sentences: list[str] = []
    start = 0
    for match in _SENTENCE_END.finditer(text):
        nxt = match.end()
        if nxt < len(text) and text[nxt].isupper():
            sentence = text[start:match.start() + 1].strip()
            if sentence:
                sentences.append(sentence)
            start = nxt
    tail = text[start:].strip()
    if tail:
        sentences.append(tail)
    return sentences


def split_words(text: str) -> list[str]:
    return text.split()


@dataclass(frozen=True)
class SplitLevel:
    """One granularity in the cascade: how to cut, and how to glue back."""
    name: str
    split: Callable[[str], list[str]]
    joiner: str


class Unit(NamedTuple):
    sep: str
    text: str
    depth: int


def _split_characters(size: int) -> Callable[[str], list[str]]:
    def split(text: str) -> list[str]:
        return [text[i:i + size] for i in range(0, len(text), size)]
    return split


class TextChunker:
    """
    Splits raw document text into bounded, overlapping segments.

    Invariants:
      - no chunk is longer than ``max_size``
      - no chunk is empty or whitespace-only
      - chunks come out in document order
      - ``overlap_size`` never exceeds ``max_size // 4``
      - with ``overlap_size=0``, chunking the ``"\\n\\n"``-joined output
        again gives the same chunks
    """

    def __init__(self, max_size: int | None = None, overlap_size: int | None = None):
        max_size = settings.chunk_max_size if max_size is None else max_size
        overlap_size = settings.chunk_overlap_size if overlap_size is None else overlap_size
        if max_size <= 0:
            raise InputValidationError(f"max_size must be positive, got {max_size}")

        self.max_size = max_size
        self.overlap_size = max(0, min(overlap_size, max_size // 4))
        if self.overlap_size != overlap_size:
            logger.debug(
                "Overlap %d capped to %d (max_size=%d)",
                overlap_size, self.overlap_size, max_size,
            )

        self.levels: list[SplitLevel] = [
            SplitLevel("paragraph", split_paragraphs, "\n\n"),
            SplitLevel("sentence", split_sentences, " "),
            SplitLevel("word", split_words, " "),
            SplitLevel("character", _split_characters(max_size), ""),
        ]

    # ── Public API ──────────────────────────────────────────────────

    def chunk(self, text: str | None) -> list[str]:
        """Split *text* into chunks; empty or whitespace input gives []."""
        if not text or not text.strip():
            return []
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        chunks = self._pack(self._units(text, 0, ""))
        return [c.strip() for c in chunks if c and c.strip()]

    def chunk_document(self, document: Document) -> list[Chunk]:
        """Chunk a document, keeping the sequence index and parent reference."""
        return [
            Chunk(text=text, index=i, source=document.source)
            for i, text in enumerate(self.chunk(document.text))
        ]

    # ── Cascade ─────────────────────────────────────────────────────

    def _too_long(self, text: str) -> bool:
        return len(text) > self.max_size

    def _units(self, text: str, depth: int, sep: str) -> list[Unit]:
        """
        Flatten *text* into units that each fit in ``max_size``.

        A piece that fits stays whole; one that does not is replaced by its
        pieces at the next level.  The first piece inherits *sep*, the
        separator that stood in front of the whole.
        """
        level = self.levels[depth]
        units: list[Unit] = []
        for i, piece in enumerate(level.split(text)):
            piece_sep = level.joiner if i else sep
            if self._too_long(piece) and depth + 1 < len(self.levels):
                units.extend(self._units(piece, depth + 1, piece_sep))
            else:
                units.append(Unit(piece_sep, piece, depth))
        return units

    def _finer(self, unit: Unit) -> list[Unit]:
        """*unit* cut at the first finer level that yields more than one piece."""
        for depth in range(unit.depth + 1, len(self.levels)):
            pieces = self._units(unit.text, depth, unit.sep)
            if len(pieces) > 1:
                return pieces
        return []

    def _pack(self, units: list[Unit]) -> list[str]:
        pending = deque(units)
        chunks: list[str] = []
        buffer = ""

        while pending:
            unit = pending.popleft()
            if not buffer:
                buffer = unit.text
                continue
            if len(buffer) + len(unit.sep) + len(unit.text) <= self.max_size:
                buffer = f"{buffer}{unit.sep}{unit.text}"
                continue

            glue = unit.sep or " "
            seed = self._overlap_suffix(
                buffer, min(self.overlap_size, self.max_size - len(glue) - len(unit.text))
            )
            if not seed and self._overlap_suffix(buffer, self.overlap_size):
                # No room for the overlap in front of this unit: cut it finer and retry.
                pieces = self._finer(unit)
                if pieces:
                    pending.extendleft(reversed(pieces))
                    continue

            chunks.append(buffer)
            buffer = f"{seed}{glue}{unit.text}" if seed else unit.text

        if buffer:
            chunks.append(buffer)
        return chunks

    def _overlap_suffix(self, text: str, budget: int) -> str:
        """
        Tail of *text* no longer than *budget*, starting on a word boundary.

        Returns "" when the tail would have to start mid-word with no
        whitespace to back off to.
        """
        if budget <= 0 or not text:
            return ""
        if len(text) <= budget:
            return text.strip()

        tail = text[-budget:]
        if not text[-budget - 1].isspace():
            boundary = re.search(r"\s", tail)
            if boundary is None:
                return ""
            tail = tail[boundary.end():]
        return tail.strip()


def chunk_text(text: str | None, max_size: int | None = None, overlap_size: int | None = None) -> list[str]:
    """Convenience wrapper: ``TextChunker(max_size, overlap_size).chunk(text)``."""
    return TextChunker(max_size, overlap_size).chunk(text)
