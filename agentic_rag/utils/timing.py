"""
Stage timer.

Usage:
    async with Timer("embed 12 chunks", log=logger) as t:
        vectors = await embedder.embed_batch(texts)
    response.processing_time_ms = t.elapsed_ms_int

An unlabelled timer only measures; a labelled one also logs the
duration on the given logger (``agentic_rag.timing`` by default).
"""

from __future__ import annotations

import logging
import time
from typing import Any

from agentic_rag.utils.logging import get_logger

_default_logger = get_logger("agentic_rag.timing")


class Timer:
    """Context-manager timer usable with ``with`` and ``async with``."""

    def __init__(self, label: str = "", log: logging.Logger | None = None):
        self.label = label
        self.log = log or _default_logger
        self._start: float | None = None
        self.elapsed_s: float = 0.0

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed_s * 1000

    @property
    def elapsed_ms_int(self) -> int:
        return int(round(self.elapsed_ms))

    def start(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def stop(self) -> float:
        if self._start is not None:
            self.elapsed_s = time.perf_counter() - self._start
        if self.label:
            self.log.info("[TIMER] %s completed in %.1fms", self.label, self.elapsed_ms)
        return self.elapsed_s

    def __enter__(self) -> "Timer":
        return self.start()

    def __exit__(self, *_: Any) -> None:
        self.stop()

    async def __aenter__(self) -> "Timer":
        return self.start()

    async def __aexit__(self, *_: Any) -> None:
        self.stop()
