"""
Logging setup for the ``agentic_rag`` namespace.

Usage:
    from agentic_rag.utils.logging import get_logger
    logger = get_logger("agentic_rag.pipeline.orchestrator")
    logger.info("[ASK] Answered - ID: %s, Sources: %d", cid, 3)

Every module logger hangs off one ``agentic_rag`` root with its own
stderr handler, so the level here does not depend on uvicorn's config.
"""

from __future__ import annotations

import logging
import sys

ROOT_LOGGER = "agentic_rag"

# Chatty third-party loggers kept at WARNING unless DEBUG is requested
_NOISY_LOGGERS = ("chromadb", "httpx", "httpcore", "openai", "sentence_transformers", "urllib3")

_configured = False


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        from agentic_rag.core.config import settings

        level = settings.log_level
    if isinstance(level, str):
        value = logging.getLevelName(level.upper())
        return value if isinstance(value, int) else logging.INFO
    return level


def setup_logging(level: int | str | None = None) -> None:
    """Attach the stderr handler once; later calls are no-ops."""
    global _configured
    if _configured:
        return

    resolved = _resolve_level(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(resolved)
    root.addHandler(handler)
    root.propagate = False

    if resolved > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Logger under the ``agentic_rag`` namespace.

    Bare names ("timing") are prefixed so every record reaches the root
    handler.
    """
    setup_logging()
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
