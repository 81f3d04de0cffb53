"""
Request/response schemas for the chat flows (ask, ask-enhanced,
ask-actions, ask-unified).

Provider-level problems never become HTTP errors: they come back as a
ChatResponse with ``success=False`` and a human-readable reply.
"""

from __future__ import annotations

from pydantic import BaseModel


class ChatRequest(BaseModel):
    message: str = ""
    # Optional collection filter (usually an uploaded file name)
    look_in_file_name: str | None = None


class ChatResponse(BaseModel):
    reply: str = ""
    success: bool = False
    has_sources: bool = False
    confidence: float | None = None
    confidence_band: str | None = None
    source_count: int | None = None
    correlation_id: str | None = None
