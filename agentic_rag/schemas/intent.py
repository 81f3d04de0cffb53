"""
Schemas for semantic action routing.

ActionMatch is what the router decides; ActionResult is what an invoked
action returned.  Both are plain data; handlers themselves live in the
action catalog.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ActionMatch(BaseModel):
    """Best-scoring catalog entry for a query embedding."""
    action_id: str
    description: str
    score: float


class ActionResult(BaseModel):
    """Output of a dispatched action, ready to be serialized into a prompt."""
    action_id: str
    score: float
    arguments: dict[str, Any] = Field(default_factory=dict)
    data: Any = None
