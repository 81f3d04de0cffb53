"""
Error taxonomy shared by every layer.

Read paths against the vector store degrade to "absent"; write paths
propagate.  Provider failures are turned into low-confidence answers by
the orchestrator, never into HTTP errors.
"""

from __future__ import annotations


class AgenticRagError(Exception):
    """Base class for all domain errors."""


class InputValidationError(AgenticRagError):
    """Malformed or oversized input, rejected before any external call."""


class StoreUnavailableError(AgenticRagError):
    """The vector backend is unreachable or answered with an unexpected error."""


class CollectionNotFoundError(AgenticRagError):
    """The named collection does not exist."""

    def __init__(self, collection_name: str):
        super().__init__(f"Collection '{collection_name}' does not exist")
        self.collection_name = collection_name


class ArgumentMismatchError(AgenticRagError, ValueError):
    """Parallel inputs disagree (e.g. chunk count vs. vector count)."""


class DimensionMismatchError(ArgumentMismatchError):
    """A vector's length differs from its batch or its collection."""

    def __init__(self, message: str, *, expected: int | None = None, actual: int | None = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ProviderFailureError(AgenticRagError):
    """An embedding or generation call failed or returned nothing."""


class ParameterResolutionError(AgenticRagError):
    """Arguments for a dispatched action could not be resolved."""


class ActionDispatchError(AgenticRagError):
    """A registered action raised while being invoked."""
