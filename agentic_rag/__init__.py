"""
Agentic RAG backend: hierarchical chunking, vector-store orchestration,
confidence scoring and semantic action routing.
"""

__version__ = "1.0.0"
