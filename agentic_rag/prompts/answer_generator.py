"""
Prompt builders for answer generation.

Four shapes:
  - chat prompt       (plain retrieved context)
  - query prompt      (context annotated with source number and relevance)
  - unified prompt    (document context + service data)
  - service prompt    (service data only)
"""

from __future__ import annotations

import json
from typing import Any, Sequence

from agentic_rag.schemas.intent import ActionResult
from agentic_rag.schemas.retrieval import SearchResult


def serialize_for_prompt(data: Any) -> str:
    """Pretty JSON for action output; falls back to ``str()``."""
    if data is None:
        return "No data returned."
    try:
        return json.dumps(data, indent=2, default=str)
    except (TypeError, ValueError):
        return str(data)


def build_chat_prompt(results: Sequence[SearchResult], question: str) -> str:
    lines = [
        "You are a helpful assistant. Answer the user's question using ONLY the information provided in the context below.",
        "If the context doesn't contain enough information to answer the question, say so politely.",
        "Be concise but complete in your response.",
        "",
        "CONTEXT:",
    ]
    for result in results:
        lines.append(result.text)
        lines.append("---")
    lines += ["", f"QUESTION: {question}", "", "ANSWER:"]
    return "\n".join(lines)


def build_query_prompt(results: Sequence[SearchResult], question: str) -> str:
    lines = [
        "You are a helpful assistant that answers questions based on the provided context.",
        "Use only the information from the context below to answer the question.",
        "If the context doesn't contain enough information, say so clearly.",
        "",
        "CONTEXT:",
    ]
    for i, result in enumerate(results, start=1):
        lines.append(f"[Source {i}] (Relevance: {result.score:.2f})")
        lines.append(result.text)
        lines.append("---")
    lines += [
        "",
        f"QUESTION: {question}",
        "",
        "Please provide a clear and concise answer based on the context above:",
    ]
    return "\n".join(lines)


def build_unified_prompt(
    results: Sequence[SearchResult],
    actions: Sequence[ActionResult],
    question: str,
) -> str:
    lines = [
        "You are a helpful assistant. Answer using the document context and the service data below.",
        "",
        "DOCUMENT CONTEXT:",
    ]
    for result in results:
        lines.append(result.text)
        lines.append("---")
    lines.append("SERVICE DATA:")
    for action in actions:
        lines.append(f"[{action.action_id}]")
        lines.append(serialize_for_prompt(action.data))
        lines.append("---")
    lines += [f"QUESTION: {question}", "ANSWER:"]
    return "\n".join(lines)


def build_service_prompt(actions: Sequence[ActionResult], question: str) -> str:
    lines = ["You are a helpful assistant. Use the following service data to answer:"]
    for action in actions:
        lines.append(f"[{action.action_id}]")
        lines.append(serialize_for_prompt(action.data))
        lines.append("---")
    lines += [f"QUESTION: {question}", "ANSWER:"]
    return "\n".join(lines)
