"""
Answer pipeline.

  ingestion     chunk → embed → ensure collection → upsert; duplicate validation
  confidence    evidence-based 0–100 confidence + band
  orchestrator  validate → retrieve / route → generate → score → respond
"""
