"""Retrieval evaluation: scoring helpers and a JSONL-driven evaluation runner."""
