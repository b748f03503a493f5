"""Relevance filtering, normalization and ranking."""
