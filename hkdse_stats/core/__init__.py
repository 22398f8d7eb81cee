"""Extraction pipeline: CSV parsing, indexing, metrics and records."""
