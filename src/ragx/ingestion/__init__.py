"""
Ingestion — document loading, splitting, merging and indexing.

This package is responsible for the ETL-like pipeline that converts raw
documents (PDF, Markdown, HTML, …) into passages stored, under a named
knowledge partition, in a vector index.
"""
