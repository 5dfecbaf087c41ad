"""Ingestion package for offline pipelines.

Contains CLI ingestors that populate rag_chunks with chunked, embedded content.
See seed.py for the sample documents and ingest_docs.py for files and URLs.
"""
