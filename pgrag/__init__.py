"""Retrieval-augmented generation storage and query layer on PostgreSQL + pgvector.

Submodules overview:
- main: FastAPI application exposing /health and /rag/query.
- config: Application settings and environment variable loading.
- errors: Error taxonomy (InvalidConfiguration, MissingCredential, ProviderError, StoreError).
- db: Database engine/session management helpers and schema initialization.
- models: ORM model for the rag_chunks table.
- schemas: Pydantic models for store rows, query results and API contracts.
- chunking: Fixed-size overlapping chunking and Markdown to text conversion.
- embedding: Embedding providers (OpenAI).
- store: Vector store operations (upsert, similarity search, delete, count).
- indexing: Chunk, embed and store one document.
- query: rag_query and the retrieve function used by evals.
- ingestion: Offline ingestion jobs (sample seed, file/URL ingest).
- evals: Retrieval quality metrics and the evaluation runner.
- utils: General-purpose helper functions.
"""
from pgrag.chunking import Chunk, ChunkMetadata, fixed_size_chunks, md_to_text, split_paragraphs
from pgrag.embedding import Embedder, OpenAIEmbedder, get_default_embedder, has_openai_key
from pgrag.errors import InvalidConfiguration, MissingCredential, ProviderError, RagError, StoreError
from pgrag.indexing import index_document
from pgrag.query import create_retrieve_fn, rag_query
from pgrag.store import count_chunks, delete_doc_chunks, query_similar, upsert_chunks

__all__ = [
    "Chunk",
    "ChunkMetadata",
    "fixed_size_chunks",
    "md_to_text",
    "split_paragraphs",
    "Embedder",
    "OpenAIEmbedder",
    "get_default_embedder",
    "has_openai_key",
    "RagError",
    "InvalidConfiguration",
    "MissingCredential",
    "ProviderError",
    "StoreError",
    "index_document",
    "rag_query",
    "create_retrieve_fn",
    "upsert_chunks",
    "query_similar",
    "delete_doc_chunks",
    "count_chunks",
]
