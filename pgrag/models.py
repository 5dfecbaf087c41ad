"""Database ORM models.

Defines the persistent entity used by the RAG vector store:
- RagChunk: one embedded chunk of a source document, keyed by the chunk id and
  grouped by doc_id. The embedding is a fixed-length pgvector column, so every
  row has exactly settings.EMBED_DIMS dimensions.
"""
from sqlalchemy import Column, DateTime, Index, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from pgvector.sqlalchemy import Vector

from pgrag.config import settings
from pgrag.db import Base


class RagChunk(Base):
    """Vector-embedded document chunk used for retrieval.

    Each row represents a chunk of source content along with:
    - the owning document id (doc_id); re-indexing deletes/replaces by doc_id
    - the chunk text (denormalized for display at query time)
    - an embedding vector (pgvector) for cosine distance search
    - free-form JSON metadata (order, charOffset, source, ...)

    Indexes:
        - rag_chunks_doc_id_idx: speeds up document-level deletes
        - rag_chunks_embedding_idx (ivfflat, created in init_db)

    Notes:
        `metadata` is reserved on declarative classes, so the column is mapped
        to the `meta` attribute.
    """
    __tablename__ = "rag_chunks"

    id = Column(Text, primary_key=True)
    doc_id = Column(Text, nullable=False)
    content = Column(Text, nullable=False)

    embedding = Column(Vector(dim=settings.EMBED_DIMS), nullable=False)
    meta = Column("metadata", JSONB(none_as_null=True), nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("rag_chunks_doc_id_idx", "doc_id"),
    )
