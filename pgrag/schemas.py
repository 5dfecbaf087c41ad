"""Pydantic schemas for store rows, query results and the HTTP API.

Store / pipeline contracts:
- ChunkRow: an embedded chunk ready to be upserted into rag_chunks.
- SimilarChunk: a similarity search hit; `score` is a cosine DISTANCE (lower is better).
- RagChunkResult / RagQueryResult: caller-facing rag_query output (`content` exposed as `text`).
- RetrievedChunk: shape returned by the evaluation retrieve function.

HTTP contracts:
- RagQueryRequest / RagQueryResponse / ErrorResponse for POST /rag/query.

Metadata is an open JSON object (pydantic JsonValue): strings, numbers, booleans,
null, lists and nested objects round-trip through the JSONB column unchanged.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, JsonValue, field_validator

Metadata = Dict[str, JsonValue]


class ChunkRow(BaseModel):
    """Persisted, embedded form of a chunk.

    Attributes:
        id: Chunk identifier (primary key; same id space as Chunk.id).
        doc_id: Owning document id; many rows share one doc_id.
        content: Chunk text.
        embedding: Vector of exactly EMBED_DIMS floats.
        metadata: Optional free-form JSON metadata.
    """
    id: str = Field(..., min_length=1)
    doc_id: str = Field(..., min_length=1)
    content: str
    embedding: List[float]
    metadata: Optional[Metadata] = None


class SimilarChunk(BaseModel):
    """A row returned by similarity search.

    Attributes:
        score: Cosine distance to the query; 0 = identical direction, larger = less similar.
    """
    id: str
    doc_id: str
    content: str
    metadata: Optional[Metadata] = None
    score: float


class RagChunkResult(BaseModel):
    """One ranked chunk in a rag_query result."""
    id: str
    doc_id: str
    text: str
    score: float  # cosine distance, lower is more similar
    metadata: Optional[Metadata] = None


class RagQueryResult(BaseModel):
    """Chunks sorted by ascending distance. An empty list is a valid outcome."""
    chunks: List[RagChunkResult] = Field(default_factory=list)


class RetrievedChunk(BaseModel):
    """Chunk shape expected by retrieval evaluation harnesses.

    The core contract is {id, content, score, metadata}. doc_id is an optional
    extension filled in by create_retrieve_fn so evals can judge relevance per
    document; harnesses that only know chunk ids can ignore it.
    """
    id: str
    content: str
    doc_id: Optional[str] = None
    score: float
    metadata: Optional[Metadata] = None


class RagQueryRequest(BaseModel):
    """Request body for POST /rag/query.

    Attributes:
        query: Free-text search query; stored trimmed, blank is rejected.
        k: Number of chunks to return. Anything but a positive integer falls
            back to None (settings.DEFAULT_TOP_K).
    """
    query: str = Field(..., description="Search query")
    k: Optional[int] = Field(default=None, description="Number of chunks to return")

    @field_validator("query")
    @classmethod
    def _strip_query(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("query must be a non-empty string")
        return v

    @field_validator("k", mode="before")
    @classmethod
    def _positive_k_or_default(cls, v: Any) -> Optional[int]:
        if isinstance(v, int) and not isinstance(v, bool) and v > 0:
            return v
        return None


class RagQueryResponse(BaseModel):
    """Response body for POST /rag/query."""
    chunks: List[RagChunkResult]
    took_ms: int


class ErrorResponse(BaseModel):
    """Machine-readable error code plus a human-readable message."""
    error: str
    message: str
