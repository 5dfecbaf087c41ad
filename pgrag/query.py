"""RAG query API: embed the query text, then rank stored chunks by cosine distance.

Provides:
- rag_query: main retrieval entry point returning a RagQueryResult
- create_retrieve_fn: adapter returning a (query, k) -> List[RetrievedChunk] callable
  for evaluation harnesses (see pgrag.evals)

Both fail fast with MissingCredential when no embedding credential is configured,
before any embedding request or SQL statement is issued.
"""
import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from pgrag.config import settings
from pgrag.embedding import Embedder, get_default_embedder
from pgrag.schemas import RagChunkResult, RagQueryResult, RetrievedChunk
from pgrag.store import query_similar

logger = logging.getLogger(__name__)

RetrieveFn = Callable[[str, int], List[RetrievedChunk]]


def rag_query(
    db: Session,
    query: str,
    k: int = settings.DEFAULT_TOP_K,
    embedder: Optional[Embedder] = None,
) -> RagQueryResult:
    """Execute a RAG query: embed the query and find the k most similar chunks.

    Args:
        db: SQLAlchemy session.
        query: Free-text query.
        k: Number of chunks to return.
        embedder: Embedder to use; defaults to get_default_embedder().

    Returns:
        RagQueryResult: Chunks ordered by ascending cosine distance. An empty
        store yields an empty list, not an error.

    Raises:
        MissingCredential: If the embedder has no credential (nothing else runs).
        ProviderError: If embedding the query fails.
        StoreError: If the similarity query fails.
    """
    embedder = embedder or get_default_embedder()
    embedder.ensure_credential()

    query_embedding = embedder.embed_single(query)
    similar = query_similar(db, query_embedding, k, dims=embedder.dims)
    logger.debug("rag_query k=%d returned %d chunks", k, len(similar))

    return RagQueryResult(
        chunks=[
            RagChunkResult(
                id=c.id,
                doc_id=c.doc_id,
                text=c.content,
                score=c.score,
                metadata=c.metadata,
            )
            for c in similar
        ]
    )


def create_retrieve_fn(db: Session, embedder: Optional[Embedder] = None) -> RetrieveFn:
    """Wrap rag_query in the (query, k) signature used by retrieval evals.

    Args:
        db: SQLAlchemy session the returned function will query.
        embedder: Optional embedder; defaults to get_default_embedder() per call.

    Returns:
        RetrieveFn: Callable returning RetrievedChunk items (id, content, score, metadata).
    """
    def retrieve(query: str, k: int) -> List[RetrievedChunk]:
        result = rag_query(db, query, k=k, embedder=embedder)
        return [
            RetrievedChunk(id=c.id, content=c.text, doc_id=c.doc_id, score=c.score, metadata=c.metadata)
            for c in result.chunks
        ]

    return retrieve
