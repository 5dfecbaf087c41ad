"""Vector store operations over the rag_chunks table (PostgreSQL + pgvector).

This module implements:
- upsert_chunks: batched insert-or-replace keyed on chunk id
- query_similar: cosine distance search (pgvector `<=>`), most similar first
- delete_doc_chunks: remove every row of one document (idempotent)
- count_chunks: total number of stored rows

All functions take a SQLAlchemy Session and leave transaction control to the
caller (see pgrag.db.session_scope). Every SQLAlchemy failure is re-raised as
StoreError. Scores are cosine DISTANCES: 0 = identical, lower is better.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pgrag.config import settings
from pgrag.errors import StoreError
from pgrag.models import RagChunk
from pgrag.schemas import ChunkRow, SimilarChunk

logger = logging.getLogger(__name__)

# keeps each INSERT well under the 65535 bind-parameter limit
UPSERT_BATCH_SIZE = 500


def _vector_literal(vec: Sequence[float]) -> str:
    """Render a vector in pgvector text form, e.g. "[0.1,0.2,0.3]"."""
    return "[" + ",".join(repr(float(x)) for x in vec) + "]"


def _check_dims(vec: Sequence[float], dims: int, what: str, ident: Optional[str] = None) -> None:
    if len(vec) != dims:
        details: Dict[str, Any] = {"expected": dims, "got": len(vec)}
        if ident is not None:
            details["id"] = ident
        raise StoreError(f"{what} has wrong dimensionality", details)


def _dedupe_last_wins(rows: Sequence[ChunkRow]) -> List[ChunkRow]:
    """Collapse repeated ids so that the last occurrence wins.

    A single INSERT .. ON CONFLICT statement cannot touch the same row twice, so
    in-call duplicates are resolved here, matching sequential per-row upserts.
    """
    by_id: Dict[str, ChunkRow] = {}
    for row in rows:
        by_id[row.id] = row
    return list(by_id.values())


def upsert_chunks(db: Session, rows: Sequence[ChunkRow], dims: Optional[int] = None) -> int:
    """Insert or replace chunk rows keyed on id.

    On conflict every non-key column (doc_id, content, embedding, metadata) is
    overwritten and created_at is refreshed, so re-indexing never duplicates rows.

    Args:
        db: SQLAlchemy session (caller commits).
        rows: Rows to write, in order; later rows with a repeated id win.
        dims: Expected embedding length; defaults to settings.EMBED_DIMS.

    Returns:
        int: Number of distinct rows written (0 for empty input).

    Raises:
        StoreError: On a dimensionality mismatch (before any I/O) or any database failure.
    """
    if not rows:
        return 0
    dims = settings.EMBED_DIMS if dims is None else dims
    for row in rows:
        _check_dims(row.embedding, dims, "Chunk embedding", row.id)

    unique_rows = _dedupe_last_wins(rows)
    table = RagChunk.__table__

    try:
        for start in range(0, len(unique_rows), UPSERT_BATCH_SIZE):
            batch = unique_rows[start:start + UPSERT_BATCH_SIZE]
            stmt = pg_insert(table).values(
                [
                    {
                        "id": r.id,
                        "doc_id": r.doc_id,
                        "content": r.content,
                        "embedding": r.embedding,
                        "metadata": r.metadata,
                    }
                    for r in batch
                ]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[table.c.id],
                set_={
                    "doc_id": stmt.excluded.doc_id,
                    "content": stmt.excluded.content,
                    "embedding": stmt.excluded.embedding,
                    "metadata": stmt.excluded["metadata"],
                    "created_at": func.now(),
                },
            )
            db.execute(stmt)
    except SQLAlchemyError as e:
        raise StoreError(f"Upsert failed: {e}", {"rows": len(unique_rows)}) from e

    logger.debug("Upserted %d rows (%d given)", len(unique_rows), len(rows))
    return len(unique_rows)


def query_similar(
    db: Session,
    query_embedding: Sequence[float],
    k: int,
    dims: Optional[int] = None,
) -> List[SimilarChunk]:
    """Return the k rows closest to query_embedding by cosine distance.

    Args:
        db: SQLAlchemy session.
        query_embedding: Query vector; must have exactly `dims` elements.
        k: Maximum number of rows; callers supply a positive value (not clamped).
        dims: Expected vector length; defaults to settings.EMBED_DIMS.

    Returns:
        List[SimilarChunk]: Rows ordered by ascending distance (most similar first).

    Raises:
        StoreError: If the query vector has the wrong length or the query fails.
    """
    dims = settings.EMBED_DIMS if dims is None else dims
    _check_dims(query_embedding, dims, "Query embedding")

    sql = text(
        """
        SELECT id, doc_id, content, metadata,
            (embedding <=> CAST(:qvec AS vector)) AS distance
        FROM rag_chunks
        ORDER BY distance ASC
        LIMIT :k
        """
    )
    try:
        rows = db.execute(sql, {"qvec": _vector_literal(query_embedding), "k": k}).mappings().all()
    except SQLAlchemyError as e:
        raise StoreError(f"Similarity query failed: {e}", {"k": k}) from e

    results = [
        SimilarChunk(
            id=r["id"],
            doc_id=r["doc_id"],
            content=r["content"],
            metadata=r["metadata"],
            score=float(r["distance"]),
        )
        for r in rows
    ]
    logger.debug("query_similar k=%d -> %d rows", k, len(results))
    return results


def delete_doc_chunks(db: Session, doc_id: str) -> int:
    """Delete all rows belonging to doc_id.

    Deleting an unknown doc_id succeeds and removes nothing.

    Returns:
        int: Number of rows removed.
    """
    try:
        result = db.execute(text("DELETE FROM rag_chunks WHERE doc_id = :doc_id"), {"doc_id": doc_id})
    except SQLAlchemyError as e:
        raise StoreError(f"Delete failed: {e}", {"doc_id": doc_id}) from e
    removed = result.rowcount or 0
    logger.debug("Deleted %d rows for doc_id=%s", removed, doc_id)
    return removed


def count_chunks(db: Session) -> int:
    """Return the total number of rows across all documents."""
    try:
        return int(db.execute(text("SELECT COUNT(*) FROM rag_chunks")).scalar_one())
    except SQLAlchemyError as e:
        raise StoreError(f"Count failed: {e}") from e
