"""Document indexing: chunk, embed and upsert one document.

index_document replaces every stored chunk of a document: existing rows for the
doc_id are deleted, the text is re-chunked, embedded in a single batch and
upserted. Run it inside one session_scope() so a failure leaves the previous
rows in place.

Concurrent re-indexing of the same doc_id is not coordinated here; callers that
index in parallel must serialize per document.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from pgrag.chunking import fixed_size_chunks, md_to_text
from pgrag.config import settings
from pgrag.embedding import Embedder, get_default_embedder
from pgrag.schemas import ChunkRow
from pgrag.store import delete_doc_chunks, upsert_chunks

logger = logging.getLogger(__name__)


def index_document(
    db: Session,
    doc_id: str,
    text: str,
    embedder: Optional[Embedder] = None,
    size: Optional[int] = None,
    overlap: Optional[int] = None,
    source: Optional[str] = None,
    extra_metadata: Optional[Dict[str, Any]] = None,
    markdown: bool = False,
) -> int:
    """Chunk, embed and store a document, replacing its previous chunks.

    Args:
        db: SQLAlchemy session (caller commits).
        doc_id: Document id under which all chunks are stored.
        text: Raw document text.
        embedder: Embedder to use; defaults to get_default_embedder().
        size: Chunk size; defaults to settings.CHUNK_SIZE.
        overlap: Chunk overlap; defaults to settings.CHUNK_OVERLAP.
        source: Optional source label stored in each chunk's metadata.
        extra_metadata: Extra keys merged into each chunk's metadata (e.g. title).
        markdown: Strip Markdown syntax with md_to_text before chunking.

    Returns:
        int: Number of chunk rows written.

    Raises:
        InvalidConfiguration, MissingCredential: Before anything is deleted.
        ProviderError, StoreError: From the embedding call or the store.
    """
    embedder = embedder or get_default_embedder()
    embedder.ensure_credential()

    body = md_to_text(text) if markdown else text
    chunks = fixed_size_chunks(body, size=size, overlap=overlap, source=source)

    removed = delete_doc_chunks(db, doc_id)
    if not chunks:
        logger.info("Document %s is empty; removed %d stale chunks", doc_id, removed)
        return 0

    embeddings = embedder.embed([c.content for c in chunks])

    rows = [
        ChunkRow(
            id=chunk.id,
            doc_id=doc_id,
            content=chunk.content,
            embedding=emb,
            metadata={**chunk.metadata.to_dict(), **(extra_metadata or {})},
        )
        for chunk, emb in zip(chunks, embeddings)
    ]
    written = upsert_chunks(db, rows, dims=embedder.dims)
    logger.info(
        "Indexed doc_id=%s: %d chunks (removed %d, model=%s, rag_config=%s)",
        doc_id, written, removed, embedder.model, settings.RAG_CONFIG_VERSION,
    )
    return written
