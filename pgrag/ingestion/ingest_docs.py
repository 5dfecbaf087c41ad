"""Text / Markdown document ingestor.

Reads documents from local paths or fetches them from http(s) URLs, chunks the
text, embeds it with OpenAI embeddings, and upserts rows into rag_chunks.

Behaviour:
- Markdown sources (.md/.markdown/.mdx) are converted with md_to_text first
- doc_id defaults to a stable SHA-1 of the normalized URL or absolute path, so
  re-ingesting a source replaces its previous chunks instead of duplicating them
- Each document is indexed in its own transaction

Usage:
  python -m pgrag.ingestion.ingest_docs docs/guide.md https://example.com/README.md
  python -m pgrag.ingestion.ingest_docs notes.txt --doc-id notes --size 400 --overlap 100

Configuration:
- Database: pgrag.config.settings.DATABASE_URL
- Embeddings: pgrag.config.settings.OPENAI_API_KEY / EMBED_MODEL / EMBED_DIMS
- Chunk params: pgrag.config.settings.CHUNK_SIZE, CHUNK_OVERLAP
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import requests

from pgrag.db import init_db, session_scope
from pgrag.embedding import Embedder, get_default_embedder
from pgrag.errors import MissingCredential, RagError
from pgrag.indexing import index_document
from pgrag.utils import is_markdown_source, is_url, normalize_url, stable_doc_id

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "pgrag-ingestor/1.0",
    "Accept": "text/markdown, text/plain;q=0.9, */*;q=0.5",
}


def fetch_text(url: str, timeout: int = 30) -> str:
    """Fetch a text document from a URL with basic headers and timeout.

    Raises:
        requests.HTTPError: On a non-2xx response.
    """
    logger.info("Fetching: %s", url)
    resp = requests.get(url, headers=HEADERS, timeout=timeout)
    logger.info(
        "HTTP %d from %s (content-type=%s, bytes=%d)",
        resp.status_code, url, resp.headers.get("Content-Type", ""), len(resp.content or b""),
    )
    resp.raise_for_status()
    return resp.text


def load_source(source: str) -> Tuple[str, str]:
    """Load one source and derive its default doc id.

    Args:
        source: Local file path or http(s) URL.

    Returns:
        Tuple[str, str]: (doc_id, text).
    """
    if is_url(source):
        url = normalize_url(source)
        return stable_doc_id(url), fetch_text(url)
    path = Path(source).expanduser().resolve()
    return stable_doc_id(str(path)), path.read_text(encoding="utf-8")


def ingest_source(
    source: str,
    embedder: Embedder,
    doc_id: Optional[str] = None,
    size: Optional[int] = None,
    overlap: Optional[int] = None,
) -> int:
    """Load, chunk, embed and store one source.

    Returns:
        int: Number of chunks written.
    """
    default_id, body = load_source(source)
    doc_id = doc_id or default_id
    with session_scope() as db:
        return index_document(
            db,
            doc_id,
            body,
            embedder=embedder,
            size=size,
            overlap=overlap,
            source=source,
            markdown=is_markdown_source(source),
        )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Ingest text/Markdown files or URLs into rag_chunks.")
    parser.add_argument("sources", nargs="+", help="Local paths or http(s) URLs")
    parser.add_argument("--doc-id", default=None, help="Explicit doc id (only with a single source)")
    parser.add_argument("--size", type=int, default=None, help="Chunk size in characters")
    parser.add_argument("--overlap", type=int, default=None, help="Chunk overlap in characters")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: INFO)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    if args.doc_id and len(args.sources) > 1:
        parser.error("--doc-id can only be used with a single source")

    embedder = get_default_embedder()
    try:
        embedder.ensure_credential()
    except MissingCredential as e:
        logger.error("%s", e)
        return 2
    init_db()

    total = 0
    for source in args.sources:
        try:
            n = ingest_source(source, embedder, doc_id=args.doc_id, size=args.size, overlap=args.overlap)
        except (RagError, requests.RequestException, OSError):
            logger.exception("Ingestion failed for %s", source)
            return 1
        total += n
        print(f"[INGEST] {source} -> {n} chunks")

    logger.info("Completed ingestion: sources=%d, chunks=%d", len(args.sources), total)
    return 0


if __name__ == "__main__":
    sys.exit(main())
