"""Engine, sessions and schema bootstrap for the rag_chunks store.

- get_engine / get_sessionmaker: lazily created, cached engine and session factory.
  Every connection carries a server-side statement_timeout so no store call can
  hang indefinitely.
- init_db: pgvector extension, rag_chunks table and IVFFLAT cosine index.
- session_scope: one transaction per block, for CLIs and scripts.
- get_db: per-request session for the HTTP app.

Reads DATABASE_URL and DB_STATEMENT_TIMEOUT_MS from pgrag.config.settings.
"""
import logging
from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from pgrag.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Return the cached SQLAlchemy engine, creating it on first use.

    Returns:
        Engine: Engine bound to settings.DATABASE_URL with pool_pre_ping enabled.
    """
    global _engine
    if _engine is None:
        connect_args = {}
        if settings.DATABASE_URL.startswith("postgresql") and settings.DB_STATEMENT_TIMEOUT_MS > 0:
            connect_args["options"] = f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"
        _engine = create_engine(
            settings.DATABASE_URL,
            pool_pre_ping=True,
            future=True,
            connect_args=connect_args,
        )
    return _engine


def get_sessionmaker() -> sessionmaker:
    """Return the cached session factory bound to get_engine()."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine(), future=True)
    return _session_factory


def init_db() -> None:
    """Create the pgvector extension, the rag_chunks table and its indexes.

    Every statement is IF NOT EXISTS, so calling this on an initialized
    database changes nothing. The vector column width comes from EMBED_DIMS;
    an existing table created with another width is left as is.
    """
    engine = get_engine()
    with engine.begin() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))

    from pgrag import models  # noqa: F401  registers RagChunk on Base.metadata

    Base.metadata.create_all(bind=engine)

    # IVFFLAT recall depends on ANALYZE after the table is populated
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE INDEX IF NOT EXISTS rag_chunks_embedding_idx "
                "ON rag_chunks USING ivfflat (embedding vector_cosine_ops) "
                "WITH (lists = 100)"
            )
        )
    logger.info("Database initialized (rag_chunks, vector dims=%d)", settings.EMBED_DIMS)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Run a unit of work in one transaction.

    Commits when the block exits normally; any exception rolls the whole unit
    back (so a failed re-index keeps the previous chunks) and is re-raised.
    """
    session = get_sessionmaker()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Per-request session for FastAPI routes; closed when the response is sent."""
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
