"""Shared fixtures: a deterministic fake embedder and an in-memory vector store.

The fake store mirrors pgrag.store (upsert_chunks / query_similar /
delete_doc_chunks / count_chunks) with numpy cosine distances so retrieval can
be exercised end-to-end without PostgreSQL. Live database tests use
TEST_DATABASE_URL and are skipped when it is not set.
"""
import os
import string
from contextlib import contextmanager
from typing import Dict, List, Optional, Sequence
from unittest.mock import MagicMock

import numpy as np
import pytest

from pgrag.embedding import Embedder
from pgrag.errors import ProviderError
from pgrag.schemas import ChunkRow, SimilarChunk
from pgrag.store import _check_dims, _dedupe_last_wins


class LetterEmbedder(Embedder):
    """Embeds text as a 26-dim vector of lowercase letter counts."""

    def __init__(self, api_key: Optional[str] = "test-key", fail: bool = False):
        self.api_key = api_key or ""
        self.model = "fake:letters"
        self.dims = 26
        self.fail = fail
        self.calls: List[List[str]] = []

    def has_credential(self) -> bool:
        return bool(self.api_key)

    def _vector(self, text: str) -> List[float]:
        lowered = text.lower()
        return [float(lowered.count(ch)) for ch in string.ascii_lowercase]

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        self.ensure_credential()
        if not texts:
            return []
        self.calls.append(list(texts))
        if self.fail:
            raise ProviderError("fake provider failure")
        return self._check_dims([self._vector(t) for t in texts])

    def embed_single(self, text: str) -> List[float]:
        self.ensure_credential()
        return self.embed([text])[0]


class FakeVectorStore:
    """In-memory stand-in for the rag_chunks table."""

    def __init__(self):
        self.rows: Dict[str, ChunkRow] = {}

    def upsert_chunks(self, db, rows: Sequence[ChunkRow], dims: Optional[int] = None) -> int:
        if not rows:
            return 0
        for row in rows:
            _check_dims(row.embedding, dims, "Chunk embedding", row.id)
        unique = _dedupe_last_wins(rows)
        for row in unique:
            self.rows[row.id] = row
        return len(unique)

    def query_similar(self, db, query_embedding: Sequence[float], k: int, dims: Optional[int] = None):
        _check_dims(query_embedding, dims, "Query embedding")
        q = np.asarray(query_embedding, dtype=float)
        scored = []
        for row in self.rows.values():
            v = np.asarray(row.embedding, dtype=float)
            denom = np.linalg.norm(q) * np.linalg.norm(v)
            distance = 1.0 if denom == 0 else 1.0 - float(np.dot(q, v) / denom)
            scored.append((distance, row))
        scored.sort(key=lambda pair: pair[0])
        return [
            SimilarChunk(id=r.id, doc_id=r.doc_id, content=r.content, metadata=r.metadata, score=d)
            for d, r in scored[:k]
        ]

    def delete_doc_chunks(self, db, doc_id: str) -> int:
        doomed = [cid for cid, r in self.rows.items() if r.doc_id == doc_id]
        for cid in doomed:
            del self.rows[cid]
        return len(doomed)

    def count_chunks(self, db) -> int:
        return len(self.rows)


@pytest.fixture
def embedder() -> LetterEmbedder:
    return LetterEmbedder()


@pytest.fixture
def keyless_embedder() -> LetterEmbedder:
    return LetterEmbedder(api_key="")


@pytest.fixture
def failing_embedder() -> LetterEmbedder:
    return LetterEmbedder(fail=True)


@pytest.fixture
def fake_store(monkeypatch) -> FakeVectorStore:
    """Route indexing/query store calls to an in-memory FakeVectorStore."""
    store = FakeVectorStore()
    monkeypatch.setattr("pgrag.indexing.upsert_chunks", store.upsert_chunks)
    monkeypatch.setattr("pgrag.indexing.delete_doc_chunks", store.delete_doc_chunks)
    monkeypatch.setattr("pgrag.query.query_similar", store.query_similar)
    return store


@pytest.fixture
def db() -> MagicMock:
    """Mock SQLAlchemy session."""
    return MagicMock(name="Session")


@pytest.fixture
def fake_session_scope():
    """Replacement for pgrag.db.session_scope yielding a mock session."""
    sessions: List[MagicMock] = []

    @contextmanager
    def _scope():
        session = MagicMock(name="Session")
        sessions.append(session)
        yield session

    _scope.sessions = sessions
    return _scope


@pytest.fixture(scope="session")
def database_url() -> str:
    url = os.getenv("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL not set. Skipping PostgreSQL integration tests.")
    return url
