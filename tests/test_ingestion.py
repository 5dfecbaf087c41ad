from unittest.mock import MagicMock, patch

import pytest
import requests

from pgrag.ingestion import ingest_docs, seed
from pgrag.utils import stable_doc_id


class TestLoadSource:
    def test_local_file(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")

        doc_id, text = ingest_docs.load_source(str(path))

        assert text == "hello"
        assert doc_id == stable_doc_id(str(path.resolve()))

    def test_url_is_normalized_for_doc_id(self):
        with patch.object(ingest_docs, "fetch_text", return_value="# Readme") as fetch:
            doc_id, text = ingest_docs.load_source("https://example.com/README.md#intro")

        fetch.assert_called_once_with("https://example.com/README.md")
        assert doc_id == stable_doc_id("https://example.com/README.md")
        assert text == "# Readme"

    def test_fetch_raises_on_http_error(self):
        resp = MagicMock(status_code=404, headers={}, content=b"")
        resp.raise_for_status.side_effect = requests.HTTPError("404")
        with patch("pgrag.ingestion.ingest_docs.requests.get", return_value=resp):
            with pytest.raises(requests.HTTPError):
                ingest_docs.fetch_text("https://example.com/missing.md")


class TestIngestSource:
    def test_markdown_flag_and_doc_id(self, tmp_path, monkeypatch, fake_session_scope, embedder):
        path = tmp_path / "guide.md"
        path.write_text("# Guide", encoding="utf-8")
        index = MagicMock(return_value=1)
        monkeypatch.setattr(ingest_docs, "session_scope", fake_session_scope)
        monkeypatch.setattr(ingest_docs, "index_document", index)

        assert ingest_docs.ingest_source(str(path), embedder, doc_id="guide") == 1

        args, kwargs = index.call_args
        assert args[1:] == ("guide", "# Guide")
        assert kwargs["markdown"] is True
        assert kwargs["embedder"] is embedder

    def test_main_without_credential_exits_2(self, tmp_path, monkeypatch, keyless_embedder):
        init_db = MagicMock()
        monkeypatch.setattr(ingest_docs, "get_default_embedder", lambda: keyless_embedder)
        monkeypatch.setattr(ingest_docs, "init_db", init_db)

        assert ingest_docs.main([str(tmp_path / "a.txt")]) == 2
        init_db.assert_not_called()

    def test_main_reports_failure(self, tmp_path, monkeypatch, embedder):
        monkeypatch.setattr(ingest_docs, "get_default_embedder", lambda: embedder)
        monkeypatch.setattr(ingest_docs, "init_db", MagicMock())

        assert ingest_docs.main([str(tmp_path / "does-not-exist.txt")]) == 1

    def test_main_ingests_every_source(self, tmp_path, monkeypatch, embedder, capsys):
        paths = []
        for name in ("a.txt", "b.md"):
            p = tmp_path / name
            p.write_text("content", encoding="utf-8")
            paths.append(str(p))
        ingest = MagicMock(return_value=2)
        monkeypatch.setattr(ingest_docs, "get_default_embedder", lambda: embedder)
        monkeypatch.setattr(ingest_docs, "init_db", MagicMock())
        monkeypatch.setattr(ingest_docs, "ingest_source", ingest)

        assert ingest_docs.main(paths) == 0
        assert ingest.call_count == 2
        assert capsys.readouterr().out.count("[INGEST]") == 2


class TestSeed:
    def test_seed_indexes_sample_documents(self, monkeypatch, fake_store, fake_session_scope, embedder):
        monkeypatch.setattr(seed, "session_scope", fake_session_scope)
        monkeypatch.setattr(seed, "count_chunks", fake_store.count_chunks)

        total = seed.seed(embedder)

        assert total == len(fake_store.rows) > 0
        assert {r.doc_id for r in fake_store.rows.values()} == {d["id"] for d in seed.SAMPLE_DOCS}
        for row in fake_store.rows.values():
            assert len(row.content) <= seed.SEED_CHUNK_SIZE
            assert row.metadata["title"] == row.metadata["source"]

    def test_sample_documents_are_complete(self):
        docs = {d["id"]: d["content"] for d in seed.SAMPLE_DOCS}

        assert "The language is designed for development of large applications" in docs["seed-typescript"]
        postgres = docs["seed-postgres"]
        assert "Common use cases for pgvector include:\n- Semantic search over documents\n" in postgres
        assert "- Retrieval-augmented generation (RAG) for LLM applications" in postgres
        assert postgres.endswith("an excellent choice for production RAG applications.")

    def test_seed_is_idempotent(self, monkeypatch, fake_store, fake_session_scope, embedder):
        monkeypatch.setattr(seed, "session_scope", fake_session_scope)
        monkeypatch.setattr(seed, "count_chunks", fake_store.count_chunks)

        assert seed.seed(embedder) == seed.seed(embedder)

    def test_main_without_credential_exits_0(self, monkeypatch, keyless_embedder):
        init_db = MagicMock()
        monkeypatch.setattr(seed, "get_default_embedder", lambda: keyless_embedder)
        monkeypatch.setattr(seed, "init_db", init_db)

        assert seed.main() == 0
        init_db.assert_not_called()
