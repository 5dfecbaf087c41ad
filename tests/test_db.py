"""Engine configuration and transaction handling in pgrag.db."""
from unittest.mock import MagicMock, patch

import pytest

from pgrag import db as db_module
from pgrag.errors import StoreError


@pytest.fixture
def fresh_engine(monkeypatch):
    """Reset the cached engine/session factory and capture create_engine calls."""
    monkeypatch.setattr(db_module, "_engine", None)
    monkeypatch.setattr(db_module, "_session_factory", None)
    with patch.object(db_module, "create_engine") as create_engine:
        yield create_engine


class TestGetEngine:
    def test_postgres_connections_carry_statement_timeout(self, fresh_engine, monkeypatch):
        monkeypatch.setattr(db_module.settings, "DATABASE_URL", "postgresql+psycopg2://u:p@h:5432/d")
        monkeypatch.setattr(db_module.settings, "DB_STATEMENT_TIMEOUT_MS", 2500)

        engine = db_module.get_engine()

        assert engine is fresh_engine.return_value
        _, kwargs = fresh_engine.call_args
        assert kwargs["connect_args"]["options"] == "-c statement_timeout=2500"
        assert kwargs["pool_pre_ping"] is True

    def test_timeout_disabled_when_zero(self, fresh_engine, monkeypatch):
        monkeypatch.setattr(db_module.settings, "DATABASE_URL", "postgresql+psycopg2://u:p@h:5432/d")
        monkeypatch.setattr(db_module.settings, "DB_STATEMENT_TIMEOUT_MS", 0)

        db_module.get_engine()

        assert "options" not in fresh_engine.call_args[1]["connect_args"]

    def test_no_postgres_options_for_other_backends(self, fresh_engine, monkeypatch):
        monkeypatch.setattr(db_module.settings, "DATABASE_URL", "sqlite:///:memory:")
        monkeypatch.setattr(db_module.settings, "DB_STATEMENT_TIMEOUT_MS", 2500)

        db_module.get_engine()

        assert fresh_engine.call_args[1]["connect_args"] == {}

    def test_engine_is_cached(self, fresh_engine):
        assert db_module.get_engine() is db_module.get_engine()
        fresh_engine.assert_called_once()


@pytest.fixture
def session(monkeypatch):
    session = MagicMock(name="Session")
    monkeypatch.setattr(db_module, "get_sessionmaker", lambda: MagicMock(return_value=session))
    return session


class TestSessionScope:
    def test_commits_on_success(self, session):
        with db_module.session_scope() as s:
            assert s is session

        session.commit.assert_called_once()
        session.rollback.assert_not_called()
        session.close.assert_called_once()

    def test_rolls_back_and_reraises_on_failure(self, session):
        with pytest.raises(StoreError):
            with db_module.session_scope():
                raise StoreError("Upsert failed")

        session.rollback.assert_called_once()
        session.commit.assert_not_called()
        session.close.assert_called_once()

    def test_failed_commit_is_not_swallowed(self, session):
        session.commit.side_effect = RuntimeError("connection lost")

        with pytest.raises(RuntimeError):
            with db_module.session_scope():
                pass

        session.rollback.assert_called_once()
        session.close.assert_called_once()


def test_get_db_closes_session(session):
    gen = db_module.get_db()
    assert next(gen) is session
    with pytest.raises(StopIteration):
        next(gen)
    session.close.assert_called_once()
