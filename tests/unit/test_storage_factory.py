import pytest

from linktrack.manager.strategies import RandomStrategy, TokenStrategy
from linktrack.storage.storage import Storage
from linktrack.storage.storage_factory import get_storage


def test_memory_is_default(monkeypatch):
    monkeypatch.delenv("LINKTRACK_STORAGE_BACKEND", raising=False)
    assert isinstance(get_storage(), Storage)


def test_env_selects_memory(monkeypatch):
    monkeypatch.setenv("LINKTRACK_STORAGE_BACKEND", "MEMORY")
    assert isinstance(get_storage(), Storage)


def test_postgres_requires_dsn(monkeypatch):
    monkeypatch.delenv("LINKTRACK_DB_DSN", raising=False)
    with pytest.raises(ValueError, match="DB_DSN"):
        get_storage("postgres")


def test_postgres_with_dsn(monkeypatch):
    monkeypatch.setenv("LINKTRACK_DB_DSN", "postgresql://u:p@localhost:5432/db")
    monkeypatch.setenv("LINKTRACK_DB_TIMEOUT", "9")
    from linktrack.storage.db_storage import DBStorage

    storage = get_storage("postgres")
    assert isinstance(storage, DBStorage)
    assert storage.dsn == "postgresql://u:p@localhost:5432/db"
    assert storage.timeout == 9


def test_postgres_kwargs_override_settings(monkeypatch):
    monkeypatch.setenv("LINKTRACK_DB_DSN", "postgresql://env/db")
    storage = get_storage("postgres", dsn="postgresql://arg/db", timeout=2)
    assert storage.dsn == "postgresql://arg/db"
    assert storage.timeout == 2


def test_unknown_backend():
    with pytest.raises(ValueError, match="Unknown storage backend"):
        get_storage("redis")


def test_id_settings_forwarded(monkeypatch):
    monkeypatch.setenv("LINKTRACK_ID_STRATEGY", "token")
    monkeypatch.setenv("LINKTRACK_ID_LENGTH", "8")
    monkeypatch.setenv("LINKTRACK_STRICT_URLS", "true")
    storage = get_storage("memory")
    assert isinstance(storage.id_strategy, TokenStrategy)
    assert storage.id_length == 8
    assert storage.strict_urls is True
    assert len(storage.create("https://example.com").short_id) == 8


def test_explicit_settings_object(settings_factory):
    cfg = settings_factory(ID_STRATEGY="random", ID_LENGTH=7)
    storage = get_storage(settings=cfg)
    assert isinstance(storage, Storage)
    assert isinstance(storage.id_strategy, RandomStrategy)
    assert len(storage.create("https://example.com").short_id) == 7
