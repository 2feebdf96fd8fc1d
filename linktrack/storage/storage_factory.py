"""
Storage factory – pick the storage backend from configuration
=============================================================

Centralizes selection of the storage backend (in-memory vs PostgreSQL) so the
rest of the app stays ignorant of where data lives. The app factory calls this
once at start-up; nothing else inspects the environment to choose a backend.

- Settings are read **at call time** (via `load_settings()`) unless passed in,
  so tests can flip env vars with monkeypatch.
- The DB backend (and psycopg) is imported **only if** "postgres" is selected.

Settings used
-------------
- STORAGE_BACKEND: "memory" (default) or "postgres"
- DB_DSN, DB_TIMEOUT: for "postgres"
- ID_LENGTH, STRICT_URLS: forwarded to every backend
"""

import logging
from typing import Optional

from linktrack.config import load_settings
from linktrack.manager.strategies import get_strategy_from_config
from linktrack.storage.storage import Storage

log = logging.getLogger("linktrack.storage")


def get_storage(backend: Optional[str] = None, settings=None, **kwargs):
    """
    Return a BaseStorage-compatible object based on configuration.

    Parameters
    ----------
    backend : str, optional
        "memory" or "postgres". If omitted, uses settings.STORAGE_BACKEND.
    settings : _Settings, optional
        Settings object; a fresh one is loaded from the environment when omitted.
    kwargs : dict
        Extra args. For postgres, `dsn="..."` and `timeout=...` override settings.

    Raises
    ------
    ValueError
        Unknown backend, or postgres without a DSN.
    """
    cfg = settings or load_settings()
    be = (backend or cfg.STORAGE_BACKEND or "memory").strip().lower()
    common = {
        "id_strategy": kwargs.get("id_strategy") or get_strategy_from_config(cfg.ID_STRATEGY),
        "id_length": kwargs.get("id_length", cfg.ID_LENGTH),
        "strict_urls": kwargs.get("strict_urls", cfg.STRICT_URLS),
    }
    log.info("Selected storage backend: %r", be)

    if be == "memory":
        return Storage(**common)

    if be == "postgres":
        dsn = kwargs.get("dsn") or cfg.DB_DSN
        if not dsn:
            raise ValueError("DB_DSN is required for postgres backend (env LINKTRACK_DB_DSN)")
        # Local import to avoid hard dependency when not using postgres
        from linktrack.storage.db_storage import DBStorage

        return DBStorage(dsn=dsn, timeout=kwargs.get("timeout", cfg.DB_TIMEOUT), **common)

    raise ValueError(f"Unknown storage backend: {be!r}")
