# =============================================
# File: ctxcommerce/db/repo.py
# Purpose: DB bootstrap: engine from DB_URL (default SQLite), table creation and sessions.
# =============================================
from __future__ import annotations
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from ctxcommerce.db import models  # noqa: F401  registers tables on SQLModel.metadata
from ctxcommerce.utils import settings

_engine = None
_engine_url: Optional[str] = None
_lock = threading.Lock()

def _build_engine(url: str):
    kwargs = {"echo": False}
    if url.startswith("sqlite"):
        # TestClient and the flusher thread share the connection
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)

def get_engine():
    """Engine for the current DB_URL; rebuilt when DB_URL changes."""
    global _engine, _engine_url
    url = settings.db_url()
    with _lock:
        if _engine is None or _engine_url != url:
            if _engine is not None:
                _engine.dispose()
            _engine = _build_engine(url)
            _engine_url = url
            SQLModel.metadata.create_all(_engine)
        return _engine

def init_db() -> None:
    get_engine()

@contextmanager
def session_scope() -> Iterator[Session]:
    with Session(get_engine()) as session:
        yield session

def reset_engine() -> None:
    """For tests: drop the cached engine so the next call re-reads DB_URL."""
    global _engine, _engine_url
    with _lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _engine_url = None
