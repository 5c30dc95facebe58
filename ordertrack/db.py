# ordertrack/db.py
from __future__ import annotations

from pathlib import Path
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def _ensure_sqlite_parent_dir(url: str) -> None:
    # sqlite:///relative/path.db or sqlite:////abs/path.db
    if not url.startswith("sqlite:///") or _is_memory_sqlite(url):
        return
    path = url.replace("sqlite:///", "", 1)
    if path:
        Path(path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def create_db_engine(url: str) -> Engine:
    connect_args = {}
    kwargs = {}
    if url.startswith("sqlite:"):
        connect_args = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            # one shared connection, otherwise every session sees an empty db
            kwargs["poolclass"] = StaticPool
        else:
            _ensure_sqlite_parent_dir(url)
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    from . import models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """One session per request, always closed afterwards."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
