"""SQLAlchemy engine and session factory for :class:`~footprints.orm.store.SQLAlchemyStore`.

This module provides:

* ``create_footprint_engine``    -- Create a SA engine from a URL.
* ``FootprintSession``           -- Session with ``expire_on_commit=False``.
* ``footprint_session_factory``  -- ``sessionmaker`` producing ``FootprintSession``.

Tags:
    footprints, orm, sqlalchemy, session, engine
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def create_footprint_engine(
    url: str = "sqlite:///footprints.db",
    *,
    echo: bool = False,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…``, ``postgresql://…``, etc.)
    echo:
        If ``True``, log all SQL to stdout.
    **kwargs:
        Extra arguments forwarded to ``sqlalchemy.create_engine``
        (``pool_size``, ``connect_args``, ``poolclass``, ...).
    """
    if url.startswith("sqlite"):
        # Store calls run on worker threads
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if url in _MEMORY_URLS:
            # One shared connection, otherwise each thread sees an empty database
            kwargs.setdefault("poolclass", StaticPool)

        engine = _sa_create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return _sa_create_engine(url, echo=echo, **kwargs)


class FootprintSession(Session):
    """Pre-configured session with ``expire_on_commit=False``.

    Records are built from ORM instances after commit; expiring them would
    trigger a reload per attribute.
    """

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def footprint_session_factory(engine: Engine) -> sessionmaker[FootprintSession]:
    """Return a ``sessionmaker`` bound to *engine* that produces ``FootprintSession`` instances."""
    return sessionmaker(bind=engine, class_=FootprintSession)


__all__ = [
    "FootprintSession",
    "create_footprint_engine",
    "footprint_session_factory",
]
