"""SQLAlchemy backend for footprints.

Architecture::

    session.py    create_footprint_engine, FootprintSession, footprint_session_factory
    registry.py   registry_from_base(): descriptors from mapped classes
    store.py      SQLAlchemyStore / SQLAlchemyQuery

Quick start::

    from footprints.orm import (
        SQLAlchemyStore, create_footprint_engine, footprint_session_factory, registry_from_base,
    )

    engine = create_footprint_engine("sqlite:///library.db")
    Base.metadata.create_all(engine)
    store = SQLAlchemyStore(footprint_session_factory(engine), Base)
    service = FootprintService(store, registry_from_base(Base))
"""

from .registry import describe_mapper, registry_from_base
from .session import FootprintSession, create_footprint_engine, footprint_session_factory
from .store import SQLAlchemyQuery, SQLAlchemyStore

__all__ = [
    "FootprintSession",
    "SQLAlchemyQuery",
    "SQLAlchemyStore",
    "create_footprint_engine",
    "describe_mapper",
    "footprint_session_factory",
    "registry_from_base",
]
