"""
Collaborator protocols for footprints.

The adapter depends on three collaborators it does not implement itself:
a schema registry, a record store and a configuration source. They are
injected at construction and described here structurally, so any object
with the right shape works.

Architecture:
    ::

        protocols.py
        ├── SchemaRegistry  : model name → ModelDescriptor
        ├── Query           : deferred find with chained populate()
        ├── Store           : create / find / find_one / update / destroy
        └── ConfigSource    : dotted key-path lookup

    Implementations:
        ModelRegistry, registry_from_base()   → SchemaRegistry
        InMemoryStore, SQLAlchemyStore         → Store
        FootprintSettings, DictConfig          → ConfigSource

Guardrails:
    ❌ DON'T: Reach for a global ORM or registry from inside the adapter
    ✅ DO: Inject the collaborators into FootprintService

    ❌ DON'T: Raise driver exceptions from a Store
    ✅ DO: Wrap them in StoreError(cause=...)

Tags:
    protocol, store, registry, configuration, footprints
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from footprints.schema import ModelDescriptor

Record = dict[str, Any]


@runtime_checkable
class SchemaRegistry(Protocol):
    """Resolves a model name to its descriptor."""

    def get(self, model_name: str) -> ModelDescriptor:
        """Return the descriptor. Raises ``UnknownModelError`` if absent."""
        ...

    def __contains__(self, model_name: object) -> bool:
        ...


@runtime_checkable
class Query(Protocol):
    """A find query that has not run yet.

    ``populate()`` returns the query so calls chain; nothing touches the
    store until ``execute()`` is awaited.
    """

    def populate(self, attribute: str, criteria: Mapping[str, Any] | None = None) -> Query:
        """Eager-load ``attribute`` filtered by ``criteria``."""
        ...

    async def execute(self) -> Any:
        """Run the query. A ``find`` query returns a list, ``find_one`` a record or None."""
        ...


@runtime_checkable
class Store(Protocol):
    """Record-oriented store primitives.

    Scalar criteria address a record by primary key. Structured criteria
    are attribute filters carrying optional ``where`` / ``limit`` /
    ``skip`` / ``sort`` keys. ``update`` and ``destroy`` always return
    the affected records as a list.
    """

    async def create(
        self, model_name: str, values: Mapping[str, Any] | Sequence[Mapping[str, Any]]
    ) -> Record | list[Record]:
        ...

    def find(self, model_name: str, criteria: Any) -> Query:
        ...

    def find_one(self, model_name: str, criteria: Any) -> Query:
        ...

    async def update(
        self, model_name: str, criteria: Any, values: Mapping[str, Any]
    ) -> list[Record]:
        ...

    async def destroy(self, model_name: str, criteria: Any) -> list[Record]:
        ...


@runtime_checkable
class ConfigSource(Protocol):
    """Read-only key-path configuration lookup (``footprints.models.options``)."""

    def get(self, path: str, default: Any = None) -> Any:
        ...


__all__ = [
    "ConfigSource",
    "Query",
    "Record",
    "SchemaRegistry",
    "Store",
]
