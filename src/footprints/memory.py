"""
In-memory store backend.

A dict-backed :class:`~footprints.protocols.Store` for tests, examples and
single-process tools. Records live in per-model tables keyed by primary
key; every value handed back to a caller is a deep copy, so callers can
never mutate stored state.

Features:
    - Integer auto-increment primary keys when none is supplied
    - Duplicate primary keys fail with ``StoreError``
    - Structured filters with ``where`` / ``limit`` / ``skip`` / ``sort``
    - ``populate()`` for singular and plural relationships

Guardrails:
    ❌ DON'T: Use InMemoryStore across processes (no sharing, no durability)
    ✅ DO: Use SQLAlchemyStore for anything persistent

Tags:
    store, in-memory, testing, footprints
"""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from footprints.criteria import apply_window, is_structured, matches, split_criteria
from footprints.errors import FootprintError, StoreError
from footprints.options import PopulateDirective
from footprints.protocols import Record, SchemaRegistry
from footprints.schema import ModelDescriptor, Plural, Singular


@contextmanager
def _store_errors(operation: str, model_name: str) -> Iterator[None]:
    """Re-raise anything that is not already a footprints error as StoreError."""
    try:
        yield
    except FootprintError:
        raise
    except (TypeError, ValueError, KeyError) as e:
        raise StoreError(
            f"{operation} on {model_name} failed: {e}", cause=e
        ).with_context(model=model_name, operation=operation) from e


class MemoryQuery:
    """Deferred find against an :class:`InMemoryStore`."""

    def __init__(self, store: InMemoryStore, model_name: str, criteria: Any, *, single: bool):
        self._store = store
        self._model_name = model_name
        self._criteria = criteria
        self._single = single
        self._populate: list[PopulateDirective] = []

    def populate(self, attribute: str, criteria: Mapping[str, Any] | None = None) -> MemoryQuery:
        self._populate.append(PopulateDirective(attribute, criteria or {}))
        return self

    async def execute(self) -> Record | list[Record] | None:
        operation = "find_one" if self._single else "find"
        with _store_errors(operation, self._model_name):
            model = self._store.descriptor(self._model_name)
            rows = self._store._select(model, self._criteria)
            if self._single:
                rows = rows[:1]
            results = [self._store._populated(model, row, self._populate) for row in rows]
        if self._single:
            return results[0] if results else None
        return results


class InMemoryStore:
    """
    Dict-backed store.

    Args:
        registry: Schema registry used for primary keys and relationships.

    Example:
        store = InMemoryStore(registry)
        await store.create("Book", {"title": "Dune"})
        await store.find("Book", {"title": "Dune"}).execute()
    """

    def __init__(self, registry: SchemaRegistry):
        self._registry = registry
        self._tables: dict[str, dict[Any, Record]] = {}
        self._sequences: dict[str, int] = {}

    def descriptor(self, model_name: str) -> ModelDescriptor:
        return self._registry.get(model_name)

    def _table(self, model_name: str) -> dict[Any, Record]:
        return self._tables.setdefault(model_name, {})

    # -- Store primitives --------------------------------------------------

    async def create(
        self, model_name: str, values: Mapping[str, Any] | Sequence[Mapping[str, Any]]
    ) -> Record | list[Record]:
        with _store_errors("create", model_name):
            model = self.descriptor(model_name)
            batch = [values] if isinstance(values, Mapping) else list(values)
            rows = self._prepare_rows(model, batch)

            table = self._table(model_name)
            for row in rows:
                table[row[model.primary_key]] = row
            created = [copy.deepcopy(row) for row in rows]

        return created[0] if isinstance(values, Mapping) else created

    def find(self, model_name: str, criteria: Any) -> MemoryQuery:
        return MemoryQuery(self, model_name, criteria, single=False)

    def find_one(self, model_name: str, criteria: Any) -> MemoryQuery:
        return MemoryQuery(self, model_name, criteria, single=True)

    async def update(
        self, model_name: str, criteria: Any, values: Mapping[str, Any]
    ) -> list[Record]:
        with _store_errors("update", model_name):
            model = self.descriptor(model_name)
            changes = self._normalize(model, values)
            rows = self._select(model, criteria)
            pk = model.primary_key
            if pk in changes and any(row[pk] != changes[pk] for row in rows):
                raise StoreError(
                    f"Primary key of {model_name} cannot be changed"
                ).with_context(model=model_name, operation="update")
            for row in rows:
                row.update(changes)
            return [copy.deepcopy(row) for row in rows]

    async def destroy(self, model_name: str, criteria: Any) -> list[Record]:
        with _store_errors("destroy", model_name):
            model = self.descriptor(model_name)
            rows = self._select(model, criteria)
            table = self._table(model_name)
            for row in rows:
                del table[row[model.primary_key]]
            return [copy.deepcopy(row) for row in rows]

    # -- Internals ---------------------------------------------------------

    def _prepare_rows(self, model: ModelDescriptor, batch: list[Mapping[str, Any]]) -> list[Record]:
        table = self._table(model.name)
        pk = model.primary_key
        rows: list[Record] = []
        seen: set[Any] = set()
        for values in batch:
            row = self._normalize(model, values)
            if row.get(pk) is None:
                row[pk] = self._next_id(model.name, seen)
            if row[pk] in table or row[pk] in seen:
                raise StoreError(
                    f"Duplicate primary key {row[pk]!r} for {model.name}"
                ).with_context(model=model.name, operation="create", primary_key=row[pk])
            seen.add(row[pk])
            rows.append(row)
        return rows

    def _next_id(self, model_name: str, reserved: set[Any]) -> int:
        table = self._table(model_name)
        next_id = self._sequences.get(model_name, 0) + 1
        while next_id in table or next_id in reserved:
            next_id += 1
        self._sequences[model_name] = next_id
        return next_id

    def _normalize(self, model: ModelDescriptor, values: Mapping[str, Any]) -> Record:
        """Store singular references as the target's primary key."""
        row = copy.deepcopy(dict(values))
        for name, relationship in model.relationships().items():
            if name not in row:
                continue
            match relationship:
                case Singular(target=target):
                    ref = row[name]
                    if isinstance(ref, Mapping):
                        row[name] = ref.get(self.descriptor(target).primary_key)
                case Plural():
                    raise StoreError(
                        f"Cannot write collection {model.name}.{name} through its parent"
                    ).with_context(model=model.name, attribute=name)
        return row

    def _select(self, model: ModelDescriptor, criteria: Any) -> list[Record]:
        """Matching rows (live references, callers copy before returning)."""
        table = self._table(model.name)
        if criteria is None:
            criteria = {}
        if not is_structured(criteria):
            row = table.get(criteria)
            return [row] if row is not None else []

        parts = split_criteria(criteria)
        rows = [row for row in table.values() if matches(row, parts.filters)]
        return apply_window(rows, parts.sort, parts.skip, parts.limit)

    def _populated(
        self, model: ModelDescriptor, row: Record, directives: list[PopulateDirective]
    ) -> Record:
        result = copy.deepcopy(row)
        for directive in directives:
            parts = split_criteria(directive.criteria)
            match model.relationship(directive.attribute):
                case Singular(target=target):
                    target_row = self._table(target).get(row.get(directive.attribute))
                    if target_row is not None and matches(target_row, parts.filters):
                        result[directive.attribute] = copy.deepcopy(target_row)
                    else:
                        result[directive.attribute] = None
                case Plural(target=target, via=via):
                    parent_id = row[model.primary_key]
                    children = [
                        child
                        for child in self._table(target).values()
                        if child.get(via) == parent_id and matches(child, parts.filters)
                    ]
                    windowed = apply_window(children, parts.sort, parts.skip, parts.limit)
                    result[directive.attribute] = [copy.deepcopy(c) for c in windowed]
        return result

    def __len__(self) -> int:
        return sum(len(table) for table in self._tables.values())


__all__ = ["InMemoryStore", "MemoryQuery"]
