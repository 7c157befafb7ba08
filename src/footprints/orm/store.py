"""
SQLAlchemy-backed store.

Implements the :class:`~footprints.protocols.Store` primitives over
SQLAlchemy 2.0 declarative models. Each primitive opens its own session,
runs on a worker thread (``asyncio.to_thread``) and commits before
returning, so the event loop never blocks on the driver.

Records are plain dicts of column values. A many-to-one relationship is
exposed under its relationship name holding the target's primary key,
which is what the association resolver reads back after a singular
update; ``populate()`` replaces it with the target record.

Architecture:
    ::

        SQLAlchemyStore(session_factory, Base)
        ├── create(model, values)          INSERT, flush, commit
        ├── find / find_one → SQLAlchemyQuery
        │       .populate(attr, criteria)  one extra SELECT … IN (…) per directive
        │       .execute()
        ├── update(model, criteria, values) SELECT, assign, commit
        └── destroy(model, criteria)        SELECT, delete, commit

Guardrails:
    ❌ DON'T: Let SQLAlchemyError escape the store
    ✅ DO: Wrap it in StoreError with the original as cause

Tags:
    store, sqlalchemy, orm, footprints
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

from sqlalchemy import Select, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapper, RelationshipDirection, Session

from footprints.criteria import apply_window, is_structured, split_criteria
from footprints.errors import StoreError, UnknownAttributeError, UnknownModelError
from footprints.logging import get_logger
from footprints.options import PopulateDirective
from footprints.orm.registry import foreign_key_attribute, primary_key_attribute
from footprints.protocols import Record

logger = get_logger(__name__)

T = TypeVar("T")


class SQLAlchemyQuery:
    """Deferred find against a :class:`SQLAlchemyStore`."""

    def __init__(self, store: SQLAlchemyStore, model_name: str, criteria: Any, *, single: bool):
        self._store = store
        self._model_name = model_name
        self._criteria = criteria
        self._single = single
        self._populate: list[PopulateDirective] = []

    def populate(self, attribute: str, criteria: Mapping[str, Any] | None = None) -> SQLAlchemyQuery:
        self._populate.append(PopulateDirective(attribute, criteria or {}))
        return self

    async def execute(self) -> Record | list[Record] | None:
        operation = "find_one" if self._single else "find"
        records = await self._store._run(operation, self._model_name, self._load)
        if self._single:
            return records[0] if records else None
        return records

    def _load(self, session: Session) -> list[Record]:
        store = self._store
        mapper = store.mapper(self._model_name)
        stmt = store._select(mapper, self._criteria)
        if self._single:
            stmt = stmt.limit(1)
        records = [store._to_record(obj) for obj in session.scalars(stmt).all()]
        for directive in self._populate:
            store._populate(session, mapper, records, directive)
        return records


class SQLAlchemyStore:
    """
    Store over SQLAlchemy declarative models.

    Args:
        session_factory: Callable returning a new ``Session`` (a ``sessionmaker``).
        base: Declarative base whose mapped classes are the available models.

    Example:
        engine = create_footprint_engine("sqlite:///library.db")
        Base.metadata.create_all(engine)
        store = SQLAlchemyStore(footprint_session_factory(engine), Base)
        registry = registry_from_base(Base)
    """

    def __init__(self, session_factory: Callable[[], Session], base: type[DeclarativeBase]):
        self._session_factory = session_factory
        self._mappers: dict[str, Mapper[Any]] = {
            mapper.class_.__name__: mapper for mapper in base.registry.mappers
        }

    def mapper(self, model_name: str) -> Mapper[Any]:
        try:
            return self._mappers[model_name]
        except KeyError:
            raise UnknownModelError(model_name) from None

    # -- Store primitives --------------------------------------------------

    async def create(
        self, model_name: str, values: Mapping[str, Any] | Sequence[Mapping[str, Any]]
    ) -> Record | list[Record]:
        batch = [values] if isinstance(values, Mapping) else list(values)

        def _create(session: Session) -> list[Record]:
            mapper = self.mapper(model_name)
            objs = [mapper.class_(**self._to_columns(mapper, item)) for item in batch]
            session.add_all(objs)
            session.flush()
            records = [self._to_record(obj) for obj in objs]
            session.commit()
            return records

        records = await self._run("create", model_name, _create)
        return records[0] if isinstance(values, Mapping) else records

    def find(self, model_name: str, criteria: Any) -> SQLAlchemyQuery:
        return SQLAlchemyQuery(self, model_name, criteria, single=False)

    def find_one(self, model_name: str, criteria: Any) -> SQLAlchemyQuery:
        return SQLAlchemyQuery(self, model_name, criteria, single=True)

    async def update(
        self, model_name: str, criteria: Any, values: Mapping[str, Any]
    ) -> list[Record]:
        def _update(session: Session) -> list[Record]:
            mapper = self.mapper(model_name)
            changes = self._to_columns(mapper, values)
            objs = session.scalars(self._select(mapper, criteria)).all()
            for obj in objs:
                for key, value in changes.items():
                    setattr(obj, key, value)
            session.flush()
            records = [self._to_record(obj) for obj in objs]
            session.commit()
            return records

        return await self._run("update", model_name, _update)

    async def destroy(self, model_name: str, criteria: Any) -> list[Record]:
        def _destroy(session: Session) -> list[Record]:
            mapper = self.mapper(model_name)
            objs = session.scalars(self._select(mapper, criteria)).all()
            records = [self._to_record(obj) for obj in objs]
            for obj in objs:
                session.delete(obj)
            session.commit()
            return records

        return await self._run("destroy", model_name, _destroy)

    # -- Execution ---------------------------------------------------------

    async def _run(self, operation: str, model_name: str, fn: Callable[[Session], T]) -> T:
        def _in_session() -> T:
            with self._session_factory() as session:
                return fn(session)

        try:
            return await asyncio.to_thread(_in_session)
        except (SQLAlchemyError, ValueError) as e:
            logger.warning(
                "store.failed", operation=operation, model=model_name, error=str(e)
            )
            raise StoreError(
                f"{operation} on {model_name} failed: {e}", cause=e
            ).with_context(model=model_name, operation=operation) from e

    # -- Translation -------------------------------------------------------

    def _singular_keys(self, mapper: Mapper[Any]) -> dict[str, str]:
        """Many-to-one relationship name → foreign-key column attribute."""
        return {
            rel.key: foreign_key_attribute(rel)
            for rel in mapper.relationships
            if rel.direction is RelationshipDirection.MANYTOONE
        }

    def _to_record(self, obj: Any) -> Record:
        mapper = inspect(obj).mapper
        record = {prop.key: getattr(obj, prop.key) for prop in mapper.column_attrs}
        for name, fk in self._singular_keys(mapper).items():
            record[name] = record[fk]
        return record

    def _to_columns(self, mapper: Mapper[Any], values: Mapping[str, Any]) -> dict[str, Any]:
        """Translate record values into column-attribute assignments."""
        singular = self._singular_keys(mapper)
        columns = {prop.key for prop in mapper.column_attrs}
        result: dict[str, Any] = {}
        for key, value in values.items():
            if key in singular:
                target = mapper.relationships[key].mapper
                if isinstance(value, Mapping):
                    value = value.get(primary_key_attribute(target))
                result[singular[key]] = value
            elif key in columns:
                result[key] = value
            else:
                raise ValueError(f"{mapper.class_.__name__} has no writable attribute {key!r}")
        return result

    def _column(self, mapper: Mapper[Any], key: str) -> Any:
        key = self._singular_keys(mapper).get(key, key)
        if key not in mapper.column_attrs:
            raise ValueError(f"{mapper.class_.__name__} has no filterable attribute {key!r}")
        return getattr(mapper.class_, key)

    def _conditions(self, mapper: Mapper[Any], filters: Mapping[str, Any]) -> list[Any]:
        clauses = []
        for key, expected in filters.items():
            column = self._column(mapper, key)
            if isinstance(expected, Mapping):
                clauses.extend(_operator(column, op, operand) for op, operand in expected.items())
            elif isinstance(expected, (list, tuple, set, frozenset)):
                clauses.append(column.in_(list(expected)))
            elif expected is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == expected)
        return clauses

    def _select(self, mapper: Mapper[Any], criteria: Any) -> Select[Any]:
        cls = mapper.class_
        if criteria is None:
            criteria = {}
        if not is_structured(criteria):
            pk = getattr(cls, primary_key_attribute(mapper))
            return select(cls).where(pk == criteria)

        parts = split_criteria(criteria)
        stmt = select(cls).where(*self._conditions(mapper, parts.filters))
        for key, descending in parts.sort:
            column = self._column(mapper, key)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if parts.skip:
            stmt = stmt.offset(parts.skip)
        if parts.limit is not None:
            stmt = stmt.limit(parts.limit)
        return stmt

    def _populate(
        self,
        session: Session,
        mapper: Mapper[Any],
        records: list[Record],
        directive: PopulateDirective,
    ) -> None:
        """Embed related records for ``directive.attribute`` with one extra query."""
        name = mapper.class_.__name__
        try:
            rel = mapper.relationships[directive.attribute]
        except KeyError:
            raise UnknownAttributeError(name, directive.attribute) from None

        target = rel.mapper
        target_pk = primary_key_attribute(target)
        parts = split_criteria(directive.criteria)
        conditions = self._conditions(target, parts.filters)

        if rel.direction is RelationshipDirection.MANYTOONE:
            ids = {r[directive.attribute] for r in records if r[directive.attribute] is not None}
            found = {}
            if ids:
                stmt = select(target.class_).where(
                    getattr(target.class_, target_pk).in_(list(ids)), *conditions
                )
                found = {
                    rec[target_pk]: rec
                    for rec in (self._to_record(obj) for obj in session.scalars(stmt).all())
                }
            for record in records:
                record[directive.attribute] = found.get(record[directive.attribute])
            return

        if rel.direction is not RelationshipDirection.ONETOMANY:
            raise ValueError(f"Cannot populate many-to-many relationship {name}.{directive.attribute}")

        via = foreign_key_attribute(rel)
        parent_pk = primary_key_attribute(mapper)
        ids = {r[parent_pk] for r in records}
        grouped: dict[Any, list[Record]] = defaultdict(list)
        if ids:
            stmt = select(target.class_).where(getattr(target.class_, via).in_(list(ids)), *conditions)
            for obj in session.scalars(stmt).all():
                child = self._to_record(obj)
                grouped[child[via]].append(child)
        for record in records:
            children = grouped.get(record[parent_pk], [])
            record[directive.attribute] = apply_window(children, parts.sort, parts.skip, parts.limit)


def _operator(column: Any, op: str, operand: Any) -> Any:
    match op:
        case "<":
            return column < operand
        case "<=":
            return column <= operand
        case ">":
            return column > operand
        case ">=":
            return column >= operand
        case "!=":
            return column.is_not(None) if operand is None else column != operand
        case "in":
            return column.in_(list(operand))
        case "nin":
            return column.not_in(list(operand))
        case "contains":
            return column.contains(operand)
        case "startsWith":
            return column.startswith(operand)
        case "endsWith":
            return column.endswith(operand)
        case _:
            raise ValueError(f"Unsupported criteria operator: {op!r}")


__all__ = ["SQLAlchemyQuery", "SQLAlchemyStore"]
