"""
Primitive CRUD facade.

:class:`FootprintService` maps abstract ``create`` / ``find`` / ``update`` /
``destroy`` calls onto the injected store's primitives. It is the only
layer that talks to the store; the association resolver is built on top
of it.

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────────┐
        │                      FootprintService                           │
        │                                                                 │
        │  registry: SchemaRegistry   ← model name must exist             │
        │  store: Store               ← exactly one primitive per call    │
        │  config: ConfigSource       ← footprints.models.options         │
        │                                                                 │
        │  create(model, values)                 → record | [record]      │
        │  find(model, criteria, options)        → record | None | [..]   │
        │  update(model, criteria, values, opts) → record | None | [..]   │
        │  destroy(model, criteria, options)     → record | None | [..]   │
        └────────────────────────────────────────────────────────────────┘

    Result shape follows the criteria: a scalar primary key (or
    ``find_one``) yields a single record or ``None``; a structured filter
    yields a list capped by the configured ``default_limit`` unless the
    caller set ``limit`` themselves.

Guardrails:
    ❌ DON'T: Retry or translate store failures here
    ✅ DO: Let StoreError propagate to the caller unchanged

    ❌ DON'T: Mutate the caller's criteria when adding a default limit
    ✅ DO: Work on a copy (``with_default_limit``)

Tags:
    facade, crud, store, pagination, populate, footprints
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from footprints.criteria import is_structured, with_default_limit
from footprints.logging import get_logger
from footprints.options import QueryOptions
from footprints.protocols import ConfigSource, Record, SchemaRegistry, Store
from footprints.settings import load_model_options

logger = get_logger(__name__)

OptionsLike = QueryOptions | Mapping[str, Any] | None


class FootprintService:
    """
    Model-agnostic CRUD over an injected store.

    Args:
        store: Store primitives to delegate to.
        registry: Schema registry; unknown model names fail before the store is touched.
        config: Source of ``footprints.models.options``. A plain nested
            mapping is accepted; ``None`` disables configured defaults.

    Example:
        service = FootprintService(store, registry, {"footprints": {"models": {"options": {"defaultLimit": 100}}}})
        books = await service.find("Book", {"genre": "sf"})       # at most 100
        book = await service.find("Book", 3)                      # record or None
    """

    def __init__(
        self,
        store: Store,
        registry: SchemaRegistry,
        config: ConfigSource | Mapping[str, Any] | None = None,
    ):
        self.store = store
        self.registry = registry
        self.config = config

    def model_options(self, options: OptionsLike = None) -> QueryOptions:
        """Caller options with configured defaults filled in.

        Configuration is read on every call so that a live config source is
        always honored.
        """
        return QueryOptions.coerce(options).with_defaults(load_model_options(self.config))

    async def create(
        self,
        model_name: str,
        values: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        options: OptionsLike = None,
    ) -> Record | list[Record]:
        """Create a record, or one record per mapping when ``values`` is a sequence."""
        self.registry.get(model_name)
        logger.debug(
            "footprints.create",
            model=model_name,
            many=not isinstance(values, Mapping),
        )
        return await self.store.create(model_name, values)

    async def find(
        self,
        model_name: str,
        criteria: Any = None,
        options: OptionsLike = None,
    ) -> Record | list[Record] | None:
        """Find records matching ``criteria``.

        A primary-key value (or ``find_one``) returns one record or ``None``.
        Populate directives are applied in order before the query runs.
        """
        self.registry.get(model_name)
        opts = self.model_options(options)
        if criteria is None:
            criteria = {}

        if not is_structured(criteria):
            query = self.store.find_one(model_name, criteria)
        elif opts.find_one:
            query = self.store.find_one(model_name, dict(criteria))
        else:
            query = self.store.find(model_name, with_default_limit(criteria, opts.default_limit))

        for directive in opts.populate or ():
            query = query.populate(directive.attribute, directive.criteria)

        logger.debug(
            "footprints.find",
            model=model_name,
            single=not is_structured(criteria) or bool(opts.find_one),
            populate=[d.attribute for d in opts.populate or ()],
        )
        return await query.execute()

    async def update(
        self,
        model_name: str,
        criteria: Any,
        values: Mapping[str, Any],
        options: OptionsLike = None,
    ) -> Record | list[Record] | None:
        """Update matching records with ``values``.

        Returns the updated list for a structured filter. For a primary-key
        value (or ``find_one``) returns the single updated record, or
        ``None`` when nothing matched.
        """
        self.registry.get(model_name)
        opts = self.model_options(options)
        single, criteria = self._target(criteria, opts)

        logger.debug("footprints.update", model=model_name, single=single)
        results = await self.store.update(model_name, criteria, values)
        return self._shape(results, single)

    async def destroy(
        self,
        model_name: str,
        criteria: Any,
        options: OptionsLike = None,
    ) -> Record | list[Record] | None:
        """Destroy matching records, with the same result shape as :meth:`update`."""
        self.registry.get(model_name)
        opts = self.model_options(options)
        single, criteria = self._target(criteria, opts)

        logger.debug("footprints.destroy", model=model_name, single=single)
        results = await self.store.destroy(model_name, criteria)
        return self._shape(results, single)

    @staticmethod
    def _target(criteria: Any, opts: QueryOptions) -> tuple[bool, Any]:
        """Decide result shape and cap structured criteria by the default limit."""
        if criteria is None:
            criteria = {}
        if not is_structured(criteria):
            return True, criteria
        if opts.find_one:
            return True, dict(criteria)
        return False, with_default_limit(criteria, opts.default_limit)

    @staticmethod
    def _shape(results: list[Record], single: bool) -> Record | list[Record] | None:
        if not single:
            return results
        return results[0] if results else None


__all__ = ["FootprintService"]
