"""
Association resolution.

Given a parent model, a parent id and a relationship attribute,
:class:`AssociationResolver` classifies the relationship and rewrites the
call into facade calls against the correct side:

    ┌───────────────┬──────────────────────────────┬──────────────────────────────┐
    │ operation     │ Plural (collection + via)    │ Singular (model)             │
    ├───────────────┼──────────────────────────────┼──────────────────────────────┤
    │ create        │ create(child, values+{via})  │ InvalidAssociationError      │
    │ find          │ find(child, crit+{via})      │ find(parent, pid, populate)  │
    │               │                              │   → parent[attribute]        │
    │ update        │ update(child, crit+{via})    │ update(parent, pid, {attr})  │
    │               │                              │   → find(child, parent[attr])│
    │ destroy       │ destroy(child, child_id)     │ destroy(child, child_id)     │
    └───────────────┴──────────────────────────────┴──────────────────────────────┘

Plural records live in the child's own table, so they are queried
directly and scoped by the foreign key. A singular target is only
reachable through the parent record.

Known gaps, kept deliberately visible:

* Singular ``find`` / ``update`` are two dependent store calls with no
  atomicity; a concurrent change to the parent between them can produce a
  stale child lookup.
* ``destroy_association`` deletes the child by id alone. It does not check
  that the child belongs to the given parent.

Tags:
    association, relationship, resolver, footprints
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from footprints.criteria import is_structured
from footprints.errors import InvalidAssociationError
from footprints.logging import LogContext, get_logger
from footprints.options import PopulateDirective, QueryOptions
from footprints.protocols import Record
from footprints.schema import ModelDescriptor, Plural, Relationship, Singular
from footprints.service import FootprintService, OptionsLike

logger = get_logger(__name__)


class AssociationResolver:
    """
    Relationship-aware CRUD on top of a :class:`FootprintService`.

    Schema lookups (parent model, attribute, child model) all happen before
    the first store call, so ``UnknownModelError``, ``UnknownAttributeError``
    and ``InvalidAssociationError`` never leave partial side effects.

    Example:
        resolver = AssociationResolver(service)
        await resolver.create_association("Author", 7, "books", {"title": "X"})
        await resolver.find_association("Author", 7, "books", 3)
        await resolver.find_association("Author", 7, "profile")
    """

    def __init__(self, service: FootprintService):
        self.service = service

    def resolve(
        self, parent_model_name: str, attribute: str
    ) -> tuple[ModelDescriptor, Relationship, ModelDescriptor]:
        """Return ``(parent, relationship, child)`` descriptors for ``parent.attribute``."""
        registry = self.service.registry
        parent = registry.get(parent_model_name)
        relationship = parent.relationship(attribute)
        child = registry.get(relationship.target)
        logger.debug(
            "association.resolved",
            parent=parent.name,
            attribute=attribute,
            kind=type(relationship).__name__.lower(),
            child=child.name,
        )
        return parent, relationship, child

    def resolve_target(self, parent_model_name: str, attribute: str) -> ModelDescriptor:
        """Return the descriptor of the model that ``parent.attribute`` points at.

        Unlike :meth:`resolve` the relationship is not classified, so a
        collection declared without ``via`` is accepted.
        """
        registry = self.service.registry
        attr = registry.get(parent_model_name).attribute(attribute)
        if attr.target is None:
            raise InvalidAssociationError(
                parent_model_name,
                attribute,
                f"{parent_model_name}.{attribute} is not a relationship attribute",
            )
        return registry.get(attr.target)

    async def create_association(
        self,
        parent_model_name: str,
        parent_id: Any,
        attribute: str,
        values: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        options: OptionsLike = None,
    ) -> Record | list[Record]:
        """Create child record(s) linked to ``parent_id``.

        The foreign key overrides any ``via`` value present in ``values``.

        Raises:
            InvalidAssociationError: ``attribute`` is a singular reference,
                which has no foreign key to inject.
        """
        _, relationship, child = self.resolve(parent_model_name, attribute)
        if not isinstance(relationship, Plural):
            raise InvalidAssociationError(
                parent_model_name,
                attribute,
                f"Cannot create through singular reference {parent_model_name}.{attribute}: "
                "it has no 'via' foreign key",
            ).with_context(operation="create_association")

        if isinstance(values, Mapping):
            linked: Any = {**values, relationship.via: parent_id}
        else:
            linked = [{**item, relationship.via: parent_id} for item in values]

        async with LogContext(association=f"{parent_model_name}.{attribute}", parent_id=parent_id):
            return await self.service.create(child.name, linked, options)

    async def find_association(
        self,
        parent_model_name: str,
        parent_id: Any,
        attribute: str,
        criteria: Any = None,
        options: OptionsLike = None,
    ) -> Record | list[Record] | None:
        """Find records associated with ``parent_id`` through ``attribute``.

        A scalar ``criteria`` is a child primary key and yields one record
        or ``None``. For a singular reference the populated attribute value
        of the parent is returned (``None`` if the parent does not exist).
        """
        parent, relationship, child = self.resolve(parent_model_name, attribute)
        criteria, opts = _normalize(child, criteria, options)

        async with LogContext(association=f"{parent_model_name}.{attribute}", parent_id=parent_id):
            match relationship:
                case Plural(via=via):
                    scoped = _scoped(criteria, via, parent_id)
                    return await self.service.find(child.name, scoped, opts)
                case Singular():
                    through = opts.evolve(
                        populate=[PopulateDirective(attribute, criteria)], find_one=None
                    )
                    parent_record = await self.service.find(parent.name, parent_id, through)
                    if parent_record is None:
                        return None
                    return parent_record.get(attribute)

    async def update_association(
        self,
        parent_model_name: str,
        parent_id: Any,
        attribute: str,
        criteria: Any,
        values: Any,
        options: OptionsLike = None,
    ) -> Record | list[Record] | None:
        """Update records associated with ``parent_id`` through ``attribute``.

        Plural: updates the matching children, scoped by the foreign key.
        Singular: stores ``values`` as the parent's reference, then returns
        the child now referenced (``None`` if either lookup finds nothing).
        The two singular steps are not atomic.
        """
        parent, relationship, child = self.resolve(parent_model_name, attribute)
        criteria, opts = _normalize(child, criteria, options)

        async with LogContext(association=f"{parent_model_name}.{attribute}", parent_id=parent_id):
            match relationship:
                case Plural(via=via):
                    scoped = _scoped(criteria, via, parent_id)
                    return await self.service.update(child.name, scoped, values, opts)
                case Singular():
                    parent_record = await self.service.update(
                        parent.name, parent_id, {attribute: values}, opts
                    )
                    if parent_record is None:
                        return None
                    child_id = _reference_id(child, parent_record.get(attribute))
                    if child_id is None:
                        return None
                    return await self.service.find(child.name, child_id)

    async def destroy_association(
        self,
        parent_model_name: str,
        parent_id: Any,
        attribute: str,
        child_id: Any,
        options: OptionsLike = None,
    ) -> Record | list[Record] | None:
        """Destroy the ``attribute`` child identified by ``child_id``.

        Only the child's type is resolved from the relationship; the child
        is not checked against ``parent_id``.
        """
        child = self.resolve_target(parent_model_name, attribute)
        async with LogContext(association=f"{parent_model_name}.{attribute}", parent_id=parent_id):
            return await self.service.destroy(child.name, child_id, options)


def _normalize(
    child: ModelDescriptor, criteria: Any, options: OptionsLike
) -> tuple[dict[str, Any], QueryOptions]:
    """Turn a scalar child id into ``{pk: id}`` with single-record semantics."""
    opts = QueryOptions.coerce(options)
    if criteria is None:
        return {}, opts
    if not is_structured(criteria):
        return {child.primary_key: criteria}, opts.evolve(find_one=True)
    return dict(criteria), opts


def _scoped(criteria: dict[str, Any], via: str, parent_id: Any) -> dict[str, Any]:
    """Add the foreign-key filter, also inside ``where`` so it cannot be overridden."""
    scoped = {**criteria, via: parent_id}
    where = scoped.get("where")
    if isinstance(where, Mapping):
        scoped["where"] = {**where, via: parent_id}
    return scoped


def _reference_id(child: ModelDescriptor, reference: Any) -> Any:
    if isinstance(reference, Mapping):
        return reference.get(child.primary_key)
    return reference


__all__ = ["AssociationResolver"]
