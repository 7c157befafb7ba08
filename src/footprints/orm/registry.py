"""Schema registry derived from SQLAlchemy mappings.

Each mapped class becomes a :class:`~footprints.schema.ModelDescriptor`
named after the class:

* column attributes → plain attributes (``type`` = SA type name)
* many-to-one relationships → singular references (``model``)
* one-to-many relationships → plural references (``collection`` + ``via``,
  where ``via`` is the child attribute holding the foreign key)

Many-to-many relationships have no single foreign-key attribute to scope
by and are left out of the descriptor.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import DeclarativeBase, Mapper, RelationshipDirection, RelationshipProperty

from footprints.registry import ModelRegistry
from footprints.schema import AttributeDescriptor, ModelDescriptor


def primary_key_attribute(mapper: Mapper[Any]) -> str:
    return mapper.get_property_by_column(mapper.primary_key[0]).key


def foreign_key_attribute(relationship: RelationshipProperty[Any]) -> str:
    """Attribute holding the foreign key of a many-to-one or one-to-many relationship.

    For many-to-one it lives on the owning mapper, for one-to-many on the target.
    """
    if relationship.direction is RelationshipDirection.MANYTOONE:
        column = next(iter(relationship.local_columns))
        return relationship.parent.get_property_by_column(column).key
    column = next(iter(relationship.remote_side))
    return relationship.mapper.get_property_by_column(column).key


def describe_mapper(mapper: Mapper[Any]) -> ModelDescriptor:
    attributes: dict[str, AttributeDescriptor] = {}
    for prop in mapper.column_attrs:
        column_type = prop.columns[0].type
        attributes[prop.key] = AttributeDescriptor(prop.key, type=type(column_type).__name__.lower())

    for rel in mapper.relationships:
        target = rel.mapper.class_.__name__
        if rel.direction is RelationshipDirection.MANYTOONE:
            attributes[rel.key] = AttributeDescriptor(rel.key, model=target)
        elif rel.direction is RelationshipDirection.ONETOMANY:
            attributes[rel.key] = AttributeDescriptor(
                rel.key, collection=target, via=foreign_key_attribute(rel)
            )

    return ModelDescriptor(
        name=mapper.class_.__name__,
        primary_key=primary_key_attribute(mapper),
        attributes=attributes,
    )


def registry_from_base(base: type[DeclarativeBase]) -> ModelRegistry:
    """Build a :class:`ModelRegistry` covering every class mapped on ``base``."""
    return ModelRegistry(describe_mapper(mapper) for mapper in base.registry.mappers)


__all__ = [
    "describe_mapper",
    "foreign_key_attribute",
    "primary_key_attribute",
    "registry_from_base",
]
