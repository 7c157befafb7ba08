"""
Model and attribute descriptors, and relationship classification.

A model is described by its name, its primary-key attribute and a mapping
of attribute descriptors. Relationship attributes use the familiar
``model`` / ``collection`` / ``via`` shape::

    {
        "name": "Author",
        "primaryKey": "id",
        "attributes": {
            "name": {"type": "string"},
            "books": {"collection": "Book", "via": "authorId"},
            "profile": {"model": "Profile"},
        },
    }

:meth:`AttributeDescriptor.relationship` turns that shape into an explicit
:data:`Relationship` variant (:class:`Singular` or :class:`Plural`) so that
callers pattern-match once instead of probing field presence.

Tags:
    schema, descriptor, relationship, association, footprints
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from footprints.errors import InvalidAssociationError, UnknownAttributeError


@dataclass(frozen=True, slots=True)
class Singular:
    """The parent record holds a reference to exactly one ``target`` record."""

    target: str


@dataclass(frozen=True, slots=True)
class Plural:
    """Many ``target`` records point back at the parent through ``via``."""

    target: str
    via: str


Relationship = Singular | Plural


@dataclass(frozen=True)
class AttributeDescriptor:
    """
    Description of a single model attribute.

    Attributes:
        name: Attribute name on the owning model
        type: Optional scalar type tag (``string``, ``integer``, ...)
        model: Target model name of a singular reference
        collection: Target model name of a plural reference
        via: Inverse foreign-key attribute on the ``collection`` target
    """

    name: str
    type: str | None = None
    model: str | None = None
    collection: str | None = None
    via: str | None = None

    def __post_init__(self) -> None:
        if self.model is not None and self.collection is not None:
            raise ValueError(
                f"Attribute {self.name!r} cannot declare both model and collection"
            )

    @property
    def is_relationship(self) -> bool:
        return self.model is not None or self.collection is not None

    @property
    def target(self) -> str | None:
        """Model on the other side of the relationship, whatever its kind."""
        return self.model or self.collection

    def relationship(self, owner: str) -> Relationship:
        """Classify this attribute as a :class:`Singular` or :class:`Plural` relationship.

        Args:
            owner: Name of the model declaring the attribute (for error context).

        Raises:
            InvalidAssociationError: The attribute is not a relationship, or
                is a collection without a ``via`` foreign key.
        """
        if self.collection is not None:
            if not self.via:
                raise InvalidAssociationError(
                    owner,
                    self.name,
                    f"{owner}.{self.name} is a collection without a 'via' attribute",
                )
            return Plural(target=self.collection, via=self.via)
        if self.model is not None:
            return Singular(target=self.model)
        raise InvalidAssociationError(
            owner, self.name, f"{owner}.{self.name} is not a relationship attribute"
        )

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any] | str) -> AttributeDescriptor:
        # Shorthand: {"title": "string"}
        if isinstance(data, str):
            return cls(name=name, type=data)
        return cls(
            name=name,
            type=data.get("type"),
            model=data.get("model"),
            collection=data.get("collection"),
            via=data.get("via"),
        )


@dataclass(frozen=True)
class ModelDescriptor:
    """
    Read-only description of a model.

    Attributes:
        name: Model name used by callers (``Author``)
        primary_key: Attribute uniquely identifying a record
        attributes: Attribute name → :class:`AttributeDescriptor`
    """

    name: str
    primary_key: str = "id"
    attributes: Mapping[str, AttributeDescriptor] = field(default_factory=dict)

    def attribute(self, name: str) -> AttributeDescriptor:
        """Return the descriptor for ``name``.

        Raises:
            UnknownAttributeError: The model declares no such attribute.
        """
        try:
            return self.attributes[name]
        except KeyError:
            raise UnknownAttributeError(self.name, name) from None

    def relationship(self, name: str) -> Relationship:
        """Classify the relationship declared by attribute ``name``."""
        return self.attribute(name).relationship(self.name)

    def relationships(self) -> dict[str, Relationship]:
        """All relationship attributes, classified."""
        return {
            attr.name: attr.relationship(self.name)
            for attr in self.attributes.values()
            if attr.is_relationship
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ModelDescriptor:
        """Build a descriptor from a plain definition (``primaryKey`` or ``primary_key``)."""
        attributes = {
            name: AttributeDescriptor.from_dict(name, spec)
            for name, spec in (data.get("attributes") or {}).items()
        }
        primary_key = data.get("primaryKey") or data.get("primary_key") or "id"
        return cls(name=data["name"], primary_key=primary_key, attributes=attributes)


__all__ = [
    "AttributeDescriptor",
    "ModelDescriptor",
    "Plural",
    "Relationship",
    "Singular",
]
