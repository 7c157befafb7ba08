"""Per-call options and their merge with configured defaults.

Callers may pass a :class:`QueryOptions`, a plain mapping, or ``None``.
Mappings accept both spellings used by configuration files and Python
callers::

    {"findOne": True, "defaultLimit": 50, "populate": [{"attribute": "books"}]}
    {"find_one": True, "default_limit": 50, "populate": ["books"]}

Configured defaults (``footprints.models.options``) fill in only what the
caller left out. Populate directives from configuration are appended after
the caller's, skipping any attribute the caller already populates.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class PopulateDirective:
    """Eager-load ``attribute``, restricted by ``criteria``."""

    attribute: str
    criteria: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: PopulateDirective | Mapping[str, Any] | str) -> PopulateDirective:
        if isinstance(value, PopulateDirective):
            return value
        if isinstance(value, str):
            return cls(attribute=value)
        if isinstance(value, Mapping) and "attribute" in value:
            return cls(attribute=value["attribute"], criteria=value.get("criteria") or {})
        raise ValueError(f"Invalid populate directive: {value!r}")


@dataclass(frozen=True)
class QueryOptions:
    """
    Options recognized by the facade.

    Attributes:
        find_one: Force single-record semantics even for structured criteria.
        populate: Eager-load directives applied in order. ``None`` means
            "not given"; an empty list is an explicit "populate nothing"
            that still lets configured directives through.
        default_limit: Page ceiling for structured criteria without a limit.
    """

    find_one: bool | None = None
    populate: tuple[PopulateDirective, ...] | None = None
    default_limit: int | None = None

    @classmethod
    def coerce(cls, options: QueryOptions | Mapping[str, Any] | None) -> QueryOptions:
        """Build options from any accepted shape."""
        if options is None:
            return cls()
        if isinstance(options, QueryOptions):
            return options
        if not isinstance(options, Mapping):
            raise TypeError(f"options must be a mapping or QueryOptions, not {type(options).__name__}")

        find_one = _first_present(options, "find_one", "findOne")
        default_limit = _first_present(options, "default_limit", "defaultLimit")
        populate = options.get("populate")
        return cls(
            find_one=bool(find_one) if find_one is not None else None,
            populate=(
                tuple(PopulateDirective.coerce(p) for p in populate)
                if populate is not None
                else None
            ),
            default_limit=int(default_limit) if default_limit is not None else None,
        )

    def with_defaults(self, defaults: QueryOptions) -> QueryOptions:
        """Return options where ``defaults`` fill in every key left unset here."""
        populate = self.populate
        if defaults.populate:
            own = populate or ()
            named = {directive.attribute for directive in own}
            populate = own + tuple(d for d in defaults.populate if d.attribute not in named)

        return QueryOptions(
            find_one=self.find_one if self.find_one is not None else defaults.find_one,
            populate=populate,
            default_limit=(
                self.default_limit if self.default_limit is not None else defaults.default_limit
            ),
        )

    def evolve(self, **changes: Any) -> QueryOptions:
        """Copy with ``changes`` applied."""
        if "populate" in changes and changes["populate"] is not None:
            changes["populate"] = tuple(PopulateDirective.coerce(p) for p in changes["populate"])
        return replace(self, **changes)


def _first_present(options: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if options.get(key) is not None:
            return options[key]
    return None


__all__ = ["PopulateDirective", "QueryOptions"]
