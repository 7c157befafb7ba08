"""Criteria helpers.

Criteria come in two shapes and every layer must treat them the same way:

* **structured**: a mapping of attribute filters, optionally carrying the
  reserved keys ``where``, ``limit``, ``skip`` and ``sort``;
* **scalar**: anything else, interpreted as a primary-key value.

Filter values are matched by equality, a list/tuple/set means "one of",
and a mapping applies comparison operators::

    {"year": {">=": 1990, "<": 2000}, "genre": ["sf", "fantasy"]}

Nothing in this module mutates the criteria it is given.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

RESERVED_KEYS = frozenset({"where", "limit", "skip", "sort"})

OPERATORS = frozenset(
    {"<", "<=", ">", ">=", "!=", "in", "nin", "contains", "startsWith", "endsWith"}
)


def is_structured(criteria: Any) -> bool:
    """True for an attribute filter, False for a bare primary-key value."""
    return isinstance(criteria, Mapping)


def with_default_limit(criteria: Mapping[str, Any], limit: int | None) -> dict[str, Any]:
    """Copy ``criteria``, adding ``limit`` unless the caller already set one."""
    merged = dict(criteria)
    if limit is not None and merged.get("limit") is None:
        merged["limit"] = limit
    return merged


@dataclass
class CriteriaParts:
    """Structured criteria split into filters and result-window directives."""

    filters: dict[str, Any] = field(default_factory=dict)
    limit: int | None = None
    skip: int = 0
    sort: list[tuple[str, bool]] = field(default_factory=list)


def split_criteria(criteria: Mapping[str, Any] | None) -> CriteriaParts:
    """Separate attribute filters from ``limit`` / ``skip`` / ``sort``.

    Top-level filters and an explicit ``where`` mapping are combined, the
    ``where`` entries taking precedence.
    """
    if not criteria:
        return CriteriaParts()

    filters = {k: v for k, v in criteria.items() if k not in RESERVED_KEYS}
    where = criteria.get("where")
    if where:
        filters.update(where)

    limit = criteria.get("limit")
    return CriteriaParts(
        filters=filters,
        limit=int(limit) if limit is not None else None,
        skip=int(criteria.get("skip") or 0),
        sort=parse_sort(criteria.get("sort")),
    )


def parse_sort(sort: Any) -> list[tuple[str, bool]]:
    """Normalize a sort directive to ``[(attribute, descending), ...]``.

    Accepts ``"name"``, ``"name DESC, year"``, a mapping
    ``{"name": "desc", "year": 1}`` or a list of either.
    """
    if not sort:
        return []
    if isinstance(sort, Mapping):
        return [(key, _is_descending(direction)) for key, direction in sort.items()]
    if isinstance(sort, str):
        result = []
        for clause in sort.split(","):
            parts = clause.split()
            if not parts:
                continue
            descending = len(parts) > 1 and _is_descending(parts[1])
            result.append((parts[0], descending))
        return result
    if isinstance(sort, Iterable):
        return [item for entry in sort for item in parse_sort(entry)]
    raise ValueError(f"Unsupported sort directive: {sort!r}")


def _is_descending(direction: Any) -> bool:
    if isinstance(direction, str):
        return direction.strip().lower() in ("desc", "descending", "-1")
    return direction is not None and direction < 0


def matches(record: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    """True when ``record`` satisfies every filter in ``filters``."""
    return all(_matches_value(record.get(key), expected) for key, expected in filters.items())


def _matches_value(actual: Any, expected: Any) -> bool:
    if isinstance(expected, Mapping):
        return all(_apply_operator(op, actual, operand) for op, operand in expected.items())
    if isinstance(expected, (list, tuple, set, frozenset)):
        return actual in expected
    return actual == expected


def _apply_operator(op: str, actual: Any, operand: Any) -> bool:
    match op:
        case "!=":
            return actual != operand
        case "in":
            return actual in operand
        case "nin":
            return actual not in operand
    if op not in OPERATORS:
        raise ValueError(f"Unsupported criteria operator: {op!r}")
    if actual is None:
        return False
    match op:
        case "<":
            return actual < operand
        case "<=":
            return actual <= operand
        case ">":
            return actual > operand
        case ">=":
            return actual >= operand
        case "contains":
            return operand in actual
        case "startsWith":
            return str(actual).startswith(operand)
        case _:
            return str(actual).endswith(operand)


def apply_window(
    records: list[dict[str, Any]],
    sort: list[tuple[str, bool]],
    skip: int = 0,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Sort, then slice ``records``. None values sort first."""
    ordered = list(records)
    # Stable sort applied from the least significant key upwards
    for key, descending in reversed(sort):
        ordered.sort(
            key=lambda r: (r.get(key) is not None, r.get(key)),
            reverse=descending,
        )
    end = skip + limit if limit is not None else None
    return ordered[skip:end]


__all__ = [
    "CriteriaParts",
    "OPERATORS",
    "RESERVED_KEYS",
    "apply_window",
    "is_structured",
    "matches",
    "parse_sort",
    "split_criteria",
    "with_default_limit",
]
