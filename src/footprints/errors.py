"""
Structured error types for footprints.

Every failure the adapter raises is a :class:`FootprintError`. Lookup and
classification errors are raised before any store call is issued, so a
failed association call never leaves partial side effects behind. Store
failures are surfaced as :class:`StoreError` and forwarded unchanged.

Manifesto:
    - **Typed hierarchy:** One subclass per failure the caller can act on
    - **Fail before side effects:** Schema errors precede store calls
    - **No recovery:** The adapter never retries or masks store failures
    - **Error chaining:** Driver exceptions are kept as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                      FootprintError                           │
        │            (category, context, cause, to_dict)                │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  SchemaError            AssociationError       StoreError     │
        │  (SCHEMA)               (ASSOCIATION)          (STORAGE)      │
        │      │                       │                                │
        │  UnknownModelError      InvalidAssociationError               │
        │  UnknownAttributeError                                        │
        │                                                               │
        │  ConfigError (CONFIG)                                         │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = UnknownModelError("Author")
    >>> error.model_name
    'Author'
    >>> error.category
    <ErrorCategory.SCHEMA: 'SCHEMA'>

    Wrapping a driver failure:

    >>> try:
    ...     raise RuntimeError("disk full")
    ... except RuntimeError as e:
    ...     error = StoreError("create failed", cause=e)
    >>> error.cause
    RuntimeError('disk full')

Tags:
    error-handling, exception-hierarchy, footprints, store, schema
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification and log routing."""

    SCHEMA = "SCHEMA"             # Unknown model or attribute
    ASSOCIATION = "ASSOCIATION"   # Relationship cannot support the operation
    STORAGE = "STORAGE"           # Underlying store failure
    CONFIG = "CONFIG"             # Malformed configuration
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        model: Model the operation targeted
        attribute: Relationship attribute, for association calls
        operation: Operation name (``find``, ``update_association``, ...)
        metadata: Additional key-value pairs
    """

    model: str | None = None
    attribute: str | None = None
    operation: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["model", "attribute", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class FootprintError(Exception):
    """
    Base exception for all footprints errors.

    Subclasses set ``default_category``. Instances carry an
    :class:`ErrorContext` and an optional chained ``cause``.

    Examples:
        >>> error = FootprintError("unexpected")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(model="Book", operation="find").context.model
        'Book'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> FootprintError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StoreError("insert failed").with_context(model="Book")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# SCHEMA ERRORS
# =============================================================================


class SchemaError(FootprintError):
    """Model or attribute lookup failed in the schema registry."""

    default_category = ErrorCategory.SCHEMA


class UnknownModelError(SchemaError):
    """Model name is not registered."""

    def __init__(self, model_name: str, message: str | None = None):
        self.model_name = model_name
        super().__init__(
            message or f"Unknown model: {model_name}",
            context=ErrorContext(model=model_name),
        )


class UnknownAttributeError(SchemaError):
    """Relationship attribute is not defined on the parent model."""

    def __init__(self, model_name: str, attribute: str, message: str | None = None):
        self.model_name = model_name
        self.attribute = attribute
        super().__init__(
            message or f"Unknown attribute {attribute!r} on model {model_name}",
            context=ErrorContext(model=model_name, attribute=attribute),
        )


# =============================================================================
# ASSOCIATION ERRORS
# =============================================================================


class AssociationError(FootprintError):
    """Relationship-level failure."""

    default_category = ErrorCategory.ASSOCIATION


class InvalidAssociationError(AssociationError):
    """The relationship does not provide what the operation needs.

    Raised for attributes that are not relationships at all, and for
    operations such as foreign-key injection on a singular reference.
    """

    def __init__(
        self,
        model_name: str,
        attribute: str,
        message: str | None = None,
        **kwargs: Any,
    ):
        self.model_name = model_name
        self.attribute = attribute
        kwargs.setdefault("context", ErrorContext(model=model_name, attribute=attribute))
        super().__init__(
            message or f"{model_name}.{attribute} does not support this association operation",
            **kwargs,
        )


# =============================================================================
# STORAGE / CONFIG ERRORS
# =============================================================================


class StoreError(FootprintError):
    """Failure raised by a store backend (constraint violation, connectivity, ...)."""

    default_category = ErrorCategory.STORAGE


class ConfigError(FootprintError):
    """Configured model options are malformed."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "FootprintError",
    "SchemaError",
    "UnknownModelError",
    "UnknownAttributeError",
    "AssociationError",
    "InvalidAssociationError",
    "StoreError",
    "ConfigError",
]
