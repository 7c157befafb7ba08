"""Footprints -- model-agnostic CRUD and association traversal over a record store.

Manifesto:
    Controllers that expose ``/{model}/{id}/{relationship}`` routes should not
    know whether ``relationship`` is a collection living in the child's own
    table or a single reference held by the parent. Footprints answers that
    from the model schema and rewrites the call into plain CRUD against the
    right side of the relationship.

    - **Schema-driven:** Relationship kind comes from the injected registry
    - **Store-agnostic:** Any object satisfying the Store protocol works
    - **Injected collaborators:** No global ORM or config lookups
    - **Fail before side effects:** Schema errors precede store calls

Architecture::

    Layer 1 -- Types & Errors
        errors.py          FootprintError hierarchy
        schema.py          ModelDescriptor / AttributeDescriptor / Singular | Plural
        protocols.py       SchemaRegistry, Store, Query, ConfigSource
        criteria.py        Structured vs. scalar criteria, filters, windows
        options.py         QueryOptions + PopulateDirective

    Layer 2 -- Collaborators
        registry.py        ModelRegistry (in-memory)
        memory.py          InMemoryStore
        orm/               SQLAlchemyStore + registry_from_base()
        settings.py        FootprintSettings, DictConfig, load_model_options()
        logging.py         structlog configuration

    Layer 3 -- Core
        service.py         FootprintService (primitive CRUD facade)
        associations.py    AssociationResolver

Quick start::

    from footprints import AssociationResolver, FootprintService, InMemoryStore, ModelRegistry

    registry = ModelRegistry([
        {"name": "Author", "attributes": {
            "books": {"collection": "Book", "via": "authorId"},
            "profile": {"model": "Profile"},
        }},
        {"name": "Book", "attributes": {"title": "string", "authorId": {"model": "Author"}}},
        {"name": "Profile", "attributes": {"bio": "string"}},
    ])
    service = FootprintService(InMemoryStore(registry), registry)
    resolver = AssociationResolver(service)

    await resolver.create_association("Author", 7, "books", {"title": "X"})
"""

from footprints.associations import AssociationResolver
from footprints.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    FootprintError,
    InvalidAssociationError,
    StoreError,
    UnknownAttributeError,
    UnknownModelError,
)
from footprints.logging import LogContext, configure_logging, get_logger
from footprints.memory import InMemoryStore
from footprints.options import PopulateDirective, QueryOptions
from footprints.protocols import ConfigSource, Query, Record, SchemaRegistry, Store
from footprints.registry import ModelRegistry
from footprints.schema import AttributeDescriptor, ModelDescriptor, Plural, Relationship, Singular
from footprints.service import FootprintService
from footprints.settings import (
    DictConfig,
    FootprintSettings,
    get_settings,
    load_model_options,
    setup_logging,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "AssociationResolver",
    "FootprintService",
    # Schema
    "AttributeDescriptor",
    "ModelDescriptor",
    "ModelRegistry",
    "Plural",
    "Relationship",
    "Singular",
    # Protocols
    "ConfigSource",
    "Query",
    "Record",
    "SchemaRegistry",
    "Store",
    # Stores
    "InMemoryStore",
    # Options / config
    "DictConfig",
    "FootprintSettings",
    "PopulateDirective",
    "QueryOptions",
    "get_settings",
    "load_model_options",
    "setup_logging",
    # Errors
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "FootprintError",
    "InvalidAssociationError",
    "StoreError",
    "UnknownAttributeError",
    "UnknownModelError",
    # Logging
    "LogContext",
    "configure_logging",
    "get_logger",
]
