"""
Shared pytest fixtures for footprints tests.

This module provides:
- The Author / Book / Profile schema used across the suite
- In-memory store, facade and resolver fixtures
- A recording store that logs every primitive call

Usage:
    Fixtures are auto-discovered by pytest; request them by argument name.
"""

import sys
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

# Ensure footprints package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from footprints import (
    AssociationResolver,
    FootprintService,
    InMemoryStore,
    ModelRegistry,
)


# =============================================================================
# Schema
# =============================================================================

LIBRARY_MODELS = [
    {
        "name": "Author",
        "attributes": {
            "name": "string",
            "books": {"collection": "Book", "via": "authorId"},
            "profile": {"model": "Profile"},
        },
    },
    {
        "name": "Book",
        "attributes": {
            "title": "string",
            "year": "integer",
            "authorId": {"model": "Author"},
        },
    },
    {
        "name": "Profile",
        "primaryKey": "handle",
        "attributes": {
            "handle": "string",
            "bio": "string",
        },
    },
]


@pytest.fixture
def registry() -> ModelRegistry:
    return ModelRegistry(LIBRARY_MODELS)


@pytest.fixture
def store(registry: ModelRegistry) -> InMemoryStore:
    return InMemoryStore(registry)


@pytest.fixture
def service(store: InMemoryStore, registry: ModelRegistry) -> FootprintService:
    return FootprintService(store, registry)


@pytest.fixture
def resolver(service: FootprintService) -> AssociationResolver:
    return AssociationResolver(service)


@pytest_asyncio.fixture
async def library(store: InMemoryStore) -> InMemoryStore:
    """Store seeded with two authors, their books and one profile.

    Author 7 ("Le Guin") owns books 1, 2, 3 and links profile "ursula".
    Author 8 ("Herbert") owns book 4 and has no profile.
    """
    await store.create("Profile", {"handle": "ursula", "bio": "Earthsea"})
    await store.create(
        "Author",
        [
            {"id": 7, "name": "Le Guin", "profile": "ursula"},
            {"id": 8, "name": "Herbert", "profile": None},
        ],
    )
    await store.create(
        "Book",
        [
            {"id": 1, "title": "A Wizard of Earthsea", "year": 1968, "authorId": 7},
            {"id": 2, "title": "The Left Hand of Darkness", "year": 1969, "authorId": 7},
            {"id": 3, "title": "The Dispossessed", "year": 1974, "authorId": 7},
            {"id": 4, "title": "Dune", "year": 1965, "authorId": 8},
        ],
    )
    return store


# =============================================================================
# Call recording
# =============================================================================


class RecordingStore:
    """Store wrapper that records ``(operation, model, criteria)`` per primitive call."""

    def __init__(self, inner: Any):
        self.inner = inner
        self.calls: list[tuple[str, str, Any]] = []

    async def create(self, model_name, values):
        self.calls.append(("create", model_name, values))
        return await self.inner.create(model_name, values)

    def find(self, model_name, criteria):
        self.calls.append(("find", model_name, criteria))
        return self.inner.find(model_name, criteria)

    def find_one(self, model_name, criteria):
        self.calls.append(("find_one", model_name, criteria))
        return self.inner.find_one(model_name, criteria)

    async def update(self, model_name, criteria, values):
        self.calls.append(("update", model_name, criteria))
        return await self.inner.update(model_name, criteria, values)

    async def destroy(self, model_name, criteria):
        self.calls.append(("destroy", model_name, criteria))
        return await self.inner.destroy(model_name, criteria)


@pytest.fixture
def recording(library: InMemoryStore) -> RecordingStore:
    return RecordingStore(library)
