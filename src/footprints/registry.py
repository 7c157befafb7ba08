"""In-memory schema registry.

Maps model names to :class:`~footprints.schema.ModelDescriptor` instances.
Anything satisfying :class:`~footprints.protocols.SchemaRegistry` can be
injected instead (see :func:`footprints.orm.registry_from_base`).

Tags:
    footprints, schema, registry
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from footprints.errors import UnknownModelError
from footprints.schema import ModelDescriptor


class ModelRegistry:
    """
    Registry of model descriptors keyed by model name.

    Example:
        registry = ModelRegistry()
        registry.register({"name": "Book", "attributes": {"title": "string"}})
        registry.get("Book").primary_key   # "id"
    """

    def __init__(self, models: Iterable[ModelDescriptor | Mapping[str, Any]] = ()):
        self._models: dict[str, ModelDescriptor] = {}
        self.register_many(models)

    def register(self, model: ModelDescriptor | Mapping[str, Any]) -> ModelDescriptor:
        """Register a descriptor (or a plain definition), replacing any previous one."""
        if not isinstance(model, ModelDescriptor):
            model = ModelDescriptor.from_dict(model)
        self._models[model.name] = model
        return model

    def register_many(self, models: Iterable[ModelDescriptor | Mapping[str, Any]]) -> None:
        for model in models:
            self.register(model)

    def get(self, model_name: str) -> ModelDescriptor:
        """Return the descriptor for ``model_name``.

        Raises:
            UnknownModelError: No model of that name is registered.
        """
        try:
            return self._models[model_name]
        except KeyError:
            raise UnknownModelError(model_name) from None

    def names(self) -> list[str]:
        """List registered model names."""
        return sorted(self._models)

    def __contains__(self, model_name: object) -> bool:
        return model_name in self._models

    def __len__(self) -> int:
        return len(self._models)


__all__ = ["ModelRegistry"]
