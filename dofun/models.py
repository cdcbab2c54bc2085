"""Model interface, a registry of model creators and the model dispatcher."""

from __future__ import annotations

import abc
from typing import Callable, Optional

from dofun.yolact import YolactModel


class Model(abc.ABC):
    """A model that turns an input image into a result image."""

    @abc.abstractmethod
    def getresult(self, image):
        """Return the processed result for ``image``."""


Model.register(YolactModel)

ModelCreator = Callable[[], Model]


class ModelRegistry:
    """Named factories for models, kept in registration order."""

    def __init__(self) -> None:
        self._creators: dict[str, ModelCreator] = {}

    def register(self, name: str, creator: ModelCreator) -> ModelCreator:
        """Register ``creator`` under ``name``; a later registration replaces an earlier one."""
        self._creators[name] = creator
        return creator

    def create(self, name: str) -> Model:
        """Create a new model by name."""
        try:
            creator = self._creators[name]
        except KeyError:
            raise KeyError(f"unknown model: {name!r}") from None
        return creator()

    def names(self) -> list[str]:
        return list(self._creators)


def default_registry() -> ModelRegistry:
    """Return a registry holding the built-in models."""
    registry = ModelRegistry()
    registry.register("yolact", YolactModel)
    return registry


class DLCV:
    """Runs a named model from a registry on an image."""

    def __init__(self, registry: Optional[ModelRegistry] = None):
        self.registry = registry if registry is not None else default_registry()

    def name(self) -> str:
        return ""

    def getresult(self, image, model_type: str):
        """Create the model named ``model_type`` and return its result for ``image``."""
        model = self.registry.create(model_type)
        return model.getresult(image)