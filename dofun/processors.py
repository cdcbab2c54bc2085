"""Frame processors: objects that transform a displayed frame."""

from __future__ import annotations

import abc
from typing import Any, Optional

from PIL import Image

from dofun.imageconv import array_to_image, image_to_array


class FrameProcessor(abc.ABC):
    """Something that turns one frame (a Pillow image) into another."""

    @abc.abstractmethod
    def process_frame(self, image: Image.Image) -> Image.Image:
        """Return the processed version of ``image``."""


class ModelProcessor(FrameProcessor):
    """Runs a named model of a model dispatcher on each frame.

    ``model`` must provide ``getresult(array, name)`` returning a BGR array.
    Without a model, frames pass through unchanged.
    """

    def __init__(self, model: Optional[Any], name: str):
        self.model = model
        self.name = name

    def process_frame(self, image: Image.Image) -> Image.Image:
        frame = image.copy()
        if self.model is None:
            return frame
        src = image_to_array(frame)
        result = self.model.getresult(src, self.name)
        return array_to_image(result)