"""Conversion between Pillow images and BGR-ordered numpy arrays."""

from __future__ import annotations

import numpy as np
from PIL import Image

_FOUR_CHANNEL_MODES = ("RGBA", "RGBX")
_SINGLE_CHANNEL_MODES = ("L", "P")


def image_to_array(image: Image.Image) -> np.ndarray:
    """Return the pixels of ``image`` as a uint8 array in BGR(A) channel order.

    RGBA/RGBX images give four channels (B, G, R, A), RGB images three
    (B, G, R), and grayscale or palette images a single 2-D plane.
    """
    mode = image.mode
    if mode in _FOUR_CHANNEL_MODES:
        rgba = np.asarray(image.convert("RGBA"))
        return np.ascontiguousarray(rgba[..., [2, 1, 0, 3]])
    if mode == "RGB":
        rgb = np.asarray(image)
        return np.ascontiguousarray(rgb[..., ::-1])
    if mode in _SINGLE_CHANNEL_MODES:
        return np.array(image, dtype=np.uint8)
    raise ValueError(f"unsupported image mode: {mode!r}")


def array_to_image(array) -> Image.Image:
    """Build a Pillow image from a uint8 array with 1, 3 (BGR) or 4 (BGRA) channels."""
    data = np.asarray(array)
    if data.dtype != np.uint8:
        raise ValueError(f"expected a uint8 array, got {data.dtype}")
    if data.ndim == 3 and data.shape[2] == 1:
        data = data[..., 0]
    if data.ndim == 2:
        return Image.fromarray(np.ascontiguousarray(data))
    if data.ndim == 3 and data.shape[2] == 3:
        return Image.fromarray(np.ascontiguousarray(data[..., ::-1]))
    if data.ndim == 3 and data.shape[2] == 4:
        return Image.fromarray(np.ascontiguousarray(data[..., [2, 1, 0, 3]]))
    raise ValueError(f"unsupported array shape: {data.shape}")