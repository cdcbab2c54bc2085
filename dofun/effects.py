"""Classic image effects: cartoon rendering, focus blur and filter showcase."""

from __future__ import annotations

import numpy as np
from PIL import Image, ImageDraw, ImageFont
from scipy import ndimage

from dofun import imgops
from dofun.imageconv import array_to_image, image_to_array
from dofun.processors import FrameProcessor

_EIGHT_CONNECTED = np.ones((3, 3), dtype=bool)
_FOUR_CONNECTED = ndimage.generate_binary_structure(2, 1)
_SHARPEN_KERNEL = np.array([[0, -1, 0], [-1, 5, -1], [0, -1, 0]], dtype=np.float64)


class Cartoon(FrameProcessor):
    """Cartoon effect: smoothed colours inside dark edge outlines."""

    MEDIAN_BLUR_FILTER_SIZE = 7
    LAPLACIAN_FILTER_SIZE = 5
    EDGES_THRESHOLD = 80
    REPETITIONS = 7
    BILATERAL_KSIZE = 9
    SIGMA_COLOR = 9.0
    SIGMA_SPACE = 7.0

    def cartoon_image(self, src) -> np.ndarray:
        """Return the cartoon rendering of a BGR(A) array."""
        data = np.asarray(src, dtype=np.uint8)
        gray = imgops.bgr_to_gray(data)
        gray = imgops.median_blur(gray, self.MEDIAN_BLUR_FILTER_SIZE)
        edges = imgops.laplacian(gray, self.LAPLACIAN_FILTER_SIZE)
        mask = imgops.threshold(edges, self.EDGES_THRESHOLD, 255, inverse=True)

        height, width = data.shape[:2]
        small = imgops.resize(data, width // 2, height // 2)
        for _ in range(self.REPETITIONS):
            tmp = imgops.bilateral_filter(small, self.BILATERAL_KSIZE, self.SIGMA_COLOR, self.SIGMA_SPACE)
            small = imgops.bilateral_filter(tmp, self.BILATERAL_KSIZE, self.SIGMA_COLOR, self.SIGMA_SPACE)
        big = imgops.resize(small, width, height)

        dst = np.zeros_like(data)
        keep = mask != 0
        dst[keep] = big[keep]
        return dst

    def process_frame(self, image: Image.Image) -> Image.Image:
        src = image_to_array(image.copy())
        return array_to_image(self.cartoon_image(src))


class Blur:
    """Blurs the background and sharpens large dark objects."""

    def process(self, frame) -> np.ndarray:
        data = np.asarray(frame, dtype=np.uint8)
        if data.ndim != 3 or data.shape[2] < 3:
            raise ValueError(f"expected a colour image, got shape {data.shape}")
        # the input is treated as RGB here
        gray = imgops.bgr_to_gray(data[..., [2, 1, 0]])
        binary = imgops.threshold(gray, 60, 255, inverse=True) != 0

        mask = _external_regions(binary, min_points=500, max_width=0.5 * data.shape[1])

        dst = imgops.box_blur(data, 9)
        sharpened = imgops.filter2d(data, _SHARPEN_KERNEL)
        dst[mask] = sharpened[mask]
        return dst


def _external_regions(binary: np.ndarray, min_points: int, max_width: float) -> np.ndarray:
    """Filled areas of outer contours with enough border points and limited width."""
    filled = ndimage.binary_fill_holes(binary)
    labels, _ = ndimage.label(filled, structure=_EIGHT_CONNECTED)
    mask = np.zeros(binary.shape, dtype=bool)
    for index, region in enumerate(ndimage.find_objects(labels), start=1):
        if region is None:
            continue
        component = labels[region] == index
        interior = ndimage.binary_erosion(component, structure=_FOUR_CONNECTED, border_value=0)
        points = int(np.count_nonzero(component & ~interior))
        width = region[1].stop - region[1].start
        if points < min_points or width > max_width:
            continue
        mask[region] |= component
    return mask


def _put_text(array: np.ndarray, text: str) -> np.ndarray:
    """Draw ``text`` with its baseline-left corner at (10, 10) in the first channel's colour."""
    pil = Image.fromarray(np.ascontiguousarray(array))
    draw = ImageDraw.Draw(pil)
    font = ImageFont.load_default()
    left, top, _, bottom = draw.textbbox((0, 0), text, font=font)
    bands = len(pil.getbands())
    fill = 255 if bands == 1 else (255,) + (0,) * (bands - 1)
    draw.text((10 - left, 10 - (bottom - top) - top), text, fill=fill, font=font)
    return np.array(pil)


class Filter:
    """Applies four smoothing filters and labels each result."""

    def process(self, image) -> list[np.ndarray]:
        """Return box, Gaussian, median and bilateral filtered copies, in that order."""
        data = np.asarray(image, dtype=np.uint8)
        results = [
            ("blur", imgops.box_blur(data, 5)),
            ("GaussianBlur", imgops.gaussian_blur(data, 3, 1.5)),
            ("medianBlur", imgops.median_blur(data, 7)),
            ("bilateralFilter", imgops.bilateral_filter(data, 1, 10, 10)),
        ]
        return [_put_text(result, name) for name, result in results]


class ImgAlgorithm:
    """Entry point for the selected image algorithm."""

    def get_result(self, frame) -> np.ndarray:
        return Blur().process(frame)