"""Basic image operations on numpy arrays in BGR channel order."""

from __future__ import annotations

import numpy as np
from scipy import ndimage

# reflect-101 border ("d c b | a b c d | c b a")
_BORDER = "mirror"

_SMALL_GAUSSIAN_KERNELS = {
    1: [1.0],
    3: [0.25, 0.5, 0.25],
    5: [0.0625, 0.25, 0.375, 0.25, 0.0625],
    7: [0.03125, 0.109375, 0.21875, 0.28125, 0.21875, 0.109375, 0.03125],
}


def _saturate(result: np.ndarray, dtype) -> np.ndarray:
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        return np.clip(np.rint(result), info.min, info.max).astype(dtype)
    return result.astype(dtype)


def _check_odd(ksize: int, name: str = "ksize") -> None:
    if ksize < 1 or ksize % 2 == 0:
        raise ValueError(f"{name} must be a positive odd number, got {ksize}")


def _spatial_kernel(kernel: np.ndarray, ndim: int) -> np.ndarray:
    return kernel[:, :, None] if ndim == 3 else kernel


def _correlate(image: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    data = image.astype(np.float64)
    return ndimage.correlate(data, _spatial_kernel(kernel, data.ndim), mode=_BORDER)


def bgr_to_gray(image) -> np.ndarray:
    """Convert a BGR or BGRA image to a single-channel gray image."""
    data = np.asarray(image)
    if data.ndim != 3 or data.shape[2] not in (3, 4):
        raise ValueError(f"expected a BGR or BGRA image, got shape {data.shape}")
    b, g, r = (data[..., c].astype(np.float64) for c in range(3))
    return _saturate(0.299 * r + 0.587 * g + 0.114 * b, data.dtype)


def _axis_samples(src_n: int, dst_n: int):
    pos = (np.arange(dst_n) + 0.5) * (src_n / dst_n) - 0.5
    pos = np.clip(pos, 0.0, src_n - 1)
    lower = np.floor(pos).astype(np.intp)
    frac = pos - lower
    upper = np.minimum(lower + 1, src_n - 1)
    return lower, upper, frac


def resize(image, width: int, height: int) -> np.ndarray:
    """Resize with bilinear interpolation to ``width`` x ``height``."""
    if width <= 0 or height <= 0:
        raise ValueError(f"target size must be positive, got {width}x{height}")
    data = np.asarray(image)
    src_h, src_w = data.shape[:2]
    if src_h == 0 or src_w == 0:
        raise ValueError("cannot resize an empty image")
    work = data.astype(np.float64)

    y0, y1, fy = _axis_samples(src_h, height)
    x0, x1, fx = _axis_samples(src_w, width)
    extra = (1,) * (work.ndim - 2)
    fy = fy.reshape((-1, 1) + extra)
    fx = fx.reshape((1, -1) + extra)

    rows = work[y0] * (1.0 - fy) + work[y1] * fy
    out = rows[:, x0] * (1.0 - fx) + rows[:, x1] * fx
    return _saturate(out, data.dtype)


def median_blur(image, ksize: int) -> np.ndarray:
    """Median filter over a square ``ksize`` neighbourhood of each channel."""
    _check_odd(ksize)
    data = np.asarray(image)
    size = (ksize, ksize, 1) if data.ndim == 3 else (ksize, ksize)
    return ndimage.median_filter(data, size=size, mode="nearest")


def _deriv_kernel(order: int, ksize: int) -> np.ndarray:
    kernel = np.array([1.0])
    for _ in range(ksize - order - 1):
        kernel = np.convolve(kernel, [1.0, 1.0])
    for _ in range(order):
        kernel = np.convolve(kernel, [1.0, -1.0])
    return kernel


def laplacian(image, ksize: int) -> np.ndarray:
    """Sum of second derivatives in x and y, saturated to the input type."""
    _check_odd(ksize)
    if ksize > 31:
        raise ValueError(f"ksize must not exceed 31, got {ksize}")
    if ksize == 1:
        kernel = np.array([[0.0, 1.0, 0.0], [1.0, -4.0, 1.0], [0.0, 1.0, 0.0]])
    else:
        smooth = _deriv_kernel(0, ksize)
        second = _deriv_kernel(2, ksize)
        kernel = np.outer(smooth, second) + np.outer(second, smooth)
    data = np.asarray(image)
    return _saturate(_correlate(data, kernel), data.dtype)


def threshold(image, thresh: float, maxval: float, inverse: bool = False) -> np.ndarray:
    """Binary threshold: pixels above ``thresh`` become ``maxval`` (or 0 if inverse)."""
    data = np.asarray(image)
    above = data > thresh
    if inverse:
        above = ~above
    out = np.where(above, maxval, 0)
    return _saturate(out.astype(np.float64), data.dtype)


def bilateral_filter(image, d: int, sigma_color: float, sigma_space: float) -> np.ndarray:
    """Edge-preserving bilateral filter over a circular neighbourhood."""
    data = np.asarray(image)
    if sigma_color <= 0:
        sigma_color = 1.0
    if sigma_space <= 0:
        sigma_space = 1.0
    radius = int(round(sigma_space * 1.5)) if d <= 0 else d // 2
    radius = max(radius, 0)
    if radius == 0:
        return data.copy()

    work = data.astype(np.float64)
    pad = ((radius, radius), (radius, radius)) + ((0, 0),) * (work.ndim - 2)
    padded = np.pad(work, pad, mode="reflect")
    h, w = work.shape[:2]

    color_coeff = -0.5 / (sigma_color * sigma_color)
    space_coeff = -0.5 / (sigma_space * sigma_space)
    total = np.zeros_like(work)
    weights = np.zeros((h, w), dtype=np.float64)

    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            dist2 = dy * dy + dx * dx
            if dist2 > radius * radius:
                continue
            shifted = padded[radius + dy:radius + dy + h, radius + dx:radius + dx + w]
            diff = np.abs(shifted - work)
            if diff.ndim == 3:
                diff = diff.sum(axis=2)
            weight = np.exp(dist2 * space_coeff + diff * diff * color_coeff)
            weights += weight
            total += shifted * (weight[..., None] if work.ndim == 3 else weight)

    out = total / (weights[..., None] if work.ndim == 3 else weights)
    return _saturate(out, data.dtype)


def box_blur(image, ksize: int) -> np.ndarray:
    """Normalised box filter of size ``ksize`` x ``ksize``."""
    if ksize < 1:
        raise ValueError(f"ksize must be positive, got {ksize}")
    kernel = np.full((ksize, ksize), 1.0 / (ksize * ksize))
    data = np.asarray(image)
    return _saturate(_correlate(data, kernel), data.dtype)


def _gaussian_kernel(ksize: int, sigma: float) -> np.ndarray:
    if sigma <= 0 and ksize in _SMALL_GAUSSIAN_KERNELS:
        return np.array(_SMALL_GAUSSIAN_KERNELS[ksize])
    if sigma <= 0:
        sigma = 0.3 * ((ksize - 1) * 0.5 - 1) + 0.8
    offsets = np.arange(ksize) - (ksize - 1) / 2.0
    kernel = np.exp(-(offsets * offsets) / (2.0 * sigma * sigma))
    return kernel / kernel.sum()


def gaussian_blur(image, ksize: int, sigma: float) -> np.ndarray:
    """Separable Gaussian blur with an odd ``ksize`` and standard deviation ``sigma``."""
    _check_odd(ksize)
    kernel = _gaussian_kernel(ksize, sigma)
    data = np.asarray(image)
    work = data.astype(np.float64)
    work = ndimage.correlate1d(work, kernel, axis=0, mode=_BORDER)
    work = ndimage.correlate1d(work, kernel, axis=1, mode=_BORDER)
    return _saturate(work, data.dtype)


def filter2d(image, kernel) -> np.ndarray:
    """Correlate ``image`` with ``kernel`` anchored at its centre."""
    k = np.asarray(kernel, dtype=np.float64)
    if k.ndim != 2 or k.size == 0:
        raise ValueError("kernel must be a non-empty 2-D array")
    data = np.asarray(image)
    return _saturate(_correlate(data, k), data.dtype)