import numpy as np
import pytest

from dofun.imgops import (
    bgr_to_gray,
    bilateral_filter,
    box_blur,
    filter2d,
    gaussian_blur,
    laplacian,
    median_blur,
    resize,
    threshold,
)


def _random_image(shape, seed=0):
    return np.random.default_rng(seed).integers(0, 256, size=shape, dtype=np.uint8)


def test_bgr_to_gray_uniform_gray_is_unchanged():
    image = np.full((3, 4, 3), 123, dtype=np.uint8)
    gray = bgr_to_gray(image)
    assert gray.shape == (3, 4)
    assert np.all(gray == 123)


def test_bgr_to_gray_accepts_bgra():
    image = np.full((2, 2, 4), 50, dtype=np.uint8)
    gray = bgr_to_gray(image)
    assert gray.tolist() == [[50, 50], [50, 50]]


def test_bgr_to_gray_rejects_single_plane():
    with pytest.raises(ValueError):
        bgr_to_gray(np.zeros((3, 3), dtype=np.uint8))


def test_resize_same_size_is_identity():
    image = _random_image((5, 7, 3))
    assert np.array_equal(resize(image, 7, 5), image)


def test_resize_shape_and_constant():
    image = np.full((10, 20, 3), 42, dtype=np.uint8)
    out = resize(image, 5, 8)
    assert out.shape == (8, 5, 3)
    assert np.all(out == 42)


def test_resize_float_stays_in_range():
    image = np.random.default_rng(2).random((6, 6)).astype(np.float32)
    out = resize(image, 13, 11)
    assert out.dtype == np.float32
    assert out.min() >= image.min() - 1e-6
    assert out.max() <= image.max() + 1e-6


def test_resize_rejects_bad_size():
    with pytest.raises(ValueError):
        resize(np.zeros((4, 4), dtype=np.uint8), 0, 4)


def test_median_blur_removes_salt_pixel():
    image = np.full((9, 9), 40, dtype=np.uint8)
    image[4, 4] = 255
    out = median_blur(image, 7)
    assert out.tolist() == [[40] * 9 for _ in range(9)]


def test_median_blur_keeps_color_shape():
    image = _random_image((8, 6, 3))
    assert median_blur(image, 3).shape == (8, 6, 3)


def test_median_blur_rejects_even_size():
    with pytest.raises(ValueError):
        median_blur(np.zeros((4, 4), dtype=np.uint8), 4)


def test_laplacian_of_constant_is_zero():
    image = np.full((8, 8), 90, dtype=np.uint8)
    out = laplacian(image, 5)
    assert out.tolist() == [[0] * 8 for _ in range(8)]


def test_laplacian_point_response():
    image = np.zeros((7, 7), dtype=np.uint8)
    image[3, 3] = 100
    out = laplacian(image, 5)
    assert out[3, 3] == 0
    assert out[3, 5] > 0


def test_laplacian_rejects_even_size():
    with pytest.raises(ValueError):
        laplacian(np.zeros((4, 4), dtype=np.uint8), 2)


def test_threshold_binary_and_inverse():
    image = np.array([[10, 80, 81, 200]], dtype=np.uint8)
    direct = threshold(image, 80, 255, False)
    inverse = threshold(image, 80, 255, True)
    assert direct.tolist() == [[0, 0, 255, 255]]
    assert inverse.tolist() == [[255, 255, 0, 0]]
    assert np.all(direct.astype(int) + inverse.astype(int) == 255)


def test_bilateral_filter_small_diameter_is_identity():
    image = _random_image((6, 6, 3))
    assert np.array_equal(bilateral_filter(image, 1, 10, 10), image)


def test_bilateral_filter_constant_unchanged():
    image = np.full((10, 10, 3), 77, dtype=np.uint8)
    out = bilateral_filter(image, 9, 9, 7)
    assert np.array_equal(out, image)


def test_bilateral_filter_stays_within_range():
    image = _random_image((12, 12, 3), seed=3)
    out = bilateral_filter(image, 5, 30, 5)
    assert out.shape == image.shape
    assert out.min() >= image.min()
    assert out.max() <= image.max()


def test_box_blur_constant_unchanged():
    image = np.full((6, 6, 3), 33, dtype=np.uint8)
    assert np.array_equal(box_blur(image, 5), image)


def test_box_blur_spreads_impulse_evenly():
    image = np.zeros((7, 7))
    image[3, 3] = 9.0
    out = box_blur(image, 3)
    assert np.allclose(out[2:5, 2:5], 1.0)
    assert np.isclose(out.sum(), 9.0)


def test_gaussian_blur_preserves_mass_and_constant():
    impulse = np.zeros((9, 9))
    impulse[4, 4] = 1.0
    out = gaussian_blur(impulse, 3, 1.5)
    assert np.isclose(out.sum(), 1.0)
    assert out[4, 4] == out.max()
    flat = np.full((5, 5), 60, dtype=np.uint8)
    assert np.array_equal(gaussian_blur(flat, 3, 1.5), flat)


def test_gaussian_blur_rejects_even_size():
    with pytest.raises(ValueError):
        gaussian_blur(np.zeros((4, 4)), 4, 1.0)


def test_filter2d_identity_kernel():
    image = _random_image((5, 6, 3))
    kernel = np.zeros((3, 3))
    kernel[1, 1] = 1.0
    assert np.array_equal(filter2d(image, kernel), image)


def test_filter2d_is_correlation():
    image = _random_image((6, 8), seed=4)
    kernel = np.zeros((3, 3))
    kernel[1, 2] = 1.0
    out = filter2d(image, kernel)
    assert np.array_equal(out[:, :-1], image[:, 1:])


def test_filter2d_sharpen_keeps_constant():
    image = np.full((5, 5, 3), 100, dtype=np.uint8)
    kernel = [[0, -1, 0], [-1, 5, -1], [0, -1, 0]]
    assert np.array_equal(filter2d(image, kernel), image)


def test_filter2d_rejects_bad_kernel():
    with pytest.raises(ValueError):
        filter2d(np.zeros((3, 3)), [1, 2, 3])