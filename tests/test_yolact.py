import numpy as np
import pytest

from dofun.yolact import (
    COLORS,
    Detection,
    Rect,
    YolactModel,
    decode_detections,
    draw_objects,
    intersection_area,
    make_priors,
    nms_sorted_bboxes,
    preprocess,
    sort_descending,
)

NUM_PRIORS = 19248


def _outputs(num_class=81, channels=4, map_size=8):
    return (
        np.zeros((channels, map_size, map_size), np.float32),
        np.zeros((NUM_PRIORS, 4), np.float32),
        np.zeros((NUM_PRIORS, channels), np.float32),
        np.zeros((NUM_PRIORS, num_class), np.float32),
    )


def test_make_priors_shape_and_square():
    priors = make_priors()
    assert priors.shape == (NUM_PRIORS, 4)
    assert np.array_equal(priors[:, 2], priors[:, 3])
    assert priors[0, 2] == pytest.approx(24 / 550)
    assert priors[-1, 2] == pytest.approx(384 * np.sqrt(2.0) / 550)


def test_rect_intersect_properties():
    a = Rect(0, 0, 10, 10)
    b = Rect(5, 5, 10, 10)
    assert a.intersect(b) == b.intersect(a)
    assert a.intersect(a) == a
    assert a.intersect(Rect(20, 20, 3, 3)).area() == 0
    assert a.intersect(b).area() <= min(a.area(), b.area())


def test_intersection_area_of_contained_box():
    outer = Detection(Rect(0, 0, 10, 10), 1, 0.9)
    inner = Detection(Rect(2, 2, 3, 4), 1, 0.8)
    assert intersection_area(outer, inner) == pytest.approx(inner.rect.area())


def test_sort_descending():
    objs = [Detection(Rect(), 1, p) for p in (0.2, 0.9, 0.5, 0.7)]
    ordered = sort_descending(objs)
    probs = [o.prob for o in ordered]
    assert probs == sorted(probs, reverse=True)
    assert set(map(id, ordered)) == set(map(id, objs))


def test_nms_suppresses_duplicates():
    box = Rect(0, 0, 10, 10)
    objs = [Detection(box, 1, 0.9), Detection(box, 1, 0.8), Detection(Rect(50, 50, 10, 10), 1, 0.7)]
    assert nms_sorted_bboxes(objs, 0.5) == [0, 2]


def test_nms_empty():
    assert nms_sorted_bboxes([], 0.5) == []


def test_preprocess_shape_and_channel_order():
    image = np.zeros((7, 9, 3), np.uint8)
    image[..., 2] = 255  # red in BGR
    out = preprocess(image)
    assert out.shape == (3, 550, 550)
    assert all(np.ptp(out[c]) == 0 for c in range(3))
    assert out[0, 0, 0] > 0
    assert out[1, 0, 0] < 0
    assert out[2, 0, 0] < 0


def test_preprocess_rejects_gray():
    with pytest.raises(ValueError):
        preprocess(np.zeros((5, 5), np.uint8))


def test_decode_single_detection():
    maskmaps, loc, coeffs, conf = _outputs()
    maskmaps[:] = 1.0
    coeffs[0] = 1.0
    conf[0, 1] = 0.9
    dets = decode_detections(maskmaps, loc, coeffs, conf, 20, 20)
    assert len(dets) == 1
    det = dets[0]
    assert det.label == 1
    assert det.prob == pytest.approx(0.9)
    assert det.rect.x == 0 and det.rect.y == 0
    assert det.mask.shape == (20, 20)
    assert set(np.unique(det.mask)) <= {0, 255}
    assert det.mask[0, 0] == 255
    ys, xs = np.nonzero(det.mask)
    assert ys.max() <= det.rect.y + det.rect.height
    assert xs.max() <= det.rect.x + det.rect.width


def test_decode_picks_highest_class():
    maskmaps, loc, coeffs, conf = _outputs()
    conf[5, 3] = 0.4
    conf[5, 7] = 0.6
    dets = decode_detections(maskmaps, loc, coeffs, conf, 30, 30)
    assert [d.label for d in dets] == [7]


def test_decode_ignores_low_scores_and_background():
    maskmaps, loc, coeffs, conf = _outputs()
    conf[:, 0] = 0.99
    conf[10, 4] = 0.05
    assert decode_detections(maskmaps, loc, coeffs, conf, 30, 30) == []


def test_decode_nms_within_class_only():
    maskmaps, loc, coeffs, conf = _outputs()
    conf[0, 1] = 0.5
    conf[1, 1] = 0.8
    dets = decode_detections(maskmaps, loc, coeffs, conf, 30, 30)
    assert [d.prob for d in dets] == [pytest.approx(0.8)]

    conf[1, 1] = 0.0
    conf[1, 2] = 0.8
    dets = decode_detections(maskmaps, loc, coeffs, conf, 30, 30)
    assert sorted(d.label for d in dets) == [1, 2]


def test_decode_keeps_top_k():
    maskmaps, loc, coeffs, conf = _outputs()
    scores = 0.1 + np.arange(400) * 0.001
    for i, s in enumerate(scores):
        conf[i, (i % 80) + 1] = s
    dets = decode_detections(maskmaps, loc, coeffs, conf, 200, 200)
    assert len(dets) == 200
    probs = [d.prob for d in dets]
    assert probs == sorted(probs, reverse=True)
    assert min(probs) >= np.sort(scores.astype(np.float32))[-200] - 1e-6


def test_decode_rejects_wrong_prior_count():
    maskmaps, loc, coeffs, conf = _outputs()
    with pytest.raises(ValueError):
        decode_detections(maskmaps, loc[:10], coeffs[:10], conf[:10], 20, 20)


def test_draw_skips_low_confidence():
    image = np.full((30, 30, 3), 7, np.uint8)
    det = Detection(Rect(5, 5, 10, 10), 1, 0.1, mask=np.full((30, 30), 255, np.uint8))
    out = draw_objects(image, [det])
    assert np.array_equal(out, image)
    assert not np.shares_memory(out, image)


def test_draw_outline_color():
    image = np.zeros((50, 50, 3), np.uint8)
    det = Detection(Rect(20, 30, 5, 5), 1, 0.9, mask=np.zeros((50, 50), np.uint8))
    out = draw_objects(image, [det])
    assert tuple(out[30, 22]) == COLORS[0]
    assert tuple(out[49, 0]) == (0, 0, 0)


def test_draw_blends_mask():
    image = np.zeros((50, 50, 3), np.uint8)
    det = Detection(Rect(20, 30, 5, 5), 1, 0.9, mask=np.full((50, 50), 255, np.uint8))
    out = draw_objects(image, [det])
    assert tuple(out[49, 0]) == (28, 0, 128)


def test_draw_rejects_gray():
    with pytest.raises(ValueError):
        draw_objects(np.zeros((10, 10), np.uint8), [])


def test_model_with_empty_output_returns_image():
    seen = []

    def network(tensor):
        seen.append(tensor.shape)
        return _outputs()

    image = np.random.default_rng(0).integers(0, 256, (12, 16, 3), dtype=np.uint8)
    out = YolactModel(network).getresult(image)
    assert seen == [(3, 550, 550)]
    assert np.array_equal(out, image)


def test_model_without_network_raises():
    with pytest.raises(RuntimeError):
        YolactModel().getresult(np.zeros((4, 4, 3), np.uint8))