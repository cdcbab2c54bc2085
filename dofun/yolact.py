"""YOLACT instance segmentation: prior boxes, decoding, NMS and drawing."""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from dofun import imgops

TARGET_SIZE = 550
MEAN_VALS = np.array([123.68, 116.78, 103.94], dtype=np.float32)
NORM_VALS = np.array([1.0 / 58.40, 1.0 / 57.12, 1.0 / 57.38], dtype=np.float32)

CONFIDENCE_THRESH = 0.05
NMS_THRESHOLD = 0.5
KEEP_TOP_K = 200
DRAW_THRESHOLD = 0.15

_CONV_SIZES = (69, 35, 18, 9, 5)
_ASPECT_RATIOS = (1.0, 0.5, 2.0)
_SCALES = (24.0, 48.0, 96.0, 192.0, 384.0)
_VARIANCES = np.array([0.1, 0.1, 0.2, 0.2], dtype=np.float32)

CLASS_NAMES = (
    "background",
    "person", "bicycle", "car", "motorcycle", "airplane", "bus",
    "train", "truck", "boat", "traffic light", "fire hydrant",
    "stop sign", "parking meter", "bench", "bird", "cat", "dog",
    "horse", "sheep", "cow", "elephant", "bear", "zebra", "giraffe",
    "backpack", "umbrella", "handbag", "tie", "suitcase", "frisbee",
    "skis", "snowboard", "sports ball", "kite", "baseball bat",
    "baseball glove", "skateboard", "surfboard", "tennis racket",
    "bottle", "wine glass", "cup", "fork", "knife", "spoon", "bowl",
    "banana", "apple", "sandwich", "orange", "broccoli", "carrot",
    "hot dog", "pizza", "donut", "cake", "chair", "couch",
    "potted plant", "bed", "dining table", "toilet", "tv", "laptop",
    "mouse", "remote", "keyboard", "cell phone", "microwave", "oven",
    "toaster", "sink", "refrigerator", "book", "clock", "vase",
    "scissors", "teddy bear", "hair drier", "toothbrush",
)

COLORS = (
    (56, 0, 255), (226, 255, 0), (0, 94, 255), (0, 37, 255), (0, 255, 94),
    (255, 226, 0), (0, 18, 255), (255, 151, 0), (170, 0, 255), (0, 255, 56),
    (255, 0, 75), (0, 75, 255), (0, 255, 169), (255, 0, 207), (75, 255, 0),
    (207, 0, 255), (37, 0, 255), (0, 207, 255), (94, 0, 255), (0, 255, 113),
    (255, 18, 0), (255, 0, 56), (18, 0, 255), (0, 255, 226), (170, 255, 0),
    (255, 0, 245), (151, 255, 0), (132, 255, 0), (75, 0, 255), (151, 0, 255),
    (0, 151, 255), (132, 0, 255), (0, 255, 245), (255, 132, 0), (226, 0, 255),
    (255, 37, 0), (207, 255, 0), (0, 255, 207), (94, 255, 0), (0, 226, 255),
    (56, 255, 0), (255, 94, 0), (255, 113, 0), (0, 132, 255), (255, 0, 132),
    (255, 170, 0), (255, 0, 188), (113, 255, 0), (245, 0, 255), (113, 0, 255),
    (255, 188, 0), (0, 113, 255), (255, 0, 0), (0, 56, 255), (255, 0, 113),
    (0, 255, 188), (255, 0, 94), (255, 0, 18), (18, 255, 0), (0, 255, 132),
    (0, 188, 255), (0, 245, 255), (0, 169, 255), (37, 255, 0), (255, 0, 151),
    (188, 0, 255), (0, 255, 37), (0, 255, 0), (255, 0, 170), (255, 0, 37),
    (255, 75, 0), (0, 0, 255), (255, 207, 0), (255, 0, 226), (255, 245, 0),
    (188, 255, 0), (0, 255, 18), (0, 255, 75), (0, 255, 151), (255, 56, 0),
    (245, 255, 0),
)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle with float coordinates."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def area(self) -> float:
        return self.width * self.height

    def intersect(self, other: "Rect") -> "Rect":
        """Return the overlap of two rectangles, or an empty one if they do not meet."""
        x1 = max(self.x, other.x)
        y1 = max(self.y, other.y)
        w = min(self.x + self.width, other.x + other.width) - x1
        h = min(self.y + self.height, other.y + other.height) - y1
        if w <= 0 or h <= 0:
            return Rect()
        return Rect(x1, y1, w, h)


@dataclass(eq=False)
class Detection:
    """One detected instance: box, class label, score, mask coefficients and mask."""

    rect: Rect
    label: int
    prob: float
    maskdata: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float32))
    mask: Optional[np.ndarray] = None


Network = Callable[[np.ndarray], Sequence[np.ndarray]]


def make_priors() -> np.ndarray:
    """Return the (num_priors, 4) array of centre-size prior boxes."""
    rows = []
    for conv, scale in zip(_CONV_SIZES, _SCALES):
        for i in range(conv):
            cy = (i + 0.5) / conv
            for j in range(conv):
                cx = (j + 0.5) / conv
                for ar in _ASPECT_RATIOS:
                    w = scale * math.sqrt(ar) / TARGET_SIZE
                    # square anchors: height follows width
                    rows.append((cx, cy, w, w))
    return np.array(rows, dtype=np.float32)


def preprocess(image) -> np.ndarray:
    """Resize a BGR image to the network size and normalise it to a (3, H, W) RGB tensor."""
    data = np.asarray(image)
    if data.ndim != 3 or data.shape[2] != 3:
        raise ValueError(f"expected a BGR image, got shape {data.shape}")
    resized = imgops.resize(data.astype(np.uint8), TARGET_SIZE, TARGET_SIZE)
    rgb = resized[..., ::-1].astype(np.float32)
    normalised = (rgb - MEAN_VALS) * NORM_VALS
    return np.ascontiguousarray(normalised.transpose(2, 0, 1))


def intersection_area(a: Detection, b: Detection) -> float:
    return a.rect.intersect(b.rect).area()


def sort_descending(objects: Sequence[Detection]) -> list[Detection]:
    """Return the detections ordered by score, highest first."""
    return sorted(objects, key=lambda obj: obj.prob, reverse=True)


def nms_sorted_bboxes(objects: Sequence[Detection], nms_threshold: float) -> list[int]:
    """Greedy non-maximum suppression over score-sorted detections; returns kept indices."""
    areas = [obj.rect.area() for obj in objects]
    picked: list[int] = []
    for i, a in enumerate(objects):
        keep = True
        for j in picked:
            inter = intersection_area(a, objects[j])
            union = areas[i] + areas[j] - inter
            if union > 0 and inter / union > nms_threshold:
                keep = False
        if keep:
            picked.append(i)
    return picked


def _make_mask(obj: Detection, maskmaps: np.ndarray, img_w: int, img_h: int) -> np.ndarray:
    channels = maskmaps.shape[0]
    coarse = np.tensordot(obj.maskdata[:channels], maskmaps, axes=(0, 0)).astype(np.float32)
    full = imgops.resize(coarse, img_w, img_h)
    ys = np.arange(img_h)
    xs = np.arange(img_w)
    rect = obj.rect
    rows = (ys >= rect.y) & (ys <= rect.y + rect.height)
    cols = (xs >= rect.x) & (xs <= rect.x + rect.width)
    inside = rows[:, None] & cols[None, :]
    return np.where(inside & (full > 0.5), 255, 0).astype(np.uint8)


def decode_detections(maskmaps, location, mask_coeffs, confidence, img_w: int, img_h: int) -> list[Detection]:
    """Turn raw network outputs into scored, suppressed detections with binary masks."""
    maskmaps = np.asarray(maskmaps, dtype=np.float32)
    location = np.asarray(location, dtype=np.float32)
    mask_coeffs = np.asarray(mask_coeffs, dtype=np.float32)
    confidence = np.asarray(confidence, dtype=np.float32)

    if confidence.ndim != 2:
        raise ValueError("confidence must be a 2-D array")
    num_priors, num_class = confidence.shape
    priors = make_priors()
    if num_priors != len(priors):
        raise ValueError(f"expected {len(priors)} priors, got {num_priors}")
    if location.shape != (num_priors, 4):
        raise ValueError(f"location must have shape ({num_priors}, 4)")
    if maskmaps.ndim != 3:
        raise ValueError("maskmaps must be a (channels, height, width) array")
    if mask_coeffs.ndim != 2 or mask_coeffs.shape[0] != num_priors or mask_coeffs.shape[1] < maskmaps.shape[0]:
        raise ValueError("mask coefficients do not match the priors and mask maps")
    if num_class < 2:
        return []

    scores = confidence[:, 1:]
    best = scores.argmax(axis=1)
    best_score = scores[np.arange(num_priors), best]
    labels = best + 1
    selected = np.nonzero(best_score > CONFIDENCE_THRESH)[0]

    loc = location[selected]
    pb = priors[selected]
    cx = _VARIANCES[0] * loc[:, 0] * pb[:, 2] + pb[:, 0]
    cy = _VARIANCES[1] * loc[:, 1] * pb[:, 3] + pb[:, 1]
    bw = (np.exp(_VARIANCES[2] * loc[:, 2]) * pb[:, 2]).astype(np.float32)
    bh = (np.exp(_VARIANCES[3] * loc[:, 3]) * pb[:, 3]).astype(np.float32)
    half = np.float32(0.5)
    x1 = np.clip((cx - bw * half) * img_w, 0, img_w - 1)
    y1 = np.clip((cy - bh * half) * img_h, 0, img_h - 1)
    x2 = np.clip((cx + bw * half) * img_w, 0, img_w - 1)
    y2 = np.clip((cy + bh * half) * img_h, 0, img_h - 1)

    class_candidates: list[list[Detection]] = [[] for _ in range(num_class)]
    for k, idx in enumerate(selected):
        rect = Rect(float(x1[k]), float(y1[k]), float(x2[k] - x1[k] + 1), float(y2[k] - y1[k] + 1))
        label = int(labels[idx])
        class_candidates[label].append(
            Detection(rect, label, float(best_score[idx]), mask_coeffs[idx].copy())
        )

    objects: list[Detection] = []
    for candidates in class_candidates:
        ordered = sort_descending(candidates)
        objects.extend(ordered[i] for i in nms_sorted_bboxes(ordered, NMS_THRESHOLD))

    objects = sort_descending(objects)[:KEEP_TOP_K]
    for obj in objects:
        obj.mask = _make_mask(obj, maskmaps, img_w, img_h)
    return objects


def _fill(image: np.ndarray, x0: int, y0: int, x1: int, y1: int, color) -> None:
    h, w = image.shape[:2]
    x0, y0 = max(x0, 0), max(y0, 0)
    x1, y1 = min(x1, w - 1), min(y1, h - 1)
    if x0 <= x1 and y0 <= y1:
        image[y0:y1 + 1, x0:x1 + 1] = color


def _draw_outline(image: np.ndarray, rect: Rect, color) -> None:
    x, y = int(np.rint(rect.x)), int(np.rint(rect.y))
    w, h = int(np.rint(rect.width)), int(np.rint(rect.height))
    if w <= 0 or h <= 0:
        return
    right, bottom = x + w - 1, y + h - 1
    _fill(image, x, y, right, y, color)
    _fill(image, x, bottom, right, bottom, color)
    _fill(image, x, y, x, bottom, color)
    _fill(image, right, y, right, bottom, color)


def draw_objects(image, objects: Sequence[Detection]) -> np.ndarray:
    """Draw boxes, labels and blended masks of confident detections on a copy of a BGR image."""
    canvas = np.array(image, dtype=np.uint8)
    if canvas.ndim != 3 or canvas.shape[2] != 3:
        raise ValueError(f"expected a BGR image, got shape {canvas.shape}")
    font = ImageFont.load_default()
    color_index = 0

    for obj in objects:
        if obj.prob < DRAW_THRESHOLD:
            continue
        rect = obj.rect
        print(
            f"{obj.label} = {obj.prob:.5f} at {rect.x:.2f} {rect.y:.2f} "
            f"{rect.width:.2f} x {rect.height:.2f}",
            file=sys.stderr,
        )
        color = COLORS[color_index % len(COLORS)]
        color_index += 1

        _draw_outline(canvas, rect, color)

        text = f"{CLASS_NAMES[obj.label]} {obj.prob * 100:.1f}%"
        pil = Image.fromarray(canvas)
        draw = ImageDraw.Draw(pil)
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        label_w, label_h = right - left, bottom - top
        x = int(rect.x)
        y = max(int(rect.y) - label_h, 0)
        if x + label_w > canvas.shape[1]:
            x = canvas.shape[1] - label_w
        draw.rectangle((x, y, x + label_w - 1, y + label_h - 1), fill=(255, 255, 255))
        draw.text((x - left, y - top), text, fill=(0, 0, 0), font=font)
        canvas = np.array(pil)

        if obj.mask is not None:
            selected = obj.mask == 255
            blended = canvas[selected].astype(np.float64) * 0.5 + np.array(color, dtype=np.float64) * 0.5
            canvas[selected] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)
    return canvas


class YolactModel:
    """YOLACT segmentation model running on a supplied network.

    ``network`` is called with the preprocessed (3, 550, 550) tensor and must
    return ``(maskmaps, location, mask_coeffs, confidence)``.
    """

    def __init__(self, network: Optional[Network] = None):
        self.network = network

    def getresult(self, image) -> np.ndarray:
        """Detect instances in a BGR image and return the annotated image."""
        if self.network is None:
            raise RuntimeError("no network is configured for the yolact model")
        data = np.asarray(image)
        tensor = preprocess(data)
        maskmaps, location, mask_coeffs, confidence = self.network(tensor)
        img_h, img_w = data.shape[:2]
        objects = decode_detections(maskmaps, location, mask_coeffs, confidence, img_w, img_h)
        return draw_objects(data, objects)