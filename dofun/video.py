"""Frame-by-frame reading of video files, animated images and cameras."""

from __future__ import annotations

import enum
import math
from typing import Optional, Protocol

import imageio.v2 as iio
import numpy as np
from PIL import Image, UnidentifiedImageError

from dofun.imageconv import image_to_array

CAMERA_WIDTH = 640
CAMERA_HEIGHT = 480

_READER_ERRORS = (OSError, ValueError, ImportError, RuntimeError, IndexError)


class VideoError(OSError):
    """Raised when a video source cannot be opened."""


class VideoMode(enum.Enum):
    CAMERA = "camera"
    VIDEO = "video"


class _FrameSource(Protocol):
    frame_count: int
    fps: float

    def read(self, index: int) -> Optional[np.ndarray]: ...

    def close(self) -> None: ...


def _to_bgr(frame) -> np.ndarray:
    data = np.asarray(frame)
    if data.dtype != np.uint8:
        data = np.clip(data, 0, 255).astype(np.uint8)
    if data.ndim == 2:
        data = np.stack([data] * 3, axis=-1)
    elif data.ndim == 3 and data.shape[2] == 1:
        data = np.repeat(data, 3, axis=2)
    elif data.ndim == 3 and data.shape[2] == 4:
        data = data[..., :3]
    return np.ascontiguousarray(data[..., ::-1])


class _ImageSequenceSource:
    """Frames of a still or animated image file read through Pillow."""

    def __init__(self, path: str):
        image = Image.open(path)
        self._image = image
        self.frame_count = int(getattr(image, "n_frames", 1))
        duration = image.info.get("duration")
        self.fps = 1000.0 / duration if duration else 0.0

    def read(self, index: int) -> Optional[np.ndarray]:
        if not 0 <= index < self.frame_count:
            return None
        self._image.seek(index)
        return image_to_array(self._image.convert("RGB"))

    def close(self) -> None:
        self._image.close()


class _ReaderSource:
    """Frames of a video file or a camera stream read through imageio."""

    def __init__(self, uri: str, streaming: bool, **kwargs):
        self._reader = iio.get_reader(uri, **kwargs)
        self._streaming = streaming
        length = self._reader.get_length()
        self.frame_count = int(length) if math.isfinite(length) and length > 0 else 0
        meta = self._reader.get_meta_data() or {}
        fps = meta.get("fps") or 0.0
        if not fps and meta.get("duration"):
            fps = 1000.0 / meta["duration"]
        self.fps = float(fps)

    def read(self, index: int) -> Optional[np.ndarray]:
        try:
            if self._streaming:
                frame = self._reader.get_next_data()
            else:
                frame = self._reader.get_data(index)
        except (IndexError, StopIteration, RuntimeError):
            return None
        return _to_bgr(frame)

    def close(self) -> None:
        self._reader.close()


def _open_file(path: str) -> _FrameSource:
    try:
        return _ImageSequenceSource(path)
    except UnidentifiedImageError:
        return _ReaderSource(path, streaming=False)


class VideoProcess:
    """A single video or camera source delivering BGR frames in order."""

    _instance: Optional["VideoProcess"] = None

    def __init__(self) -> None:
        self._source: Optional[_FrameSource] = None
        self._position = 0

    @staticmethod
    def get_instance() -> "VideoProcess":
        """Return the shared instance."""
        if VideoProcess._instance is None:
            VideoProcess._instance = VideoProcess()
        return VideoProcess._instance

    @property
    def is_opened(self) -> bool:
        return self._source is not None

    def open(self, source, mode=VideoMode.VIDEO) -> None:
        """Open a file path (VIDEO) or a camera index (CAMERA); raise VideoError on failure."""
        self.close()
        mode = VideoMode(mode)
        try:
            if mode is VideoMode.VIDEO:
                opened = _open_file(str(source))
            else:
                index = int(str(source).strip())
                opened = _ReaderSource(
                    f"<video{index}>", streaming=True, size=f"{CAMERA_WIDTH}x{CAMERA_HEIGHT}"
                )
        except _READER_ERRORS as exc:
            raise VideoError(f"cannot open {source!r}: {exc}") from exc
        self._source = opened
        self._position = 0

    def close(self) -> None:
        if self._source is not None:
            self._source.close()
            self._source = None
        self._position = 0

    def get_frame(self) -> Optional[np.ndarray]:
        """Return the next BGR frame, or None when there is none."""
        if self._source is None:
            return None
        frame = self._source.read(self._position)
        if frame is not None:
            self._position += 1
        return frame

    def set_current_frame(self, num: int) -> None:
        """Make frame ``num`` the next one to be read."""
        if self._source is not None:
            self._position = max(int(num), 0)

    def frame_total(self) -> int:
        return self._source.frame_count if self._source is not None else 0

    def frame_rate(self) -> int:
        return int(self._source.fps) if self._source is not None else 0

    def __enter__(self) -> "VideoProcess":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()