"""Playback controller for pictures, videos and cameras, and the command line entry."""

from __future__ import annotations

import argparse
import enum
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image

from dofun import imgops
from dofun.effects import Cartoon
from dofun.imageconv import array_to_image, image_to_array
from dofun.processors import ModelProcessor
from dofun.video import VideoError, VideoMode, VideoProcess
from dofun.viewer import DisplayMode, Viewer


class DisplayType(enum.Enum):
    PHOTO = "photo"
    VIDEO = "video"
    CAMERA = "camera"


@dataclass
class FrameState:
    """Playback counters of the current video."""

    total_frame: float = 1.0
    current_frame: float = 1.0
    frame_rate: float = 1.0
    control_rate: int = 1
    pause_time: float = 30.0
    trackbar_value: int = 1
    trackbar_max: int = 255


def fit_to_screen(width: int, height: int, screen_width: int, screen_height: int) -> tuple[int, int, bool]:
    """Limit a frame to 80% of the screen; return (width, height, resized)."""
    max_width = screen_width // 10 * 8
    max_height = screen_height // 10 * 8
    resized = False
    if width > max_width:
        width = max_width
        resized = True
    if height > max_height:
        height = max_height
        resized = True
    return width, height, resized


class Player:
    """Drives a viewer from a picture, a video file or a camera."""

    def __init__(self, video: Optional[VideoProcess] = None, screen_width: int = 1920, screen_height: int = 1080):
        if screen_width <= 0 or screen_height <= 0:
            raise ValueError(f"screen size must be positive, got {screen_width}x{screen_height}")
        self.video = video if video is not None else VideoProcess.get_instance()
        self.screen_size = (screen_width, screen_height)
        self.viewer = Viewer()
        self.state = FrameState()
        self.display_type: Optional[DisplayType] = None
        self.frame: Optional[np.ndarray] = None
        self.current_frame: Optional[np.ndarray] = None
        self.frame_size = (0, 0)
        self.window_position = (0, 0)
        self.is_resize = False
        self.paused = False
        self.timer_active = False
        self.timer_interval = self.state.pause_time
        self.play_button_text = "Play/Stop"
        self.slider_range = (0, 99)
        self.slider_value = 1

    # timer and slider bookkeeping

    def _start_timer(self) -> None:
        self.timer_active = True
        self.timer_interval = self.state.pause_time

    def _stop_timer(self) -> None:
        self.timer_active = False

    def _set_slider(self, value: int) -> None:
        low, high = self.slider_range
        value = min(max(int(value), low), high)
        if value == self.slider_value:
            return
        self.slider_value = value
        self._on_slider_changed(value)

    def _set_slider_range(self, low: int, high: int) -> None:
        self.slider_range = (low, max(low, high))
        self._set_slider(self.slider_value)

    def _on_slider_changed(self, value: int) -> None:
        if value + 1 == self.state.total_frame:
            self._stop_timer()
            self.play_button_text = "Play"
        if value == self.state.control_rate:
            return
        self.state.control_rate = value
        self.video.set_current_frame(value)

    def _clear_status(self) -> None:
        self.viewer.reset()
        self._stop_timer()
        self.viewer.display_mode = DisplayMode.NORMAL

    def _set_window_size(self, frame: np.ndarray) -> None:
        height, width = frame.shape[:2]
        screen_width, screen_height = self.screen_size
        width, height, self.is_resize = fit_to_screen(width, height, screen_width, screen_height)
        self.frame_size = (width, height)
        self.window_position = ((screen_width - width) // 2, (screen_height - height) // 2)

    def _fitted(self, frame: np.ndarray) -> np.ndarray:
        if self.is_resize:
            return imgops.resize(frame, *self.frame_size)
        return frame

    def _redisplay_photo(self) -> Optional[Image.Image]:
        if self.display_type is DisplayType.PHOTO and self.frame is not None:
            return self.viewer.display_frame(array_to_image(self.frame))
        return None

    # sources

    def open_picture(self, path) -> Image.Image:
        """Load a picture, fit it to the screen and show it."""
        self.display_type = DisplayType.PHOTO
        self._clear_status()
        with Image.open(path) as image:
            self.frame = image_to_array(image.convert("RGB"))
        self._set_window_size(self.frame)
        self.current_frame = self.frame
        return self.viewer.display_frame(array_to_image(self._fitted(self.current_frame)))

    def open_video(self, path) -> None:
        """Open a video file and start playback; raise VideoError on failure."""
        self.display_type = DisplayType.VIDEO
        self._clear_status()
        self.video.open(str(path), VideoMode.VIDEO)
        first = self.video.get_frame()
        if first is None:
            raise VideoError(f"cannot read a frame from {str(path)!r}")
        self.state.total_frame = float(self.video.frame_total())
        self.state.frame_rate = float(self.video.frame_rate())
        if self.state.frame_rate > 0:
            self.state.pause_time = 1000.0 / self.state.frame_rate
        self._set_slider_range(1, int(self.state.total_frame))
        self._set_window_size(first)
        self.viewer.set_size(*self.frame_size)
        self._start_timer()
        self.play_button_text = "stop"

    def open_camera(self, index: int = 0) -> None:
        """Open a camera and start showing its frames; raise VideoError on failure."""
        self.display_type = DisplayType.CAMERA
        self._clear_status()
        self.video.open(index, VideoMode.CAMERA)
        first = self.video.get_frame()
        if first is None:
            raise VideoError(f"cannot read a frame from camera {index}")
        self._set_window_size(first)
        self.viewer.set_size(*self.frame_size)
        self._start_timer()

    # playback

    def play_next(self) -> Optional[Image.Image]:
        """Show the next frame and return it, or None when there is no frame."""
        frame = self.video.get_frame()
        if frame is None or frame.size == 0:
            return None
        shown = self.viewer.display_frame(array_to_image(self._fitted(frame)))
        self._set_slider(self.state.control_rate)
        self.state.control_rate += 1
        return shown

    def toggle_play(self) -> None:
        self.paused = not self.paused
        if self.paused:
            self._stop_timer()
            self.play_button_text = "play"
        else:
            self._start_timer()
            self.play_button_text = "stop"
        if self.state.control_rate == self.state.total_frame:
            self._start_timer()
            self._set_slider(1)
            self.play_button_text = "stop"

    def replay(self) -> None:
        self.state.control_rate = 1
        self.video.set_current_frame(self.state.control_rate)
        self._set_slider(self.state.control_rate)

    def seek(self, value: int) -> None:
        """Move the position slider to ``value``."""
        self._set_slider(value)

    # display modes

    def example_process(self) -> Optional[Image.Image]:
        self.viewer.display_mode = DisplayMode.PROCESS
        self.viewer.set_stub(Cartoon())
        return self._redisplay_photo()

    def normal_display(self) -> Optional[Image.Image]:
        self.viewer.display_mode = DisplayMode.NORMAL
        return self._redisplay_photo()

    def model_display(self, model, name: str) -> Optional[Image.Image]:
        self.viewer.display_mode = DisplayMode.PROCESS
        self.viewer.set_stub(ModelProcessor(model, name))
        return self._redisplay_photo()

    def close(self) -> None:
        self.video.close()
        self._stop_timer()


def _parse_screen(text: str) -> tuple[int, int]:
    try:
        width, height = (int(part) for part in text.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {text!r}") from None
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError(f"screen size must be positive, got {text!r}")
    return width, height


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="dofun", description="Show pictures, videos or camera frames with effects.")
    parser.add_argument("source", help="picture or video path, or camera index")
    parser.add_argument("--mode", choices=("picture", "video", "camera"), default="picture")
    parser.add_argument("--effect", choices=("normal", "cartoon"), default="normal")
    parser.add_argument("-o", "--output", required=True, help="output file (picture) or directory (video, camera)")
    parser.add_argument("--screen", type=_parse_screen, default=(1920, 1080), help="screen size as WIDTHxHEIGHT")
    parser.add_argument("--max-frames", type=int, default=None)
    args = parser.parse_args(argv)

    player = Player(VideoProcess(), *args.screen)
    try:
        if args.mode == "picture":
            player.open_picture(args.source)
            if args.effect == "cartoon":
                player.example_process()
            player.viewer.pixmap.save(args.output)
            return 0
        if args.mode == "video":
            player.open_video(args.source)
        else:
            player.open_camera(int(args.source))
        if args.effect == "cartoon":
            player.example_process()
        out_dir = Path(args.output)
        out_dir.mkdir(parents=True, exist_ok=True)
        count = 0
        while args.max_frames is None or count < args.max_frames:
            shown = player.play_next()
            if shown is None:
                break
            count += 1
            shown.save(out_dir / f"frame_{count:05d}.png")
        return 0
    except (OSError, ValueError) as exc:
        print(f"dofun: {exc}", file=sys.stderr)
        return 1
    finally:
        player.close()


if __name__ == "__main__":
    sys.exit(main())