"""Frame viewer state: current picture, size and optional frame processor."""

from __future__ import annotations

import enum
from typing import Optional

from PIL import Image

from dofun.processors import FrameProcessor


class DisplayMode(enum.Enum):
    NORMAL = "normal"
    PROCESS = "process"


class Viewer:
    """Holds the frame currently shown, passing frames through a processor in PROCESS mode."""

    def __init__(self) -> None:
        self.background = "#000000"
        self.display_mode = DisplayMode.NORMAL
        self.stub: Optional[FrameProcessor] = None
        self.pixmap: Optional[Image.Image] = None
        self.size: Optional[tuple[int, int]] = None

    def display_frame(self, image: Image.Image) -> Image.Image:
        """Show ``image`` (processed first in PROCESS mode) and return what is shown."""
        if self.display_mode is DisplayMode.PROCESS:
            if self.stub is None:
                raise RuntimeError("processing mode requires a frame processor")
            image = self.stub.process_frame(image)
        self.pixmap = image
        return image

    def set_stub(self, stub: Optional[FrameProcessor]) -> None:
        """Install a frame processor and switch to PROCESS mode; ``None`` is ignored."""
        if stub is None:
            return
        self.display_mode = DisplayMode.PROCESS
        self.stub = stub

    def reset(self) -> None:
        """Clear the displayed frame."""
        self.pixmap = None

    def set_size(self, width: int, height: int) -> None:
        if width < 0 or height < 0:
            raise ValueError(f"size must not be negative, got {width}x{height}")
        self.size = (width, height)