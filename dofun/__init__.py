"""Frame processing for images and video: cartoon and blur effects, filters, YOLACT post-processing and a frame player."""

__version__ = "0.1.0"

__all__ = [
    "imageconv",
    "imgops",
    "yolact",
    "models",
    "processors",
    "effects",
    "viewer",
    "video",
    "player",
]