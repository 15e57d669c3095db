"""
Frame sources for Pi Vision.
Defines the Protocol the vision thread reads frames from.
"""

import logging
import time
from pathlib import Path
from typing import Iterable, Protocol

import cv2
import numpy as np

from . import config
from .errors import FrameError, InvalidFrame

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """
    Protocol/interface for frame sources.

    next_frame() blocks until a frame is available. A frame that cannot be
    delivered raises FrameError; the caller skips it and asks again.
    """

    def next_frame(self) -> np.ndarray:
        """Return the next BGR frame."""
        ...


class CameraFrameSource:
    """
    Frame source backed by an opened OpenCV VideoCapture.

    The capture is owned by the camera subsystem; this class only reads.
    """

    def __init__(self, capture: cv2.VideoCapture, name: str = "camera"):
        """
        Initialize camera frame source.

        Args:
            capture: Opened VideoCapture
            name: Camera name for log messages
        """
        self.capture = capture
        self.name = name

    def next_frame(self) -> np.ndarray:
        """
        Read one frame from the camera.

        Raises:
            FrameError: If the read fails
        """
        ret, frame = self.capture.read()
        if not ret or frame is None:
            # Avoid spinning on a camera that keeps failing
            time.sleep(config.CAMERA_RETRY_DELAY)
            raise FrameError(f"failed to read frame from camera '{self.name}'")
        return frame


class ImageFrameSource:
    """
    Frame source that replays a fixed sequence of frames.

    Used for offline runs on image files and for tests. When the frames run
    out, next_frame() raises StopIteration, or starts over if loop is True.
    """

    def __init__(self, frames: Iterable[np.ndarray], loop: bool = False):
        self.frames = list(frames)
        self.loop = loop
        self._index = 0

    @classmethod
    def from_files(cls, paths: Iterable[str | Path], loop: bool = False) -> "ImageFrameSource":
        """
        Load frames from image files.

        Raises:
            InvalidFrame: If a file cannot be read as an image
        """
        frames = []
        for path in paths:
            image = cv2.imread(str(path), cv2.IMREAD_COLOR)
            if image is None:
                raise InvalidFrame(f"could not read image '{path}'")
            frames.append(image)
        logger.info(f"Loaded {len(frames)} image(s)")
        return cls(frames, loop=loop)

    def next_frame(self) -> np.ndarray:
        if self._index >= len(self.frames):
            if not self.loop or not self.frames:
                raise StopIteration
            self._index = 0
        frame = self.frames[self._index]
        self._index += 1
        return frame
