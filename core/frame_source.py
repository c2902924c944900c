"""
Video frame sources read by the liveness detector
"""
import logging
import threading
from typing import Optional, Protocol

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """Anything exposing the current frame, a paused/ended state and dimensions"""

    @property
    def paused(self) -> bool: ...

    @property
    def ended(self) -> bool: ...

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def read(self) -> Optional[np.ndarray]: ...


class CameraSource:
    """Local webcam via OpenCV"""

    def __init__(self, index=0, width=640, height=480, mirror=True):
        self.index = index
        self.requested_size = (width, height)
        self.mirror = mirror
        self.capture = None
        self.paused = False
        self.ended = False
        self.width = 0
        self.height = 0
        self._lock = threading.Lock()

    def open(self):
        self.capture = cv2.VideoCapture(self.index)
        if not self.capture.isOpened():
            self.capture = None
            raise RuntimeError(f"Cannot open camera {self.index}")

        self.capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.requested_size[0])
        self.capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.requested_size[1])
        self.width = int(self.capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self.capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.paused = False
        self.ended = False
        logger.info("Camera %s opened (%dx%d)", self.index, self.width, self.height)
        return self

    def read(self):
        with self._lock:
            if self.capture is None or self.ended:
                return None
            ret, frame = self.capture.read()

        if not ret:
            logger.warning("Camera %s stopped delivering frames", self.index)
            self.ended = True
            return None

        if self.mirror:
            frame = cv2.flip(frame, 1)
        return frame

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def release(self):
        with self._lock:
            if self.capture is not None:
                self.capture.release()
                self.capture = None
        self.ended = True


class PushFrameSource:
    """Frames pushed by a remote client, e.g. JPEG blobs over a WebSocket"""

    def __init__(self):
        self.paused = False
        self.ended = False
        self._frame = None
        self._lock = threading.Lock()

    @property
    def latest_frame(self):
        with self._lock:
            return self._frame

    @property
    def width(self):
        frame = self.latest_frame
        return 0 if frame is None else frame.shape[1]

    @property
    def height(self):
        frame = self.latest_frame
        return 0 if frame is None else frame.shape[0]

    def push(self, data):
        """Store a new frame. Returns False when the data cannot be decoded."""
        if self.ended:
            return False

        if isinstance(data, np.ndarray):
            frame = data
        else:
            nparr = np.frombuffer(data, np.uint8)
            frame = cv2.imdecode(nparr, cv2.IMREAD_COLOR) if nparr.size else None

        if frame is None:
            logger.warning("Dropping undecodable frame (%d bytes)", len(data))
            return False

        with self._lock:
            self._frame = frame
        return True

    def read(self):
        return self.latest_frame

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def close(self):
        self.ended = True
