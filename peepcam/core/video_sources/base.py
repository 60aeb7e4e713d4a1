"""Video source abstractions.

The render loop consumes frames through a small interface (`VideoSource`) so
the capture implementation (webcam/file) can be swapped without affecting the
pipeline. Opening failures raise `CameraUnavailableError`.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod

import cv2

from peepcam.core.errors import CameraUnavailableError
from peepcam.core.types import Frame

logger = logging.getLogger(__name__)


class VideoSource(ABC):
    """Base interface for anything that can produce video frames."""

    @abstractmethod
    def read(self) -> Frame | None:
        """Return the next frame, or `None` when unavailable."""

        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release any underlying resources."""

        raise NotImplementedError


class OpenCVSource(VideoSource):
    """A `VideoSource` backed by `cv2.VideoCapture`."""

    def __init__(self, source: str | int) -> None:
        self.cap = cv2.VideoCapture(source)
        if not self.cap.isOpened():
            raise CameraUnavailableError(f"Failed to open video source: {source}")

    def read(self) -> Frame | None:
        ok, frame = self.cap.read()
        if not ok:
            return None
        return frame

    def close(self) -> None:
        self.cap.release()


class WebcamSource(OpenCVSource):
    """Front camera capture that always hands out the newest frame."""

    def __init__(self, index: int = 0, width: int = 640, height: int = 480) -> None:
        """Open camera `index` (falling back to `index + 1`) at the requested size.

        A reader thread drains the driver buffer and keeps only the latest
        frame, so a slow render loop never sees stale video.
        """

        self.cap = None
        for idx in (index, index + 1):
            cap = cv2.VideoCapture(idx)
            if cap.isOpened():
                ret, _ = cap.read()
                if ret:
                    self.cap = cap
                    logger.info("Opened camera index=%s", idx)
                    break
            cap.release()

        if self.cap is None:
            raise CameraUnavailableError(
                "this device does not have a usable camera "
                f"(tried index {index} and {index + 1}), or access was denied"
            )

        try:
            self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        except cv2.error:
            logger.debug("Camera backend ignores CAP_PROP_BUFFERSIZE")
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

        self._lock = threading.Lock()
        self._running = True
        self._latest_frame: Frame | None = None
        self._latest_seq = 0
        self._delivered_seq = 0
        self._reader_error: Exception | None = None
        self._reader_thread = threading.Thread(target=self._reader_loop, daemon=True)
        self._reader_thread.start()

    def _reader_loop(self) -> None:
        """Continuously drain the driver buffer and keep only the newest frame."""

        try:
            while self._running and self.cap is not None:
                ok, frame = self.cap.read()
                if ok:
                    with self._lock:
                        self._latest_frame = frame
                        self._latest_seq += 1
                else:
                    time.sleep(0.01)
        except Exception as e:
            logger.exception("Camera reader thread failed")
            with self._lock:
                self._reader_error = e

    def read(self) -> Frame | None:
        """Return the most recent frame, or `None` if nothing new arrived."""

        with self._lock:
            frame = self._latest_frame
            seq = self._latest_seq
            reader_error = self._reader_error

        if reader_error is not None:
            raise CameraUnavailableError("Camera stopped delivering frames") from reader_error
        if frame is None or seq == self._delivered_seq:
            return None
        self._delivered_seq = seq
        return frame

    def close(self) -> None:
        """Stop the reader thread and release the camera."""

        self._running = False
        try:
            if self._reader_thread.is_alive():
                self._reader_thread.join(timeout=1)
        finally:
            if self.cap is not None:
                self.cap.release()


class FileSource(OpenCVSource):
    """Video file played back in real time and looped at EOF."""

    def __init__(self, path: str) -> None:
        self._path = path
        super().__init__(path)
        fps = float(self.cap.get(cv2.CAP_PROP_FPS) or 0.0)
        self._source_fps: float | None = fps if fps > 0.0 else None
        self._start_perf: float | None = None
        self._frame_index = 0

    def _pace(self) -> None:
        """Sleep so frames come out at the container's FPS."""

        if not self._source_fps or self._start_perf is None:
            return
        delay = self._frame_index / self._source_fps - (time.perf_counter() - self._start_perf)
        if delay > 0:
            time.sleep(delay)

    def read(self) -> Frame | None:
        if self._start_perf is None:
            self._start_perf = time.perf_counter()
            self._frame_index = 0

        ok, frame = self.cap.read()
        if not ok:
            # EOF: rewind and start over.
            if not self.cap.set(cv2.CAP_PROP_POS_FRAMES, 0):
                return None
            self._start_perf = time.perf_counter()
            self._frame_index = 0
            ok, frame = self.cap.read()
            if not ok:
                return None

        self._frame_index += 1
        self._pace()
        return frame
