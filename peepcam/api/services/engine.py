from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import AsyncGenerator
from dataclasses import replace
from pathlib import Path

import cv2
import numpy as np

from peepcam.core.analytics.pipeline import FramePipeline
from peepcam.core.config.settings import PeepSettings, detector_kind, privacy_from_settings
from peepcam.core.detectors.factory import build_detector
from peepcam.core.errors import CameraUnavailableError
from peepcam.core.overlay.privacy import load_sunglasses_sprite
from peepcam.core.types import DetectorKind, FrameSummary, PrivacyConfig, PrivacyMode, PrivacyTarget
from peepcam.core.video_sources.base import FileSource, VideoSource, WebcamSource

logger = logging.getLogger(__name__)

IDLE = "idle"
RENDERING = "rendering"
FAILED = "failed"

CAMERA_ERROR_MESSAGE = (
    "Camera unavailable: this device does not have a camera, or access was denied"
)


class VideoEngine:
    """Runs the render loop: read -> detect -> draw -> JPEG encode.

    One background thread drives the loop, so exactly one inference call is in
    flight at a time. The engine starts in `idle`, moves to `rendering` once
    the model and camera are ready, or to `failed` if either could not be set
    up (the loop then never starts and `last_error` says why).
    """

    def __init__(self, settings: PeepSettings, kind: DetectorKind | None = None) -> None:
        self.settings = settings
        self.kind = kind or detector_kind(settings)
        self.pipeline: FramePipeline | None = None
        self.source: VideoSource | None = None
        self.running = False
        self.state = IDLE
        self.last_error: str | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._privacy = privacy_from_settings(settings)
        self._latest_frame: bytes | None = None
        self._latest_summary: FrameSummary | None = None
        self._loop_fps = 0.0
        self._fps_alpha = 0.2
        self._last_frame_at: float | None = None

    def _make_source(self) -> VideoSource:
        """Instantiate the configured `VideoSource`."""

        if self.settings.video_source == "file":
            if not self.settings.video_path:
                raise CameraUnavailableError("video_source=file requires video_path")
            video_path = Path(self.settings.video_path)
            if not video_path.exists():
                raise CameraUnavailableError(f"Video path not found: {video_path}")
            return FileSource(str(video_path))
        return WebcamSource(
            self.settings.camera_index,
            width=self.settings.frame_width,
            height=self.settings.frame_height,
        )

    def _make_pipeline(self) -> FramePipeline:
        return FramePipeline(
            build_detector(self.settings, self.kind),
            mirror=self.settings.flip_horizontal,
            sprite=load_sunglasses_sprite(self.settings.sunglasses_path),
            eye_line_width=self.settings.eye_line_width,
        )

    def start(self) -> None:
        """Load the model, open the camera and start the render loop.

        Safe to call multiple times; calls while running are ignored. Startup
        failures are fatal for this engine instance.
        """

        if self.running:
            return
        try:
            self.pipeline = self._make_pipeline()
        except Exception:
            self.last_error = f"Failed to load {self.kind.value} model"
            self.state = FAILED
            logger.exception(self.last_error)
            return
        try:
            self.source = self._make_source()
        except Exception:
            self.last_error = CAMERA_ERROR_MESSAGE
            self.state = FAILED
            logger.exception(self.last_error)
            return
        self.running = True
        self.last_error = None
        self.state = RENDERING
        self._thread = threading.Thread(target=self._render_loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the render loop and close the video source."""

        self.running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2)
            if self._thread.is_alive():
                logger.warning("Render loop still busy after stop(); closing the source anyway")
        if self.source:
            self.source.close()
            self.source = None
        if self.state == RENDERING:
            self.state = IDLE

    @property
    def privacy(self) -> PrivacyConfig:
        with self._lock:
            return self._privacy

    def set_privacy(
        self,
        enabled: bool | None = None,
        mode: PrivacyMode | str | None = None,
        target: PrivacyTarget | str | None = None,
    ) -> PrivacyConfig:
        """Update the privacy snapshot; the next frame picks it up."""

        with self._lock:
            cfg = self._privacy
            if enabled is not None:
                cfg = replace(cfg, enabled=bool(enabled))
            if mode is not None:
                cfg = replace(cfg, mode=PrivacyMode(mode))
            if target is not None:
                cfg = replace(cfg, target=PrivacyTarget(target))
            self._privacy = cfg
        logger.info("Privacy updated: %s", cfg)
        return cfg

    def _render_loop(self) -> None:
        """One iteration per frame until `stop()`."""

        logger.debug("Render loop started (%s)", self.kind.value)
        target_fps = float(self.settings.target_fps)
        # stop() may clear self.source while an iteration is still running.
        source, pipeline = self.source, self.pipeline
        if source is None or pipeline is None:
            return
        while self.running:
            started = time.perf_counter()
            try:
                frame = source.read()
            except CameraUnavailableError:
                self.last_error = CAMERA_ERROR_MESSAGE
                logger.exception("Camera stopped delivering frames")
                time.sleep(0.1)
                continue
            if frame is None:
                time.sleep(0.005)
                continue

            try:
                summary, annotated = pipeline.process(frame, self.privacy)
                frame_bytes = self._encode(annotated)
                self.last_error = None
            except Exception:
                self.last_error = "Frame processing failed"
                logger.exception(self.last_error)
                continue

            self._publish(summary, frame_bytes)
            if target_fps > 0:
                delay = (1.0 / target_fps) - (time.perf_counter() - started)
                if delay > 0:
                    time.sleep(delay)

    def _encode(self, annotated: np.ndarray) -> bytes:
        ok, jpg = cv2.imencode(
            ".jpg", annotated, [int(cv2.IMWRITE_JPEG_QUALITY), int(self.settings.jpeg_quality)]
        )
        if not ok:
            raise RuntimeError("JPEG encoding failed")
        return jpg.tobytes()

    def _publish(self, summary: FrameSummary, frame_bytes: bytes) -> None:
        now = time.perf_counter()
        with self._lock:
            if self._last_frame_at is not None:
                dt = now - self._last_frame_at
                if dt > 0:
                    instant = 1.0 / dt
                    self._loop_fps = (
                        instant
                        if self._loop_fps == 0.0
                        else self._loop_fps * (1.0 - self._fps_alpha) + instant * self._fps_alpha
                    )
            self._last_frame_at = now
            self._latest_summary = replace(summary, fps=float(self._loop_fps))
            self._latest_frame = frame_bytes

    def latest_summary(self) -> FrameSummary | None:
        with self._lock:
            return self._latest_summary

    def latest_stream_packet(self) -> tuple[bytes | None, FrameSummary | None]:
        """Return (jpeg_bytes, summary) for the same frame."""

        with self._lock:
            return self._latest_frame, self._latest_summary

    def stream_fps(self) -> float:
        with self._lock:
            return float(self._loop_fps)

    async def metadata_stream(self) -> AsyncGenerator[FrameSummary, None]:
        """Yield per-frame summaries for WebSocket streaming."""

        last_id = -1
        while True:
            summary = self.latest_summary()
            if summary and summary.frame_id != last_id:
                last_id = summary.frame_id
                yield summary
            await asyncio.sleep(0.02)
