"""Error types raised by peepcam core components."""

from __future__ import annotations


class CameraUnavailableError(RuntimeError):
    """The camera (or video file) could not be opened or delivered no frames."""


class DetectorUnavailableError(RuntimeError):
    """The model library backing a detector is missing or failed to load."""
