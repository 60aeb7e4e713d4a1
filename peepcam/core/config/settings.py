"""peepcam configuration.

Settings are loaded from YAML defaults and overridden by environment variables
prefixed with `PEEP_`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from peepcam.core.types import DetectorKind, PrivacyConfig, PrivacyMode, PrivacyTarget

DETECTOR_ALIASES: dict[str, DetectorKind] = {
    "pose": DetectorKind.POSE,
    "posenet": DetectorKind.POSE,
    "face": DetectorKind.FACE,
    "blazeface": DetectorKind.FACE,
}


def parse_detector_kind(value: str | None) -> DetectorKind:
    """Map a model name ("posenet", "blazeface", "pose", "face") to a detector kind.

    Missing or empty values select the pose estimator.
    """

    if value is None or not str(value).strip():
        return DetectorKind.POSE
    kind = DETECTOR_ALIASES.get(str(value).strip().lower())
    if kind is None:
        raise ValueError("model must be one of: posenet, blazeface, pose, face")
    return kind


class PeepSettings(BaseSettings):
    """Runtime configuration loaded from YAML defaults and `PEEP_` env overrides."""

    video_source: str = Field("webcam", description="webcam|file")
    camera_index: int = 0
    video_path: str | None = None
    frame_width: int = 640
    frame_height: int = 480

    detector: str = Field("pose", description="pose|face (posenet|blazeface accepted)")
    pose_model_name: str = Field("yolo11n-pose.pt")
    # MediaPipe: 0 = short range (selfie distance), 1 = full range.
    face_model_selection: int = 0
    flip_horizontal: bool = True
    annotate_boxes: bool = True

    privacy_enabled: bool = False
    privacy_mode: str = Field("sunglasses", description="eye_line|red_box|sunglasses")
    privacy_target: str = Field("others", description="others|all")
    eye_line_width: int = 100
    sunglasses_path: str | None = None

    # Optional cap for the render loop FPS. 0 runs as fast as possible.
    target_fps: float = 30.0
    jpeg_quality: int = 75

    model_config = SettingsConfigDict(env_prefix="PEEP_", validate_assignment=True)

    @field_validator("video_source")
    @classmethod
    def _validate_source(cls, v: str) -> str:
        if v not in {"webcam", "file"}:
            raise ValueError("video_source must be webcam|file")
        return v

    @field_validator("detector")
    @classmethod
    def _validate_detector(cls, v: str) -> str:
        return parse_detector_kind(v).value

    @field_validator("privacy_mode")
    @classmethod
    def _validate_privacy_mode(cls, v: str) -> str:
        return PrivacyMode(str(v).strip().lower()).value

    @field_validator("privacy_target")
    @classmethod
    def _validate_privacy_target(cls, v: str) -> str:
        return PrivacyTarget(str(v).strip().lower()).value

    @field_validator("frame_width", "frame_height", "eye_line_width")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be > 0")
        return v

    @field_validator("face_model_selection")
    @classmethod
    def _validate_face_model_selection(cls, v: int) -> int:
        if v not in {0, 1}:
            raise ValueError("face_model_selection must be 0 or 1")
        return v

    @field_validator("target_fps")
    @classmethod
    def _validate_target_fps(cls, v: float) -> float:
        if v < 0:
            raise ValueError("target_fps must be >= 0")
        return float(v)

    @field_validator("jpeg_quality")
    @classmethod
    def _validate_jpeg_quality(cls, v: int) -> int:
        if not 10 <= v <= 100:
            raise ValueError("jpeg_quality must be in [10, 100]")
        return v


def settings_to_dict(settings: PeepSettings) -> dict[str, Any]:
    return settings.model_dump()


def detector_kind(settings: PeepSettings) -> DetectorKind:
    return DetectorKind(settings.detector)


def privacy_from_settings(settings: PeepSettings) -> PrivacyConfig:
    """Build the privacy snapshot the render loop starts with."""

    return PrivacyConfig(
        enabled=bool(settings.privacy_enabled),
        mode=PrivacyMode(settings.privacy_mode),
        target=PrivacyTarget(settings.privacy_target),
    )


def _config_path() -> Path:
    """Return the YAML configuration path (defaults to config/peepcam.config.yml)."""

    return Path(os.getenv("PEEP_CONFIG", "config/peepcam.config.yml"))


def load_settings() -> PeepSettings:
    """Load settings from YAML and environment variables.

    YAML provides defaults; environment variables override.
    """

    data: dict[str, Any] = {}
    path = _config_path()
    if path.exists():
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    env_settings = PeepSettings()
    env_overrides: dict[str, Any] = {
        name: getattr(env_settings, name) for name in env_settings.model_fields_set
    }

    merged = {**data, **env_overrides}
    return PeepSettings(**merged)
