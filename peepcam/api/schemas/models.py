"""Pydantic models for the HTTP/WS API."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from peepcam.core.config.settings import parse_detector_kind
from peepcam.core.types import PrivacyMode, PrivacyTarget


class SubjectSchema(BaseModel):
    """Confident subject payload."""

    score: float
    keypoints: list[list[float]]
    bbox: tuple[float, float, float, float] | None = None
    main: bool


class FrameSchema(BaseModel):
    """Per-frame metadata payload."""

    frame_id: int
    timestamp: float
    detector: str
    subjects: list[SubjectSchema]
    main_index: int | None
    confident_count: int
    total_count: int
    fps: float
    frame_size: tuple[int, int] | list[int]
    privacy: bool
    stream_fps: float | None = None


class StatsSchema(BaseModel):
    """High-level summary stats payload."""

    detector: str
    state: str
    confident_count: int
    total_count: int
    fps: float
    stream_fps: float | None = None
    privacy: bool
    error: str | None = None


class PrivacySchema(BaseModel):
    """Current privacy settings."""

    enabled: bool
    mode: PrivacyMode
    target: PrivacyTarget


class PrivacyUpdate(BaseModel):
    """Partial privacy update; omitted fields keep their value."""

    enabled: bool | None = None
    mode: PrivacyMode | None = None
    target: PrivacyTarget | None = None


class ConfigSchema(BaseModel):
    """Runtime configuration payload."""

    video_source: str
    camera_index: int = Field(default=0, ge=0)
    video_path: str | None = None
    frame_width: int = Field(default=640, gt=0)
    frame_height: int = Field(default=480, gt=0)
    detector: str = "pose"
    pose_model_name: str = "yolo11n-pose.pt"
    face_model_selection: int = Field(default=0, ge=0, le=1)
    flip_horizontal: bool = True
    annotate_boxes: bool = True
    privacy_enabled: bool = False
    privacy_mode: PrivacyMode = PrivacyMode.SUNGLASSES
    privacy_target: PrivacyTarget = PrivacyTarget.OTHERS
    eye_line_width: int = Field(default=100, gt=0)
    sunglasses_path: str | None = None
    target_fps: float = Field(default=30.0, ge=0)
    jpeg_quality: int = Field(default=75, ge=10, le=100)

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
