"""In-process state for settings and the video engine.

FastAPI routes use this module to access (and hot-reload) the singleton
`VideoEngine` instance.
"""

from __future__ import annotations

from threading import RLock

from peepcam.api.services.engine import VideoEngine
from peepcam.core.config.settings import (
    PeepSettings,
    detector_kind,
    load_settings,
    privacy_from_settings,
    settings_to_dict,
)
from peepcam.core.types import DetectorKind, PrivacyConfig

_settings: PeepSettings | None = None
_engine: VideoEngine | None = None
_lock = RLock()


def get_settings() -> PeepSettings:
    """Return cached settings, loading them on first use."""

    global _settings
    with _lock:
        if _settings is None:
            _settings = load_settings()
    return _settings


def reload_settings(data: dict | None = None) -> PeepSettings:
    """Reload settings and restart the engine if it is running.

    Args:
        data: Optional patch dict merged into the loaded settings.
    """

    global _settings, _engine
    with _lock:
        base = load_settings()
        if data:
            _settings = PeepSettings(**{**settings_to_dict(base), **data})
        else:
            _settings = base
        if _engine:
            _engine.stop()
            _engine = VideoEngine(_settings)
            _engine.start()
    return _settings


def get_engine() -> VideoEngine:
    """Return the singleton engine instance, creating and starting it if needed."""

    global _engine
    with _lock:
        if _engine is None:
            _engine = VideoEngine(get_settings())
            _engine.start()
    return _engine


def engine_for(kind: DetectorKind) -> VideoEngine:
    """Return the engine, switching it to the `kind` detector first if needed."""

    with _lock:
        settings = get_settings()
        if kind != detector_kind(settings):
            reload_settings({**settings_to_dict(settings), "detector": kind.value})
        return get_engine()


def update_privacy(
    enabled: bool | None = None, mode: str | None = None, target: str | None = None
) -> PrivacyConfig:
    """Apply a privacy change to the settings and the running engine (no restart)."""

    with _lock:
        settings = get_settings()
        if enabled is not None:
            settings.privacy_enabled = enabled
        if mode is not None:
            settings.privacy_mode = mode
        if target is not None:
            settings.privacy_target = target
        if _engine is not None:
            return _engine.set_privacy(
                settings.privacy_enabled, settings.privacy_mode, settings.privacy_target
            )
        return privacy_from_settings(settings)


def stop_engine() -> None:
    """Stop and discard the singleton engine instance (if present)."""

    global _engine
    with _lock:
        if _engine is not None:
            _engine.stop()
            _engine = None
