from __future__ import annotations

from typing import Any


# Privacy looks. Each preset turns privacy mode on and picks how (and whom) to obscure:
# - peep: black bar across every subject's eyes
# - spotlight: translucent red box over everyone except the main subject
# - shades: sunglasses sprite on everyone except the main subject


PRESETS: dict[str, dict[str, Any]] = {
    "peep": {
        "privacy_enabled": True,
        "privacy_mode": "eye_line",
        "privacy_target": "all",
    },
    "spotlight": {
        "privacy_enabled": True,
        "privacy_mode": "red_box",
        "privacy_target": "others",
    },
    "shades": {
        "privacy_enabled": True,
        "privacy_mode": "sunglasses",
        "privacy_target": "others",
    },
}


PRESET_LABELS: dict[str, str] = {
    "peep": "Eye bar",
    "spotlight": "Spotlight",
    "shades": "Sunglasses",
}


def list_presets() -> list[dict[str, Any]]:
    return [
        {
            "id": preset_id,
            "label": PRESET_LABELS.get(preset_id, preset_id),
            "settings": PRESETS[preset_id],
        }
        for preset_id in PRESETS.keys()
    ]


def preset_patch(preset_id: str) -> dict[str, Any]:
    if preset_id not in PRESETS:
        raise KeyError(preset_id)
    return dict(PRESETS[preset_id])
