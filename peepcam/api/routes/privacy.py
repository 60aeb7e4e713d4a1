"""Privacy toggle endpoints.

Changes apply to the running render loop from its next frame on, without a
restart.
"""

from __future__ import annotations

from fastapi import APIRouter

from peepcam.api.schemas.models import PrivacySchema, PrivacyUpdate
from peepcam.api.services.state import get_settings, update_privacy
from peepcam.core.config.settings import privacy_from_settings

router = APIRouter()


@router.get("/privacy", response_model=PrivacySchema)
def get_privacy() -> PrivacySchema:
    cfg = privacy_from_settings(get_settings())
    return PrivacySchema(enabled=cfg.enabled, mode=cfg.mode, target=cfg.target)


@router.post("/privacy", response_model=PrivacySchema)
def set_privacy(update: PrivacyUpdate) -> PrivacySchema:
    """Toggle privacy mode and/or change how subjects are obscured."""

    cfg = update_privacy(
        enabled=update.enabled,
        mode=update.mode.value if update.mode is not None else None,
        target=update.target.value if update.target is not None else None,
    )
    return PrivacySchema(enabled=cfg.enabled, mode=cfg.mode, target=cfg.target)
