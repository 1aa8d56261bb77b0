"""Credential settings routes for the scenepack API."""

import logging

from fastapi import APIRouter

from scenepack.api.dependencies import get_config, get_settings
from scenepack.api.schemas import SettingsResponse, SettingsUpdateRequest
from scenepack.utils.config import AppConfig, apply_settings_update

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Settings"])


def mask_key(key: str) -> str:
    """Show only the last 4 characters of a credential."""
    if not key:
        return ""
    if len(key) <= 4:
        return "*" * len(key)
    return "*" * (len(key) - 4) + key[-4:]


def _settings_response(config: AppConfig) -> SettingsResponse:
    return SettingsResponse(
        google_api_key=mask_key(config.google_api_key),
        elevenlabs_api_key=mask_key(config.elevenlabs_api_key),
        elevenlabs_voice_id=config.elevenlabs_voice_id,
        falai_api_key=mask_key(config.falai_api_key),
        google_api_key_set=bool(config.google_api_key),
        elevenlabs_api_key_set=bool(config.elevenlabs_api_key),
        falai_api_key_set=bool(config.falai_api_key),
    )


@router.get("/api/settings", summary="Get settings", description="Credentials (masked) and the voice id.")
async def get_settings_route() -> SettingsResponse:
    return _settings_response(get_config())


@router.put("/api/settings", summary="Update settings", description="Save credentials locally. They take effect immediately.")
async def update_settings(request: SettingsUpdateRequest) -> SettingsResponse:
    config = apply_settings_update(
        get_config(),
        get_settings(),
        google_api_key=request.google_api_key,
        elevenlabs_api_key=request.elevenlabs_api_key,
        elevenlabs_voice_id=request.elevenlabs_voice_id,
        falai_api_key=request.falai_api_key,
    )
    logger.info("Settings updated")
    return _settings_response(config)
