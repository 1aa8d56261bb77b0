"""Text-to-speech service - ElevenLabs REST API."""

import base64
import logging

import httpx

from scenepack.utils.config import DEFAULT_VOICE_ID, AppConfig
from scenepack.utils.errors import GenerationFailed, PreconditionFailed, TransientIOFailure

logger = logging.getLogger(__name__)

ELEVENLABS_API_BASE = "https://api.elevenlabs.io/v1"
ELEVENLABS_MODEL_ID = "eleven_multilingual_v2"


class TTSServiceError(TransientIOFailure):
    """Error from TTS service."""

    pass


class TTSService:
    """Narrates scene text with ElevenLabs. One attempt per call, no retry."""

    def __init__(self, config: AppConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self.client = client or httpx.AsyncClient(timeout=120.0)

    def is_configured(self) -> bool:
        return bool(self.config.elevenlabs_api_key)

    async def generate_tts(self, text: str, voice_id: str | None = None) -> str:
        """Generate narration audio for a piece of text.

        Args:
            text: Text to speak
            voice_id: Voice to use (defaults to the configured voice)

        Returns:
            ``data:audio/mpeg;base64,...`` URL

        Raises:
            PreconditionFailed: If no ElevenLabs key is configured
            GenerationFailed: If the provider returned no audio
            TTSServiceError: On transport or API errors
        """
        if not self.is_configured():
            raise PreconditionFailed(
                "ElevenLabs API key is not configured. Set it in settings first."
            )

        target_voice = voice_id or self.config.elevenlabs_voice_id or DEFAULT_VOICE_ID
        url = f"{ELEVENLABS_API_BASE}/text-to-speech/{target_voice}"
        headers = {
            "xi-api-key": self.config.elevenlabs_api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }
        payload = {
            "text": text,
            "model_id": ELEVENLABS_MODEL_ID,
            "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
        }

        logger.info(f"Generating TTS with voice {target_voice} ({len(text)} chars)")

        try:
            response = await self.client.post(url, headers=headers, json=payload)
            response.raise_for_status()
        except httpx.TimeoutException:
            raise TTSServiceError("ElevenLabs request timed out")
        except httpx.HTTPStatusError as e:
            error_detail = ""
            try:
                error_data = e.response.json()
                detail = error_data.get("detail", str(e))
                error_detail = detail.get("message", str(detail)) if isinstance(detail, dict) else str(detail)
            except Exception:
                error_detail = e.response.text or str(e)
            raise TTSServiceError(f"ElevenLabs API error: {error_detail}")
        except Exception as e:
            raise TTSServiceError(f"ElevenLabs TTS generation failed: {e}")

        audio_bytes = response.content
        if not audio_bytes:
            raise GenerationFailed("ElevenLabs returned no audio")

        logger.info(f"ElevenLabs TTS complete: {len(audio_bytes)} bytes")
        return f"data:audio/mpeg;base64,{base64.b64encode(audio_bytes).decode()}"

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
