"""AI service for structured text generation using Google GenAI."""

import logging
from typing import Any

from google.genai import Client
from google.genai import types

from scenepack.models.pipeline import ThumbnailText
from scenepack.services.prompts import (
    SCRIPT_REFINER_V1,
    THUMBNAIL_TEXT_V1,
    robust_json_parse,
)
from scenepack.utils.config import AppConfig
from scenepack.utils.errors import (
    MalformedResponse,
    PreconditionFailed,
    TransientIOFailure,
)

logger = logging.getLogger(__name__)

THUMBNAIL_SCRIPT_CHARS = 1000


class AIServiceError(TransientIOFailure):
    """Transport or provider error from the text model."""


class AIService:
    """Text-model calls against the primary provider (Gemini)."""

    def __init__(self, config: AppConfig, client: Client | None = None):
        """Initialize the AI service.

        Args:
            config: Session configuration (API key and model names)
            client: Pre-built GenAI client, mainly for tests
        """
        self.config = config
        self._client = client
        self._client_key = config.google_api_key if client else None

    @property
    def client(self) -> Client:
        """GenAI client for the current key, rebuilt when the key changes."""
        if not self.config.google_api_key:
            raise PreconditionFailed(
                "Google Gemini API key is not configured. Set it in settings first."
            )
        if self._client is None or self._client_key != self.config.google_api_key:
            self._client = Client(api_key=self.config.google_api_key)
            self._client_key = self.config.google_api_key
            logger.info(f"Initialized AI service with model: {self.config.text_model}")
        return self._client

    async def _generate(self, prompt: str, json_output: bool) -> str | None:
        config = (
            types.GenerateContentConfig(response_mime_type="application/json")
            if json_output
            else None
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=self.config.text_model,
                contents=prompt,
                config=config,
            )
        except PreconditionFailed:
            raise
        except Exception as e:
            logger.error(f"Text generation failed: {e}")
            raise AIServiceError(f"Text generation failed: {e}") from e
        return response.text

    async def generate_json(self, prompt: str) -> Any:
        """Run a structured-generation call and parse the JSON it returns.

        Raises:
            MalformedResponse: If the response cannot be parsed
            AIServiceError: If the provider call fails
        """
        text = await self._generate(prompt, json_output=True)
        return robust_json_parse(text)

    async def generate_text(self, prompt: str) -> str:
        """Run a free-text generation call. Returns "" for an empty answer."""
        return (await self._generate(prompt, json_output=False)) or ""

    async def generate_thumbnail_text(self, script: str) -> ThumbnailText:
        """Generate a two-line thumbnail caption from the start of a script."""
        if not script or not script.strip():
            raise PreconditionFailed("Script is empty")

        data = await self.generate_json(
            THUMBNAIL_TEXT_V1.format(script=script[:THUMBNAIL_SCRIPT_CHARS])
        )
        if isinstance(data, list) and data:
            data = data[0]
        if not isinstance(data, dict):
            raise MalformedResponse(
                "Thumbnail response is not a JSON object", raw_text=str(data)
            )

        return ThumbnailText(
            top_text=str(data.get("topText") or data.get("top_text") or ""),
            bottom_text=str(data.get("bottomText") or data.get("bottom_text") or ""),
        )

    async def refine_script(self, script: str, instruction: str) -> str:
        """Revise a script per a free-text instruction.

        Returns the original script when the model answers with nothing.
        """
        refined = await self.generate_text(
            SCRIPT_REFINER_V1.format(instruction=instruction, script=script)
        )
        return refined or script
