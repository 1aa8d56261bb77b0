"""Image Generation Service - Gemini image model via Google GenAI."""

import base64
import logging
import time
from typing import Awaitable, Callable

from google.genai import Client
from google.genai import types

from scenepack.services.prompts import IMAGE_PROMPT_TEMPLATE, IMAGE_STYLE_SUFFIX
from scenepack.utils.config import AppConfig
from scenepack.utils.errors import GenerationFailed, PreconditionFailed, TransientIOFailure
from scenepack.utils.retry import call_with_retry

logger = logging.getLogger(__name__)

IMAGE_ASPECT_RATIO = "16:9"
IMAGE_SIZE = "1K"


class ImageGenerationServiceError(TransientIOFailure):
    """Error from image generation service."""

    pass


def build_image_prompt(prompt: str) -> str:
    """Wrap a scene's visual prompt with the fixed style and quality constraints."""
    styled = IMAGE_STYLE_SUFFIX.format(prompt=prompt.strip())
    return IMAGE_PROMPT_TEMPLATE.format(styled_prompt=styled)


def extract_image_data_url(response) -> str | None:
    """Return the first inline image part of a response as a data URL."""
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline_data = getattr(part, "inline_data", None)
            if inline_data is None or not inline_data.data:
                continue
            data = inline_data.data
            if isinstance(data, bytes):
                data = base64.b64encode(data).decode("ascii")
            mime_type = inline_data.mime_type or "image/png"
            return f"data:{mime_type};base64,{data}"
    return None


class ImageGenerationService:
    """Synthesizes one scene image per call, with fixed-delay retries."""

    def __init__(
        self,
        config: AppConfig,
        client: Client | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        """Initialize the image generation service.

        Args:
            config: Session configuration (key, model, retry settings)
            client: Pre-built GenAI client, mainly for tests
            sleep: Awaitable used between retries (defaults to asyncio.sleep)
        """
        self.config = config
        self._client = client
        self._client_key = config.google_api_key if client else None
        self._sleep = sleep

    @property
    def client(self) -> Client:
        if not self.config.google_api_key:
            raise PreconditionFailed(
                "Google Gemini API key is not configured. Set it in settings first."
            )
        if self._client is None or self._client_key != self.config.google_api_key:
            self._client = Client(api_key=self.config.google_api_key)
            self._client_key = self.config.google_api_key
        return self._client

    async def _generate_once(self, full_prompt: str) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.config.image_model,
                contents=full_prompt,
                config=types.GenerateContentConfig(
                    image_config=types.ImageConfig(
                        aspect_ratio=IMAGE_ASPECT_RATIO,
                        image_size=IMAGE_SIZE,
                    ),
                ),
            )
        except PreconditionFailed:
            raise
        except Exception as e:
            raise ImageGenerationServiceError(f"Gemini image generation failed: {e}") from e

        data_url = extract_image_data_url(response)
        if not data_url:
            raise GenerationFailed("Image generation returned no image data")
        return data_url

    async def generate_image(self, prompt: str) -> str:
        """Generate an image for a visual prompt.

        Any failure is retried after a fixed delay, up to the configured
        number of extra attempts; the last error then propagates.

        Args:
            prompt: Scene visual prompt (may be empty)

        Returns:
            ``data:<mime>;base64,<data>`` URL of the image

        Raises:
            PreconditionFailed: No Google key configured (not retried)
            GenerationFailed: The model answered without an image part
            ImageGenerationServiceError: Transport or provider error
        """
        # Checked once up front so a missing key is never retried
        _ = self.client

        full_prompt = build_image_prompt(prompt)
        logger.info(
            f"Generating image with {self.config.image_model} "
            f"(aspect={IMAGE_ASPECT_RATIO}, size={IMAGE_SIZE})"
        )

        start_time = time.time()
        data_url = await call_with_retry(
            lambda: self._generate_once(full_prompt),
            max_retries=self.config.image_retry_attempts,
            delay=self.config.image_retry_delay_seconds,
            sleep=self._sleep,
        )
        generation_time_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Gemini generated image in {generation_time_ms}ms")
        return data_url
