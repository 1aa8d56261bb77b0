"""Video generation service - Veo image-to-video via Google GenAI."""

import asyncio
import logging
import time
from typing import Awaitable, Callable

import httpx
from google.genai import Client
from google.genai import types

from scenepack.services.media_fetch import fetch_media_bytes, is_data_url, split_data_url
from scenepack.utils.config import AppConfig
from scenepack.utils.errors import (
    GenerationFailed,
    PollTimeout,
    PreconditionFailed,
    TransientIOFailure,
)

logger = logging.getLogger(__name__)

VIDEO_RESOLUTION = "720p"
VIDEO_ASPECT_RATIO = "16:9"


class VideoGenServiceError(TransientIOFailure):
    """Raised when a video job cannot be submitted or polled."""


class VideoGenService:
    """Animates a still scene image into a short clip using Veo."""

    def __init__(
        self,
        config: AppConfig,
        client: Client | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.config = config
        self._client = client
        self._client_key = config.google_api_key if client else None
        # Long timeout for video downloads
        self.http_client = http_client or httpx.AsyncClient(timeout=300.0)
        self._sleep = sleep or asyncio.sleep

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

    async def _load_image(self, image_url: str) -> types.Image:
        if is_data_url(image_url):
            mime_type, data = split_data_url(image_url)
        else:
            # Upscaled images live at a provider URL
            data = await fetch_media_bytes(self.http_client, image_url)
            mime_type = "image/png"
        return types.Image(image_bytes=data, mime_type=mime_type)

    async def generate_video(self, image_url: str, motion_prompt: str) -> str:
        """Generate a video clip from a scene image.

        The job is polled every ``video_poll_interval_seconds`` until it is
        done, at most ``video_max_poll_attempts`` times and for at most
        ``video_max_poll_seconds``.

        Args:
            image_url: Scene image (data URL or remote URL)
            motion_prompt: Motion description for the animation

        Returns:
            Provider URI of the generated video

        Raises:
            PollTimeout: The job did not finish within the polling budget
            GenerationFailed: The job failed or finished without a video
            VideoGenServiceError: Submission or polling transport error
        """
        client = self.client
        image = await self._load_image(image_url)

        logger.info(
            f"Submitting video job to {self.config.video_model} "
            f"({VIDEO_RESOLUTION}, {VIDEO_ASPECT_RATIO})"
        )
        start_time = time.time()

        try:
            operation = await client.aio.models.generate_videos(
                model=self.config.video_model,
                prompt=motion_prompt,
                image=image,
                config=types.GenerateVideosConfig(
                    number_of_videos=1,
                    resolution=VIDEO_RESOLUTION,
                    aspect_ratio=VIDEO_ASPECT_RATIO,
                ),
            )
        except Exception as e:
            raise VideoGenServiceError(f"Video job submission failed: {e}") from e

        attempts = 0
        while not operation.done:
            elapsed = time.time() - start_time
            if (
                attempts >= self.config.video_max_poll_attempts
                or elapsed >= self.config.video_max_poll_seconds
            ):
                logger.error(
                    f"Video job still running after {attempts} polls ({elapsed:.0f}s)"
                )
                raise PollTimeout(
                    f"Video generation did not finish after {attempts} polls"
                )

            await self._sleep(self.config.video_poll_interval_seconds)
            attempts += 1
            try:
                operation = await client.aio.operations.get(operation)
            except Exception as e:
                raise VideoGenServiceError(f"Video job polling failed: {e}") from e

        if operation.error:
            raise GenerationFailed(f"Video generation failed: {operation.error}")

        response = operation.response
        videos = getattr(response, "generated_videos", None) or []
        uri = videos[0].video.uri if videos and videos[0].video else None
        if not uri:
            raise GenerationFailed("Video generation returned no video")

        generation_time_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Veo generated video in {generation_time_ms}ms after {attempts} polls")
        return uri

    async def download_video(self, uri: str) -> bytes:
        """Download a generated video. Provider-hosted URIs need the API key."""
        url = uri
        if not is_data_url(uri) and self.config.google_api_key:
            separator = "&" if "?" in uri else "?"
            url = f"{uri}{separator}key={self.config.google_api_key}"
        return await fetch_media_bytes(self.http_client, url)

    async def close(self) -> None:
        await self.http_client.aclose()
