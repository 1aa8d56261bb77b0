"""Image upscaling service - fal.ai queue API."""

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from scenepack.utils.errors import (
    GenerationFailed,
    PollTimeout,
    PreconditionFailed,
    TransientIOFailure,
)

logger = logging.getLogger(__name__)

FALAI_QUEUE_BASE = "https://queue.fal.run"
FALAI_UPSCALE_MODEL = "fal-ai/clarity-upscaler"


class UpscaleServiceError(TransientIOFailure):
    """Raised when an upscale job cannot be submitted or read."""


class UpscaleService:
    """Upscales a scene image through the fal.ai queue (submit, poll, fetch)."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        model: str = FALAI_UPSCALE_MODEL,
        poll_interval: float = 2.0,
        max_wait: float = 120.0,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.client = client or httpx.AsyncClient(timeout=120.0)
        self.model = model
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._sleep = sleep or asyncio.sleep

    async def upscale_image(self, image_url: str, api_key: str) -> str:
        """Upscale an image and return the URL of the result.

        Args:
            image_url: Source image (data URL or remote URL)
            api_key: fal.ai key

        Returns:
            URL of the upscaled image

        Raises:
            PreconditionFailed: If the key is empty
            PollTimeout: If the job does not finish within ``max_wait``
            GenerationFailed: If the job finished without an image
            UpscaleServiceError: On transport or API errors
        """
        if not api_key:
            raise PreconditionFailed("fal.ai API key is not configured")

        headers = {
            "Authorization": f"Key {api_key}",
            "Content-Type": "application/json",
        }
        payload = {"image_url": image_url, "upscale_factor": 2}

        try:
            response = await self.client.post(
                f"{FALAI_QUEUE_BASE}/{self.model}", headers=headers, json=payload
            )
            response.raise_for_status()
            submit_data = response.json()
            request_id = submit_data.get("request_id")
            if not request_id:
                raise UpscaleServiceError("fal.ai did not return a request ID")

            status_url = submit_data.get("status_url") or (
                f"{FALAI_QUEUE_BASE}/{self.model}/requests/{request_id}/status"
            )
            response_url = submit_data.get("response_url") or (
                f"{FALAI_QUEUE_BASE}/{self.model}/requests/{request_id}"
            )
            logger.info(f"fal.ai upscale job submitted: {request_id}")

            elapsed = 0.0
            while True:
                if elapsed >= self.max_wait:
                    raise PollTimeout(f"Upscale job timed out after {self.max_wait:.0f}s")
                await self._sleep(self.poll_interval)
                elapsed += self.poll_interval

                status_response = await self.client.get(status_url, headers=headers)
                status_response.raise_for_status()
                job_status = status_response.json().get("status")
                logger.debug(f"fal.ai job {request_id} status: {job_status} ({elapsed:.0f}s elapsed)")

                if job_status == "COMPLETED":
                    break
                if job_status in ("IN_QUEUE", "IN_PROGRESS"):
                    continue
                raise UpscaleServiceError(f"Unexpected fal.ai status: {job_status}")

            result_response = await self.client.get(response_url, headers=headers)
            result_response.raise_for_status()
            result = result_response.json()

        except httpx.TimeoutException:
            raise UpscaleServiceError("fal.ai request timed out")
        except httpx.HTTPStatusError as e:
            error_detail = ""
            try:
                error_data = e.response.json()
                error_detail = str(error_data.get("detail", str(e)))
            except Exception:
                error_detail = e.response.text or str(e)
            raise UpscaleServiceError(f"fal.ai API error: {error_detail}")
        except (UpscaleServiceError, PollTimeout):
            raise
        except Exception as e:
            raise UpscaleServiceError(f"fal.ai upscale failed: {e}")

        image = result.get("image") or {}
        upscaled_url = image.get("url") if isinstance(image, dict) else None
        if not upscaled_url:
            raise GenerationFailed("fal.ai returned no upscaled image")

        logger.info(f"fal.ai upscale complete: {request_id}")
        return upscaled_url

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
