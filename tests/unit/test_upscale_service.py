"""Unit tests for the fal.ai UpscaleService queue flow."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from scenepack.services.upscale_service import UpscaleService, UpscaleServiceError
from scenepack.utils.errors import GenerationFailed, PollTimeout, PreconditionFailed

STATUS_URL = "https://queue.fal.run/fal-ai/clarity-upscaler/requests/req-1/status"
RESPONSE_URL = "https://queue.fal.run/fal-ai/clarity-upscaler/requests/req-1"


def _queue_handler(statuses, result=None, seen=None):
    statuses = list(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.method == "POST":
            return httpx.Response(
                200,
                json={"request_id": "req-1", "status_url": STATUS_URL, "response_url": RESPONSE_URL},
            )
        if str(request.url) == STATUS_URL:
            return httpx.Response(200, json={"status": statuses.pop(0)})
        return httpx.Response(200, json=result or {})

    return handler


def _service(handler, **kwargs) -> UpscaleService:
    return UpscaleService(
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        sleep=AsyncMock(),
        **kwargs,
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upscale_submit_poll_fetch():
    seen = []
    handler = _queue_handler(
        ["IN_QUEUE", "IN_PROGRESS", "COMPLETED"],
        result={"image": {"url": "https://fal.example/up.png"}},
        seen=seen,
    )
    service = _service(handler)
    try:
        url = await service.upscale_image("data:image/png;base64,YWJj", "fal-key")

        assert url == "https://fal.example/up.png"
        submit = seen[0]
        assert submit.headers["authorization"] == "Key fal-key"
        assert json.loads(submit.content) == {
            "image_url": "data:image/png;base64,YWJj",
            "upscale_factor": 2,
        }
        assert [str(r.url) for r in seen[1:]] == [STATUS_URL] * 3 + [RESPONSE_URL]
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upscale_times_out():
    service = _service(_queue_handler(["IN_PROGRESS"] * 10), poll_interval=2.0, max_wait=6.0)
    try:
        with pytest.raises(PollTimeout):
            await service.upscale_image("https://img.example/a.png", "fal-key")
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upscale_failed_status():
    service = _service(_queue_handler(["FAILED"]))
    try:
        with pytest.raises(UpscaleServiceError, match="FAILED"):
            await service.upscale_image("https://img.example/a.png", "fal-key")
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upscale_result_without_image():
    service = _service(_queue_handler(["COMPLETED"], result={"images": []}))
    try:
        with pytest.raises(GenerationFailed):
            await service.upscale_image("https://img.example/a.png", "fal-key")
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upscale_http_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"detail": "Invalid key"})

    service = _service(handler)
    try:
        with pytest.raises(UpscaleServiceError, match="Invalid key"):
            await service.upscale_image("https://img.example/a.png", "bad")
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upscale_requires_key():
    service = _service(_queue_handler([]))
    try:
        with pytest.raises(PreconditionFailed):
            await service.upscale_image("https://img.example/a.png", "")
    finally:
        await service.close()
