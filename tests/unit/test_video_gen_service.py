"""Unit tests for VideoGenService polling."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from scenepack.services.video_gen_service import VideoGenService, VideoGenServiceError
from scenepack.utils.errors import GenerationFailed, PollTimeout

IMAGE_DATA_URL = "data:image/png;base64,YWJj"


def _operation(done, uri=None, error=None):
    videos = [SimpleNamespace(video=SimpleNamespace(uri=uri))] if uri else []
    return SimpleNamespace(
        done=done,
        error=error,
        response=SimpleNamespace(generated_videos=videos),
    )


def _service(app_config, submitted, polled=None, http_client=None):
    client = Mock()
    client.aio.models.generate_videos = AsyncMock(return_value=submitted)
    client.aio.operations.get = AsyncMock(side_effect=polled or [])
    sleep = AsyncMock()
    service = VideoGenService(
        app_config,
        client=client,
        http_client=http_client or httpx.AsyncClient(),
        sleep=sleep,
    )
    return service, client, sleep


@pytest.mark.unit
@pytest.mark.asyncio
async def test_polls_until_done(app_config):
    service, client, sleep = _service(
        app_config,
        _operation(False),
        polled=[_operation(False), _operation(True, uri="https://veo.example/v.mp4")],
    )
    try:
        uri = await service.generate_video(IMAGE_DATA_URL, "Slow zoom")

        assert uri == "https://veo.example/v.mp4"
        assert client.aio.operations.get.await_count == 2
        assert [c.args[0] for c in sleep.await_args_list] == [10.0, 10.0]

        call = client.aio.models.generate_videos.await_args
        assert call.kwargs["prompt"] == "Slow zoom"
        assert call.kwargs["image"].image_bytes == b"abc"
        assert call.kwargs["image"].mime_type == "image/png"
        assert call.kwargs["config"].resolution == "720p"
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_poll_budget_exhausted(app_config):
    app_config.video_max_poll_attempts = 3
    never_done = [_operation(False) for _ in range(10)]
    service, client, _ = _service(app_config, _operation(False), polled=never_done)
    try:
        with pytest.raises(PollTimeout):
            await service.generate_video(IMAGE_DATA_URL, "Pan")
        assert client.aio.operations.get.await_count == 3
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_job_error(app_config):
    service, _, _ = _service(app_config, _operation(True, error={"message": "blocked"}))
    try:
        with pytest.raises(GenerationFailed, match="blocked"):
            await service.generate_video(IMAGE_DATA_URL, "Pan")
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_done_without_video(app_config):
    service, _, _ = _service(app_config, _operation(True))
    try:
        with pytest.raises(GenerationFailed):
            await service.generate_video(IMAGE_DATA_URL, "Pan")
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_submission_error_wrapped(app_config):
    service, client, _ = _service(app_config, None)
    client.aio.models.generate_videos = AsyncMock(side_effect=RuntimeError("quota"))
    try:
        with pytest.raises(VideoGenServiceError, match="quota"):
            await service.generate_video(IMAGE_DATA_URL, "Pan")
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_remote_image_is_downloaded(app_config):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "fal.example"
        return httpx.Response(200, content=b"remote-bytes")

    service, client, _ = _service(
        app_config,
        _operation(True, uri="https://veo.example/v.mp4"),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    try:
        await service.generate_video("https://fal.example/up.png", "Pan")
        image = client.aio.models.generate_videos.await_args.kwargs["image"]
        assert image.image_bytes == b"remote-bytes"
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_download_video_appends_key(app_config):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return httpx.Response(200, content=b"mp4")

    service, _, _ = _service(
        app_config,
        None,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    try:
        assert await service.download_video("https://veo.example/v.mp4?alt=media") == b"mp4"
        assert seen[0].params["key"] == "test_google_key"
        assert seen[0].params["alt"] == "media"
    finally:
        await service.close()
