"""Integration tests for the scenepack API routes."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from scenepack.api import dependencies
from scenepack.api.server import app
from scenepack.models.pipeline import PipelineState, ThumbnailText
from scenepack.models.project import SavedProject
from scenepack.models.scene import MediaKind, Scene
from scenepack.utils.errors import MalformedResponse


@pytest.fixture
def orchestrator(producing_orchestrator):
    return producing_orchestrator(count=3, with_images=True)


@pytest.fixture
def client(monkeypatch, orchestrator, app_config, mock_project_store, local_settings):
    """TestClient wired to mocked singletons. Lifespan is not run."""
    monkeypatch.setattr(dependencies, "_config", app_config)
    monkeypatch.setattr(dependencies, "_settings", local_settings)
    monkeypatch.setattr(dependencies, "_project_store", mock_project_store)
    monkeypatch.setattr(dependencies, "_orchestrator", orchestrator)
    return TestClient(app)


@pytest.mark.integration
def test_root_and_health(client):
    assert client.get("/").json()["message"] == "scenepack API"

    health = client.get("/api/health").json()
    assert health["status"] == "healthy"
    assert health["problems"] == []


@pytest.mark.integration
def test_state(client):
    data = client.get("/api/state").json()
    assert data["state"] == "producing"
    assert data["step"] == 3
    assert [s["index"] for s in data["scenes"]] == [1, 2, 3]
    assert data["scenes"][0]["originalScriptSegment"] == "Sentence 1."


@pytest.mark.integration
def test_plan_and_confirm(client, orchestrator):
    orchestrator.state = PipelineState.IDLE

    response = client.post("/api/plan", json={"intro": "Hello there. Welcome.", "body": "Body one."})
    assert response.status_code == 200
    assert response.json()["state"] == "plan_ready"
    assert len(response.json()["scenes"]) == 2

    response = client.post("/api/plan/confirm")
    assert response.status_code == 200
    assert response.json()["state"] == "producing"


@pytest.mark.integration
def test_plan_blank_script_is_400(client):
    response = client.post("/api/plan", json={"intro": "", "body": "  "})
    assert response.status_code == 400
    assert response.json()["detail"] == "Enter a script first"


@pytest.mark.integration
def test_confirm_without_plan_is_409(client):
    assert client.post("/api/plan/confirm").status_code == 409


@pytest.mark.integration
def test_single_image(client, orchestrator):
    response = client.post("/api/images/2/generate")
    assert response.status_code == 200
    assert response.json()["mediaUrl"] == "data:image/png;base64,aW1n"
    orchestrator.image_service.generate_image.assert_awaited_once_with("Stickman scene 2")


@pytest.mark.integration
def test_unknown_scene_is_404(client):
    response = client.post("/api/images/42/generate")
    assert response.status_code == 404
    assert response.json()["detail"] == "Scene 42 not found"


@pytest.mark.integration
def test_generation_failure_is_502(client, orchestrator):
    orchestrator.image_service.generate_image.side_effect = MalformedResponse("bad")
    response = client.post("/api/images/1/generate")
    assert response.status_code == 502


@pytest.mark.integration
def test_batch_start_returns_202(client):
    response = client.post("/api/tts/generate-all")
    assert response.status_code == 202
    assert response.json() == {"kind": "audio", "status": "started", "scenes": 3}


@pytest.mark.integration
def test_batch_without_key_is_400(client, app_config):
    app_config.falai_api_key = ""
    response = client.post("/api/images/upscale-all")
    assert response.status_code == 400


@pytest.mark.integration
def test_video_without_image_is_400(client, orchestrator):
    orchestrator.scenes.update(1, media_url="")
    assert client.post("/api/scenes/1/video").status_code == 400


@pytest.mark.integration
def test_cancel_and_dismiss(client, orchestrator):
    assert client.post("/api/batch/cancel").json()["message"] == "No batch is running"

    orchestrator.last_error = "Scene 3: boom"
    client.post("/api/error/dismiss")
    assert orchestrator.last_error is None


@pytest.mark.integration
def test_thumbnail_text(client, orchestrator):
    orchestrator.ai_service.generate_thumbnail_text = AsyncMock(
        return_value=ThumbnailText(top_text="TOP", bottom_text="bottom")
    )
    response = client.post("/api/thumbnail-text", json={"script": "Some script."})
    assert response.json() == {"topText": "TOP", "bottomText": "bottom"}


@pytest.mark.integration
def test_package_download(client, orchestrator, tmp_path):
    archive = tmp_path / "pack_1.zip"
    archive.write_bytes(b"PK\x05\x06" + b"\x00" * 18)
    orchestrator.packager.write_archive = AsyncMock(return_value=archive)

    response = client.get("/api/package")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"


@pytest.mark.integration
def test_projects_routes(client, orchestrator, mock_project_store):
    saved = SavedProject(
        id="123",
        timestamp=123,
        script="Saved.",
        scenes=[Scene(index=1, original_text="Saved.")],
    )
    mock_project_store.get = AsyncMock(side_effect=lambda pid: saved if pid == "123" else None)

    response = client.post("/api/projects")
    assert response.status_code == 200
    assert response.json()["scene_count"] == 3

    assert client.get("/api/projects/123").json()["media"][0]["originalScriptSegment"] == "Saved."
    assert client.get("/api/projects/999").status_code == 404

    response = client.post("/api/projects/123/load")
    assert response.status_code == 200
    assert [s["index"] for s in response.json()["scenes"]] == [1]
    assert orchestrator.intro_script == "Saved."

    assert client.delete("/api/projects/999").status_code == 404


@pytest.mark.integration
def test_plan_and_load_rejected_while_batch_running(client, orchestrator, mock_project_store):
    saved = SavedProject(id="123", timestamp=123, script="Saved.", scenes=[Scene(index=1, original_text="Saved.")])
    mock_project_store.get = AsyncMock(return_value=saved)
    orchestrator.reserve_batch(MediaKind.IMAGE)

    response = client.post("/api/plan", json={"intro": "Brand new hook.", "body": ""})
    assert response.status_code == 409
    assert "batch is running" in response.json()["detail"]

    assert client.post("/api/projects/123/load").status_code == 409
    assert [s.original_text for s in orchestrator.scenes.all()] == ["Sentence 1.", "Sentence 2.", "Sentence 3."]


@pytest.mark.integration
def test_settings_masked(client, local_settings):
    data = client.get("/api/settings").json()
    assert data["google_api_key"].endswith("_key")
    assert data["google_api_key"].startswith("*")
    assert data["falai_api_key_set"] is True

    response = client.put("/api/settings", json={"falai_api_key": "abcdefgh"})
    assert response.json()["falai_api_key"] == "****efgh"
    assert local_settings.get("falai_key") == "abcdefgh"


@pytest.mark.integration
def test_video_download(client, orchestrator):
    orchestrator.video_service.download_video = AsyncMock(return_value=b"mp4-bytes")
    assert client.get("/api/scenes/1/video/download").status_code == 404

    orchestrator.scenes.update(1, video_url="https://veo.example/v.mp4")
    response = client.get("/api/scenes/1/video/download")
    assert response.status_code == 200
    assert response.content == b"mp4-bytes"
    orchestrator.video_service.download_video.assert_awaited_once_with("https://veo.example/v.mp4")
