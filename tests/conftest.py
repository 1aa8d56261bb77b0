"""Shared pytest fixtures for scenepack tests."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from scenepack.models.pipeline import PipelineState  # noqa: E402
from scenepack.models.scene import PlannedSegment, Scene  # noqa: E402
from scenepack.services.pipeline import PipelineOrchestrator  # noqa: E402
from scenepack.utils.config import AppConfig, AutoSavePolicy, LocalSettings  # noqa: E402


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Configuration with fake keys and paths inside the test directory."""
    return AppConfig(
        google_api_key="test_google_key",
        elevenlabs_api_key="test_elevenlabs_key",
        falai_api_key="test_falai_key",
        image_pacing_seconds=4.0,
        tts_pacing_seconds=0.5,
        image_retry_delay_seconds=2.0,
        video_poll_interval_seconds=10.0,
        output_dir=str(tmp_path / "output"),
        db_path=str(tmp_path / "projects.db"),
        settings_file=str(tmp_path / "settings.json"),
        auto_save=AutoSavePolicy(),
    )


@pytest.fixture
def local_settings(tmp_path: Path) -> LocalSettings:
    return LocalSettings(tmp_path / "settings.json")


@pytest.fixture
def sample_script() -> tuple[str, str]:
    """Intro with 2 scenes and body with 3 scenes."""
    intro = "Welcome back. Today is special. Here is why. It matters."
    body = (
        "First point one. First point two. First point three. First point four.\n"
        "Second paragraph here.\n\n"
        "Third paragraph starts. And ends."
    )
    return intro, body


def make_scenes(count: int, with_images: bool = False) -> list[Scene]:
    """Build planned scenes 1..count."""
    return [
        Scene(
            index=i,
            original_text=f"Sentence {i}.",
            visual_prompt=f"Stickman scene {i}",
            motion_prompt=f"Motion {i}",
            is_intro_segment=i <= 2,
            media_url=f"data:image/png;base64,aW1n{i}" if with_images else "",
        )
        for i in range(1, count + 1)
    ]


@pytest.fixture
def mock_analyzer():
    """Analyzer that plans one segment per input text."""

    async def analyze(scene_texts, on_progress=None):
        if on_progress:
            await on_progress(f"Analyzing visuals... ({len(scene_texts)}/{len(scene_texts)})")
        return [
            PlannedSegment(source_text=t, visual_prompt=f"visual {i}", motion_prompt=f"motion {i}")
            for i, t in enumerate(scene_texts)
        ]

    mock = Mock()
    mock.batch_size = 4
    mock.analyze = AsyncMock(side_effect=analyze)
    return mock


@pytest.fixture
def mock_project_store():
    """Project store that records saved snapshots."""
    mock = Mock()
    mock.save = AsyncMock(side_effect=lambda project: project)
    mock.get = AsyncMock(return_value=None)
    mock.list = AsyncMock(return_value=[])
    mock.delete = AsyncMock(return_value=False)
    return mock


@pytest.fixture
def orchestrator_factory(app_config, mock_analyzer, mock_project_store):
    """Build orchestrators with mocked providers and instant sleeps.

    Keyword arguments override individual collaborators.
    """

    def factory(**overrides) -> PipelineOrchestrator:
        sleeps: list[float] = []

        async def record_sleep(seconds: float) -> None:
            sleeps.append(seconds)

        services = {
            "config": app_config,
            "ai_service": Mock(),
            "analyzer": mock_analyzer,
            "image_service": Mock(generate_image=AsyncMock(return_value="data:image/png;base64,aW1n")),
            "video_service": Mock(
                generate_video=AsyncMock(return_value="https://video.example/clip.mp4"),
                close=AsyncMock(),
            ),
            "tts_service": Mock(
                generate_tts=AsyncMock(return_value="data:audio/mpeg;base64,YXVkaW8="),
                close=AsyncMock(),
            ),
            "upscale_service": Mock(
                upscale_image=AsyncMock(return_value="https://fal.example/upscaled.png"),
                close=AsyncMock(),
            ),
            "project_store": mock_project_store,
            "packager": Mock(close=AsyncMock()),
            "sleep": record_sleep,
        }
        services.update(overrides)
        orchestrator = PipelineOrchestrator(**services)
        orchestrator.sleeps = sleeps
        return orchestrator

    return factory


@pytest.fixture
def producing_orchestrator(orchestrator_factory):
    """Orchestrator in production with 5 scenes and no media."""

    def factory(count: int = 5, with_images: bool = False, **overrides) -> PipelineOrchestrator:
        orchestrator = orchestrator_factory(**overrides)
        orchestrator.scenes.replace_all(make_scenes(count, with_images=with_images))
        orchestrator.state = PipelineState.PRODUCING
        orchestrator.step = 3
        return orchestrator

    return factory


@pytest.fixture
def scene_factory():
    return make_scenes
