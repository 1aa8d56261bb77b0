"""Unit tests for the SQLite project store."""

import pytest
import pytest_asyncio

from scenepack.models.project import SavedProject
from scenepack.models.scene import Scene
from scenepack.services.project_store import ProjectStore


@pytest_asyncio.fixture
async def project_store(tmp_path):
    store = ProjectStore(str(tmp_path / "db" / "projects.db"))
    await store.connect()
    yield store
    await store.close()


def _project(project_id: str, timestamp: int, images: int = 0) -> SavedProject:
    scenes = [
        Scene(
            index=i,
            original_text=f"Scene {i}.",
            media_url="data:image/png;base64,AA" if i <= images else "",
        )
        for i in range(1, 4)
    ]
    return SavedProject(
        id=project_id,
        timestamp=timestamp,
        script="Intro.\n\nBody.",
        scenes=scenes,
        falai_key="fal",
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_save_and_get(project_store):
    await project_store.save(_project("100", 100, images=2))

    loaded = await project_store.get("100")

    assert loaded is not None
    assert loaded.script == "Intro.\n\nBody."
    assert [s.original_text for s in loaded.scenes] == ["Scene 1.", "Scene 2.", "Scene 3."]
    assert loaded.scenes[0].media_url == "data:image/png;base64,AA"
    assert loaded.falai_key == "fal"
    assert await project_store.get("missing") is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_newest_first(project_store):
    await project_store.save(_project("100", 100))
    await project_store.save(_project("300", 300, images=3))
    await project_store.save(_project("200", 200, images=1))

    summaries = await project_store.list()

    assert [s.id for s in summaries] == ["300", "200", "100"]
    assert summaries[0].image_count == 3
    assert summaries[0].scene_count == 3


@pytest.mark.unit
@pytest.mark.asyncio
async def test_save_same_id_replaces(project_store):
    await project_store.save(_project("100", 100))
    await project_store.save(_project("100", 100, images=3))

    summaries = await project_store.list()
    assert len(summaries) == 1
    assert summaries[0].image_count == 3


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete(project_store):
    await project_store.save(_project("100", 100))

    assert await project_store.delete("100") is True
    assert await project_store.delete("100") is False
    assert await project_store.list() == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_requires_connect(tmp_path):
    store = ProjectStore(str(tmp_path / "projects.db"))
    with pytest.raises(RuntimeError):
        await store.list()
