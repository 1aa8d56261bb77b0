"""Unit tests for the scene store."""

import pytest

from scenepack.models.scene import MediaKind
from scenepack.services.scene_store import SceneStore


@pytest.fixture
def store(scene_factory) -> SceneStore:
    store = SceneStore()
    store.replace_all(list(reversed(scene_factory(3))))
    return store


@pytest.mark.unit
class TestSceneStore:
    """Tests for indexed access and per-field updates."""

    def test_replace_all_sorts_by_index(self, store):
        assert [s.index for s in store.all()] == [1, 2, 3]
        assert len(store) == 3
        assert 2 in store
        assert 9 not in store

    def test_get_unknown_index(self, store):
        with pytest.raises(KeyError):
            store.get(42)

    def test_update_writes_only_given_fields(self, store):
        store.update(2, media_url="data:image/png;base64,AAA")
        store.update(2, audio_url="data:audio/mpeg;base64,BBB")

        scene = store.get(2)
        assert scene.media_url == "data:image/png;base64,AAA"
        assert scene.audio_url == "data:audio/mpeg;base64,BBB"
        assert scene.original_text == "Sentence 2."

    def test_fixed_fields_rejected(self, store):
        with pytest.raises(ValueError):
            store.update(1, original_text="Rewritten.")
        with pytest.raises(ValueError):
            store.update(1, index=7)

    def test_unknown_field_rejected(self, store):
        with pytest.raises(ValueError):
            store.update(1, colour="red")

    def test_update_unknown_index(self, store):
        with pytest.raises(KeyError):
            store.update(99, media_url="x")

    def test_begin_and_end(self, store):
        assert store.begin(1, MediaKind.IMAGE) is True
        assert store.get(1).image_pending is True
        # Second begin is refused while pending
        assert store.begin(1, MediaKind.IMAGE) is False
        # Other kinds are independent
        assert store.begin(1, MediaKind.AUDIO) is True

        store.end(1, MediaKind.IMAGE, media_url="data:image/png;base64,AAA")
        scene = store.get(1)
        assert scene.image_pending is False
        assert scene.audio_pending is True
        assert scene.media_url == "data:image/png;base64,AAA"

    def test_pending_for(self, store):
        store.update(2, media_url="data:image/png;base64,AAA")
        assert [s.index for s in store.pending_for(MediaKind.IMAGE)] == [1, 3]
        assert [s.index for s in store.pending_for(MediaKind.AUDIO)] == [1, 2, 3]

    def test_snapshot_is_independent(self, store):
        snapshot = store.snapshot()
        store.update(1, media_url="data:image/png;base64,NEW")

        assert snapshot[0].media_url == ""
        snapshot[1].visual_prompt = "changed"
        assert store.get(2).visual_prompt == "Stickman scene 2"
