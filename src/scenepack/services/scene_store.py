"""Ordered, index-addressed collection of scenes for one production run."""

import copy
import logging
from dataclasses import fields, replace

from scenepack.models.scene import MediaKind, Scene

logger = logging.getLogger(__name__)

# Fixed once the plan is confirmed
IMMUTABLE_FIELDS = frozenset({"index", "original_text", "is_intro_segment"})
SCENE_FIELDS = frozenset(f.name for f in fields(Scene))


class SceneStore:
    """Holds the scenes of the current run, owned by the orchestrator.

    Every write is a per-field replace on the latest stored object, so
    concurrent completions touching different fields of the same scene never
    overwrite each other. Same-field writes are last-writer-wins.
    """

    def __init__(self) -> None:
        self._scenes: list[Scene] = []

    def replace_all(self, scenes: list[Scene]) -> None:
        """Swap in a whole new scene list (planning and project load only)."""
        self._scenes = sorted(scenes, key=lambda s: s.index)

    def get(self, index: int) -> Scene:
        for scene in self._scenes:
            if scene.index == index:
                return scene
        raise KeyError(f"Scene {index} not found")

    def all(self) -> list[Scene]:
        return list(self._scenes)

    def __len__(self) -> int:
        return len(self._scenes)

    def __contains__(self, index: object) -> bool:
        return any(s.index == index for s in self._scenes)

    def pending_for(self, kind: MediaKind) -> list[Scene]:
        """Scenes still missing the result of ``kind``, in ascending index."""
        return [s for s in self._scenes if not s.has(kind)]

    def update(self, index: int, **changes) -> Scene:
        """Replace the given fields on scene ``index``.

        Raises:
            KeyError: Unknown scene index
            ValueError: Unknown field, or a field fixed at planning time
        """
        fixed = IMMUTABLE_FIELDS.intersection(changes)
        if fixed:
            raise ValueError(f"Cannot change fixed scene fields: {sorted(fixed)}")
        unknown = set(changes) - SCENE_FIELDS
        if unknown:
            raise ValueError(f"Unknown scene fields: {sorted(unknown)}")

        for position, scene in enumerate(self._scenes):
            if scene.index == index:
                updated = replace(scene, **changes)
                self._scenes[position] = updated
                return updated
        raise KeyError(f"Scene {index} not found")

    def begin(self, index: int, kind: MediaKind) -> bool:
        """Mark ``kind`` as pending on a scene. False if it already was."""
        if self.get(index).is_pending(kind):
            logger.debug(f"Scene {index} already has {kind.value} in progress")
            return False
        self.update(index, **{kind.pending_field: True})
        return True

    def end(self, index: int, kind: MediaKind, **results) -> Scene:
        """Clear the pending flag for ``kind``, writing any results with it."""
        return self.update(index, **{kind.pending_field: False}, **results)

    def snapshot(self) -> list[Scene]:
        """Deep copy of every scene, safe to persist while work continues."""
        return copy.deepcopy(self._scenes)
