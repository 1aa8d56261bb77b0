"""Zip archive assembly for finished scene media."""

import io
import logging
import time
import zipfile
from pathlib import Path
from typing import Awaitable, Callable, Optional

import httpx

from scenepack.models.scene import Scene
from scenepack.services.media_fetch import fetch_media_bytes

logger = logging.getLogger(__name__)


class Packager:
    """Bundles scene images and narration into one zip archive.

    Layout: ``images/scene-<index>.png`` and ``audio/scene-<index>.mp3``.
    A resource that cannot be fetched is logged and left out.
    """

    def __init__(self, client: httpx.AsyncClient | None = None):
        self.client = client or httpx.AsyncClient(timeout=60.0)

    async def build_archive(
        self,
        scenes: list[Scene],
        on_progress: Optional[Callable[[int], Awaitable[None]]] = None,
    ) -> bytes:
        """Build the archive in memory.

        Args:
            scenes: Scenes to package, in order
            on_progress: Async callback with a 0-100 percent after each scene and at the end

        Returns:
            Zip file bytes
        """
        zip_buffer = io.BytesIO()
        total = len(scenes)
        written = 0

        with zipfile.ZipFile(zip_buffer, "w", zipfile.ZIP_DEFLATED) as zip_file:
            for i, scene in enumerate(scenes):
                entries = []
                if scene.media_url:
                    entries.append((f"images/scene-{scene.index}.png", scene.media_url))
                if scene.audio_url:
                    entries.append((f"audio/scene-{scene.index}.mp3", scene.audio_url))

                for filename, url in entries:
                    try:
                        zip_file.writestr(filename, await fetch_media_bytes(self.client, url))
                        written += 1
                    except Exception as e:
                        logger.warning(f"Failed to add {filename} to archive: {e}")

                if on_progress and total:
                    await on_progress(round((i + 1) / total * 100))

        if on_progress:
            await on_progress(100)

        logger.info(f"Built archive with {written} files from {total} scenes")
        return zip_buffer.getvalue()

    async def write_archive(
        self,
        scenes: list[Scene],
        output_dir: str | Path,
        on_progress: Optional[Callable[[int], Awaitable[None]]] = None,
    ) -> Path:
        """Build the archive and write it as ``pack_<timestamp_ms>.zip``."""
        data = await self.build_archive(scenes, on_progress)

        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)
        archive_path = output_path / f"pack_{int(time.time() * 1000)}.zip"
        archive_path.write_bytes(data)

        logger.info(f"Archive written to {archive_path}")
        return archive_path

    async def close(self) -> None:
        await self.client.aclose()
