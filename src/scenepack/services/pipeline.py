"""Pipeline orchestrator - drives one production run from script to archive.

The orchestrator is the only writer of the scene store. Generators return
results and the orchestrator writes them back per field, keyed by scene
index. Batch loops process scenes one at a time in ascending index order
and check a cancellation token before each scene.
"""

import asyncio
import copy
import logging
import time
from pathlib import Path
from typing import Awaitable, Callable, Optional

from scenepack.models.pipeline import BatchResult, LoadingType, PipelineState, ProgressUpdate
from scenepack.models.project import SavedProject
from scenepack.models.scene import MediaKind, Scene
from scenepack.services.ai_service import AIService
from scenepack.services.image_generation_service import ImageGenerationService
from scenepack.services.packager import Packager
from scenepack.services.project_store import ProjectStore
from scenepack.services.prompt_analyzer import PromptAnalyzer
from scenepack.services.scene_store import SceneStore
from scenepack.services.segmenter import segment_script
from scenepack.services.tts_service import TTSService
from scenepack.services.upscale_service import UpscaleService
from scenepack.services.video_gen_service import VideoGenService
from scenepack.utils.cancellation import CancellationToken
from scenepack.utils.config import AppConfig
from scenepack.utils.errors import InvalidState, PreconditionFailed

logger = logging.getLogger(__name__)

DEFAULT_VIDEO_MOTION = "Cinematic pan."

ProgressCallback = Callable[[ProgressUpdate], Awaitable[None]]
SceneWork = Callable[[Scene], Awaitable[dict]]


class PipelineOrchestrator:
    """State machine for one production run: Idle, Planning, PlanReady, Producing."""

    def __init__(
        self,
        config: AppConfig,
        ai_service: AIService,
        analyzer: PromptAnalyzer,
        image_service: ImageGenerationService,
        video_service: VideoGenService,
        tts_service: TTSService,
        upscale_service: UpscaleService,
        project_store: ProjectStore,
        packager: Packager,
        on_progress: Optional[ProgressCallback] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.ai_service = ai_service
        self.analyzer = analyzer
        self.image_service = image_service
        self.video_service = video_service
        self.tts_service = tts_service
        self.upscale_service = upscale_service
        self.project_store = project_store
        self.packager = packager
        self.on_progress = on_progress
        self._sleep = sleep

        self.state = PipelineState.IDLE
        self.step = 1
        self.intro_script = ""
        self.body_script = ""
        self.scenes = SceneStore()
        self.loading_type = LoadingType.NONE
        self.progress = 0
        self.status_message = ""
        self.last_error: Optional[str] = None
        # One running batch per media kind
        self.batch_tokens: dict[MediaKind, CancellationToken] = {}

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        project_store: ProjectStore,
        on_progress: Optional[ProgressCallback] = None,
    ) -> "PipelineOrchestrator":
        """Build an orchestrator with the default provider services."""
        ai_service = AIService(config)
        return cls(
            config=config,
            ai_service=ai_service,
            analyzer=PromptAnalyzer(ai_service),
            image_service=ImageGenerationService(config),
            video_service=VideoGenService(config),
            tts_service=TTSService(config),
            upscale_service=UpscaleService(),
            project_store=project_store,
            packager=Packager(),
            on_progress=on_progress,
        )

    async def close(self) -> None:
        """Close the HTTP clients of every service."""
        await self.video_service.close()
        await self.tts_service.close()
        await self.upscale_service.close()
        await self.packager.close()

    # =========================================================================
    # State helpers
    # =========================================================================

    @property
    def script(self) -> str:
        return f"{self.intro_script}\n\n{self.body_script}"

    def to_dict(self) -> dict:
        """Current run state for API responses."""
        return {
            "state": self.state.value,
            "step": self.step,
            "loading_type": self.loading_type.value,
            "progress": self.progress,
            "status_message": self.status_message,
            "last_error": self.last_error,
            "intro_script": self.intro_script,
            "body_script": self.body_script,
            "running_batches": [kind.value for kind in self.batch_tokens],
            "scenes": [s.to_dict() for s in self.scenes.all()],
        }

    async def _notify(self, loading_type: LoadingType, percent: int, message: str) -> None:
        self.loading_type = loading_type
        self.progress = percent
        self.status_message = message
        if self.on_progress:
            try:
                await self.on_progress(ProgressUpdate(loading_type, percent, message))
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")

    def _idle(self) -> None:
        self.loading_type = LoadingType.NONE
        self.status_message = ""

    def _record_error(self, message: str) -> str:
        self.last_error = message
        logger.error(message)
        return message

    def _require_producing(self) -> None:
        if self.state != PipelineState.PRODUCING:
            raise InvalidState(
                f"Production is not started (state: {self.state.value}). Confirm the plan first."
            )

    def _require_key(self, key: str, message: str) -> None:
        if not key:
            self._record_error(message)
            raise PreconditionFailed(message)

    def _require_no_work_running(self, action: str) -> None:
        """Raise if a batch or single-scene call could still write to the scenes."""
        if self.batch_tokens:
            kinds = ", ".join(k.value for k in self.batch_tokens)
            raise InvalidState(
                f"Cannot {action} while a batch is running ({kinds}). Cancel it and wait for it to stop."
            )
        busy = [
            s.index
            for s in self.scenes.all()
            if any(getattr(s, kind.pending_field) for kind in MediaKind)
        ]
        if busy:
            raise InvalidState(f"Cannot {action} while scenes {busy} still have work in progress")

    def dismiss_error(self) -> None:
        """Clear the surfaced error. Partial results stay as they are."""
        self.last_error = None

    def cancel(self, kind: Optional[MediaKind] = None) -> bool:
        """Cancel running batches (all, or the one for ``kind``).

        In-flight provider calls are not interrupted; the batch stops before
        its next scene. Returns False if nothing was running.
        """
        tokens = [
            token for k, token in self.batch_tokens.items() if kind is None or k == kind
        ]
        for token in tokens:
            token.cancel()
        if tokens:
            logger.info(f"Batch cancellation requested ({kind.value if kind else 'all'})")
        return bool(tokens)

    def check_batch_ready(
        self, kind: MediaKind, token: Optional[CancellationToken] = None
    ) -> None:
        """Raise if a batch of ``kind`` cannot start right now."""
        self._require_producing()
        running = self.batch_tokens.get(kind)
        if running is not None and running is not token:
            raise InvalidState(f"A {kind.value} batch is already running")
        if kind == MediaKind.AUDIO:
            self._require_tts_key()
        elif kind == MediaKind.UPSCALE:
            self._require_upscale_key()

    def reserve_batch(self, kind: MediaKind) -> CancellationToken:
        """Check preconditions and claim the batch slot for ``kind``.

        The returned token must be passed to the batch method, which frees
        the slot when it finishes. Use :meth:`release_batch` if the batch
        never runs.
        """
        self.check_batch_ready(kind)
        token = CancellationToken()
        self.batch_tokens[kind] = token
        return token

    def release_batch(self, kind: MediaKind, token: CancellationToken) -> None:
        if self.batch_tokens.get(kind) is token:
            del self.batch_tokens[kind]

    # =========================================================================
    # Planning
    # =========================================================================

    async def plan(self, intro: str, body: str) -> list[Scene]:
        """Segment the script and plan prompts for every scene.

        Raises:
            PreconditionFailed: Both texts are blank or no Google key is set
                (state is left unchanged)
            InvalidState: Planning is already running, or a batch or
                single-scene call is still running on the current scenes
        """
        if self.state == PipelineState.PLANNING:
            raise InvalidState("Planning is already in progress")
        self._require_no_work_running("plan a new script")
        if not (intro or "").strip() and not (body or "").strip():
            self._record_error("Enter a script first")
            raise PreconditionFailed("Enter a script first")
        self._require_key(
            self.config.google_api_key,
            "Google Gemini API key is not configured. Set it in settings first.",
        )

        self.state = PipelineState.PLANNING
        self.last_error = None
        self.intro_script = intro or ""
        self.body_script = body or ""

        try:
            segments = segment_script(self.intro_script, self.body_script)
            total = len(segments)
            await self._notify(LoadingType.PLANNING, 0, f"Analyzing {total} scenes...")

            batches_done = 0

            async def on_analyzer_progress(message: str) -> None:
                nonlocal batches_done
                batches_done += 1
                done = min(batches_done * self.analyzer.batch_size, total)
                await self._notify(LoadingType.PLANNING, round(done / total * 100), message)

            planned = await self.analyzer.analyze(
                [text for text, _ in segments], on_progress=on_analyzer_progress
            )

            scenes = []
            for i, ((text, is_intro), segment) in enumerate(zip(segments, planned)):
                if segment.source_text.strip() != text.strip():
                    logger.debug(f"Scene {i + 1}: model echoed altered script text")
                scenes.append(
                    Scene(
                        index=i + 1,
                        original_text=text,
                        visual_prompt=segment.visual_prompt,
                        motion_prompt=segment.motion_prompt,
                        is_intro_segment=is_intro,
                    )
                )
        except Exception as e:
            self.state = PipelineState.IDLE
            self._record_error(f"Planning failed: {e}")
            raise
        finally:
            self._idle()

        self.scenes.replace_all(scenes)
        self.state = PipelineState.PLAN_READY
        self.step = 2
        logger.info(
            f"Planned {len(scenes)} scenes "
            f"({sum(1 for s in scenes if s.is_intro_segment)} intro)"
        )
        return self.scenes.all()

    def confirm_plan(self) -> None:
        """Move from plan review to production. Starts no work."""
        if self.state != PipelineState.PLAN_READY:
            raise InvalidState(f"No plan to confirm (state: {self.state.value})")
        self.state = PipelineState.PRODUCING
        self.step = 3

    # =========================================================================
    # Batch and single-scene runners
    # =========================================================================

    async def _run_batch(
        self,
        kind: MediaKind,
        loading_type: LoadingType,
        targets: list[Scene],
        work: SceneWork,
        label: str,
        token: Optional[CancellationToken] = None,
        pace_before: float = 0.0,
        pace_after_success: float = 0.0,
        progress_base: int = 0,
        progress_total: Optional[int] = None,
    ) -> BatchResult:
        """Apply ``work`` to each target scene in order, one at a time.

        A failing scene is logged and recorded as ``last_error``; the loop
        moves on to the next scene. The token is checked again after the
        pacing delay, so a cancel during the wait issues no further call.
        ``cancelled`` is only set when scenes were left unprocessed.
        """
        token = token or CancellationToken()
        self.batch_tokens[kind] = token
        result = BatchResult(kind=kind)
        total = progress_total or len(targets)
        completed = progress_base

        logger.info(f"Starting {kind.value} batch over {len(targets)} scenes")

        try:
            for scene in targets:
                if not token.cancelled and pace_before and result.attempted:
                    # Rate limit buffer
                    await self._sleep(pace_before)
                if token.cancelled:
                    result.cancelled = True
                    logger.info(f"{kind.value} batch cancelled before scene {scene.index}")
                    break

                try:
                    if not self.scenes.begin(scene.index, kind):
                        continue
                except KeyError as e:
                    result.failed.append(scene.index)
                    result.last_error = self._record_error(f"Scene {scene.index}: {e.args[0]}")
                    continue

                result.attempted.append(scene.index)
                percent = round(completed / total * 100) if total else 0
                await self._notify(loading_type, percent, f"{label} scene {scene.index}...")

                try:
                    fields = await work(self.scenes.get(scene.index))
                    self.scenes.end(scene.index, kind, **fields)
                    result.succeeded.append(scene.index)
                    completed += 1

                    if pace_after_success:
                        await self._sleep(pace_after_success)
                except Exception as e:
                    self.scenes.end(scene.index, kind)
                    result.failed.append(scene.index)
                    result.last_error = self._record_error(f"Scene {scene.index}: {e}")
        finally:
            self.release_batch(kind, token)
            self._idle()

        logger.info(
            f"{kind.value} batch finished: {len(result.succeeded)} succeeded, "
            f"{len(result.failed)} failed, cancelled={result.cancelled}"
        )
        return result

    async def _run_single(
        self,
        index: int,
        kind: MediaKind,
        work: SceneWork,
        status: str,
        auto_save: bool,
    ) -> Scene:
        scene = self.scenes.get(index)
        if not self.scenes.begin(index, kind):
            raise InvalidState(f"Scene {index} already has {kind.value} in progress")

        await self._notify(LoadingType.SINGLE, 0, status)
        try:
            fields = await work(scene)
            updated = self.scenes.end(index, kind, **fields)
        except Exception as e:
            self.scenes.end(index, kind)
            self._record_error(f"Scene {index}: {e}")
            raise
        finally:
            self._idle()

        if auto_save:
            await self._auto_save()
        return updated

    async def _auto_save(self) -> None:
        try:
            await self.save_snapshot()
        except Exception as e:
            self._record_error(f"Auto-save failed: {e}")

    # =========================================================================
    # Images
    # =========================================================================

    async def _image_work(self, scene: Scene) -> dict:
        return {"media_url": await self.image_service.generate_image(scene.visual_prompt)}

    async def generate_all_images(self, token: Optional[CancellationToken] = None) -> BatchResult:
        """Generate images for every scene that has none yet."""
        self.check_batch_ready(MediaKind.IMAGE, token)
        self.last_error = None

        targets = self.scenes.pending_for(MediaKind.IMAGE)
        result = await self._run_batch(
            MediaKind.IMAGE,
            LoadingType.IMAGE,
            targets,
            self._image_work,
            "Generating image for",
            token=token,
            pace_before=self.config.image_pacing_seconds,
            progress_base=len(self.scenes) - len(targets),
            progress_total=len(self.scenes),
        )

        if not result.cancelled and self.config.auto_save.after_image_batch:
            await self._auto_save()
        return result

    async def generate_single_image(self, index: int) -> Scene:
        """Regenerate one scene's image, replacing any existing one."""
        self._require_producing()
        self.last_error = None
        return await self._run_single(
            index,
            MediaKind.IMAGE,
            self._image_work,
            f"Generating image for scene {index}...",
            auto_save=self.config.auto_save.after_single_image,
        )

    # =========================================================================
    # Video
    # =========================================================================

    async def generate_video(self, index: int) -> Scene:
        """Animate one scene's image. No-op if the scene already has a video."""
        self._require_producing()
        scene = self.scenes.get(index)
        if not scene.media_url:
            self._record_error(f"Scene {index}: generate an image first")
            raise PreconditionFailed(f"Scene {index} has no image yet")
        if scene.video_url:
            logger.info(f"Scene {index} already has a video, skipping")
            return scene

        async def work(s: Scene) -> dict:
            uri = await self.video_service.generate_video(
                s.media_url, s.motion_prompt or DEFAULT_VIDEO_MOTION
            )
            return {"video_url": uri}

        return await self._run_single(
            index,
            MediaKind.VIDEO,
            work,
            f"Generating video for scene {index}...",
            auto_save=self.config.auto_save.after_video,
        )

    # =========================================================================
    # Audio
    # =========================================================================

    async def _tts_work(self, scene: Scene) -> dict:
        return {"audio_url": await self.tts_service.generate_tts(scene.original_text)}

    def _require_tts_key(self) -> None:
        self._require_key(
            self.config.elevenlabs_api_key,
            "ElevenLabs API key is not configured. Set it in settings first.",
        )

    async def generate_tts(self, index: int) -> Scene:
        """Narrate one scene's original text."""
        self._require_producing()
        self.scenes.get(index)
        self._require_tts_key()
        return await self._run_single(
            index,
            MediaKind.AUDIO,
            self._tts_work,
            f"Generating narration for scene {index}...",
            auto_save=self.config.auto_save.after_audio,
        )

    async def generate_all_tts(self, token: Optional[CancellationToken] = None) -> BatchResult:
        """Narrate every scene that has no audio yet."""
        self.check_batch_ready(MediaKind.AUDIO, token)
        self.last_error = None

        result = await self._run_batch(
            MediaKind.AUDIO,
            LoadingType.AUDIO,
            self.scenes.pending_for(MediaKind.AUDIO),
            self._tts_work,
            "Generating narration for",
            token=token,
            pace_after_success=self.config.tts_pacing_seconds,
        )

        if not result.cancelled and self.config.auto_save.after_audio:
            await self._auto_save()
        return result

    # =========================================================================
    # Upscale
    # =========================================================================

    async def _upscale_work(self, scene: Scene) -> dict:
        url = await self.upscale_service.upscale_image(scene.media_url, self.config.falai_api_key)
        return {"media_url": url}

    def _require_upscale_key(self) -> None:
        self._require_key(
            self.config.falai_api_key,
            "fal.ai API key is not configured. Set it in settings first.",
        )

    async def upscale_image(self, index: int) -> Scene:
        """Upscale one scene's image in place."""
        self._require_producing()
        self._require_upscale_key()
        scene = self.scenes.get(index)
        if not scene.media_url:
            self._record_error(f"Scene {index}: generate an image first")
            raise PreconditionFailed(f"Scene {index} has no image yet")

        return await self._run_single(
            index,
            MediaKind.UPSCALE,
            self._upscale_work,
            f"Upscaling scene {index}...",
            auto_save=self.config.auto_save.after_upscale,
        )

    async def upscale_all_images(self, token: Optional[CancellationToken] = None) -> BatchResult:
        """Upscale every scene that has an image and is not already upscaling."""
        self.check_batch_ready(MediaKind.UPSCALE, token)
        self.last_error = None

        targets = [s for s in self.scenes.all() if s.media_url and not s.upscale_pending]
        result = await self._run_batch(
            MediaKind.UPSCALE,
            LoadingType.UPSCALE,
            targets,
            self._upscale_work,
            "Upscaling",
            token=token,
        )

        if not result.cancelled and self.config.auto_save.after_upscale:
            await self._auto_save()
        return result

    # =========================================================================
    # Packaging and persistence
    # =========================================================================

    async def package(self, output_dir: str | Path | None = None) -> Path:
        """Write all scene images and narration to a zip archive."""
        if len(self.scenes) == 0:
            raise PreconditionFailed("There are no scenes to package")

        async def on_progress(percent: int) -> None:
            await self._notify(LoadingType.ZIP, percent, "Packaging media...")

        await self._notify(LoadingType.ZIP, 0, "Packaging media...")
        try:
            return await self.packager.write_archive(
                self.scenes.snapshot(),
                output_dir or self.config.output_dir,
                on_progress=on_progress,
            )
        except Exception as e:
            self._record_error(f"Packaging failed: {e}")
            raise
        finally:
            self._idle()

    async def save_snapshot(self) -> SavedProject:
        """Persist a deep copy of the current run."""
        now = int(time.time() * 1000)
        project = SavedProject(
            id=str(now),
            timestamp=now,
            script=self.script,
            scenes=self.scenes.snapshot(),
            falai_key=self.config.falai_api_key,
        )
        return await self.project_store.save(project)

    def load_project(self, project: SavedProject) -> None:
        """Restore a saved run and jump straight to production.

        The whole saved script goes into the intro text. Pending flags are
        cleared since nothing from the saved session is still running.
        """
        self._require_no_work_running("load a project")

        scenes = copy.deepcopy(project.scenes)
        for scene in scenes:
            for kind in MediaKind:
                setattr(scene, kind.pending_field, False)
        self.scenes.replace_all(scenes)

        self.intro_script = project.script
        self.body_script = ""
        if project.falai_key:
            self.config.falai_api_key = project.falai_key

        self.state = PipelineState.PRODUCING
        self.step = 3
        self.last_error = None
        self._idle()
        logger.info(f"Loaded project {project.id} with {len(scenes)} scenes")
