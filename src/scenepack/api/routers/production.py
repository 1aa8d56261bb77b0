"""Planning and production routes for the scenepack API."""

import asyncio
import logging
from typing import Awaitable, Callable

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, Response

from scenepack.api.dependencies import (
    PROGRESS_KEY,
    get_ai_service,
    get_orchestrator,
    ws_manager,
)
from scenepack.api.errors import to_http_exception
from scenepack.api.schemas import (
    BatchStartedResponse,
    MessageResponse,
    PlanRequest,
    RefinedScriptResponse,
    RefineScriptRequest,
    ThumbnailTextRequest,
    ThumbnailTextResponse,
)
from scenepack.models.pipeline import BatchResult
from scenepack.models.scene import MediaKind
from scenepack.utils.cancellation import CancellationToken
from scenepack.utils.logging import new_run_id, run_context

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Production"])

# Keep references to background tasks to prevent garbage collection
_background_tasks: set = set()


def _start_batch(
    kind: MediaKind,
    run: Callable[[CancellationToken], Awaitable[BatchResult]],
    eligible: int,
) -> BatchStartedResponse:
    """Claim the batch slot for ``kind`` and run the batch in the background."""
    orchestrator = get_orchestrator()
    try:
        token = orchestrator.reserve_batch(kind)
    except Exception as e:
        raise to_http_exception(e)

    run_id = new_run_id(f"api-{kind.value}")

    async def run_batch() -> None:
        with run_context(run_id, kind=kind.value):
            try:
                result = await run(token)
                await ws_manager.broadcast(PROGRESS_KEY, {"type": "batch_complete", **result.to_dict()})
            except Exception as e:
                logger.error(f"{kind.value} batch failed: {e}")
                await ws_manager.broadcast(PROGRESS_KEY, {"type": "error", "message": str(e)})
            finally:
                orchestrator.release_batch(kind, token)

    task = asyncio.create_task(run_batch())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return BatchStartedResponse(kind=kind.value, scenes=eligible)


@router.get("/api/state", summary="Get pipeline state", description="Current step, busy indicator, last error and all scenes.")
async def get_state() -> dict:
    return get_orchestrator().to_dict()


@router.post("/api/plan", summary="Plan scenes", description="Segment the script and generate visual and motion prompts for every scene.", responses={400: {"description": "Empty script or missing Google key"}, 409: {"description": "Planning or a batch already running"}, 502: {"description": "Malformed model response"}})
async def plan_scenes(request: PlanRequest) -> dict:
    """Run segmentation and prompt planning.

    Returns:
        Pipeline state with the planned scenes.
    """
    orchestrator = get_orchestrator()
    with run_context(new_run_id("api-plan")):
        try:
            await orchestrator.plan(request.intro, request.body)
        except Exception as e:
            raise to_http_exception(e)
    return orchestrator.to_dict()


@router.post("/api/plan/confirm", summary="Confirm plan", description="Move from plan review to production. Starts no work.", responses={409: {"description": "No plan to confirm"}})
async def confirm_plan() -> dict:
    orchestrator = get_orchestrator()
    try:
        orchestrator.confirm_plan()
    except Exception as e:
        raise to_http_exception(e)
    return orchestrator.to_dict()


@router.post("/api/images/generate-all", status_code=202, summary="Generate all images", description="Generate images for every scene that has none. Track progress via WebSocket.", responses={409: {"description": "Not producing or batch already running"}})
async def generate_all_images() -> BatchStartedResponse:
    orchestrator = get_orchestrator()
    eligible = len(orchestrator.scenes.pending_for(MediaKind.IMAGE))
    return _start_batch(MediaKind.IMAGE, orchestrator.generate_all_images, eligible)


@router.post("/api/images/{index}/generate", summary="Regenerate one image", responses={404: {"description": "Scene not found"}, 502: {"description": "Generation failed"}})
async def generate_single_image(index: int) -> dict:
    try:
        scene = await get_orchestrator().generate_single_image(index)
    except Exception as e:
        raise to_http_exception(e)
    return scene.to_dict()


@router.post("/api/images/{index}/upscale", summary="Upscale one image", responses={400: {"description": "Missing fal.ai key or no image"}, 404: {"description": "Scene not found"}})
async def upscale_image(index: int) -> dict:
    try:
        scene = await get_orchestrator().upscale_image(index)
    except Exception as e:
        raise to_http_exception(e)
    return scene.to_dict()


@router.post("/api/images/upscale-all", status_code=202, summary="Upscale all images", responses={400: {"description": "Missing fal.ai key"}, 409: {"description": "Not producing or batch already running"}})
async def upscale_all_images() -> BatchStartedResponse:
    orchestrator = get_orchestrator()
    eligible = sum(1 for s in orchestrator.scenes.all() if s.media_url and not s.upscale_pending)
    return _start_batch(MediaKind.UPSCALE, orchestrator.upscale_all_images, eligible)


@router.post("/api/scenes/{index}/video", summary="Generate one video", responses={400: {"description": "Scene has no image"}, 404: {"description": "Scene not found"}, 504: {"description": "Video job timed out"}})
async def generate_video(index: int) -> dict:
    try:
        scene = await get_orchestrator().generate_video(index)
    except Exception as e:
        raise to_http_exception(e)
    return scene.to_dict()


@router.get("/api/scenes/{index}/video/download", summary="Download one video", description="Video bytes for a scene, fetched with the provider key.", responses={404: {"description": "Scene or video not found"}, 502: {"description": "Download failed"}})
async def download_video(index: int) -> Response:
    orchestrator = get_orchestrator()
    try:
        scene = orchestrator.scenes.get(index)
        if not scene.video_url:
            raise KeyError(f"Scene {index} has no video")
        data = await orchestrator.video_service.download_video(scene.video_url)
    except Exception as e:
        raise to_http_exception(e)
    return Response(
        content=data,
        media_type="video/mp4",
        headers={"Content-Disposition": f'attachment; filename="scene-{index}.mp4"'},
    )


@router.post("/api/scenes/{index}/tts", summary="Generate one narration", responses={400: {"description": "Missing ElevenLabs key"}, 404: {"description": "Scene not found"}})
async def generate_tts(index: int) -> dict:
    try:
        scene = await get_orchestrator().generate_tts(index)
    except Exception as e:
        raise to_http_exception(e)
    return scene.to_dict()


@router.post("/api/tts/generate-all", status_code=202, summary="Generate all narration", responses={400: {"description": "Missing ElevenLabs key"}, 409: {"description": "Not producing or batch already running"}})
async def generate_all_tts() -> BatchStartedResponse:
    orchestrator = get_orchestrator()
    eligible = len(orchestrator.scenes.pending_for(MediaKind.AUDIO))
    return _start_batch(MediaKind.AUDIO, orchestrator.generate_all_tts, eligible)


@router.post("/api/batch/cancel", summary="Cancel running batches", description="Stops running batches before their next scene. In-flight calls still finish.")
async def cancel_batch(kind: MediaKind | None = None) -> MessageResponse:
    if get_orchestrator().cancel(kind):
        return MessageResponse(message="Cancellation requested")
    return MessageResponse(message="No batch is running")


@router.post("/api/error/dismiss", summary="Dismiss the surfaced error")
async def dismiss_error() -> MessageResponse:
    get_orchestrator().dismiss_error()
    return MessageResponse(message="Error dismissed")


@router.get("/api/package", summary="Download media archive", description="Zip of all scene images and narration.", responses={400: {"description": "No scenes"}})
async def download_package() -> FileResponse:
    try:
        archive_path = await get_orchestrator().package()
    except Exception as e:
        raise to_http_exception(e)
    return FileResponse(archive_path, media_type="application/zip", filename=archive_path.name)


@router.post("/api/thumbnail-text", summary="Generate thumbnail text", responses={400: {"description": "Missing Google key"}, 502: {"description": "Malformed model response"}})
async def generate_thumbnail_text(request: ThumbnailTextRequest) -> ThumbnailTextResponse:
    try:
        result = await get_ai_service().generate_thumbnail_text(request.script)
    except Exception as e:
        raise to_http_exception(e)
    return ThumbnailTextResponse(**result.to_dict())


@router.post("/api/script/refine", summary="Refine script", responses={400: {"description": "Missing Google key"}})
async def refine_script(request: RefineScriptRequest) -> RefinedScriptResponse:
    try:
        refined = await get_ai_service().refine_script(request.script, request.instruction)
    except Exception as e:
        raise to_http_exception(e)
    return RefinedScriptResponse(script=refined)


@router.websocket("/ws/progress")
async def websocket_progress(websocket: WebSocket) -> None:
    """WebSocket endpoint for real-time progress updates."""
    await ws_manager.connect(PROGRESS_KEY, websocket)

    try:
        # Send current state immediately
        await websocket.send_json({"type": "state", **get_orchestrator().to_dict()})

        # Keep connection alive
        while True:
            try:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text("pong")
            except WebSocketDisconnect:
                break

    except Exception as e:
        logger.error(f"Progress WebSocket error: {e}")
    finally:
        ws_manager.disconnect(PROGRESS_KEY, websocket)
