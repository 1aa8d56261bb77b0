"""Saved project (history) routes for the scenepack API."""

import logging

from fastapi import APIRouter, HTTPException

from scenepack.api.dependencies import get_orchestrator, get_project_store
from scenepack.api.errors import to_http_exception
from scenepack.api.schemas import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Projects"])


@router.get("/api/projects", summary="List saved projects", description="Saved runs, newest first.")
async def list_projects() -> dict:
    summaries = await get_project_store().list()
    return {"projects": [s.to_dict() for s in summaries]}


@router.post("/api/projects", summary="Save current run", description="Store a snapshot of the current scenes.")
async def save_project() -> dict:
    try:
        project = await get_orchestrator().save_snapshot()
    except Exception as e:
        logger.error(f"Failed to save project: {e}")
        raise to_http_exception(e)
    return project.summary().to_dict()


@router.get("/api/projects/{project_id}", summary="Get saved project", responses={404: {"description": "Project not found"}})
async def get_project(project_id: str) -> dict:
    project = await get_project_store().get(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project.to_dict()


@router.post("/api/projects/{project_id}/load", summary="Load saved project", description="Restore a saved run and jump to production.", responses={404: {"description": "Project not found"}, 409: {"description": "Work still running on the current run"}})
async def load_project(project_id: str) -> dict:
    project = await get_project_store().get(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")

    orchestrator = get_orchestrator()
    try:
        orchestrator.load_project(project)
    except Exception as e:
        raise to_http_exception(e)
    return orchestrator.to_dict()


@router.delete("/api/projects/{project_id}", summary="Delete saved project", responses={404: {"description": "Project not found"}})
async def delete_project(project_id: str) -> MessageResponse:
    deleted = await get_project_store().delete(project_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Project not found")
    return MessageResponse(message=f"Project {project_id} deleted")
