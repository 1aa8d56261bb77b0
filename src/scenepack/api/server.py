"""FastAPI server for the scenepack production assistant."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scenepack import __version__
from scenepack.api.dependencies import (
    close_services,
    get_config,
    get_orchestrator,
    get_project_store,
)
from scenepack.api.routers import production, projects, settings
from scenepack.api.schemas import HealthResponse, RootResponse
from scenepack.utils.config import validate_config
from scenepack.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the project store on startup and close clients on shutdown."""
    setup_logging(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        json_output=os.getenv("JSON_LOGS", "false").lower() == "true",
    )
    config = get_config()
    for problem in validate_config(config):
        logger.warning(f"Configuration: {problem}")

    await get_project_store().connect()
    get_orchestrator()
    logger.info("scenepack API started")

    yield

    await close_services()
    logger.info("scenepack API stopped")


app = FastAPI(title="scenepack API", version=__version__, lifespan=lifespan)

# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],  # Vite default port
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(production.router)
app.include_router(projects.router)
app.include_router(settings.router)


@app.get("/")
async def root() -> RootResponse:
    return RootResponse(message="scenepack API", version=__version__)


@app.get("/api/health")
async def health() -> HealthResponse:
    problems = validate_config(get_config())
    return HealthResponse(status="healthy", problems=problems)
