"""Service singletons and dependency injection for the scenepack API."""

import logging

from scenepack.api.websocket_manager import WebSocketManager
from scenepack.models.pipeline import ProgressUpdate
from scenepack.services.ai_service import AIService
from scenepack.services.pipeline import PipelineOrchestrator
from scenepack.services.project_store import ProjectStore
from scenepack.utils.config import AppConfig, LocalSettings, load_config

logger = logging.getLogger(__name__)

PROGRESS_KEY = "progress"

# WebSocket manager for progress updates
ws_manager = WebSocketManager()

# Service singletons
_settings: LocalSettings | None = None
_config: AppConfig | None = None
_project_store: ProjectStore | None = None
_orchestrator: PipelineOrchestrator | None = None


async def broadcast_progress(update: ProgressUpdate) -> None:
    """Push an orchestrator progress update to every progress socket."""
    await ws_manager.broadcast(PROGRESS_KEY, update.to_dict())


def get_settings() -> LocalSettings:
    """Get or create the local settings store."""
    global _settings
    if _settings is None:
        _settings = LocalSettings(get_config().settings_file)
    return _settings


def get_config() -> AppConfig:
    """Get or create the session configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_project_store() -> ProjectStore:
    """Get or create the project store (connected during app startup)."""
    global _project_store
    if _project_store is None:
        _project_store = ProjectStore(get_config().db_path)
    return _project_store


def get_orchestrator() -> PipelineOrchestrator:
    """Get or create the single orchestrator for this process."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = PipelineOrchestrator.from_config(
            get_config(), get_project_store(), on_progress=broadcast_progress
        )
        logger.info("Pipeline orchestrator created")
    return _orchestrator


def get_ai_service() -> AIService:
    return get_orchestrator().ai_service


async def close_services() -> None:
    """Close HTTP clients and the database. Call on application shutdown."""
    global _orchestrator, _project_store
    if _orchestrator is not None:
        await _orchestrator.close()
        _orchestrator = None
    if _project_store is not None:
        await _project_store.close()
        _project_store = None
