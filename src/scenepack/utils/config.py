"""Configuration loading and validation for scenepack.

Configuration is built once per process by :func:`load_config` and passed
explicitly to every service that talks to a provider.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")

# Settings file for locally persisted credentials
SETTINGS_FILE = Path.home() / ".scenepack" / "settings.json"

# Fixed keys in the local settings file
GOOGLE_KEY = "google_api_key"
ELEVENLABS_KEY = "elevenlabs_key"
VOICE_ID_KEY = "elevenlabs_voice_id"
FALAI_KEY = "falai_key"

DEFAULT_VOICE_ID = "nPczCjzI2devNBz1zWbc"


class LocalSettings:
    """Credentials and voice id persisted to a local JSON file.

    Read once on startup and written on every change.
    """

    def __init__(self, path: Path = SETTINGS_FILE):
        self.path = Path(path)
        self.values: dict[str, str] = self._load_settings()

    def _load_settings(self) -> dict:
        """Load settings from file."""
        try:
            if self.path.exists():
                return json.loads(self.path.read_text())
        except Exception as e:
            logger.warning(f"Failed to load local settings: {e}")
        return {}

    def _save_settings(self) -> None:
        """Persist settings to file."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self.values, indent=2))
            logger.debug(f"Local settings saved to {self.path}")
        except Exception as e:
            logger.warning(f"Failed to save local settings: {e}")

    def get(self, key: str, default: str = "") -> str:
        return self.values.get(key) or default

    def update(self, **values: str) -> None:
        """Set one or more keys and write the file."""
        for key, value in values.items():
            self.values[key] = value or ""
        self._save_settings()


@dataclass
class AutoSavePolicy:
    """Which operations push a snapshot to the project store when they finish.

    Defaults follow the established behavior: only the image paths save.
    """

    after_image_batch: bool = True
    after_single_image: bool = True
    after_video: bool = False
    after_audio: bool = False
    after_upscale: bool = False


@dataclass
class AppConfig:
    """Session configuration handed to every provider-facing component."""

    google_api_key: str = ""
    elevenlabs_api_key: str = ""
    elevenlabs_voice_id: str = DEFAULT_VOICE_ID
    falai_api_key: str = ""
    # Model configurations
    text_model: str = "gemini-3-flash-preview"
    image_model: str = "gemini-3-pro-image-preview"
    video_model: str = "veo-3.1-fast-generate-preview"
    # Pacing and retry
    image_pacing_seconds: float = 4.0
    tts_pacing_seconds: float = 0.5
    image_retry_attempts: int = 3
    image_retry_delay_seconds: float = 2.0
    # Video polling budget
    video_poll_interval_seconds: float = 10.0
    video_max_poll_attempts: int = 60
    video_max_poll_seconds: float = 900.0
    # Paths
    output_dir: str = str(PROJECT_ROOT / "output")
    db_path: str = str(Path.home() / ".scenepack" / "projects.db")
    settings_file: str = str(SETTINGS_FILE)
    auto_save: AutoSavePolicy = field(default_factory=AutoSavePolicy)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() == "true"


def load_config(settings: LocalSettings | None = None) -> AppConfig:
    """Build the session configuration.

    Credentials come from the environment first and the local settings file
    second.

    Args:
        settings: Local settings store (defaults to the file in SETTINGS_FILE
            or the path in SCENEPACK_SETTINGS_FILE)

    Returns:
        AppConfig for this session
    """

    # Helper function to resolve paths relative to project root
    def resolve_path(path: str | None, default: str) -> str:
        if not path:
            return default
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    if settings is None:
        settings_path = os.getenv("SCENEPACK_SETTINGS_FILE")
        settings = LocalSettings(Path(settings_path) if settings_path else SETTINGS_FILE)

    defaults = AppConfig()

    return AppConfig(
        google_api_key=(
            os.getenv("GOOGLE_API_KEY")
            or os.getenv("GEMINI_API_KEY")
            or os.getenv("API_KEY")
            or settings.get(GOOGLE_KEY)
        ),
        elevenlabs_api_key=os.getenv("ELEVENLABS_API_KEY") or settings.get(ELEVENLABS_KEY),
        elevenlabs_voice_id=(
            os.getenv("ELEVENLABS_VOICE_ID")
            or settings.get(VOICE_ID_KEY, DEFAULT_VOICE_ID)
        ),
        falai_api_key=os.getenv("FALAI_API_KEY") or settings.get(FALAI_KEY),
        text_model=os.getenv("TEXT_MODEL", defaults.text_model),
        image_model=os.getenv("IMAGE_MODEL", defaults.image_model),
        video_model=os.getenv("VIDEO_MODEL", defaults.video_model),
        image_pacing_seconds=float(
            os.getenv("IMAGE_PACING_SECONDS", str(defaults.image_pacing_seconds))
        ),
        tts_pacing_seconds=float(
            os.getenv("TTS_PACING_SECONDS", str(defaults.tts_pacing_seconds))
        ),
        image_retry_attempts=int(
            os.getenv("IMAGE_RETRY_ATTEMPTS", str(defaults.image_retry_attempts))
        ),
        image_retry_delay_seconds=float(
            os.getenv("IMAGE_RETRY_DELAY_SECONDS", str(defaults.image_retry_delay_seconds))
        ),
        video_poll_interval_seconds=float(
            os.getenv("VIDEO_POLL_INTERVAL_SECONDS", str(defaults.video_poll_interval_seconds))
        ),
        video_max_poll_attempts=int(
            os.getenv("VIDEO_MAX_POLL_ATTEMPTS", str(defaults.video_max_poll_attempts))
        ),
        video_max_poll_seconds=float(
            os.getenv("VIDEO_MAX_POLL_SECONDS", str(defaults.video_max_poll_seconds))
        ),
        output_dir=resolve_path(os.getenv("OUTPUT_DIR"), defaults.output_dir),
        db_path=resolve_path(os.getenv("SCENEPACK_DB_PATH"), defaults.db_path),
        settings_file=str(settings.path),
        auto_save=AutoSavePolicy(
            after_image_batch=_env_bool("AUTO_SAVE_AFTER_IMAGE_BATCH", True),
            after_single_image=_env_bool("AUTO_SAVE_AFTER_SINGLE_IMAGE", True),
            after_video=_env_bool("AUTO_SAVE_AFTER_VIDEO", False),
            after_audio=_env_bool("AUTO_SAVE_AFTER_AUDIO", False),
            after_upscale=_env_bool("AUTO_SAVE_AFTER_UPSCALE", False),
        ),
    )


def validate_config(config: AppConfig) -> list[str]:
    """Validate configuration and return list of problems."""
    errors = []

    if not config.google_api_key:
        errors.append("GOOGLE_API_KEY is required for planning and image generation")
    if not config.elevenlabs_api_key:
        errors.append("ELEVENLABS_API_KEY not set: text-to-speech is unavailable")
    if not config.falai_api_key:
        errors.append("FALAI_API_KEY not set: upscaling is unavailable")

    if config.image_pacing_seconds < 0 or config.tts_pacing_seconds < 0:
        errors.append("Pacing delays must be non-negative")
    if config.video_max_poll_attempts < 1 or config.video_max_poll_seconds <= 0:
        errors.append("Video polling budget must be positive")

    output_path = Path(config.output_dir)
    try:
        output_path.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        errors.append(f"Cannot create output folder: {e}")

    return errors


def apply_settings_update(
    config: AppConfig,
    settings: LocalSettings,
    google_api_key: str | None = None,
    elevenlabs_api_key: str | None = None,
    elevenlabs_voice_id: str | None = None,
    falai_api_key: str | None = None,
) -> AppConfig:
    """Write changed credentials to local settings and onto the live config."""
    changes: dict[str, str] = {}
    if google_api_key is not None:
        config.google_api_key = google_api_key
        changes[GOOGLE_KEY] = google_api_key
    if elevenlabs_api_key is not None:
        config.elevenlabs_api_key = elevenlabs_api_key
        changes[ELEVENLABS_KEY] = elevenlabs_api_key
    if elevenlabs_voice_id is not None:
        config.elevenlabs_voice_id = elevenlabs_voice_id or DEFAULT_VOICE_ID
        changes[VOICE_ID_KEY] = config.elevenlabs_voice_id
    if falai_api_key is not None:
        config.falai_api_key = falai_api_key
        changes[FALAI_KEY] = falai_api_key

    if changes:
        settings.update(**changes)
    return config
