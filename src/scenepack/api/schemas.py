"""Pydantic request/response models for the scenepack API."""

from pydantic import BaseModel, Field

# =============================================================================
# Response Models
# =============================================================================


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str

    model_config = {"json_schema_extra": {"examples": [{"message": "Operation completed successfully"}]}}


class RootResponse(BaseModel):
    """Root endpoint response."""

    message: str
    version: str

    model_config = {"json_schema_extra": {"examples": [{"message": "scenepack API", "version": "0.1.0"}]}}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    problems: list[str] = Field(default_factory=list)


class BatchStartedResponse(BaseModel):
    """Response when a batch operation is started in the background."""

    kind: str
    status: str = "started"
    scenes: int = Field(ge=0, description="Scenes eligible for this batch")


class ThumbnailTextResponse(BaseModel):
    """Two-line thumbnail caption."""

    topText: str
    bottomText: str


class RefinedScriptResponse(BaseModel):
    """Refined script text."""

    script: str


class SettingsResponse(BaseModel):
    """Credential settings with keys masked."""

    google_api_key: str
    elevenlabs_api_key: str
    elevenlabs_voice_id: str
    falai_api_key: str
    google_api_key_set: bool
    elevenlabs_api_key_set: bool
    falai_api_key_set: bool


# =============================================================================
# Request Models
# =============================================================================


class PlanRequest(BaseModel):
    """Script to segment and plan."""

    intro: str = Field(default="", description="Intro / hook text, grouped 2 sentences per scene")
    body: str = Field(default="", description="Main body text, grouped up to 4 sentences per scene")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "intro": "Did you know? Most people never check.",
                    "body": "Prices rose last year. Wages did not. Here is why.",
                }
            ]
        }
    }


class ThumbnailTextRequest(BaseModel):
    """Script to caption."""

    script: str = Field(..., min_length=1)


class RefineScriptRequest(BaseModel):
    """Script revision request."""

    script: str = Field(..., min_length=1)
    instruction: str = Field(..., min_length=1, max_length=2000)


class SettingsUpdateRequest(BaseModel):
    """Credential changes. Omitted fields are left unchanged."""

    google_api_key: str | None = None
    elevenlabs_api_key: str | None = None
    elevenlabs_voice_id: str | None = None
    falai_api_key: str | None = None
