"""Error taxonomy shared by the scenepack services and orchestrator."""


class ScenePackError(Exception):
    """Base class for all scenepack errors."""


class PreconditionFailed(ScenePackError):
    """A required credential or input is missing."""


class MalformedResponse(ScenePackError):
    """The provider returned structured output that could not be parsed."""

    def __init__(self, message: str, raw_text: str | None = None):
        super().__init__(message)
        self.raw_text = raw_text


class GenerationFailed(ScenePackError):
    """The provider answered but returned no usable payload."""


class TransientIOFailure(ScenePackError):
    """Network or provider error. Image synthesis retries these."""


class PollTimeout(ScenePackError):
    """A long-running provider job exceeded its polling budget."""


class InvalidState(ScenePackError):
    """The operation is not allowed in the current pipeline state."""
