"""Unit tests for API error mapping and key masking."""

import pytest

from scenepack.api.errors import to_http_exception
from scenepack.api.routers.settings import mask_key
from scenepack.services.tts_service import TTSServiceError
from scenepack.utils.errors import (
    GenerationFailed,
    InvalidState,
    PollTimeout,
    PreconditionFailed,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "error, status_code",
    [
        (PreconditionFailed("no key"), 400),
        (KeyError("Scene 9 not found"), 404),
        (InvalidState("busy"), 409),
        (GenerationFailed("empty"), 502),
        (TTSServiceError("api error"), 502),
        (PollTimeout("too slow"), 504),
        (RuntimeError("unexpected"), 500),
    ],
)
def test_status_codes(error, status_code):
    assert to_http_exception(error).status_code == status_code


@pytest.mark.unit
def test_key_error_detail_unquoted():
    assert to_http_exception(KeyError("Scene 9 not found")).detail == "Scene 9 not found"


@pytest.mark.unit
def test_mask_key():
    assert mask_key("") == ""
    assert mask_key("abc") == "***"
    assert mask_key("sk-123456") == "*****3456"
