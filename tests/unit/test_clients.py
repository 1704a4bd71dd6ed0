"""Tests for capability clients (LLM, TTS, image, music)."""

import base64
import io
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image
from pydub import AudioSegment

from app.core.exceptions import MusicGenerationError
from app.models.schemas import ScriptDraft
from app.services.image_client import ImageClient
from app.services.llm_client import LLMClient, LLMResponseError
from app.services.music_client import MusicClient
from app.services.tts_client import TTSClient, measure_audio_duration


def _silent_wav(milliseconds: int) -> bytes:
    buffer = io.BytesIO()
    AudioSegment.silent(duration=milliseconds).export(buffer, format="wav")
    return buffer.getvalue()


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), (255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


# ----------------------------------------------------------------------------
# LLM client
# ----------------------------------------------------------------------------


@pytest.fixture
def llm(settings, logger):
    client = LLMClient(settings, logger)
    client._client = MagicMock()
    return client


def test_generate_structured_validates_response(llm):
    llm._client.chat.completions.create.return_value = _completion(
        '{"title": "T", "full_script": "S", "scenes": [{"id": "scene-1", "order": 1, '
        '"narration_text": "N", "target_duration_seconds": 5}]}'
    )

    draft = llm.generate_structured("prompt", ScriptDraft)

    assert isinstance(draft, ScriptDraft)
    assert draft.scenes[0].id == "scene-1"
    assert draft.estimated_duration_seconds is None
    kwargs = llm._client.chat.completions.create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert "JSON schema" in kwargs["messages"][0]["content"]


def test_generate_structured_rejects_schema_mismatch(llm):
    llm._client.chat.completions.create.return_value = _completion('{"title": "T"}')

    with pytest.raises(LLMResponseError):
        llm.generate_structured("prompt", ScriptDraft)


def test_generate_structured_rejects_empty_answer(llm):
    llm._client.chat.completions.create.return_value = _completion(None)

    with pytest.raises(LLMResponseError):
        llm.generate_structured("prompt", ScriptDraft)


def test_generate_text_strips_output(llm):
    llm._client.chat.completions.create.return_value = _completion("  code  \n")

    assert llm.generate_text("prompt", system_prompt="system") == "code"


def test_missing_api_key(settings, logger):
    with pytest.raises(ValueError):
        LLMClient(settings, logger)._get_client()


# ----------------------------------------------------------------------------
# TTS client
# ----------------------------------------------------------------------------


def test_measure_audio_duration():
    assert measure_audio_duration(_silent_wav(2500), format="wav") == pytest.approx(2.5, abs=0.01)


def test_tts_stub_produces_measured_silence(settings, logger):
    client = TTSClient(settings, logger)

    payload = client.synthesize("one two three four five six seven eight nine ten")

    assert client.provider == "stub"
    assert payload.mime_type == "audio/wav"
    assert payload.duration_seconds == pytest.approx(4.0, abs=0.01)


def test_tts_rejects_empty_text(settings, logger):
    with pytest.raises(ValueError):
        TTSClient(settings, logger).synthesize("  ")


def test_tts_provider_selection(settings, logger):
    settings.openai_api_key = "sk-test"
    assert TTSClient(settings, logger).provider == "openai"
    settings.elevenlabs_api_key = "el-test"
    assert TTSClient(settings, logger).provider == "elevenlabs"


@patch("app.services.tts_client.requests.post")
def test_tts_elevenlabs_error(mock_post, settings, logger):
    settings.elevenlabs_api_key = "el-test"
    settings.elevenlabs_voice_id = "voice"
    mock_post.return_value = SimpleNamespace(status_code=401, text="unauthorized", content=b"")

    with pytest.raises(RuntimeError):
        TTSClient(settings, logger).synthesize("Hello")


# ----------------------------------------------------------------------------
# Image client
# ----------------------------------------------------------------------------


def test_image_stub_returns_png(settings, logger):
    payload = ImageClient(settings, logger).generate_image("A sunrise over mountains")

    assert payload.mime_type == "image/png"
    image = Image.open(io.BytesIO(payload.data))
    assert image.size == (1280, 720)


def test_image_rejects_bad_input(settings, logger):
    client = ImageClient(settings, logger)
    with pytest.raises(ValueError):
        client.generate_image("")
    with pytest.raises(ValueError):
        client.generate_image("prompt", aspect_ratio="5:2")


@patch("app.services.image_client.requests.post")
def test_image_endpoint_base64_json(mock_post, settings, logger):
    settings.hf_endpoint_url = "https://hf.example/endpoint"
    settings.hf_endpoint_token = "hf-token"
    encoded = base64.b64encode(_png_bytes()).decode()
    mock_post.return_value = SimpleNamespace(
        status_code=200,
        headers={"Content-Type": "application/json"},
        json=lambda: {"image": f"data:image/png;base64,{encoded}"},
    )

    payload = ImageClient(settings, logger).generate_image("A red square", aspect_ratio="1:1")

    assert Image.open(io.BytesIO(payload.data)).size == (8, 8)
    sent = mock_post.call_args.kwargs["json"]
    assert sent["parameters"] == {"width": 1024, "height": 1024}
    assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer hf-token"


@patch("app.services.image_client.requests.post")
def test_image_endpoint_error(mock_post, settings, logger):
    settings.hf_endpoint_url = "https://hf.example/endpoint"
    settings.hf_endpoint_token = "hf-token"
    mock_post.return_value = SimpleNamespace(status_code=500, text="boom", headers={})

    with pytest.raises(RuntimeError):
        ImageClient(settings, logger).generate_image("prompt")


def test_image_endpoint_requires_token(settings, logger):
    settings.hf_endpoint_url = "https://hf.example/endpoint"

    with pytest.raises(ValueError):
        ImageClient(settings, logger).generate_image("prompt")


# ----------------------------------------------------------------------------
# Music client
# ----------------------------------------------------------------------------


def test_music_unavailable_without_endpoint(settings, logger):
    client = MusicClient(settings, logger)

    assert client.available is False
    with pytest.raises(MusicGenerationError):
        client.generate_music(30.0)


@patch("app.services.music_client.requests.post")
def test_music_endpoint_success(mock_post, settings, logger):
    settings.music_endpoint_url = "https://music.example/generate"
    settings.music_endpoint_token = "m-token"
    mock_post.return_value = SimpleNamespace(
        status_code=200, content=_silent_wav(9000), headers={"Content-Type": "audio/wav"}
    )

    payload = MusicClient(settings, logger).generate_music(12.0, style="ambient")

    assert payload.duration_seconds == pytest.approx(9.0, abs=0.01)
    assert payload.mime_type == "audio/wav"
    body = mock_post.call_args.kwargs["json"]
    assert body == {"style": "ambient", "mood": settings.music_mood, "duration": 12.0}


@patch("app.services.music_client.requests.post")
def test_music_endpoint_failure(mock_post, settings, logger):
    settings.music_endpoint_url = "https://music.example/generate"
    mock_post.return_value = SimpleNamespace(status_code=503, content=b"", headers={})

    with pytest.raises(MusicGenerationError):
        MusicClient(settings, logger).generate_music(12.0)
