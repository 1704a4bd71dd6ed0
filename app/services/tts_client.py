"""TTS (Text-to-Speech) client abstraction for multiple providers."""

import io
from typing import Any, Optional

import requests
from pydub import AudioSegment

from app.core.config import Settings
from app.models.schemas import MediaPayload
from app.utils.rate_limiter import get_limiter
from app.utils.text_utils import estimate_spoken_duration


def measure_audio_duration(data: bytes, format: Optional[str] = None) -> float:
    """
    Measure the real length of encoded audio.

    Args:
        data: Encoded audio bytes
        format: Optional container hint ("mp3", "wav"); sniffed when omitted

    Returns:
        Duration in seconds
    """
    segment = AudioSegment.from_file(io.BytesIO(data), format=format)
    return len(segment) / 1000.0


class TTSClient:
    """TTS client supporting ElevenLabs, OpenAI and a silent stub provider."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize TTS client.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.provider = self._detect_provider()

    def _detect_provider(self) -> str:
        """Detect which TTS provider to use based on available credentials."""
        if self.settings.elevenlabs_api_key:
            return "elevenlabs"
        elif self.settings.openai_api_key:
            return "openai"
        else:
            return "stub"

    def synthesize(self, text: str, voice: Optional[str] = None) -> MediaPayload:
        """
        Generate narration audio and measure its actual length.

        Args:
            text: Text to convert to speech
            voice: Optional provider-specific voice

        Returns:
            Audio bytes with MIME type and measured duration

        Raises:
            ValueError: If text is empty or the provider is misconfigured
            Exception: If generation fails
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        self.logger.debug(f"Generating speech using {self.provider} provider for {len(text)} characters")

        if self.settings.enable_rate_limiting and self.provider != "stub":
            get_limiter("tts", max_calls=self.settings.tts_rate_limit).wait_if_needed(self.provider)

        if self.provider == "elevenlabs":
            data, mime_type, audio_format = self._generate_elevenlabs(text, voice), "audio/mpeg", "mp3"
        elif self.provider == "openai":
            data, mime_type, audio_format = self._generate_openai(text, voice), "audio/mpeg", "mp3"
        else:
            data, mime_type, audio_format = self._generate_stub(text), "audio/wav", "wav"

        duration = measure_audio_duration(data, format=audio_format)
        self.logger.debug(f"Speech generated: {len(data)} bytes, {duration:.2f}s")
        return MediaPayload(data=data, mime_type=mime_type, duration_seconds=duration)

    def _generate_elevenlabs(self, text: str, voice_id: Optional[str] = None) -> bytes:
        """Generate speech using ElevenLabs API."""
        voice_id = voice_id or self.settings.elevenlabs_voice_id
        if not voice_id:
            raise ValueError("ElevenLabs voice ID not configured")

        url = f"https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"
        headers = {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.settings.elevenlabs_api_key,
        }
        data = {
            "text": text,
            "model_id": "eleven_turbo_v2",
            "voice_settings": {
                "stability": 0.5,
                "similarity_boost": 0.75,
            },
        }

        response = requests.post(url, json=data, headers=headers, timeout=self.settings.request_timeout_seconds)
        if response.status_code != 200:
            raise RuntimeError(f"ElevenLabs API returned status {response.status_code}: {response.text[:300]}")
        return response.content

    def _generate_openai(self, text: str, voice: Optional[str] = None) -> bytes:
        """Generate speech using OpenAI TTS API."""
        from openai import OpenAI

        client = OpenAI(api_key=self.settings.openai_api_key, timeout=self.settings.request_timeout_seconds)
        response = client.audio.speech.create(
            model=self.settings.tts_model,
            voice=voice or self.settings.tts_voice,
            input=text,
            response_format="mp3",
        )
        return response.content

    def _generate_stub(self, text: str) -> bytes:
        """
        Generate silent audio sized to the text.

        Used when no TTS provider is configured, so the pipeline can run offline.
        """
        self.logger.warning("Using stub TTS - generating silent audio placeholder")
        duration_seconds = max(1.0, estimate_spoken_duration(text))
        buffer = io.BytesIO()
        AudioSegment.silent(duration=int(duration_seconds * 1000)).export(buffer, format="wav")
        return buffer.getvalue()
