"""Music client - background music from an HTTP generation endpoint."""

from typing import Any, Optional

import requests

from app.core.config import Settings
from app.core.exceptions import MusicGenerationError
from app.models.schemas import MediaPayload
from app.services.tts_client import measure_audio_duration
from app.utils.rate_limiter import get_limiter

_AUDIO_FORMATS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
}


class MusicClient:
    """Requests background music. Reports "unavailable" when no endpoint is configured."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the music client.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.endpoint_url = settings.music_endpoint_url

    @property
    def available(self) -> bool:
        return bool(self.endpoint_url)

    def generate_music(
        self,
        duration_seconds: float,
        style: Optional[str] = None,
        mood: Optional[str] = None,
    ) -> MediaPayload:
        """
        Generate a background music bed.

        Args:
            duration_seconds: Requested length in seconds
            style: Music style (defaults to settings.music_style)
            mood: Mood description (defaults to settings.music_mood)

        Returns:
            Audio bytes with measured duration

        Raises:
            MusicGenerationError: If music generation is unavailable or fails
        """
        if not self.available:
            raise MusicGenerationError("Music generation unavailable: MUSIC_ENDPOINT_URL not configured")

        payload = {
            "style": style or self.settings.music_style,
            "mood": mood or self.settings.music_mood,
            "duration": round(duration_seconds, 3),
        }
        headers = {"Accept": "audio/*"}
        if self.settings.music_endpoint_token:
            headers["Authorization"] = f"Bearer {self.settings.music_endpoint_token}"

        if self.settings.enable_rate_limiting:
            get_limiter("music", max_calls=self.settings.music_rate_limit).wait_if_needed("music_generation")

        self.logger.debug(f"Requesting {duration_seconds:.1f}s of {payload['style']} music")
        try:
            response = requests.post(
                self.endpoint_url, json=payload, headers=headers, timeout=self.settings.request_timeout_seconds
            )
        except requests.exceptions.RequestException as e:
            raise MusicGenerationError(f"Network error calling music endpoint: {e}") from e

        if response.status_code != 200:
            raise MusicGenerationError(f"Music endpoint returned status {response.status_code}")
        if not response.content:
            raise MusicGenerationError("Music endpoint returned no audio")

        mime_type = response.headers.get("Content-Type", "audio/mpeg").split(";")[0].strip()
        duration = measure_audio_duration(response.content, format=_AUDIO_FORMATS.get(mime_type))
        return MediaPayload(data=response.content, mime_type=mime_type, duration_seconds=duration)
