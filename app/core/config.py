"""Application configuration using pydantic-settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # Application Settings
    # ========================================================================
    app_name: str = Field(default="Video Overview Pipeline", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")

    # ========================================================================
    # LLM Settings (script planning, renderer code)
    # ========================================================================
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    script_model: str = Field(default="gpt-4o-mini", description="Model used for structured script planning")
    renderer_code_model: str = Field(default="gpt-4o-mini", description="Model used for renderer component code")
    use_llm_for_renderer_code: bool = Field(
        default=True,
        description="Ask the LLM for renderer component code (falls back to the built-in template on failure)",
    )
    llm_temperature: float = Field(default=0.4, description="Sampling temperature for script planning")

    # ========================================================================
    # TTS (Text-to-Speech) Settings
    # ========================================================================
    elevenlabs_api_key: Optional[str] = Field(default=None, description="ElevenLabs API key")
    elevenlabs_voice_id: Optional[str] = Field(default=None, description="ElevenLabs voice ID")
    tts_voice: str = Field(default="alloy", description="Default OpenAI TTS voice")
    tts_model: str = Field(default="tts-1", description="OpenAI TTS model")

    # ========================================================================
    # Image Generation Settings
    # ========================================================================
    hf_endpoint_url: Optional[str] = Field(
        default=None,
        description="Hugging Face Inference Endpoint URL for scene images. Without it a placeholder image is produced.",
    )
    hf_endpoint_token: Optional[str] = Field(default=None, description="Hugging Face Inference Endpoint token")
    image_aspect_ratio: str = Field(default="16:9", description="Aspect ratio requested for scene images")

    # ========================================================================
    # Music Generation Settings
    # ========================================================================
    music_endpoint_url: Optional[str] = Field(
        default=None, description="HTTP endpoint for background music generation (music is unavailable when unset)"
    )
    music_endpoint_token: Optional[str] = Field(default=None, description="Bearer token for the music endpoint")
    music_style: str = Field(default="upbeat", description="Background music style")
    music_mood: str = Field(default="professional", description="Background music mood")

    request_timeout_seconds: float = Field(default=60.0, description="Timeout for collaborator HTTP calls")

    # ========================================================================
    # Script Planning
    # ========================================================================
    min_scene_seconds: float = Field(default=3.0, gt=0, description="Shortest allowed scene target duration")
    max_scene_seconds: float = Field(default=20.0, gt=0, description="Longest allowed scene target duration")

    # ========================================================================
    # Track Alignment
    # ========================================================================
    narration_volume: float = Field(default=1.0, ge=0.0, le=1.0, description="Volume of narration tracks")
    music_volume: float = Field(default=0.3, ge=0.0, le=1.0, description="Volume of the background music track")
    music_fade_out_seconds: float = Field(
        default=2.0, ge=0.0, description="Fade-out the renderer applies when music overruns the narration"
    )
    sync_tolerance_seconds: float = Field(
        default=0.1, gt=0, description="Maximum allowed audio/video drift for a scene"
    )

    # ========================================================================
    # Composition
    # ========================================================================
    composition_id: str = Field(default="studio-video", description="Identifier of the generated composition")
    composition_fps: int = Field(default=30, gt=0, description="Frames per second")
    composition_width: int = Field(default=1920, gt=0, description="Composition width in pixels")
    composition_height: int = Field(default=1080, gt=0, description="Composition height in pixels")
    transition_seconds: float = Field(default=0.5, ge=0.0, description="Length of default fade transitions")
    composition_fallback_enabled: bool = Field(
        default=True,
        description="Fall back to a single-scene composition when the assembled one fails validation",
    )

    # ========================================================================
    # Asset Policy
    # ========================================================================
    allow_missing_images: bool = Field(
        default=False,
        description="Treat a failed scene image as non-fatal (the scene is rendered without a visual track)",
    )

    # ========================================================================
    # Parallelism & Rate Limiting
    # ========================================================================
    max_parallel_api_calls: int = Field(
        default=5,
        description="Maximum number of concurrent asset requests (TTS, image, music) within a run",
    )
    enable_rate_limiting: bool = Field(default=True, description="Throttle collaborator API calls")
    llm_rate_limit: int = Field(default=60, description="LLM calls per minute")
    tts_rate_limit: int = Field(default=100, description="TTS calls per minute")
    image_rate_limit: int = Field(default=30, description="Image generation calls per minute")
    music_rate_limit: int = Field(default=10, description="Music generation calls per minute")

    # ========================================================================
    # Storage Settings
    # ========================================================================
    storage_path: str = Field(default="storage/runs", description="Storage path for pipeline results")
    blob_storage_path: str = Field(default="storage/blobs", description="Storage path for generated media")
    public_asset_base_url: Optional[str] = Field(
        default=None, description="Public base URL for stored media (file:// URIs are used when unset)"
    )


# Global settings instance
settings = Settings()
