"""Shared pytest fixtures and configuration."""

import pytest

from app.core.config import Settings
from app.core.logging_config import get_logger
from app.models.schemas import (
    AssetBundle,
    AssetKind,
    AssetRef,
    GeneratedAsset,
    Scene,
    VideoScript,
)


@pytest.fixture
def settings(tmp_path):
    """Create test settings instance (offline providers, temp storage)."""
    return Settings(
        openai_api_key=None,
        elevenlabs_api_key=None,
        hf_endpoint_url=None,
        music_endpoint_url=None,
        public_asset_base_url=None,
        enable_rate_limiting=False,
        use_llm_for_renderer_code=False,
        storage_path=str(tmp_path / "runs"),
        blob_storage_path=str(tmp_path / "blobs"),
    )


@pytest.fixture
def logger():
    """Create test logger instance."""
    return get_logger(__name__)


def make_ref(ref_id: str) -> AssetRef:
    return AssetRef(ref_id=ref_id, url=f"https://cdn.test/{ref_id}", mime_type="application/octet-stream")


@pytest.fixture
def make_script():
    """Factory for a script whose scenes have the given target durations."""

    def _make(targets=(5.0, 7.0), estimate=None, with_visuals=True):
        scenes = [
            Scene(
                id=f"scene-{i}",
                order=i,
                narration_text=f"Narration for scene {i}.",
                visual_prompt=f"Illustration of idea {i}" if with_visuals else None,
                target_duration_seconds=target,
            )
            for i, target in enumerate(targets, 1)
        ]
        return VideoScript(
            title="Test Overview",
            full_script=" ".join(scene.narration_text for scene in scenes),
            scenes=scenes,
            estimated_duration_seconds=estimate if estimate is not None else sum(targets),
        )

    return _make


@pytest.fixture
def make_assets():
    """Factory for an asset bundle with measured audio, images and optional music."""

    def _make(audio=None, images=(), music=None, music_measured=True):
        audio_assets = {
            scene_id: GeneratedAsset(
                kind=AssetKind.AUDIO,
                asset_ref=make_ref(f"audio-{scene_id}"),
                scene_id=scene_id,
                measured_duration_seconds=duration,
            )
            for scene_id, duration in (audio or {}).items()
        }
        image_assets = {
            scene_id: GeneratedAsset(kind=AssetKind.IMAGE, asset_ref=make_ref(f"image-{scene_id}"), scene_id=scene_id)
            for scene_id in images
        }
        music_asset = None
        if music is not None:
            music_asset = GeneratedAsset(
                kind=AssetKind.MUSIC,
                asset_ref=make_ref("music-bed"),
                measured_duration_seconds=music if music_measured else None,
            )
        return AssetBundle(audio=audio_assets, images=image_assets, music=music_asset)

    return _make
