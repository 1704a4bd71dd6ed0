"""Asset Generator service - fans out narration, image and music requests for a script."""

import threading
from typing import Any, Callable, Optional

from app.core.config import Settings
from app.core.exceptions import AssetGenerationError, MusicGenerationError, PipelineCancelledError
from app.models.schemas import (
    AssetBundle,
    AssetKind,
    GeneratedAsset,
    GenerationProgress,
    Scene,
    VideoScript,
)
from app.services.image_client import ImageClient
from app.services.music_client import MusicClient
from app.services.tts_client import TTSClient
from app.storage.blob_store import LocalBlobStore
from app.utils.parallel_executor import ParallelExecutor


class AssetGenerator:
    """
    Generates every media asset a script needs.

    Narration audio and scene images are requested per scene, plus one
    optional background music bed. All requests run concurrently and land in
    per-scene slots of an AssetBundle. A failed narration request (or a failed
    image when ``allow_missing_images`` is off) aborts the batch; music
    failures never do.
    """

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        tts_client: Optional[TTSClient] = None,
        image_client: Optional[ImageClient] = None,
        music_client: Optional[MusicClient] = None,
        blob_store: Optional[LocalBlobStore] = None,
        executor: Optional[ParallelExecutor] = None,
    ):
        """
        Initialize the asset generator.

        Args:
            settings: Application settings
            logger: Logger instance
            tts_client: Speech synthesis client
            image_client: Image generation client
            music_client: Music generation client
            blob_store: Storage for generated media
            executor: Parallel executor for the fan-out
        """
        self.settings = settings
        self.logger = logger
        self.tts_client = tts_client or TTSClient(settings, logger)
        self.image_client = image_client or ImageClient(settings, logger)
        self.music_client = music_client or MusicClient(settings, logger)
        self.blob_store = blob_store or LocalBlobStore(settings, logger)
        self.executor = executor or ParallelExecutor(settings, logger)

    def generate(
        self,
        script: VideoScript,
        include_music: bool = False,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[Callable[[GenerationProgress], None]] = None,
    ) -> AssetBundle:
        """
        Generate all assets for a script.

        Args:
            script: Planned video script
            include_music: Also request a background music bed
            cancel_event: Aborts the stage when set
            on_progress: Called after each request settles

        Returns:
            Bundle of generated assets keyed by scene id

        Raises:
            AssetGenerationError: On the first fatal scene failure
            PipelineCancelledError: If cancel_event is set before all requests settle
        """
        if cancel_event is not None and cancel_event.is_set():
            raise PipelineCancelledError("Cancelled before asset generation started")

        tasks: list[Callable[[], GeneratedAsset]] = []
        task_names: list[str] = []
        task_kinds: list[AssetKind] = []

        for scene in script.scenes:
            tasks.append(self._audio_task(scene))
            task_names.append(f"audio:{scene.id}")
            task_kinds.append(AssetKind.AUDIO)
            if scene.visual_prompt:
                tasks.append(self._image_task(scene))
                task_names.append(f"image:{scene.id}")
                task_kinds.append(AssetKind.IMAGE)

        if include_music:
            tasks.append(self._music_task(script.estimated_duration_seconds))
            task_names.append("music")
            task_kinds.append(AssetKind.MUSIC)

        self.logger.info(f"Generating {len(tasks)} assets for {len(script.scenes)} scenes")

        completed = 0

        def on_settled(index: int, result: Any, error: Optional[Exception]) -> None:
            nonlocal completed
            completed += 1
            if on_progress is not None:
                on_progress(GenerationProgress(completed=completed, total=len(tasks), current_step=task_names[index]))

        def is_fatal(index: int, error: Exception) -> bool:
            kind = task_kinds[index]
            if kind == AssetKind.MUSIC:
                return False
            if kind == AssetKind.IMAGE:
                return not self.settings.allow_missing_images
            return True

        results = self.executor.execute_fail_fast(
            tasks,
            task_names=task_names,
            is_fatal=is_fatal,
            cancel_event=cancel_event,
            on_settled=on_settled,
        )

        audio: dict[str, GeneratedAsset] = {}
        images: dict[str, GeneratedAsset] = {}
        music: Optional[GeneratedAsset] = None
        for name, kind, (asset, error) in zip(task_names, task_kinds, results):
            if error is not None:
                if kind == AssetKind.MUSIC:
                    self.logger.warning(f"Background music skipped: {error}")
                else:
                    self.logger.warning(f"{name} missing, scene will render without it: {error}")
                continue
            if kind == AssetKind.AUDIO:
                audio[asset.scene_id] = asset
            elif kind == AssetKind.IMAGE:
                images[asset.scene_id] = asset
            else:
                music = asset

        self.logger.info(
            f"Assets ready: {len(audio)} narration, {len(images)} images, music={'yes' if music else 'no'}"
        )
        return AssetBundle(audio=audio, images=images, music=music)

    def _audio_task(self, scene: Scene) -> Callable[[], GeneratedAsset]:
        def task() -> GeneratedAsset:
            try:
                payload = self.tts_client.synthesize(scene.narration_text)
                ref = self.blob_store.store(payload.data, payload.mime_type, prefix="tts")
                return GeneratedAsset(
                    kind=AssetKind.AUDIO,
                    asset_ref=ref,
                    scene_id=scene.id,
                    measured_duration_seconds=payload.duration_seconds,
                )
            except Exception as e:
                raise AssetGenerationError(
                    f"Narration failed for scene {scene.id}: {e}", scene_id=scene.id, asset_kind="audio"
                ) from e

        return task

    def _image_task(self, scene: Scene) -> Callable[[], GeneratedAsset]:
        def task() -> GeneratedAsset:
            try:
                payload = self.image_client.generate_image(scene.visual_prompt)
                ref = self.blob_store.store(payload.data, payload.mime_type, prefix="image")
                return GeneratedAsset(kind=AssetKind.IMAGE, asset_ref=ref, scene_id=scene.id)
            except Exception as e:
                raise AssetGenerationError(
                    f"Image failed for scene {scene.id}: {e}", scene_id=scene.id, asset_kind="image"
                ) from e

        return task

    def _music_task(self, duration_seconds: float) -> Callable[[], GeneratedAsset]:
        def task() -> GeneratedAsset:
            try:
                payload = self.music_client.generate_music(duration_seconds)
                ref = self.blob_store.store(payload.data, payload.mime_type, prefix="music")
                return GeneratedAsset(
                    kind=AssetKind.MUSIC, asset_ref=ref, measured_duration_seconds=payload.duration_seconds
                )
            except MusicGenerationError:
                raise
            except Exception as e:
                raise MusicGenerationError(f"Music generation failed: {e}") from e

        return task
