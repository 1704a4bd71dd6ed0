"""Track Aligner service - lays generated assets out on an absolute timeline."""

from typing import Any

from app.core.config import Settings
from app.core.exceptions import AlignmentError
from app.models.schemas import (
    MUSIC_SCENE_ID,
    AlignedTrack,
    AssetBundle,
    MusicMeta,
    NarrationMeta,
    TextOverlayMeta,
    TrackAlignmentResult,
    TrackType,
    VideoScript,
    VisualMeta,
)


def calculate_total_duration(tracks: list[AlignedTrack]) -> float:
    """Latest end time over all tracks (0.0 for an empty timeline)."""
    return max((track.end_time for track in tracks), default=0.0)


def verify_synchronization(tracks: list[AlignedTrack], tolerance: float = 0.1) -> tuple[bool, list[str]]:
    """
    Check that every scene's audio and video tracks cover the same interval.

    Args:
        tracks: Aligned tracks
        tolerance: Maximum allowed drift in seconds (exclusive)

    Returns:
        Tuple of (synchronized, issues)
    """
    audio_by_scene: dict[str, AlignedTrack] = {}
    video_by_scene: dict[str, AlignedTrack] = {}
    for track in tracks:
        if track.track_type == TrackType.AUDIO:
            audio_by_scene.setdefault(track.scene_id, track)
        elif track.track_type == TrackType.VIDEO:
            video_by_scene.setdefault(track.scene_id, track)

    issues = []
    for scene_id, audio in audio_by_scene.items():
        video = video_by_scene.get(scene_id)
        if video is None:
            continue
        start_drift = abs(audio.start_time - video.start_time)
        end_drift = abs(audio.end_time - video.end_time)
        if start_drift >= tolerance:
            issues.append(f"Scene {scene_id}: audio/video start drift {start_drift:.3f}s")
        if end_drift >= tolerance:
            issues.append(f"Scene {scene_id}: audio/video end drift {end_drift:.3f}s")

    return not issues, issues


class TrackAligner:
    """Deterministically converts a script plus its assets into timed tracks."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the track aligner.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger

    def align(self, script: VideoScript, assets: AssetBundle) -> TrackAlignmentResult:
        """
        Align tracks scene by scene.

        Each scene lasts its measured narration length (or its target duration
        when no audio was measured). Audio, image and caption tracks of a scene
        share the same interval; scenes follow each other without gaps.
        Background music starts at 0 and runs at least until the narration ends.

        Args:
            script: Planned video script
            assets: Generated assets keyed by scene id

        Returns:
            Alignment result with tracks in emission order

        Raises:
            AlignmentError: If an audio/video pair drifts apart
        """
        tracks: list[AlignedTrack] = []
        cursor = 0.0

        for scene in sorted(script.scenes, key=lambda s: s.order):
            audio = assets.audio.get(scene.id)
            image = assets.images.get(scene.id)

            effective = scene.target_duration_seconds
            if audio is not None and audio.measured_duration_seconds:
                effective = audio.measured_duration_seconds
            start, end = cursor, cursor + effective

            if audio is not None:
                tracks.append(
                    AlignedTrack(
                        scene_id=scene.id,
                        asset_ref=audio.asset_ref,
                        track_type=TrackType.AUDIO,
                        start_time=start,
                        end_time=end,
                        volume=self.settings.narration_volume,
                        order=len(tracks),
                        metadata=NarrationMeta(scene_order=scene.order, narration_text=scene.narration_text),
                    )
                )
            if image is not None:
                tracks.append(
                    AlignedTrack(
                        scene_id=scene.id,
                        asset_ref=image.asset_ref,
                        track_type=TrackType.VIDEO,
                        start_time=start,
                        end_time=end,
                        order=len(tracks),
                        metadata=VisualMeta(scene_order=scene.order, visual_prompt=scene.visual_prompt),
                    )
                )
            if audio is not None or image is not None:
                tracks.append(
                    AlignedTrack(
                        scene_id=scene.id,
                        track_type=TrackType.TEXT_OVERLAY,
                        start_time=start,
                        end_time=end,
                        order=len(tracks),
                        metadata=TextOverlayMeta(scene_order=scene.order, text=scene.narration_text),
                    )
                )
            else:
                self.logger.warning(f"Scene {scene.id} has no media, leaving a {effective:.2f}s gap")

            cursor = end

        if assets.music is not None:
            music = assets.music
            music_len = music.measured_duration_seconds or script.estimated_duration_seconds
            music_end = max(music_len, cursor)
            if music_end > 0:
                if music_len > cursor:
                    self.logger.debug(
                        f"Music runs {music_len - cursor:.2f}s past narration, renderer fades it out"
                    )
                tracks.append(
                    AlignedTrack(
                        scene_id=MUSIC_SCENE_ID,
                        asset_ref=music.asset_ref,
                        track_type=TrackType.MUSIC,
                        start_time=0.0,
                        end_time=music_end,
                        volume=self.settings.music_volume,
                        order=len(tracks),
                        metadata=MusicMeta(
                            source_duration_seconds=music.measured_duration_seconds,
                            fade_out_seconds=self.settings.music_fade_out_seconds,
                        ),
                    )
                )

        synchronized, issues = verify_synchronization(tracks, self.settings.sync_tolerance_seconds)
        if not synchronized:
            raise AlignmentError("Audio and video tracks are out of sync", issues)

        total = calculate_total_duration(tracks)
        self.logger.info(f"Aligned {len(tracks)} tracks, total duration {total:.2f}s")
        return TrackAlignmentResult(tracks=tracks, total_duration_seconds=total, synchronized=True, issues=[])
