"""Composition Assembler service - turns aligned tracks into a frame-unit composition."""

import json
from typing import Any, Optional

from app.core.config import Settings
from app.models.schemas import (
    MUSIC_SCENE_ID,
    AlignedTrack,
    CompositionConfig,
    CompositionTrack,
    EffectSpec,
    SceneComposition,
    TextOverlayMeta,
    TrackType,
    TransitionKind,
    TransitionSpec,
)
from app.utils.timing import seconds_to_frame_offset, seconds_to_frames, transition_frames


class CompositionAssembler:
    """Groups aligned tracks into scenes and converts seconds to frames."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the composition assembler.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger

    def assemble(
        self,
        tracks: list[AlignedTrack],
        total_duration_seconds: float,
        fps: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        transitions: Optional[list[TransitionSpec]] = None,
        effects: Optional[list[EffectSpec]] = None,
        composition_id: Optional[str] = None,
    ) -> CompositionConfig:
        """
        Assemble a composition from aligned tracks.

        Args:
            tracks: Aligned tracks
            total_duration_seconds: Timeline length reported by the aligner
            fps: Frames per second (defaults to settings.composition_fps)
            width: Width in pixels (defaults to settings.composition_width)
            height: Height in pixels (defaults to settings.composition_height)
            transitions: Explicit transitions; synthesized fades are used when omitted
            effects: Renderer effects
            composition_id: Composition identifier (defaults to settings.composition_id)

        Returns:
            Composition configuration
        """
        fps = fps or self.settings.composition_fps
        width = width or self.settings.composition_width
        height = height or self.settings.composition_height

        groups: dict[str, list[AlignedTrack]] = {}
        for track in tracks:
            groups.setdefault(track.scene_id, []).append(track)

        scenes = [self._build_scene(scene_id, group, fps) for scene_id, group in groups.items()]
        # Background music starts with the first scene but is ordered after it
        scenes.sort(key=lambda scene: (scene.from_frame, scene.id == MUSIC_SCENE_ID))

        if transitions is None:
            transitions = self._default_transitions(scenes, fps)

        # Untrimmed music can outlast the last narrated scene; the furthest scene end wins
        duration_in_frames = max((scene.from_frame + scene.duration_in_frames for scene in scenes), default=0)
        expected = seconds_to_frames(total_duration_seconds, fps)
        if duration_in_frames != expected:
            self.logger.debug(f"Scene extent is {duration_in_frames} frames, timeline is {expected} frames")

        config = CompositionConfig(
            id=composition_id or self.settings.composition_id,
            fps=fps,
            width=width,
            height=height,
            duration_in_frames=duration_in_frames,
            scenes=scenes,
            transitions=list(transitions),
            effects=list(effects or []),
        )
        self.logger.info(
            f"Assembled composition: {len(scenes)} scenes, {len(config.transitions)} transitions, "
            f"{duration_in_frames} frames @ {fps}fps"
        )
        return config

    @staticmethod
    def _build_scene(scene_id: str, group: list[AlignedTrack], fps: int) -> SceneComposition:
        ordered = sorted(group, key=lambda t: t.order)
        start = min(t.start_time for t in ordered)
        end = max(t.end_time for t in ordered)
        return SceneComposition(
            id=scene_id,
            from_frame=seconds_to_frame_offset(start, fps),
            duration_in_frames=seconds_to_frames(end - start, fps),
            tracks=[to_composition_track(t) for t in ordered],
        )

    def _default_transitions(self, scenes: list[SceneComposition], fps: int) -> list[TransitionSpec]:
        """Fade between each pair of consecutive narrated scenes."""
        narrated = [scene for scene in scenes if scene.id != MUSIC_SCENE_ID]
        frames = transition_frames(self.settings.transition_seconds, fps)
        return [
            TransitionSpec(kind=TransitionKind.FADE, duration_frames=frames, from_scene=a.id, to_scene=b.id)
            for a, b in zip(narrated, narrated[1:])
        ]


def to_composition_track(track: AlignedTrack) -> CompositionTrack:
    """Project an aligned track onto the renderer's track shape."""
    return CompositionTrack(
        track_type=track.track_type,
        asset_id=track.asset_id,
        url=track.asset_ref.url if track.asset_ref else None,
        start_time=track.start_time,
        end_time=track.end_time,
        volume=track.volume,
        metadata=track.metadata,
    )


def apply_transitions(config: CompositionConfig, transitions: list[TransitionSpec]) -> CompositionConfig:
    """Return a copy of config with transitions appended."""
    return config.model_copy(update={"transitions": [*config.transitions, *transitions]})


def apply_effects(config: CompositionConfig, effects: list[EffectSpec]) -> CompositionConfig:
    """Return a copy of config with effects appended."""
    return config.model_copy(update={"effects": [*config.effects, *effects]})


def merge_composition(base: CompositionConfig, edits: dict) -> CompositionConfig:
    """
    Merge user edits into a composition.

    Top-level fields in ``edits`` override the base. Scenes are replaced only
    when a non-empty list is given; transitions and effects are replaced
    whenever the key is present.

    Args:
        base: Stored composition
        edits: Partial composition as plain data

    Returns:
        New composition (schema-validated)
    """
    merged = base.model_dump(mode="json")
    merged.update({key: value for key, value in edits.items() if key not in ("scenes", "transitions", "effects")})
    if edits.get("scenes"):
        merged["scenes"] = edits["scenes"]
    for key in ("transitions", "effects"):
        if key in edits and edits[key] is not None:
            merged[key] = edits[key]
    return CompositionConfig.model_validate(merged)


_TEXT_STYLE = (
    "{ position: 'absolute', bottom: 50, left: '50%', transform: 'translateX(-50%)', color: 'white', "
    "fontSize: 24, textAlign: 'center', backgroundColor: 'rgba(0,0,0,0.7)', padding: '10px 20px', borderRadius: 8 }"
)


def _render_track(track: CompositionTrack) -> str:
    asset = f"assets.find((a) => a.id === {json.dumps(track.asset_id)})?.url"
    if track.track_type == TrackType.VIDEO:
        return f"          <Img src={{{asset}}} style={{{{ width: '100%', height: '100%', objectFit: 'cover' }}}} />"
    if track.track_type in (TrackType.AUDIO, TrackType.MUSIC):
        return f"          <Audio src={{{asset}}} volume={{{track.volume}}} />"
    if track.track_type == TrackType.TEXT_OVERLAY:
        text = track.metadata.text if isinstance(track.metadata, TextOverlayMeta) else ""
        return f"          <div style={{{_TEXT_STYLE}}}>{{{json.dumps(text)}}}</div>"
    return ""


def render_composition_code(config: CompositionConfig) -> str:
    """
    Render a Remotion component for a composition from a fixed template.

    Args:
        config: Composition configuration

    Returns:
        TSX source of the component
    """
    lines = [
        "import { AbsoluteFill, Audio, Img, Sequence, useVideoConfig } from 'remotion';",
        "",
        "export function StudioVideoComposition({ assets }: { assets: { id: string; url: string }[] }) {",
        "  const { fps } = useVideoConfig();",
        "",
        "  return (",
        "    <AbsoluteFill style={{ backgroundColor: '#000' }}>",
    ]
    for scene in config.scenes:
        lines.append(
            f"      <Sequence key={json.dumps(scene.id)} from={{{scene.from_frame}}} "
            f"durationInFrames={{{scene.duration_in_frames}}}>"
        )
        lines.append("        <AbsoluteFill>")
        lines.extend(rendered for rendered in (_render_track(t) for t in scene.tracks) if rendered)
        lines.append("        </AbsoluteFill>")
        lines.append("      </Sequence>")
    lines.extend(["    </AbsoluteFill>", "  );", "}", ""])
    return "\n".join(lines)
