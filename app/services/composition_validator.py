"""Composition Validator - structural checks before a composition reaches the renderer."""

from typing import Any, Union

from pydantic import ValidationError

from app.core.exceptions import CompositionValidationError
from app.models.schemas import AlignedTrack, CompositionConfig, SceneComposition
from app.services.composition_assembler import to_composition_track
from app.utils.timing import seconds_to_frames

FALLBACK_SCENE_ID = "main"


def validate_composition(config: Union[CompositionConfig, dict[str, Any]]) -> CompositionConfig:
    """
    Validate a composition.

    Raw dicts (e.g. client edits) are schema-validated first; schema errors
    are reported as issues like any other violation.

    Args:
        config: Composition model or plain data

    Returns:
        The validated composition

    Raises:
        CompositionValidationError: If any check fails, with every issue found
    """
    if isinstance(config, dict):
        try:
            config = CompositionConfig.model_validate(config)
        except ValidationError as e:
            issues = [f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}" for err in e.errors()]
            raise CompositionValidationError("Composition does not match the schema", issues) from e

    issues: list[str] = []
    if not config.id or not config.id.strip():
        issues.append("id must be a non-empty string")
    for field in ("fps", "width", "height", "duration_in_frames"):
        value = getattr(config, field)
        if value <= 0:
            issues.append(f"{field} must be positive, got {value}")

    if not config.scenes:
        issues.append("scenes must not be empty")

    scene_ids = set()
    for index, scene in enumerate(config.scenes):
        label = scene.id or f"#{index}"
        if not scene.id or not scene.id.strip():
            issues.append(f"scene #{index}: id must be a non-empty string")
        if scene.from_frame < 0:
            issues.append(f"scene {label}: from_frame must be >= 0, got {scene.from_frame}")
        if scene.duration_in_frames <= 0:
            issues.append(f"scene {label}: duration_in_frames must be positive, got {scene.duration_in_frames}")
        scene_ids.add(scene.id)

    for transition in config.transitions:
        for scene_id in (transition.from_scene, transition.to_scene):
            if scene_id not in scene_ids:
                issues.append(f"transition references unknown scene {scene_id!r}")
        if transition.duration_frames < 0:
            issues.append(
                f"transition {transition.from_scene}->{transition.to_scene}: "
                f"duration_frames must be >= 0, got {transition.duration_frames}"
            )

    if issues:
        raise CompositionValidationError(f"Composition {config.id!r} is invalid ({len(issues)} issues)", issues)
    return config


def build_fallback_composition(
    tracks: list[AlignedTrack],
    total_duration_seconds: float,
    fps: int,
    width: int,
    height: int,
    composition_id: str = "studio-video",
) -> CompositionConfig:
    """
    Build the minimal valid composition: one scene holding every track.

    Args:
        tracks: Aligned tracks
        total_duration_seconds: Timeline length
        fps: Frames per second
        width: Width in pixels
        height: Height in pixels
        composition_id: Composition identifier

    Returns:
        Single-scene composition without transitions
    """
    duration = max(1, seconds_to_frames(total_duration_seconds, fps))
    scene = SceneComposition(
        id=FALLBACK_SCENE_ID,
        from_frame=0,
        duration_in_frames=duration,
        tracks=[to_composition_track(t) for t in sorted(tracks, key=lambda t: t.order)],
    )
    return CompositionConfig(
        id=composition_id,
        fps=fps,
        width=width,
        height=height,
        duration_in_frames=duration,
        scenes=[scene],
    )
