"""Pydantic models and schemas for the video overview pipeline."""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================================================
# Enums
# ============================================================================


class MessageRole(str, Enum):
    """Author of a transcript message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class AssetKind(str, Enum):
    """Kind of generated media asset."""

    AUDIO = "audio"
    IMAGE = "image"
    MUSIC = "music"


class TrackType(str, Enum):
    """Kind of timed strand in the aligned output."""

    VIDEO = "video"
    AUDIO = "audio"
    MUSIC = "music"
    TEXT_OVERLAY = "text_overlay"


class TransitionKind(str, Enum):
    """Transition between two adjacent scenes."""

    FADE = "fade"
    SLIDE = "slide"
    ZOOM = "zoom"
    NONE = "none"


class EffectKind(str, Enum):
    """Post effect applied by the renderer."""

    BLUR = "blur"
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    SATURATION = "saturation"


class PipelineStage(str, Enum):
    """Fine-grained stage of a pipeline run."""

    DRAFT = "draft"
    PLANNING = "planning"
    GENERATING = "generating"
    ALIGNING = "aligning"
    ASSEMBLING = "assembling"
    READY = "ready"
    FAILED = "failed"


class ProjectStatus(str, Enum):
    """Coarse status exposed to project-level consumers."""

    DRAFT = "draft"
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"


# ============================================================================
# Transcript Models
# ============================================================================


class TextPart(BaseModel):
    """Plain text content of a message."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str = Field(..., description="Text content")


class SourceLinkPart(BaseModel):
    """A cited source URL attached to a message."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["source_link", "sourceLink"] = "source_link"
    url: str = Field(..., description="Source URL")


MessagePart = Annotated[Union[TextPart, SourceLinkPart], Field(discriminator="kind")]


class Message(BaseModel):
    """A single transcript message."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole = Field(..., description="Message author")
    parts: list[MessagePart] = Field(default_factory=list, description="Ordered message parts")


class ProjectContext(BaseModel):
    """Optional project information supplied alongside the transcript."""

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = Field(default=None, description="Project title")
    description: Optional[str] = Field(default=None, description="Project description")


# ============================================================================
# Script Models
# ============================================================================


class Scene(BaseModel):
    """One narrated segment of the video."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique scene identifier")
    order: int = Field(..., description="Position of the scene in the video (1-based)")
    narration_text: str = Field(..., min_length=1, description="Exact narration spoken in this scene")
    visual_prompt: Optional[str] = Field(default=None, description="Image generation prompt for this scene")
    target_duration_seconds: float = Field(..., gt=0, description="Planned scene length in seconds")


class VideoScript(BaseModel):
    """Structured script produced by the script planner."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Video title")
    full_script: str = Field(..., description="Complete narration")
    scenes: list[Scene] = Field(..., description="Scenes in ascending order")
    estimated_duration_seconds: float = Field(..., ge=0, description="Planned total length in seconds")

    @model_validator(mode="after")
    def _check_scene_order(self) -> "VideoScript":
        orders = [scene.order for scene in self.scenes]
        if len(set(orders)) != len(orders):
            raise ValueError("scene order values must be unique")
        if orders != sorted(orders):
            raise ValueError("scenes must be in ascending order")
        ids = [scene.id for scene in self.scenes]
        if len(set(ids)) != len(ids):
            raise ValueError("scene ids must be unique")
        return self


class SceneDraft(BaseModel):
    """Scene as returned by the structured-generation capability."""

    id: str = Field(..., description="Unique scene identifier")
    order: int = Field(..., description="Scene order (1-based)")
    narration_text: str = Field(..., description="Exact narration text to be spoken in this scene")
    visual_prompt: Optional[str] = Field(default=None, description="Detailed image prompt for this scene")
    target_duration_seconds: float = Field(..., description="Scene duration in seconds")


class ScriptDraft(BaseModel):
    """Schema the script planner requests from the LLM."""

    title: str = Field(..., description="Compelling video title")
    full_script: str = Field(..., description="Complete video narration")
    scenes: list[SceneDraft] = Field(..., description="Ordered scenes")
    estimated_duration_seconds: Optional[float] = Field(default=None, description="Total duration in seconds")


# ============================================================================
# Asset Models
# ============================================================================


class AssetRef(BaseModel):
    """Opaque handle to a stored blob. The blob belongs to the storage collaborator."""

    model_config = ConfigDict(frozen=True)

    ref_id: str = Field(..., min_length=1, description="Storage identifier")
    url: str = Field(..., description="Retrieval URL")
    mime_type: Optional[str] = Field(default=None, description="MIME type of the stored blob")


class GeneratedAsset(BaseModel):
    """A generated media asset."""

    model_config = ConfigDict(frozen=True)

    kind: AssetKind = Field(..., description="Asset kind")
    asset_ref: AssetRef = Field(..., description="Storage handle")
    scene_id: Optional[str] = Field(default=None, description="Scene this asset belongs to (not set for music)")
    measured_duration_seconds: Optional[float] = Field(
        default=None, gt=0, description="Actual rendered length (audio and music)"
    )

    @model_validator(mode="after")
    def _check_scene_binding(self) -> "GeneratedAsset":
        if self.kind in (AssetKind.AUDIO, AssetKind.IMAGE) and not self.scene_id:
            raise ValueError(f"{self.kind.value} assets must reference a scene")
        return self


class MediaPayload(BaseModel):
    """Raw media returned by a generation capability, before it is stored."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., description="Encoded media bytes")
    mime_type: str = Field(..., description="MIME type of data")
    duration_seconds: Optional[float] = Field(default=None, gt=0, description="Measured length for audio")


class AssetBundle(BaseModel):
    """All successfully generated assets of a run, keyed by scene id."""

    model_config = ConfigDict(frozen=True)

    audio: dict[str, GeneratedAsset] = Field(default_factory=dict, description="Narration audio per scene")
    images: dict[str, GeneratedAsset] = Field(default_factory=dict, description="Scene image per scene")
    music: Optional[GeneratedAsset] = Field(default=None, description="Background music")


class GenerationProgress(BaseModel):
    """Progress of the asset generation stage."""

    model_config = ConfigDict(frozen=True)

    completed: int = Field(..., ge=0, description="Settled requests")
    total: int = Field(..., ge=0, description="Total requests")
    current_step: Optional[str] = Field(default=None, description="Request that just settled")

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 1.0


# ============================================================================
# Track Models
# ============================================================================


class NarrationMeta(BaseModel):
    """Metadata of a narration audio track."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["narration"] = "narration"
    scene_order: int
    narration_text: str


class VisualMeta(BaseModel):
    """Metadata of a scene image track."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["visual"] = "visual"
    scene_order: int
    visual_prompt: Optional[str] = None


class TextOverlayMeta(BaseModel):
    """Caption content of a text overlay track."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text_overlay"] = "text_overlay"
    scene_order: int
    text: str
    style: str = "subtitles"


class MusicMeta(BaseModel):
    """Metadata of the background music track."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["music"] = "music"
    is_background: bool = True
    source_duration_seconds: Optional[float] = None
    fade_out_seconds: float = 0.0


TrackMetadata = Annotated[
    Union[NarrationMeta, VisualMeta, TextOverlayMeta, MusicMeta],
    Field(discriminator="kind"),
]

MUSIC_SCENE_ID = "music"


class AlignedTrack(BaseModel):
    """A single timed media strand with absolute start and end times."""

    model_config = ConfigDict(frozen=True)

    scene_id: str = Field(..., description="Owning scene (or 'music' for background music)")
    asset_ref: Optional[AssetRef] = Field(default=None, description="Media handle (none for text overlays)")
    track_type: TrackType = Field(..., description="Track type")
    start_time: float = Field(..., ge=0, description="Start time in seconds")
    end_time: float = Field(..., description="End time in seconds")
    volume: float = Field(default=1.0, ge=0.0, le=1.0, description="Playback volume")
    order: int = Field(..., ge=0, description="Emission order")
    metadata: TrackMetadata = Field(..., description="Typed metadata for the track type")

    @model_validator(mode="after")
    def _check_interval(self) -> "AlignedTrack":
        if self.end_time <= self.start_time:
            raise ValueError(f"end_time ({self.end_time}) must be after start_time ({self.start_time})")
        return self

    @property
    def asset_id(self) -> str:
        """Identifier the renderer uses to look up the track's media."""
        if self.asset_ref is not None:
            return self.asset_ref.ref_id
        return f"text-{self.scene_id}"

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class TrackAlignmentResult(BaseModel):
    """Output of the track aligner."""

    model_config = ConfigDict(frozen=True)

    tracks: list[AlignedTrack] = Field(default_factory=list, description="Aligned tracks in emission order")
    total_duration_seconds: float = Field(..., ge=0, description="Latest end time over all tracks")
    synchronized: bool = Field(default=True, description="Whether all audio/video pairs are in sync")
    issues: list[str] = Field(default_factory=list, description="Synchronization issues found")


# ============================================================================
# Composition Models
# ============================================================================


class CompositionTrack(BaseModel):
    """A track as seen by the renderer."""

    model_config = ConfigDict(frozen=True)

    track_type: TrackType
    asset_id: str
    url: Optional[str] = None
    start_time: float
    end_time: float
    volume: float = 1.0
    metadata: Optional[TrackMetadata] = None


class SceneComposition(BaseModel):
    """A scene expressed in frame units."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Scene identifier")
    from_frame: int = Field(..., description="First frame of the scene")
    duration_in_frames: int = Field(..., description="Scene length in frames")
    tracks: list[CompositionTrack] = Field(default_factory=list, description="Tracks rendered in this scene")


class TransitionSpec(BaseModel):
    """Transition between two temporally adjacent scenes."""

    model_config = ConfigDict(frozen=True)

    kind: TransitionKind = Field(default=TransitionKind.FADE, description="Transition kind")
    duration_frames: int = Field(..., description="Transition length in frames")
    from_scene: str = Field(..., description="Outgoing scene id")
    to_scene: str = Field(..., description="Incoming scene id")


class EffectSpec(BaseModel):
    """Renderer effect, optionally scoped to one scene."""

    model_config = ConfigDict(frozen=True)

    kind: EffectKind
    value: float
    scene_id: Optional[str] = None


class CompositionConfig(BaseModel):
    """Frame-unit description of the whole video, consumed by the renderer."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Composition identifier")
    fps: int = Field(..., description="Frames per second")
    width: int = Field(..., description="Width in pixels")
    height: int = Field(..., description="Height in pixels")
    duration_in_frames: int = Field(..., description="Total length in frames")
    scenes: list[SceneComposition] = Field(default_factory=list, description="Scenes ordered by from_frame")
    transitions: list[TransitionSpec] = Field(default_factory=list, description="Scene transitions")
    effects: list[EffectSpec] = Field(default_factory=list, description="Renderer effects")


# ============================================================================
# Pipeline State & Result
# ============================================================================


_COARSE_STATUS = {
    PipelineStage.DRAFT: ProjectStatus.DRAFT,
    PipelineStage.PLANNING: ProjectStatus.GENERATING,
    PipelineStage.GENERATING: ProjectStatus.GENERATING,
    PipelineStage.ALIGNING: ProjectStatus.GENERATING,
    PipelineStage.ASSEMBLING: ProjectStatus.GENERATING,
    PipelineStage.READY: ProjectStatus.READY,
    PipelineStage.FAILED: ProjectStatus.FAILED,
}


class PipelineState(BaseModel):
    """
    Immutable status value threaded through a pipeline run.

    Each transition returns a new state; nothing is updated in place.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(..., description="Run identifier")
    stage: PipelineStage = Field(default=PipelineStage.DRAFT, description="Current stage")
    failed_stage: Optional[PipelineStage] = Field(default=None, description="Stage that failed")
    error: Optional[str] = Field(default=None, description="Failure message")
    history: list[PipelineStage] = Field(default_factory=list, description="Stages entered so far")

    @property
    def coarse_status(self) -> ProjectStatus:
        return _COARSE_STATUS[self.stage]

    @property
    def is_terminal(self) -> bool:
        return self.stage in (PipelineStage.READY, PipelineStage.FAILED)

    def advance(self, stage: PipelineStage) -> "PipelineState":
        """Return a new state positioned at ``stage``."""
        if self.is_terminal:
            raise ValueError(f"Run {self.run_id} already finished in stage {self.stage.value}")
        return self.model_copy(update={"stage": stage, "history": [*self.history, stage]})

    def fail(self, error: str) -> "PipelineState":
        """Return a failed state remembering the stage that failed."""
        return self.model_copy(
            update={
                "stage": PipelineStage.FAILED,
                "failed_stage": self.stage,
                "error": error,
                "history": [*self.history, PipelineStage.FAILED],
            }
        )


class PipelineResult(BaseModel):
    """Everything a successful run produces."""

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(..., description="Run identifier")
    script: VideoScript
    assets: AssetBundle
    tracks: list[AlignedTrack]
    total_duration_seconds: float
    composition: CompositionConfig
    renderer_code: Optional[str] = Field(default=None, description="Renderer component source, if requested")
    state: PipelineState
    used_fallback_composition: bool = Field(
        default=False, description="Whether the assembled composition was replaced by the minimal fallback"
    )


# ============================================================================
# API Request/Response Models
# ============================================================================


class GenerateOverviewRequest(BaseModel):
    """Request to generate a video overview."""

    messages: list[Message] = Field(..., min_length=1, description="Conversation transcript")
    project_context: Optional[ProjectContext] = Field(default=None, description="Optional project context")
    include_music: bool = Field(default=False, description="Request a background music track")
    generate_renderer_code: bool = Field(default=False, description="Also produce renderer component code")
    fps: Optional[int] = Field(default=None, gt=0, le=120, description="Override composition frame rate")


class GenerateOverviewResponse(BaseModel):
    """Response from overview generation."""

    run_id: str = Field(..., description="Run identifier")
    title: str = Field(..., description="Video title")
    scene_count: int = Field(..., description="Number of scenes")
    track_count: int = Field(..., description="Number of aligned tracks")
    total_duration_seconds: float = Field(..., description="Total duration in seconds")
    duration_in_frames: int = Field(..., description="Composition length in frames")
    used_fallback_composition: bool = Field(default=False, description="Fallback composition was used")
    status: ProjectStatus = Field(default=ProjectStatus.READY, description="Run status")


class UpdateCompositionRequest(BaseModel):
    """Edited composition submitted by a client (validated before storing)."""

    config: dict = Field(..., description="Composition configuration")

    @field_validator("config")
    @classmethod
    def _not_empty(cls, value: dict) -> dict:
        if not value:
            raise ValueError("config is required")
        return value


class RunStatusResponse(BaseModel):
    """Status of a run, including runs that failed before producing a result."""

    run_id: str = Field(..., description="Run identifier")
    status: ProjectStatus = Field(..., description="Coarse run status")
    stage: PipelineStage = Field(..., description="Current or final stage")
    failed_stage: Optional[PipelineStage] = Field(default=None, description="Stage that failed")
    error: Optional[str] = Field(default=None, description="Failure message")
    history: list[PipelineStage] = Field(default_factory=list, description="Stages entered, in order")

    @classmethod
    def from_state(cls, state: PipelineState) -> "RunStatusResponse":
        return cls(
            run_id=state.run_id,
            status=state.coarse_status,
            stage=state.stage,
            failed_stage=state.failed_stage,
            error=state.error,
            history=state.history,
        )
