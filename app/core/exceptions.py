"""Error taxonomy for the video overview pipeline."""

from typing import Any, Optional


class VideoOverviewError(Exception):
    """Base class for every pipeline error."""


class ScriptGenerationError(VideoOverviewError):
    """Script planning failed. Fatal."""


class AssetGenerationError(VideoOverviewError):
    """A scene's audio or image request failed. Fatal."""

    def __init__(self, message: str, scene_id: Optional[str] = None, asset_kind: Optional[str] = None):
        super().__init__(message)
        self.scene_id = scene_id
        self.asset_kind = asset_kind


class MusicGenerationError(VideoOverviewError):
    """Background music could not be produced. Absorbed by the asset stage."""


class AlignmentError(VideoOverviewError):
    """Aligned tracks violate the audio/video synchronization invariant."""

    def __init__(self, message: str, issues: Optional[list[str]] = None):
        super().__init__(message)
        self.issues = issues or []


class CompositionValidationError(VideoOverviewError):
    """A composition failed structural validation."""

    def __init__(self, message: str, issues: Optional[list[str]] = None):
        super().__init__(message)
        self.issues = issues or []


class PipelineCancelledError(VideoOverviewError):
    """The run was cancelled before alignment started."""


class PipelineError(VideoOverviewError):
    """
    Raised by the pipeline when a fatal error aborts a run.

    The originating exception is chained as ``__cause__``.
    """

    def __init__(self, stage: str, message: str, state: Any = None):
        super().__init__(f"[{stage}] {message}")
        self.stage = stage
        self.message = message
        self.state = state
