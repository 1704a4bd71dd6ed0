"""Video overview pipeline - transcript → script → assets → tracks → composition."""

import threading
import uuid
from typing import Any, Callable, Optional

from app.core.config import Settings
from app.core.exceptions import CompositionValidationError, PipelineCancelledError, PipelineError
from app.models.schemas import (
    GenerationProgress,
    Message,
    PipelineResult,
    PipelineStage,
    PipelineState,
    ProjectContext,
)
from app.services.asset_generator import AssetGenerator
from app.services.composition_assembler import CompositionAssembler
from app.services.composition_validator import build_fallback_composition, validate_composition
from app.services.renderer_code import RendererCodeGenerator
from app.services.script_planner import ScriptPlanner
from app.services.track_aligner import TrackAligner
from app.utils.error_handler import format_error_message, get_failure_suggestion

_STAGE_OPERATIONS = {
    PipelineStage.PLANNING: "Planning video script",
    PipelineStage.GENERATING: "Generating media assets",
    PipelineStage.ALIGNING: "Aligning tracks",
    PipelineStage.ASSEMBLING: "Assembling composition",
}


def new_run_id() -> str:
    return f"run_{uuid.uuid4().hex[:12]}"


class VideoOverviewPipeline:
    """
    Stage-gated orchestration of a video overview run.

    Stages run strictly in order and each consumes only the previous stage's
    output. The run's status is an immutable PipelineState that is replaced,
    never mutated, at every transition. Cancellation is honoured up to the
    start of alignment; from there on the run is committed.
    """

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        script_planner: Optional[ScriptPlanner] = None,
        asset_generator: Optional[AssetGenerator] = None,
        track_aligner: Optional[TrackAligner] = None,
        composition_assembler: Optional[CompositionAssembler] = None,
        renderer_code_generator: Optional[RendererCodeGenerator] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Application settings
            logger: Logger instance
            script_planner: Script planning stage
            asset_generator: Asset generation stage
            track_aligner: Track alignment stage
            composition_assembler: Composition assembly stage
            renderer_code_generator: Optional renderer code step
        """
        self.settings = settings
        self.logger = logger
        self.script_planner = script_planner or ScriptPlanner(settings, logger)
        self.asset_generator = asset_generator or AssetGenerator(settings, logger)
        self.track_aligner = track_aligner or TrackAligner(settings, logger)
        self.composition_assembler = composition_assembler or CompositionAssembler(settings, logger)
        self.renderer_code_generator = renderer_code_generator or RendererCodeGenerator(settings, logger)

    def run(
        self,
        messages: list[Message],
        project_context: Optional[ProjectContext] = None,
        include_music: bool = False,
        generate_renderer_code: bool = False,
        fps: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[Callable[[GenerationProgress], None]] = None,
        run_id: Optional[str] = None,
    ) -> PipelineResult:
        """
        Run the whole pipeline.

        Args:
            messages: Conversation transcript
            project_context: Optional project title/description
            include_music: Request a background music track
            generate_renderer_code: Also produce renderer component code
            fps: Composition frame rate (defaults to settings.composition_fps)
            cancel_event: Abandons the run when set before alignment starts
            on_progress: Asset generation progress callback
            run_id: Run identifier (generated when omitted)

        Returns:
            Pipeline result in the ready state

        Raises:
            PipelineError: If any stage fails fatally; the original error is chained as __cause__
        """
        state = PipelineState(run_id=run_id or new_run_id())
        fps = fps or self.settings.composition_fps
        self.logger.info(f"🎬 Starting video overview run {state.run_id} ({len(messages)} messages)")

        try:
            self._check_cancelled(cancel_event, state)
            state = state.advance(PipelineStage.PLANNING)
            self.logger.info("Step 1: Planning script...")
            script = self.script_planner.plan(messages, project_context)

            self._check_cancelled(cancel_event, state)
            state = state.advance(PipelineStage.GENERATING)
            self.logger.info("Step 2: Generating assets...")
            assets = self.asset_generator.generate(
                script, include_music=include_music, cancel_event=cancel_event, on_progress=on_progress
            )

            self._check_cancelled(cancel_event, state)
            state = state.advance(PipelineStage.ALIGNING)
            self.logger.info("Step 3: Aligning tracks...")
            alignment = self.track_aligner.align(script, assets)

            state = state.advance(PipelineStage.ASSEMBLING)
            self.logger.info("Step 4: Assembling composition...")
            composition = self.composition_assembler.assemble(
                alignment.tracks, alignment.total_duration_seconds, fps=fps
            )
            used_fallback = False
            try:
                composition = validate_composition(composition)
            except CompositionValidationError as e:
                if not self.settings.composition_fallback_enabled:
                    raise
                self.logger.warning(format_error_message("Validating composition", e, {"run_id": state.run_id}))
                self.logger.warning("Falling back to single-scene composition")
                composition = build_fallback_composition(
                    alignment.tracks,
                    alignment.total_duration_seconds,
                    fps=fps,
                    width=self.settings.composition_width,
                    height=self.settings.composition_height,
                    composition_id=self.settings.composition_id,
                )
                used_fallback = True
        except Exception as e:
            failed = state.fail(str(e))
            stage = state.stage
            message = format_error_message(
                _STAGE_OPERATIONS.get(stage, "Starting run"),
                e,
                {"run_id": state.run_id, "stage": stage.value},
                get_failure_suggestion(e),
            )
            self.logger.error(message)
            raise PipelineError(stage.value, str(e), state=failed) from e

        renderer_code = None
        if generate_renderer_code:
            self.logger.info("Step 5: Generating renderer code...")
            renderer_code = self.renderer_code_generator.generate(composition)

        state = state.advance(PipelineStage.READY)
        self.logger.info(
            f"✅ Run {state.run_id} ready: {len(script.scenes)} scenes, {len(alignment.tracks)} tracks, "
            f"{alignment.total_duration_seconds:.2f}s ({composition.duration_in_frames} frames)"
        )
        return PipelineResult(
            run_id=state.run_id,
            script=script,
            assets=assets,
            tracks=alignment.tracks,
            total_duration_seconds=alignment.total_duration_seconds,
            composition=composition,
            renderer_code=renderer_code,
            state=state,
            used_fallback_composition=used_fallback,
        )

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], state: PipelineState) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise PipelineCancelledError(f"Run {state.run_id} cancelled during {state.stage.value}")
