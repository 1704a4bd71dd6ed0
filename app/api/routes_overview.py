"""FastAPI routes for video overview generation."""

from typing import Any

from fastapi import APIRouter, HTTPException, Response
from pydantic import ValidationError

from app.core.config import Settings
from app.core.exceptions import CompositionValidationError, PipelineError
from app.core.logging_config import get_logger
from app.models.schemas import (
    CompositionConfig,
    GenerateOverviewRequest,
    GenerateOverviewResponse,
    PipelineResult,
    PipelineStage,
    RunStatusResponse,
    UpdateCompositionRequest,
)
from app.pipelines.video_overview_pipeline import VideoOverviewPipeline, new_run_id
from app.services.composition_assembler import CompositionAssembler, merge_composition
from app.services.composition_validator import build_fallback_composition, validate_composition
from app.storage.repository import RunRepository

router = APIRouter(prefix="/overviews", tags=["overviews"])


def get_pipeline(settings: Settings, logger: Any) -> VideoOverviewPipeline:
    """Build the generation pipeline with its default collaborators."""
    return VideoOverviewPipeline(settings, logger)


def get_services(settings: Settings, logger: Any) -> dict:
    """Get the services used to read and edit stored runs."""
    return {
        "assembler": CompositionAssembler(settings, logger),
        "repository": RunRepository(settings, logger),
    }


def _load_or_404(repository: RunRepository, run_id: str) -> PipelineResult:
    result = repository.load_run(run_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return result


@router.post("/generate", response_model=GenerateOverviewResponse)
def generate_overview(request: GenerateOverviewRequest) -> GenerateOverviewResponse:
    """
    Generate a video overview from a conversation and store it.

    Pipeline:
    ScriptPlanner → AssetGenerator → TrackAligner → CompositionAssembler → validation
    """
    from app.core.config import settings

    run_id = new_run_id()
    logger = get_logger(__name__, run_id=run_id)
    logger.info("=" * 60)
    logger.info(f"Starting video overview generation ({len(request.messages)} messages)")
    logger.info("=" * 60)

    services = get_services(settings, logger)
    try:
        result = get_pipeline(settings, logger).run(
            request.messages,
            project_context=request.project_context,
            include_music=request.include_music,
            generate_renderer_code=request.generate_renderer_code,
            fps=request.fps,
            run_id=run_id,
        )
    except PipelineError as e:
        if e.state is not None:
            services["repository"].save_state(e.state)
        raise HTTPException(
            status_code=500,
            detail={"message": f"Video overview generation failed: {e}", "run_id": run_id, "stage": e.stage},
        ) from e

    services["repository"].save_run(result)

    return GenerateOverviewResponse(
        run_id=result.run_id,
        title=result.script.title,
        scene_count=len(result.script.scenes),
        track_count=len(result.tracks),
        total_duration_seconds=result.total_duration_seconds,
        duration_in_frames=result.composition.duration_in_frames,
        used_fallback_composition=result.used_fallback_composition,
        status=result.state.coarse_status,
    )


@router.get("/{run_id}", response_model=PipelineResult)
async def get_overview(run_id: str) -> PipelineResult:
    """Get the full stored result of a run."""
    from app.core.config import settings

    logger = get_logger(__name__, run_id=run_id)
    logger.info(f"Fetching run: {run_id}")
    repository = get_services(settings, logger)["repository"]
    result = repository.load_run(run_id)
    if result is None:
        state = repository.load_state(run_id)
        if state is not None and state.stage == PipelineStage.FAILED:
            raise HTTPException(
                status_code=409,
                detail=f"Run {run_id} failed in stage {state.failed_stage.value}: {state.error}",
            )
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return result


@router.get("/{run_id}/status", response_model=RunStatusResponse)
async def get_status(run_id: str) -> RunStatusResponse:
    """Get the status of a run, including where and why it failed."""
    from app.core.config import settings

    logger = get_logger(__name__, run_id=run_id)
    state = get_services(settings, logger)["repository"].load_state(run_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return RunStatusResponse.from_state(state)


@router.get("/{run_id}/composition", response_model=CompositionConfig)
async def get_composition(run_id: str) -> CompositionConfig:
    """
    Get the composition of a run.

    A stored composition that no longer validates is rebuilt from the stored
    tracks (and, failing that, replaced by the single-scene fallback).
    """
    from app.core.config import settings

    logger = get_logger(__name__, run_id=run_id)
    services = get_services(settings, logger)
    result = _load_or_404(services["repository"], run_id)

    try:
        return validate_composition(result.composition)
    except CompositionValidationError as e:
        logger.warning(f"Stored composition invalid, regenerating from tracks: {e}")

    fps = result.composition.fps if result.composition.fps > 0 else settings.composition_fps
    composition = services["assembler"].assemble(result.tracks, result.total_duration_seconds, fps=fps)
    try:
        return validate_composition(composition)
    except CompositionValidationError:
        return build_fallback_composition(
            result.tracks,
            result.total_duration_seconds,
            fps=fps,
            width=settings.composition_width,
            height=settings.composition_height,
            composition_id=settings.composition_id,
        )


@router.put("/{run_id}/composition", response_model=CompositionConfig)
async def update_composition(run_id: str, request: UpdateCompositionRequest) -> CompositionConfig:
    """Merge and store an edited composition. Invalid edits are rejected with 400."""
    from app.core.config import settings

    logger = get_logger(__name__, run_id=run_id)
    services = get_services(settings, logger)
    result = _load_or_404(services["repository"], run_id)

    try:
        composition = validate_composition(merge_composition(result.composition, request.config))
    except ValidationError as e:
        issues = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise HTTPException(status_code=400, detail={"message": "Invalid composition", "issues": issues}) from e
    except CompositionValidationError as e:
        raise HTTPException(status_code=400, detail={"message": str(e), "issues": e.issues}) from e

    services["repository"].save_composition(run_id, composition)
    logger.info(f"Composition updated: {len(composition.scenes)} scenes, {composition.duration_in_frames} frames")
    return composition


@router.get("/{run_id}/export")
async def export_overview(run_id: str) -> Response:
    """Export a run as a downloadable JSON file."""
    from app.core.config import settings

    logger = get_logger(__name__, run_id=run_id)
    logger.info(f"Exporting run: {run_id}")
    result = _load_or_404(get_services(settings, logger)["repository"], run_id)

    return Response(
        content=result.model_dump_json(indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{run_id}.json"'},
    )
