"""CLI for the video overview pipeline - transcript file → composition JSON."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

from app.core.config import settings
from app.core.exceptions import PipelineError
from app.core.logging_config import get_logger, setup_logging
from app.models.schemas import GenerationProgress, Message, PipelineResult, ProjectContext
from app.pipelines.video_overview_pipeline import VideoOverviewPipeline, new_run_id
from app.storage.repository import RunRepository
from app.utils.io_utils import write_text_atomic


def load_transcript(path: Path) -> tuple[list[Message], Optional[ProjectContext]]:
    """
    Load a transcript file.

    Accepts either a JSON list of messages or an object with "messages" and an
    optional "project_context". A message may give its text as a plain
    "content" string instead of a "parts" list.

    Args:
        path: Transcript JSON file

    Returns:
        Tuple of (messages, project_context)
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, (list, dict)):
        raise ValueError(f"Transcript must be a JSON list or object, got {type(data).__name__}")
    raw_messages = data if isinstance(data, list) else data.get("messages", [])
    raw_context = None if isinstance(data, list) else data.get("project_context")

    messages = []
    for raw in raw_messages:
        if not isinstance(raw, dict):
            raise ValueError(f"Transcript message must be a JSON object, got {type(raw).__name__}")
        if "parts" not in raw and isinstance(raw.get("content"), str):
            raw = {"role": raw["role"], "parts": [{"kind": "text", "value": raw["content"]}]}
        messages.append(Message.model_validate(raw))

    project_context = ProjectContext.model_validate(raw_context) if raw_context else None
    return messages, project_context


def _log_progress(logger: Any):
    def on_progress(progress: GenerationProgress) -> None:
        logger.info(f"Assets {progress.completed}/{progress.total} ({progress.fraction:.0%}): {progress.current_step}")

    return on_progress


def _print_summary(logger: Any, result: PipelineResult) -> None:
    logger.info("=" * 60)
    logger.info("VIDEO OVERVIEW COMPLETE!")
    logger.info("=" * 60)
    logger.info(f"Run ID: {result.run_id}")
    logger.info(f"Title: {result.script.title}")
    logger.info(f"Scenes: {len(result.script.scenes)}")
    logger.info(f"Tracks: {len(result.tracks)}")
    logger.info(f"Duration: {result.total_duration_seconds:.2f}s ({result.composition.duration_in_frames} frames)")
    if result.used_fallback_composition:
        logger.info("Composition: single-scene fallback")
    logger.info("=" * 60)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entrypoint for the video overview CLI."""
    parser = argparse.ArgumentParser(
        description="Video Overview Pipeline - turn a conversation into a timed video composition",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--transcript",
        type=Path,
        required=True,
        help="JSON transcript: a list of messages or {\"messages\": [...], \"project_context\": {...}}",
    )
    parser.add_argument("--title", type=str, default=None, help="Project title (overrides the transcript file)")
    parser.add_argument(
        "--description", type=str, default=None, help="Project description (overrides the transcript file)"
    )
    parser.add_argument("--include-music", action="store_true", help="Request a background music track")
    parser.add_argument(
        "--generate-renderer-code", action="store_true", help="Also produce Remotion component code"
    )
    parser.add_argument(
        "--fps", type=int, default=None, help=f"Composition frame rate (default: {settings.composition_fps})"
    )
    parser.add_argument(
        "--output", type=Path, default=None, help="Write the full result JSON to this file (default: stdout)"
    )
    parser.add_argument("--save", action="store_true", help="Persist the run in the run repository")

    args = parser.parse_args(argv)

    if args.fps is not None and args.fps <= 0:
        parser.error("--fps must be positive")
    if not args.transcript.exists():
        parser.error(f"Transcript file not found: {args.transcript}")

    run_id = new_run_id()
    setup_logging(log_level=settings.log_level)
    logger = get_logger(__name__, run_id=run_id)

    try:
        messages, project_context = load_transcript(args.transcript)
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"❌ Invalid transcript {args.transcript}: {e}")
        return 1

    if args.title or args.description:
        base = project_context or ProjectContext()
        project_context = ProjectContext(
            title=args.title or base.title,
            description=args.description or base.description,
        )

    logger.info("=" * 60)
    logger.info("Video Overview Pipeline")
    logger.info(f"Transcript: {args.transcript} ({len(messages)} messages)")
    logger.info(f"Music: {args.include_music} | Renderer code: {args.generate_renderer_code}")
    logger.info("=" * 60)

    try:
        pipeline = VideoOverviewPipeline(settings, logger)
        result = pipeline.run(
            messages,
            project_context=project_context,
            include_music=args.include_music,
            generate_renderer_code=args.generate_renderer_code,
            fps=args.fps,
            on_progress=_log_progress(logger),
            run_id=run_id,
        )
    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user")
        return 1
    except PipelineError as e:
        logger.error(f"❌ Pipeline failed in stage {e.stage}")
        if args.save and e.state is not None:
            RunRepository(settings, logger).save_state(e.state)
        return 1

    if args.save:
        RunRepository(settings, logger).save_run(result)

    output = result.model_dump_json(indent=2)
    if args.output:
        write_text_atomic(args.output, output)
        logger.info(f"Result written to: {args.output}")
    else:
        print(output)

    _print_summary(logger, result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
