"""Tests for the video overview pipeline, end to end with offline providers."""

import json
import threading
from unittest.mock import MagicMock, patch

import pytest

from app.core.exceptions import (
    AssetGenerationError,
    CompositionValidationError,
    PipelineCancelledError,
    PipelineError,
    ScriptGenerationError,
)
from app.core.logging_config import get_logger
from app.models.schemas import (
    CompositionConfig,
    Message,
    MessageRole,
    PipelineStage,
    PipelineState,
    ProjectContext,
    SceneComposition,
    SceneDraft,
    ScriptDraft,
    TextPart,
    TrackType,
)
from app.pipelines.video_overview_pipeline import VideoOverviewPipeline
from app.services.composition_validator import validate_composition
from app.services.script_planner import ScriptPlanner
from app.storage.repository import RunRepository
from app.utils.text_utils import estimate_spoken_duration

NARRATIONS = [
    "Solar panels turn sunlight into electricity using photovoltaic cells made of silicon.",
    "Inverters convert the direct current into alternating current for your home.",
]


@pytest.fixture
def messages():
    return [
        Message(role=MessageRole.USER, parts=[TextPart(value="Explain how rooftop solar works.")]),
        Message(role=MessageRole.ASSISTANT, parts=[TextPart(value=" ".join(NARRATIONS))]),
    ]


@pytest.fixture
def llm_client():
    client = MagicMock()
    client.generate_structured.return_value = ScriptDraft(
        title="Rooftop Solar",
        full_script=" ".join(NARRATIONS),
        scenes=[
            SceneDraft(
                id=f"scene-{i}",
                order=i,
                narration_text=text,
                visual_prompt=f"Rooftop solar illustration {i}",
                target_duration_seconds=6.0,
            )
            for i, text in enumerate(NARRATIONS, 1)
        ],
        estimated_duration_seconds=12.0,
    )
    return client


@pytest.fixture
def pipeline(settings, logger, llm_client):
    """Pipeline with a mocked planner LLM and offline stub media providers."""
    return VideoOverviewPipeline(settings, logger, script_planner=ScriptPlanner(settings, logger, llm_client=llm_client))


def test_successful_run(pipeline, messages):
    result = pipeline.run(messages, ProjectContext(title="Solar"))

    assert result.state.stage == PipelineStage.READY
    assert result.state.history == [
        PipelineStage.PLANNING,
        PipelineStage.GENERATING,
        PipelineStage.ALIGNING,
        PipelineStage.ASSEMBLING,
        PipelineStage.READY,
    ]
    assert result.script.title == "Rooftop Solar"
    assert set(result.assets.audio) == {"scene-1", "scene-2"}
    assert set(result.assets.images) == {"scene-1", "scene-2"}
    assert result.used_fallback_composition is False
    assert result.renderer_code is None
    validate_composition(result.composition)


def test_timeline_follows_measured_narration(pipeline, messages):
    result = pipeline.run(messages)

    first = estimate_spoken_duration(NARRATIONS[0])
    second = estimate_spoken_duration(NARRATIONS[1])
    audio = [t for t in result.tracks if t.track_type == TrackType.AUDIO]
    assert audio[0].end_time == pytest.approx(first, abs=0.01)
    assert audio[1].start_time == pytest.approx(first, abs=0.01)
    assert result.total_duration_seconds == pytest.approx(first + second, abs=0.02)
    assert result.total_duration_seconds == max(t.end_time for t in result.tracks)
    assert [s.id for s in result.composition.scenes] == ["scene-1", "scene-2"]
    assert len(result.composition.transitions) == 1


def test_unavailable_music_does_not_fail_run(pipeline, messages):
    result = pipeline.run(messages, include_music=True)

    assert result.assets.music is None
    assert not [t for t in result.tracks if t.track_type == TrackType.MUSIC]
    assert result.state.stage == PipelineStage.READY


def test_custom_fps(pipeline, messages):
    result = pipeline.run(messages, fps=24)

    assert result.composition.fps == 24
    assert result.composition.transitions[0].duration_frames == 12


def test_renderer_code_requested(pipeline, messages):
    result = pipeline.run(messages, generate_renderer_code=True)

    assert "StudioVideoComposition" in result.renderer_code
    assert result.renderer_code.count("<Sequence ") == 2


def test_planning_failure_is_wrapped(pipeline, messages, llm_client):
    llm_client.generate_structured.side_effect = RuntimeError("OpenAI unavailable")

    with pytest.raises(PipelineError) as exc_info:
        pipeline.run(messages)

    error = exc_info.value
    assert error.stage == "planning"
    assert isinstance(error.__cause__, ScriptGenerationError)
    assert error.state.stage == PipelineStage.FAILED
    assert error.state.failed_stage == PipelineStage.PLANNING
    assert str(error).startswith("[planning]")


def test_asset_failure_is_wrapped(pipeline, messages):
    pipeline.asset_generator.tts_client = MagicMock()
    pipeline.asset_generator.tts_client.synthesize.side_effect = RuntimeError("TTS down")

    with pytest.raises(PipelineError) as exc_info:
        pipeline.run(messages)

    assert exc_info.value.stage == "generating"
    assert isinstance(exc_info.value.__cause__, AssetGenerationError)
    assert exc_info.value.state.failed_stage == PipelineStage.GENERATING


def test_cancelled_run(pipeline, messages, llm_client):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(PipelineError) as exc_info:
        pipeline.run(messages, cancel_event=cancel)

    assert isinstance(exc_info.value.__cause__, PipelineCancelledError)
    llm_client.generate_structured.assert_not_called()


def _broken_assembler():
    assembler = MagicMock()
    assembler.assemble.return_value = CompositionConfig(
        id="studio-video",
        fps=30,
        width=1920,
        height=1080,
        duration_in_frames=0,
        scenes=[SceneComposition(id="scene-1", from_frame=0, duration_in_frames=0)],
    )
    return assembler


def test_invalid_composition_falls_back(pipeline, messages):
    pipeline.composition_assembler = _broken_assembler()

    result = pipeline.run(messages)

    assert result.used_fallback_composition is True
    assert [s.id for s in result.composition.scenes] == ["main"]
    assert len(result.composition.scenes[0].tracks) == len(result.tracks)
    assert result.state.stage == PipelineStage.READY


def test_invalid_composition_is_fatal_without_fallback(pipeline, messages, settings):
    settings.composition_fallback_enabled = False
    pipeline.composition_assembler = _broken_assembler()

    with pytest.raises(PipelineError) as exc_info:
        pipeline.run(messages)

    assert exc_info.value.stage == "assembling"
    assert isinstance(exc_info.value.__cause__, CompositionValidationError)


def test_cli_writes_result(pipeline, messages, tmp_path):
    from app.pipelines.run_video_overview import main

    transcript = tmp_path / "transcript.json"
    transcript.write_text(
        json.dumps(
            {
                "messages": [
                    {"role": "user", "content": "Explain how rooftop solar works."},
                    {"role": "assistant", "parts": [{"kind": "text", "value": NARRATIONS[0]}]},
                ],
                "project_context": {"title": "Solar"},
            }
        )
    )
    output = tmp_path / "result.json"
    result = pipeline.run(messages)

    with patch("app.pipelines.run_video_overview.VideoOverviewPipeline") as mock_pipeline_class:
        mock_pipeline_class.return_value.run.return_value = result
        exit_code = main(["--transcript", str(transcript), "--include-music", "--output", str(output)])

    assert exit_code == 0
    assert json.loads(output.read_text())["run_id"] == result.run_id
    call = mock_pipeline_class.return_value.run.call_args
    sent_messages = call.args[0]
    assert sent_messages[0].parts[0].value == "Explain how rooftop solar works."
    assert call.kwargs["project_context"].title == "Solar"
    assert call.kwargs["include_music"] is True


def test_cli_returns_one_on_failure(tmp_path):
    from app.pipelines.run_video_overview import main

    transcript = tmp_path / "transcript.json"
    transcript.write_text(json.dumps([{"role": "user", "content": "Hi"}]))

    with patch("app.pipelines.run_video_overview.VideoOverviewPipeline") as mock_pipeline_class:
        mock_pipeline_class.return_value.run.side_effect = PipelineError("planning", "boom")
        assert main(["--transcript", str(transcript)]) == 1


def test_cli_rejects_invalid_transcript(tmp_path):
    from app.pipelines.run_video_overview import main

    transcript = tmp_path / "transcript.json"
    transcript.write_text("not json")

    assert main(["--transcript", str(transcript)]) == 1


@pytest.mark.parametrize("content", ['"hello"', "42", '["not a message"]'])
def test_cli_rejects_transcript_of_wrong_shape(tmp_path, content):
    from app.pipelines.run_video_overview import main

    transcript = tmp_path / "transcript.json"
    transcript.write_text(content)

    with patch("app.pipelines.run_video_overview.VideoOverviewPipeline") as mock_pipeline_class:
        assert main(["--transcript", str(transcript)]) == 1
        mock_pipeline_class.return_value.run.assert_not_called()


def test_cli_saves_failed_run_state(tmp_path, settings):
    from app.pipelines.run_video_overview import main

    transcript = tmp_path / "transcript.json"
    transcript.write_text(json.dumps([{"role": "user", "content": "Hi"}]))
    failed = PipelineState(run_id="run_cli_failed").advance(PipelineStage.PLANNING).fail("boom")

    with (
        patch("app.pipelines.run_video_overview.settings", settings),
        patch("app.pipelines.run_video_overview.VideoOverviewPipeline") as mock_pipeline_class,
    ):
        mock_pipeline_class.return_value.run.side_effect = PipelineError("planning", "boom", state=failed)
        assert main(["--transcript", str(transcript), "--save"]) == 1

    stored = RunRepository(settings, get_logger(__name__)).load_state("run_cli_failed")
    assert stored.failed_stage == PipelineStage.PLANNING
