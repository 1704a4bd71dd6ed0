"""Tests for Script Planner service."""

from unittest.mock import MagicMock

import pytest

from app.core.exceptions import ScriptGenerationError
from app.models.schemas import (
    Message,
    MessageRole,
    ProjectContext,
    SceneDraft,
    ScriptDraft,
    SourceLinkPart,
    TextPart,
)
from app.services.llm_client import LLMResponseError
from app.services.script_planner import ScriptPlanner


@pytest.fixture
def llm_client():
    return MagicMock()


@pytest.fixture
def planner(settings, logger, llm_client):
    """Create ScriptPlanner with a mocked LLM client."""
    return ScriptPlanner(settings, logger, llm_client=llm_client)


@pytest.fixture
def messages():
    return [
        Message(role=MessageRole.SYSTEM, parts=[TextPart(value="You are a research assistant.")]),
        Message(role=MessageRole.USER, parts=[TextPart(value="How do solar panels work?")]),
        Message(
            role=MessageRole.ASSISTANT,
            parts=[
                TextPart(value="Photovoltaic cells turn sunlight into electricity."),
                SourceLinkPart(url="https://example.org/pv"),
            ],
        ),
    ]


def _draft(*scenes, estimate=12.0, title="Solar Power 101"):
    return ScriptDraft(
        title=title,
        full_script="Full narration.",
        scenes=[SceneDraft(**scene) for scene in scenes],
        estimated_duration_seconds=estimate,
    )


def _scene(order, duration=6.0, **overrides):
    scene = {
        "id": f"scene-{order}",
        "order": order,
        "narration_text": f"Narration {order}",
        "visual_prompt": f"Solar panel {order}",
        "target_duration_seconds": duration,
    }
    scene.update(overrides)
    return scene


def test_plan_returns_normalised_script(planner, llm_client, messages):
    llm_client.generate_structured.return_value = _draft(_scene(1, 5.0), _scene(2, 7.0))

    script = planner.plan(messages, ProjectContext(title="Energy", description="Explainer"))

    assert script.title == "Solar Power 101"
    assert [s.id for s in script.scenes] == ["scene-1", "scene-2"]
    assert [s.target_duration_seconds for s in script.scenes] == [5.0, 7.0]
    assert script.estimated_duration_seconds == 12.0


def test_prompt_contains_only_user_and_assistant_text(planner, llm_client, messages):
    llm_client.generate_structured.return_value = _draft(_scene(1))

    planner.plan(messages, ProjectContext(title="Energy"))

    prompt = llm_client.generate_structured.call_args.args[0]
    assert "user: How do solar panels work?" in prompt
    assert "assistant: Photovoltaic cells turn sunlight into electricity." in prompt
    assert "research assistant" not in prompt
    assert "https://example.org/pv" not in prompt
    assert "Project Title: Energy" in prompt
    assert llm_client.generate_structured.call_args.args[1] is ScriptDraft


def test_scenes_sorted_by_order(planner, llm_client, messages):
    llm_client.generate_structured.return_value = _draft(_scene(3), _scene(1), _scene(2))

    script = planner.plan(messages)

    assert [s.order for s in script.scenes] == [1, 2, 3]


def test_target_durations_are_clamped(planner, llm_client, messages):
    llm_client.generate_structured.return_value = _draft(_scene(1, 1.0), _scene(2, 45.0), _scene(3, 8.0))

    script = planner.plan(messages)

    assert [s.target_duration_seconds for s in script.scenes] == [3.0, 20.0, 8.0]


@pytest.mark.parametrize("estimate", [None, 0.0, -4.0])
def test_missing_estimate_uses_sum_of_targets(planner, llm_client, messages, estimate):
    llm_client.generate_structured.return_value = _draft(_scene(1, 5.0), _scene(2, 7.0), estimate=estimate)

    script = planner.plan(messages)

    assert script.estimated_duration_seconds == 12.0


def test_blank_visual_prompt_becomes_none(planner, llm_client, messages):
    llm_client.generate_structured.return_value = _draft(_scene(1, visual_prompt="   "))

    script = planner.plan(messages)

    assert script.scenes[0].visual_prompt is None


def test_empty_transcript_rejected(planner, llm_client):
    only_links = [Message(role=MessageRole.USER, parts=[SourceLinkPart(url="https://example.org")])]

    with pytest.raises(ScriptGenerationError):
        planner.plan(only_links)

    llm_client.generate_structured.assert_not_called()


def test_llm_failure_becomes_script_generation_error(planner, llm_client, messages):
    cause = LLMResponseError("LLM response does not match ScriptDraft")
    llm_client.generate_structured.side_effect = cause

    with pytest.raises(ScriptGenerationError) as exc_info:
        planner.plan(messages)

    assert exc_info.value.__cause__ is cause


@pytest.mark.parametrize(
    "scenes",
    [
        [],
        [_scene(1), _scene(2, id="scene-1")],
        [_scene(1), _scene(1, id="scene-x")],
        [_scene(1, narration_text="  ")],
    ],
    ids=["no-scenes", "duplicate-ids", "duplicate-orders", "empty-narration"],
)
def test_unusable_drafts_rejected(planner, llm_client, messages, scenes):
    llm_client.generate_structured.return_value = _draft(*scenes)

    with pytest.raises(ScriptGenerationError):
        planner.plan(messages)
