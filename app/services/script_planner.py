"""Script Planner service - converts a conversation transcript into a scene-by-scene video script."""

from typing import Any, Optional

from app.core.config import Settings
from app.core.exceptions import ScriptGenerationError
from app.models.schemas import Message, ProjectContext, Scene, ScriptDraft, VideoScript
from app.services.llm_client import LLMClient
from app.utils.chat_context import extract_conversation_text, format_project_context
from app.utils.text_utils import truncate_for_prompt

SYSTEM_PROMPT = (
    "You are a video producer who turns research conversations into short, engaging explainer videos. "
    "You write narration that sounds natural when read aloud and image prompts that a text-to-image "
    "model can render without any text in the picture."
)

PLANNING_INSTRUCTIONS = """Create a structured video script that:
1. Breaks content into logical scenes (typically 5-15 seconds each)
2. Gives each scene clear narration text that flows naturally into the next
3. Gives each scene a detailed image prompt that visually represents its content
4. Numbers scenes with a 1-based "order" and a unique "id" such as "scene-1"
5. Keeps the whole video engaging and informative (aim for 30-120 seconds total)
6. Keeps each scene's narration_text concise enough to match its target_duration_seconds

Return a complete video plan with all scenes properly ordered and timed."""


class ScriptPlanner:
    """Plans a VideoScript from chat messages using strict structured generation."""

    def __init__(self, settings: Settings, logger: Any, llm_client: Optional[LLMClient] = None):
        """
        Initialize the script planner.

        Args:
            settings: Application settings
            logger: Logger instance
            llm_client: Structured-generation client (created from settings if omitted)
        """
        self.settings = settings
        self.logger = logger
        self.llm_client = llm_client or LLMClient(settings, logger)

    def plan(self, messages: list[Message], project_context: Optional[ProjectContext] = None) -> VideoScript:
        """
        Plan a video script from a conversation.

        Args:
            messages: Transcript messages
            project_context: Optional project title/description

        Returns:
            Normalised video script

        Raises:
            ScriptGenerationError: If the transcript is empty, generation fails or the draft is unusable
        """
        conversation_text = extract_conversation_text(messages)
        if not conversation_text.strip():
            raise ScriptGenerationError("Transcript has no user or assistant text to plan from")

        prompt = self._build_prompt(conversation_text, project_context)
        self.logger.info(f"Planning script from {len(messages)} messages ({len(conversation_text)} chars)")

        try:
            draft = self.llm_client.generate_structured(
                prompt,
                ScriptDraft,
                system_prompt=SYSTEM_PROMPT,
                model=self.settings.script_model,
            )
        except Exception as e:
            raise ScriptGenerationError(f"Script generation failed: {e}") from e

        script = self._normalise(draft)
        self.logger.info(
            f"Planned '{script.title}': {len(script.scenes)} scenes, ~{script.estimated_duration_seconds:.1f}s"
        )
        return script

    def _build_prompt(self, conversation_text: str, project_context: Optional[ProjectContext]) -> str:
        parts = [
            "Analyze this conversation and create a comprehensive video script:",
            truncate_for_prompt(conversation_text),
        ]
        context_lines = format_project_context(project_context)
        if context_lines:
            parts.append(context_lines)
        parts.append(PLANNING_INSTRUCTIONS)
        return "\n\n".join(parts)

    def _normalise(self, draft: ScriptDraft) -> VideoScript:
        """
        Turn a schema-valid draft into a VideoScript.

        Scenes are sorted by order, target durations are clamped into the
        configured range and a missing estimate is replaced by the sum of
        scene targets.
        """
        if not draft.scenes:
            raise ScriptGenerationError("Planner returned no scenes")

        drafts = sorted(draft.scenes, key=lambda s: s.order)

        ids = [s.id.strip() for s in drafts]
        if any(not scene_id for scene_id in ids):
            raise ScriptGenerationError("Planner returned a scene without an id")
        if len(set(ids)) != len(ids):
            raise ScriptGenerationError(f"Planner returned duplicate scene ids: {ids}")
        orders = [s.order for s in drafts]
        if len(set(orders)) != len(orders):
            raise ScriptGenerationError(f"Planner returned duplicate scene orders: {orders}")

        low, high = self.settings.min_scene_seconds, self.settings.max_scene_seconds
        scenes = []
        for scene_id, scene_draft in zip(ids, drafts):
            narration = scene_draft.narration_text.strip()
            if not narration:
                raise ScriptGenerationError(f"Scene {scene_id} has empty narration text")

            target = scene_draft.target_duration_seconds
            clamped = min(max(target, low), high)
            if clamped != target:
                self.logger.warning(f"Scene {scene_id}: target duration {target}s clamped to {clamped}s")

            visual_prompt = (scene_draft.visual_prompt or "").strip() or None
            scenes.append(
                Scene(
                    id=scene_id,
                    order=scene_draft.order,
                    narration_text=narration,
                    visual_prompt=visual_prompt,
                    target_duration_seconds=clamped,
                )
            )

        estimate = draft.estimated_duration_seconds
        if estimate is None or estimate <= 0:
            estimate = sum(scene.target_duration_seconds for scene in scenes)

        title = draft.title.strip() or "Video Overview"
        full_script = draft.full_script.strip() or " ".join(scene.narration_text for scene in scenes)

        return VideoScript(
            title=title,
            full_script=full_script,
            scenes=scenes,
            estimated_duration_seconds=estimate,
        )
