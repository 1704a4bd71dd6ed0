"""Renderer code generator - Remotion component source for a composition."""

from typing import Any, Optional

from app.core.config import Settings
from app.models.schemas import CompositionConfig
from app.services.composition_assembler import render_composition_code
from app.services.llm_client import LLMClient

SYSTEM_PROMPT = "You write production-ready Remotion (React) components in TypeScript."


class RendererCodeGenerator:
    """Produces renderer component code, preferring the LLM and falling back to the template."""

    def __init__(self, settings: Settings, logger: Any, llm_client: Optional[LLMClient] = None):
        self.settings = settings
        self.logger = logger
        self.llm_client = llm_client or LLMClient(settings, logger)

    def generate(self, config: CompositionConfig) -> str:
        """
        Generate component code for a composition.

        Args:
            config: Composition configuration

        Returns:
            TSX source. Never raises for LLM failures.
        """
        if not self.settings.use_llm_for_renderer_code:
            return render_composition_code(config)

        try:
            code = _strip_fences(self.llm_client.generate_text(self._build_prompt(config), system_prompt=SYSTEM_PROMPT))
            if not code:
                raise ValueError("empty component code")
            self.logger.info(f"Generated renderer code with LLM ({len(code)} chars)")
            return code
        except Exception as e:
            self.logger.warning(f"LLM renderer code failed, using template: {e}")
            return render_composition_code(config)

    @staticmethod
    def _build_prompt(config: CompositionConfig) -> str:
        scene_lines = "\n".join(
            f"- Scene {s.id}: frames {s.from_frame} to {s.from_frame + s.duration_in_frames}, {len(s.tracks)} tracks"
            for s in config.scenes
        )
        return f"""Generate a Remotion React component that renders this video composition:

Composition Config:
- FPS: {config.fps}
- Dimensions: {config.width}x{config.height}
- Duration: {config.duration_in_frames} frames
- Scenes: {len(config.scenes)}
- Transitions: {len(config.transitions)}

Scenes:
{scene_lines}

Full config (JSON):
{config.model_dump_json()}

Generate a complete Remotion component that:
1. Uses Sequence components for each scene
2. Handles transitions between scenes
3. Renders video tracks (images), audio tracks, and text overlays
4. Properly synchronizes audio with video
5. Uses AbsoluteFill for layout
6. Imports necessary Remotion components (Sequence, AbsoluteFill, useVideoConfig, etc.)

Return only the React component code, no markdown formatting."""


def _strip_fences(text: str) -> str:
    """Drop a surrounding markdown code fence if the model added one anyway."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.splitlines()[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text
