"""Error Handler - formats pipeline failures for logs and API responses."""

from typing import Optional

from app.core.exceptions import (
    AlignmentError,
    AssetGenerationError,
    CompositionValidationError,
    ScriptGenerationError,
)


def format_error_message(
    operation: str,
    error: Exception,
    context: Optional[dict] = None,
    suggestion: Optional[str] = None,
) -> str:
    """
    Format a readable error message.

    Args:
        operation: What operation was being performed (e.g., "Generating narration audio")
        error: The exception that occurred
        context: Additional context (e.g., {"scene_id": "s1", "run_id": "run_456"})
        suggestion: Optional suggestion for how to fix the issue

    Returns:
        Formatted error message
    """
    context_str = ""
    if context:
        context_str = f" ({', '.join(f'{k}={v}' for k, v in context.items())})"

    message = f"❌ {operation} failed{context_str}\n"
    message += f"   Error: {type(error).__name__}: {error}"

    issues = getattr(error, "issues", None)
    if issues:
        message += "".join(f"\n   - {issue}" for issue in issues)

    if suggestion:
        message += f"\n   💡 Suggestion: {suggestion}"

    return message


def get_failure_suggestion(error: Exception) -> Optional[str]:
    """
    Suggest a follow-up for a fatal pipeline error.

    Args:
        error: The exception

    Returns:
        Suggestion string or None
    """
    error_msg = str(error).lower()

    if "api key" in error_msg or "not configured" in error_msg:
        return "Check the collaborator credentials in your .env file."
    if "rate limit" in error_msg or "429" in error_msg:
        return "Rate limit exceeded. Lower MAX_PARALLEL_API_CALLS or wait before retrying."
    if "timeout" in error_msg or "network" in error_msg:
        return "Network error talking to a collaborator. Retry the run."

    if isinstance(error, ScriptGenerationError):
        return "The planner returned an unusable script. Retry, or add more detail to the conversation."
    if isinstance(error, AssetGenerationError):
        if error.asset_kind == "image":
            return "Set ALLOW_MISSING_IMAGES=true to render scenes without a failed image."
        return "Narration audio is required for every scene. Retry the run."
    if isinstance(error, AlignmentError):
        return "Aligned tracks drifted apart. This indicates a bug in track alignment."
    if isinstance(error, CompositionValidationError):
        return "Enable COMPOSITION_FALLBACK_ENABLED to fall back to a single-scene composition."

    return None
