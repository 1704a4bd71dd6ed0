"""Extract plannable content from transcript messages."""

from typing import Optional

from app.models.schemas import Message, MessageRole, ProjectContext, TextPart

_PLANNED_ROLES = (MessageRole.USER, MessageRole.ASSISTANT)


def extract_conversation_text(messages: list[Message]) -> str:
    """
    Flatten a transcript into role-prefixed text for script planning.

    Only user and assistant text parts contribute; source links and system
    messages are ignored. Messages without text are skipped.

    Args:
        messages: Transcript messages

    Returns:
        Conversation text, one block per message
    """
    blocks = []
    for message in messages:
        if message.role not in _PLANNED_ROLES:
            continue
        text = " ".join(part.value.strip() for part in message.parts if isinstance(part, TextPart) and part.value.strip())
        if text:
            blocks.append(f"{message.role.value}: {text}")
    return "\n\n".join(blocks)


def format_project_context(project_context: Optional[ProjectContext]) -> str:
    """Render optional project context as prompt lines."""
    if project_context is None:
        return ""
    lines = []
    if project_context.title:
        lines.append(f"Project Title: {project_context.title}")
    if project_context.description:
        lines.append(f"Project Description: {project_context.description}")
    return "\n".join(lines)
