"""Tests for transcript extraction helpers."""

from app.models.schemas import Message, MessageRole, ProjectContext, SourceLinkPart, TextPart
from app.utils.chat_context import extract_conversation_text, format_project_context


def _msg(role, *parts):
    return Message(role=role, parts=list(parts))


def test_conversation_text_is_role_prefixed():
    messages = [
        _msg(MessageRole.USER, TextPart(value="What is RAG?")),
        _msg(MessageRole.ASSISTANT, TextPart(value="Retrieval"), TextPart(value="augmented generation.")),
    ]

    assert extract_conversation_text(messages) == "user: What is RAG?\n\nassistant: Retrieval augmented generation."


def test_system_messages_and_links_are_ignored():
    messages = [
        _msg(MessageRole.SYSTEM, TextPart(value="Be concise.")),
        _msg(MessageRole.USER, SourceLinkPart(url="https://example.org")),
        _msg(MessageRole.ASSISTANT, TextPart(value="Answer"), SourceLinkPart(url="https://example.org/a")),
    ]

    assert extract_conversation_text(messages) == "assistant: Answer"


def test_blank_text_is_skipped():
    messages = [_msg(MessageRole.USER, TextPart(value="   ")), _msg(MessageRole.ASSISTANT)]

    assert extract_conversation_text(messages) == ""



def test_format_project_context():
    assert format_project_context(None) == ""
    assert format_project_context(ProjectContext(title="T")) == "Project Title: T"
    assert format_project_context(ProjectContext(title="T", description="D")) == (
        "Project Title: T\nProject Description: D"
    )
