"""Text utility functions for narration processing."""

# This module is part of app.utils package


def estimate_spoken_duration(text: str, words_per_minute: int = 150) -> float:
    """
    Estimate the spoken duration of text in seconds.

    Args:
        text: Text to estimate duration for.
        words_per_minute: Average speaking rate (default 150 WPM).

    Returns:
        Estimated duration in seconds.
    """
    word_count = len(text.split())
    return word_count / words_per_minute * 60


def truncate_for_prompt(text: str, max_chars: int = 24000) -> str:
    """
    Truncate long conversation text before sending it to the planner.

    Keeps the tail of the conversation, which carries the latest answers,
    and cuts at a paragraph boundary when one is close.

    Args:
        text: Conversation text.
        max_chars: Character budget.

    Returns:
        Text of at most max_chars characters.
    """
    if len(text) <= max_chars:
        return text
    tail = text[-max_chars:]
    boundary = tail.find("\n\n")
    if 0 <= boundary < max_chars * 0.3:
        tail = tail[boundary + 2 :]
    return tail
