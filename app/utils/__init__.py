"""Utility functions for the video overview pipeline."""

from app.utils.io_utils import write_text_atomic
from app.utils.text_utils import estimate_spoken_duration, truncate_for_prompt
from app.utils.timing import frames_to_seconds, seconds_to_frame_offset, seconds_to_frames

__all__ = [
    "write_text_atomic",
    "estimate_spoken_duration",
    "truncate_for_prompt",
    "frames_to_seconds",
    "seconds_to_frame_offset",
    "seconds_to_frames",
]
