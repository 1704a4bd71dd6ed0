"""Frame/second conversion helpers for compositions."""

import math

DEFAULT_FPS = 30

# Products are rounded to this many decimals before ceil/floor so that float
# noise (5.2 * 30 == 156.00000000000003) never adds or drops a frame.
_FRAME_PRECISION = 6


def _scaled(seconds: float, fps: int) -> float:
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")
    return round(seconds * fps, _FRAME_PRECISION)


def seconds_to_frames(seconds: float, fps: int = DEFAULT_FPS) -> int:
    """
    Convert a span in seconds to frames, rounding up.

    Spans round up so a track is never truncated by rounding.
    """
    return math.ceil(_scaled(seconds, fps))


def seconds_to_frame_offset(seconds: float, fps: int = DEFAULT_FPS) -> int:
    """Convert a start time in seconds to a frame offset, rounding down."""
    return math.floor(_scaled(seconds, fps))


def frames_to_seconds(frames: int, fps: int = DEFAULT_FPS) -> float:
    """Convert frames back to seconds."""
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")
    return frames / fps


def transition_frames(seconds: float, fps: int = DEFAULT_FPS) -> int:
    """Length of a transition in frames, rounded half up."""
    return int(math.floor(_scaled(seconds, fps) + 0.5))
