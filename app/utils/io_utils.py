"""I/O utility functions for file and directory operations."""

import os
import tempfile
from pathlib import Path


def write_text_atomic(path: Path, content: str) -> Path:
    """
    Write text through a temporary sibling file and rename it into place.

    Readers never observe a half-written file, and concurrent writers to the
    same path each use their own temporary file; the last rename wins.

    Args:
        path: Destination path.
        content: Text to write.

    Returns:
        The destination path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    ) as f:
        f.write(content)
        tmp_path = Path(f.name)
    try:
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
    return path
