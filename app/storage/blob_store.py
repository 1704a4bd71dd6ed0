"""Blob storage for generated media."""

import mimetypes
import uuid
from pathlib import Path
from typing import Any, Optional

from app.core.config import Settings
from app.models.schemas import AssetRef

_EXTENSION_OVERRIDES = {
    "audio/mpeg": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "image/png": ".png",
    "image/jpeg": ".jpg",
}


class LocalBlobStore:
    """Stores media bytes on the local filesystem and hands out opaque references."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the blob store.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.base_path = Path(settings.blob_storage_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = settings.public_asset_base_url

    def store(self, data: bytes, mime_type: str, prefix: Optional[str] = None) -> AssetRef:
        """
        Persist a blob.

        Args:
            data: Raw bytes
            mime_type: MIME type of the data
            prefix: Optional filename prefix (e.g. "tts", "image")

        Returns:
            Reference with storage id and retrieval URL
        """
        if not data:
            raise ValueError("Refusing to store an empty blob")

        extension = _EXTENSION_OVERRIDES.get(mime_type) or mimetypes.guess_extension(mime_type) or ".bin"
        ref_id = f"{prefix}-{uuid.uuid4().hex[:16]}" if prefix else uuid.uuid4().hex
        file_path = self.base_path / f"{ref_id}{extension}"
        file_path.write_bytes(data)

        self.logger.debug(f"Stored blob {ref_id} ({mime_type}, {len(data)} bytes)")
        return AssetRef(ref_id=ref_id, url=self._url_for(file_path), mime_type=mime_type)

    def _url_for(self, file_path: Path) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{file_path.name}"
        return file_path.resolve().as_uri()
