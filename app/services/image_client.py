"""Image client - scene images via a Hugging Face Inference Endpoint."""

import base64
import io
import time
from typing import Any, Optional

import requests
from PIL import Image

from app.core.config import Settings
from app.models.schemas import MediaPayload
from app.utils.rate_limiter import get_limiter

# Output sizes per aspect ratio, in pixels
ASPECT_RATIO_SIZES = {
    "1:1": (1024, 1024),
    "3:4": (768, 1024),
    "4:3": (1024, 768),
    "9:16": (720, 1280),
    "16:9": (1280, 720),
}

# Seconds to wait for a cold endpoint before the single retry
_COLD_START_WAIT = 15


class ImageClient:
    """Generates scene images, falling back to a flat placeholder when no endpoint is configured."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the image client.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.endpoint_url = settings.hf_endpoint_url
        self.endpoint_token = settings.hf_endpoint_token
        self.provider = "hf_endpoint" if self.endpoint_url else "stub"

    def generate_image(self, prompt: str, aspect_ratio: Optional[str] = None) -> MediaPayload:
        """
        Generate an image from a prompt.

        Args:
            prompt: Image generation prompt
            aspect_ratio: One of ASPECT_RATIO_SIZES (defaults to settings.image_aspect_ratio)

        Returns:
            PNG bytes

        Raises:
            ValueError: If the prompt is empty, the aspect ratio unknown or the token missing
            Exception: If the endpoint fails or returns no image
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt cannot be empty")

        aspect_ratio = aspect_ratio or self.settings.image_aspect_ratio
        if aspect_ratio not in ASPECT_RATIO_SIZES:
            raise ValueError(f"Unsupported aspect ratio: {aspect_ratio}")
        width, height = ASPECT_RATIO_SIZES[aspect_ratio]

        prompt_preview = prompt[:120] + "..." if len(prompt) > 120 else prompt
        self.logger.debug(f"Generating {width}x{height} image via {self.provider}: {prompt_preview}")

        if self.provider == "stub":
            image = self._generate_stub(prompt, width, height)
        else:
            image = self._generate_hf(prompt, width, height)

        buffer = io.BytesIO()
        image.convert("RGB").save(buffer, format="PNG")
        return MediaPayload(data=buffer.getvalue(), mime_type="image/png")

    def _generate_hf(self, prompt: str, width: int, height: int) -> Image.Image:
        """Call the HF endpoint, retrying once if it is still loading."""
        if not self.endpoint_token:
            raise ValueError("HF_ENDPOINT_TOKEN not configured. Set HF_ENDPOINT_TOKEN in .env file.")

        headers = {
            "Authorization": f"Bearer {self.endpoint_token}",
            "Content-Type": "application/json",
        }
        payload = {"inputs": prompt, "parameters": {"width": width, "height": height}}

        if self.settings.enable_rate_limiting:
            get_limiter("image", max_calls=self.settings.image_rate_limit).wait_if_needed("image_generation")

        response = requests.post(
            self.endpoint_url, json=payload, headers=headers, timeout=self.settings.request_timeout_seconds
        )
        if response.status_code == 503:
            self.logger.warning(f"Endpoint loading, waiting {_COLD_START_WAIT} seconds...")
            time.sleep(_COLD_START_WAIT)
            response = requests.post(
                self.endpoint_url, json=payload, headers=headers, timeout=self.settings.request_timeout_seconds
            )

        if response.status_code != 200:
            raise RuntimeError(f"HF Endpoint error: status {response.status_code} - {response.text[:500]}")

        content_type = response.headers.get("Content-Type", "").lower()
        if "application/json" in content_type:
            return self._decode_json_image(response.json())
        return Image.open(io.BytesIO(response.content))

    @staticmethod
    def _decode_json_image(response_data: Any) -> Image.Image:
        """Decode {"image"|"output"|"data": <base64>} responses."""
        image_b64 = None
        if isinstance(response_data, dict):
            image_b64 = response_data.get("image") or response_data.get("output") or response_data.get("data")
        elif isinstance(response_data, str):
            image_b64 = response_data

        if not isinstance(image_b64, str):
            raise RuntimeError("HF Endpoint returned JSON without an image")
        if "," in image_b64:
            image_b64 = image_b64.split(",", 1)[1]
        return Image.open(io.BytesIO(base64.b64decode(image_b64)))

    def _generate_stub(self, prompt: str, width: int, height: int) -> Image.Image:
        """Flat placeholder whose colour is derived from the prompt."""
        self.logger.warning("Using stub image generation - producing placeholder image")
        seed = sum(prompt.encode("utf-8"))
        color = (40 + seed % 120, 40 + (seed // 7) % 120, 60 + (seed // 13) % 120)
        return Image.new("RGB", (width, height), color)
