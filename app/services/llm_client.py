"""LLM Client - centralized OpenAI client for structured and free-text generation."""

from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from app.core.config import Settings
from app.utils.rate_limiter import get_limiter

ModelT = TypeVar("ModelT", bound=BaseModel)


class LLMResponseError(Exception):
    """The LLM answered, but not with content matching the requested schema."""


class LLMClient:
    """Centralized LLM client for OpenAI operations."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize LLM client.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self._client = None

    def _get_client(self):
        """Get or create OpenAI client."""
        if self._client is None:
            from openai import OpenAI

            if not self.settings.openai_api_key:
                raise ValueError("OpenAI API key not configured")

            self._client = OpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.request_timeout_seconds,
            )

        return self._client

    def _throttle(self) -> None:
        if self.settings.enable_rate_limiting:
            get_limiter("llm", max_calls=self.settings.llm_rate_limit).wait_if_needed("chat")

    def generate_structured(
        self,
        prompt: str,
        response_model: type[ModelT],
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> ModelT:
        """
        Generate a JSON object and validate it against a pydantic schema.

        The JSON schema of ``response_model`` is included in the system prompt
        and the response must validate strictly; no repair is attempted.

        Args:
            prompt: User prompt
            response_model: Pydantic model the answer must satisfy
            system_prompt: Optional system instructions
            model: Model name (defaults to settings.script_model)
            temperature: Sampling temperature (defaults to settings.llm_temperature)

        Returns:
            Validated instance of response_model

        Raises:
            LLMResponseError: If the answer is empty or does not match the schema
            Exception: Transport and API errors from the OpenAI client
        """
        schema = response_model.model_json_schema()
        instructions = (system_prompt or "You are a precise assistant that answers in JSON.").strip()
        instructions += (
            "\n\nRespond with a single JSON object that validates against this JSON schema:\n"
            f"{schema}"
        )

        model_name = model or self.settings.script_model
        self.logger.debug(f"Structured generation with {model_name} -> {response_model.__name__}")

        self._throttle()
        client = self._get_client()
        response = client.chat.completions.create(
            model=model_name,
            messages=[
                {"role": "system", "content": instructions},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
            temperature=self.settings.llm_temperature if temperature is None else temperature,
        )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMResponseError("LLM returned an empty response")

        try:
            return response_model.model_validate_json(content)
        except ValidationError as e:
            raise LLMResponseError(
                f"LLM response does not match {response_model.__name__}: {e.error_count()} validation errors"
            ) from e

    def generate_text(self, prompt: str, system_prompt: Optional[str] = None, model: Optional[str] = None) -> str:
        """
        Generate free text.

        Args:
            prompt: User prompt
            system_prompt: Optional system instructions
            model: Model name (defaults to settings.renderer_code_model)

        Returns:
            Generated text (stripped)
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        self._throttle()
        client = self._get_client()
        response = client.chat.completions.create(
            model=model or self.settings.renderer_code_model,
            messages=messages,
        )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMResponseError("LLM returned an empty response")
        return content.strip()
