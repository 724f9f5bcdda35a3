"""OpenAI-compatible client wrapper used for narrative generation."""

from __future__ import annotations

import json
import logging
from enum import Enum
from functools import lru_cache
from typing import Any

from openai import APIConnectionError, APIStatusError, OpenAI, OpenAIError, RateLimitError

from resplan.core.config import Settings, get_settings
from resplan.core.errors import NarrativeGenerationError

logger = logging.getLogger(__name__)


class ModelTier(str, Enum):
    """Model size used for a request."""

    LIGHT = "light"
    HEAVY = "heavy"


class LLMRepository:
    """Chat-completion access with structured JSON and plain text modes.

    The client is created on first use so the application starts without
    credentials; requests then fail with ``NarrativeGenerationError``.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._client: OpenAI | None = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self._settings.llm_api_key:
                raise NarrativeGenerationError("Text generation service is not configured.")
            self._client = OpenAI(
                api_key=self._settings.llm_api_key,
                base_url=self._settings.llm_base_url,
                timeout=self._settings.llm_timeout_seconds,
            )
        return self._client

    def _get_model(self, tier: ModelTier) -> str:
        if tier == ModelTier.HEAVY:
            return self._settings.llm_heavy_model
        return self._settings.llm_light_model

    def _complete(self, **kwargs: Any) -> str:
        client = self._get_client()
        try:
            response = client.chat.completions.create(**kwargs)
        except RateLimitError as exc:
            logger.error("Text generation rate limited: %s", exc)
            raise NarrativeGenerationError("Text generation service is rate limited.") from exc
        except APIConnectionError as exc:
            logger.error("Text generation service unreachable: %s", exc)
            raise NarrativeGenerationError("Text generation service is unreachable.") from exc
        except APIStatusError as exc:
            logger.error("Text generation failed with status %s: %s", exc.status_code, exc)
            raise NarrativeGenerationError("Text generation service returned an error.") from exc
        except OpenAIError as exc:
            logger.error("Text generation failed: %s", exc)
            raise NarrativeGenerationError("Text generation failed.") from exc

        if not response.choices:
            logger.error("Text generation returned no choices (model=%s)", kwargs.get("model"))
            raise NarrativeGenerationError("No response choices returned by the text generation service.")
        content = response.choices[0].message.content
        if not content or not content.strip():
            logger.error("Text generation returned empty content (model=%s)", kwargs.get("model"))
            raise NarrativeGenerationError("Text generation service returned an empty response.")
        return content.strip()

    def generate_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: dict[str, Any],
        model_tier: ModelTier = ModelTier.LIGHT,
    ) -> Any:
        """Run a structured-output request and return the parsed JSON document."""

        content = self._complete(
            model=self._get_model(model_tier),
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": schema, "strict": True},
            },
        )
        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            logger.error("Invalid JSON from text generation (schema=%s): %s", schema_name, exc)
            raise NarrativeGenerationError("Invalid JSON returned by the text generation service.") from exc

    def generate_text(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.6,
        model_tier: ModelTier = ModelTier.HEAVY,
    ) -> str:
        return self._complete(
            model=self._get_model(model_tier),
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
        )


@lru_cache
def get_llm_repository() -> LLMRepository:
    """Process-wide repository instance used as a FastAPI dependency."""

    return LLMRepository(get_settings())
