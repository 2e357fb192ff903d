"""Gemini text provider using the Google Generative AI SDK."""

from typing import Any, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from contentgen.config import DEFAULT_TEXT_MODEL, GEMINI_API_KEY
from contentgen.errors import ProviderError
from contentgen.models import GenerationConfig, StopReason, TextGeneration
from contentgen.providers.base import TextProvider, normalise_stop_reason


FINISH_REASONS: dict[str, StopReason] = {
    "stop": "stop",
    "max_tokens": "length",
    "safety": "safety",
    "recitation": "safety",
    "blocklist": "safety",
    "prohibited_content": "safety",
    "spii": "safety",
    "image_safety": "safety",
    "malformed_function_call": "error",
    "other": "unknown",
    "finish_reason_unspecified": "unknown",
}

RETRYABLE_ERRORS = (
    google_exceptions.ResourceExhausted,
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
    google_exceptions.TooManyRequests,
)


class GeminiTextProvider(TextProvider):
    """Gemini provider (the default text provider).

    Model aliases:
        - flash: gemini-2.5-flash
        - pro: gemini-2.5-pro
        - flash-lite: gemini-2.5-flash-lite
        - flash-2: gemini-2.0-flash
    """

    name = "gemini"
    DEFAULT_MODEL = DEFAULT_TEXT_MODEL
    MODEL_MAP = {
        "gemini": DEFAULT_TEXT_MODEL,
        "flash": "gemini-2.5-flash",
        "pro": "gemini-2.5-pro",
        "flash-lite": "gemini-2.5-flash-lite",
        "flash-2": "gemini-2.0-flash",
    }

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config)
        genai.configure(api_key=self.api_key)

    def _get_api_key_from_env(self) -> Optional[str]:
        return GEMINI_API_KEY

    def _translate_error(self, error: Exception) -> ProviderError:
        retryable = isinstance(error, RETRYABLE_ERRORS)
        return ProviderError(str(error), retryable=retryable, provider=self.name)

    def _call_api(
        self,
        prompt: str,
        system_message: Optional[str],
        config: GenerationConfig,
    ) -> TextGeneration:
        model = genai.GenerativeModel(
            self.model_id,
            system_instruction=system_message or None,
        )
        generation_config = genai.GenerationConfig(
            **config.model_dump(exclude_none=True)
        )
        response = model.generate_content(prompt, generation_config=generation_config)

        candidate = response.candidates[0] if response.candidates else None
        if candidate is None:
            # Prompt was blocked before any candidate was produced
            block_reason = getattr(response.prompt_feedback, "block_reason", None)
            stop_reason: StopReason = "safety" if block_reason else "unknown"
            safety = _safety_ratings(getattr(response.prompt_feedback, "safety_ratings", []))
            text = ""
        else:
            finish = getattr(candidate.finish_reason, "name", candidate.finish_reason)
            stop_reason = normalise_stop_reason(finish, FINISH_REASONS)
            safety = _safety_ratings(candidate.safety_ratings)
            text = "".join(
                part.text for part in candidate.content.parts
                if getattr(part, "text", None)
            )

        usage = response.usage_metadata
        return TextGeneration(
            text=text,
            input_tokens=usage.prompt_token_count if usage else 0,
            output_tokens=usage.candidates_token_count if usage else 0,
            total_tokens=usage.total_token_count if usage else 0,
            stop_reason=stop_reason,
            safety_ratings=safety,
            model=self.model_id,
        )


def _safety_ratings(ratings: Any) -> list[dict[str, Any]]:
    result = []
    for rating in ratings or []:
        result.append({
            "category": getattr(rating.category, "name", str(rating.category)),
            "probability": getattr(rating.probability, "name", str(rating.probability)),
            "blocked": bool(getattr(rating, "blocked", False)),
        })
    return result
