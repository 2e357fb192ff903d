"""OpenAI text provider using the OpenAI SDK."""

from typing import Optional

import openai
from openai import OpenAI

from contentgen.config import OPENAI_API_KEY
from contentgen.errors import ProviderError
from contentgen.models import GenerationConfig, StopReason, TextGeneration
from contentgen.providers.base import TextProvider, normalise_stop_reason


FINISH_REASONS: dict[str, StopReason] = {
    "stop": "stop",
    "length": "length",
    "content_filter": "safety",
}

RETRYABLE_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.InternalServerError,
)


class OpenAITextProvider(TextProvider):
    """OpenAI provider, selected by a gpt*/openai* model hint.

    Model aliases:
        - gpt4o: gpt-4o
        - gpt4o-mini: gpt-4o-mini
        - o3-mini: o3-mini
    """

    name = "openai"
    DEFAULT_MODEL = "gpt-4o-mini"
    MODEL_MAP = {
        "openai": "gpt-4o-mini",
        "gpt4o": "gpt-4o",
        "gpt4o-mini": "gpt-4o-mini",
        "o3-mini": "o3-mini",
    }

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config)
        self.client = OpenAI(api_key=self.api_key, max_retries=0)

    def _get_api_key_from_env(self) -> Optional[str]:
        return OPENAI_API_KEY

    def _translate_error(self, error: Exception) -> ProviderError:
        retryable = isinstance(error, RETRYABLE_ERRORS)
        return ProviderError(str(error), retryable=retryable, provider=self.name)

    def _call_api(
        self,
        prompt: str,
        system_message: Optional[str],
        config: GenerationConfig,
    ) -> TextGeneration:
        messages = [{"role": "user", "content": prompt}]
        if system_message:
            messages.insert(0, {"role": "system", "content": system_message})

        # o1/o3 models don't support max_tokens, use max_completion_tokens
        is_reasoning_model = self.model_id.startswith(("o1", "o3"))

        kwargs = {
            "model": self.model_id,
            "messages": messages,
        }
        if is_reasoning_model:
            kwargs["max_completion_tokens"] = config.max_output_tokens
        else:
            kwargs["max_tokens"] = config.max_output_tokens
            kwargs["temperature"] = config.temperature
            if config.top_p is not None:
                kwargs["top_p"] = config.top_p
        if config.stop_sequences:
            kwargs["stop"] = config.stop_sequences

        response = self.client.chat.completions.create(**kwargs)

        choice = response.choices[0]
        usage = response.usage
        return TextGeneration(
            text=choice.message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
            stop_reason=normalise_stop_reason(choice.finish_reason, FINISH_REASONS),
            model=response.model or self.model_id,
        )
