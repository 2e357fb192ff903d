"""Claude text provider using the Anthropic SDK."""

from typing import Optional

import anthropic
from anthropic import Anthropic

from contentgen.config import ANTHROPIC_API_KEY
from contentgen.errors import ProviderError
from contentgen.models import GenerationConfig, StopReason, TextGeneration
from contentgen.providers.base import TextProvider, normalise_stop_reason


STOP_REASONS: dict[str, StopReason] = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
    "refusal": "safety",
}

RETRYABLE_ERRORS = (
    anthropic.RateLimitError,
    anthropic.APIConnectionError,
    anthropic.InternalServerError,
)


class ClaudeTextProvider(TextProvider):
    """Claude provider, selected by a claude* model hint.

    Model aliases:
        - sonnet: claude-sonnet-4-20250514
        - haiku: claude-3-5-haiku-20241022
        - opus: claude-opus-4-20250514
    """

    name = "claude"
    DEFAULT_MODEL = "sonnet"
    MODEL_MAP = {
        "claude": "claude-sonnet-4-20250514",
        "claude-sonnet": "claude-sonnet-4-20250514",
        "claude-haiku": "claude-3-5-haiku-20241022",
        "claude-opus": "claude-opus-4-20250514",
        "opus": "claude-opus-4-20250514",
        "sonnet": "claude-sonnet-4-20250514",
        "haiku": "claude-3-5-haiku-20241022",
    }

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config)
        self.client = Anthropic(api_key=self.api_key, max_retries=0)

    def _get_api_key_from_env(self) -> Optional[str]:
        return ANTHROPIC_API_KEY

    def _translate_error(self, error: Exception) -> ProviderError:
        retryable = isinstance(error, RETRYABLE_ERRORS)
        return ProviderError(str(error), retryable=retryable, provider=self.name)

    def _call_api(
        self,
        prompt: str,
        system_message: Optional[str],
        config: GenerationConfig,
    ) -> TextGeneration:
        kwargs = {
            "model": self.model_id,
            "max_tokens": config.max_output_tokens,
            "temperature": config.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_message:
            kwargs["system"] = system_message
        if config.top_p is not None:
            kwargs["top_p"] = config.top_p
        if config.top_k is not None:
            kwargs["top_k"] = config.top_k
        if config.stop_sequences:
            kwargs["stop_sequences"] = config.stop_sequences

        response = self.client.messages.create(**kwargs)

        text = ""
        for block in response.content:
            if block.type == "text":
                text += block.text

        return TextGeneration(
            text=text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            stop_reason=normalise_stop_reason(response.stop_reason, STOP_REASONS),
            model=response.model or self.model_id,
        )
