"""Base classes for provider adapters.

Adapters wrap the official SDKs (google-generativeai, openai, anthropic) or
a REST API (Ideogram via httpx). SDK calls are synchronous, so each text call
runs in a worker thread; every call, threaded or natively async, is awaited
under `asyncio.wait_for` so the wall-clock deadline holds even when the SDK
ignores its own timeout.

Adapters never retry. Failures surface as ProviderError with a `retryable`
flag; expiry of the deadline surfaces as ProviderTimeout (retryable).
Adapters hold no per-run state and are shared across concurrent runs.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Optional

from contentgen.config import DEFAULT_MAX_OUTPUT_TOKENS, PROVIDER_TIMEOUT_MS
from contentgen.errors import ProviderError, ProviderTimeout
from contentgen.logging import get_logger
from contentgen.models import (
    GenerationConfig,
    ImageGeneration,
    ImageOptions,
    StopReason,
    TextGeneration,
)

logger = get_logger(__name__)


class _Provider(ABC):
    """Shared construction: API key, model alias resolution, deadline."""

    name: str = "provider"
    DEFAULT_MODEL: str = ""
    MODEL_MAP: dict[str, str] = {}

    def __init__(self, config: Optional[dict] = None):
        config = config or {}
        self.api_key = config.get("api_key") or self._get_api_key_from_env()
        self.model = config.get("model") or self.DEFAULT_MODEL
        self.model_id = self._resolve_model_id()
        self.timeout_ms = int(config.get("timeout_ms") or PROVIDER_TIMEOUT_MS)

        if not self.api_key:
            raise ValueError(
                f"API key required for {self.name}. "
                f"Set via config or environment variable."
            )

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000

    @abstractmethod
    def _get_api_key_from_env(self) -> Optional[str]:
        """Get API key from environment variable."""
        pass

    def _resolve_model_id(self) -> str:
        """Convert model alias to actual model ID."""
        return self.MODEL_MAP.get(self.model, self.model)

    def _translate_error(self, error: Exception) -> ProviderError:
        """Map an SDK/transport exception to ProviderError.

        Subclasses mark their SDK's rate-limit, connection and 5xx errors
        retryable; everything else is not.
        """
        return ProviderError(str(error) or type(error).__name__, provider=self.name)

    async def _bounded(self, awaitable):
        """Await a provider call under the provider deadline."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_s)
        except asyncio.TimeoutError:
            logger.warning(
                "provider_timeout",
                provider=self.name,
                model=self.model_id,
                timeout_ms=self.timeout_ms,
            )
            raise ProviderTimeout(
                f"{self.name} call exceeded {self.timeout_ms} ms",
                provider=self.name,
            )
        except ProviderError:
            raise
        except Exception as e:
            raise self._translate_error(e) from e


class TextProvider(_Provider):
    """Text-in/text-out provider."""

    @abstractmethod
    def _call_api(
        self,
        prompt: str,
        system_message: Optional[str],
        config: GenerationConfig,
    ) -> TextGeneration:
        """Make the blocking API call and return a normalised result.

        latency_ms, provider and model are filled in by generate_text().
        """
        pass

    async def generate_text(
        self,
        prompt: str,
        system_message: Optional[str] = None,
        generation_config: Optional[GenerationConfig] = None,
    ) -> TextGeneration:
        config = generation_config or GenerationConfig()
        if config.max_output_tokens is None:
            config = config.model_copy(
                update={"max_output_tokens": DEFAULT_MAX_OUTPUT_TOKENS}
            )

        start = time.monotonic()
        result = await self._bounded(
            asyncio.to_thread(self._call_api, prompt, system_message, config)
        )
        latency_ms = int((time.monotonic() - start) * 1000)

        return result.model_copy(update={
            "latency_ms": latency_ms,
            "provider": self.name,
            "model": result.model or self.model_id,
            "total_tokens": result.total_tokens or (result.input_tokens + result.output_tokens),
        })


class ImageProvider(_Provider):
    """Text-in/image-URL-out provider."""

    @abstractmethod
    async def _call_api(self, prompt: str, options: ImageOptions) -> ImageGeneration:
        """Make the API request and return a normalised result."""
        pass

    async def generate_image(
        self,
        prompt: str,
        image_options: Optional[ImageOptions] = None,
    ) -> ImageGeneration:
        options = image_options or ImageOptions()
        start = time.monotonic()
        result = await self._bounded(self._call_api(prompt, options))
        latency_ms = int((time.monotonic() - start) * 1000)
        return result.model_copy(update={
            "latency_ms": latency_ms,
            "provider": self.name,
            "model": result.model or options.model_version or self.model_id,
        })


def normalise_stop_reason(raw: Optional[str], mapping: dict[str, StopReason]) -> StopReason:
    """Look up an SDK finish reason (case-insensitive) in mapping."""
    if raw is None:
        return "unknown"
    return mapping.get(str(raw).lower(), "unknown")
