"""Provider routing.

ProviderRouter maps a step's (media_type, model_hint) to an adapter:

    text | video | audio  -> gemini   (gpt*/openai* -> openai, claude* -> claude)
    image                 -> ideogram

Adapters are imported and constructed lazily, then cached per router for
the life of the process; they are safe to share across concurrent runs.

Usage:
    router = ProviderRouter(load_settings())
    provider = router.text_provider("text", model_hint="claude-sonnet")
    result = await provider.generate_text(prompt, system_message, config)
"""

from typing import Optional, Union

from contentgen.config import PipelineSettings, load_settings
from contentgen.logging import get_logger
from contentgen.providers.base import ImageProvider, TextProvider

logger = get_logger(__name__)

Provider = Union[TextProvider, ImageProvider]

DEFAULT_TEXT_PROVIDER = "gemini"
DEFAULT_IMAGE_PROVIDER = "ideogram"
TEXT_MEDIA_TYPES = ("text", "video", "audio")

# Hint prefixes, checked in order
HINT_PREFIXES: tuple[tuple[str, str], ...] = (
    ("gpt", "openai"),
    ("openai", "openai"),
    ("o1", "openai"),
    ("o3", "openai"),
    ("claude", "claude"),
    ("gemini", "gemini"),
)


def _load_provider_class(name: str) -> type:
    """Import an adapter class on first use so unused SDKs are never loaded."""
    if name == "gemini":
        from contentgen.providers.gemini_api import GeminiTextProvider
        return GeminiTextProvider
    if name == "openai":
        from contentgen.providers.openai_api import OpenAITextProvider
        return OpenAITextProvider
    if name == "claude":
        from contentgen.providers.claude_api import ClaudeTextProvider
        return ClaudeTextProvider
    if name == "ideogram":
        from contentgen.providers.ideogram import IdeogramImageProvider
        return IdeogramImageProvider
    raise ValueError(f"Unknown provider: {name}")


def provider_for_hint(model_hint: Optional[str]) -> Optional[str]:
    """Provider name implied by a model hint prefix, or None."""
    if not model_hint:
        return None
    hint = model_hint.lower()
    for prefix, name in HINT_PREFIXES:
        if hint.startswith(prefix):
            return name
    return None


class ProviderRouter:
    """Selects and caches provider adapters.

    Args:
        settings: Runtime options (default models, timeout).
        provider_config: Per-provider constructor config, e.g.
            {"ideogram": {"api_key": "..."}}.
        overrides: Ready-made adapters by provider name; used as-is for any
            model. Tests inject fakes here.
    """

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        provider_config: Optional[dict[str, dict]] = None,
        overrides: Optional[dict[str, Provider]] = None,
    ):
        self.settings = settings or load_settings()
        self.provider_config = provider_config or {}
        self.overrides = dict(overrides or {})
        self._cache: dict[tuple[str, Optional[str]], Provider] = {}

    def resolve(self, media_type: str, model_hint: Optional[str] = None) -> tuple[str, Optional[str]]:
        """(provider name, model) for a step. model None means the adapter default."""
        if media_type == "image":
            return DEFAULT_IMAGE_PROVIDER, self.settings.default_image_model

        name = provider_for_hint(model_hint) or DEFAULT_TEXT_PROVIDER
        if model_hint and provider_for_hint(model_hint) and model_hint.lower() != name:
            model = model_hint
        elif name == DEFAULT_TEXT_PROVIDER:
            model = self.settings.default_text_model
        else:
            model = None
        return name, model

    def _get(self, name: str, model: Optional[str]) -> Provider:
        if name in self.overrides:
            return self.overrides[name]

        key = (name, model)
        if key not in self._cache:
            config = dict(self.provider_config.get(name, {}))
            if model:
                config["model"] = model
            config.setdefault("timeout_ms", self.settings.provider_timeout_ms)
            provider_cls = _load_provider_class(name)
            self._cache[key] = provider_cls(config)
            logger.info("provider_initialized", provider=name, model=model)
        return self._cache[key]

    def text_provider(self, media_type: str = "text", model_hint: Optional[str] = None) -> TextProvider:
        """Adapter for the text stage of any media type.

        Image steps also use this for their descriptive-prompt stage, so an
        image media type routes like text here.
        """
        routed_type = media_type if media_type in TEXT_MEDIA_TYPES else "text"
        name, model = self.resolve(routed_type, model_hint)
        return self._get(name, model)

    def image_provider(self, model_hint: Optional[str] = None) -> ImageProvider:
        name, model = self.resolve("image", model_hint)
        return self._get(name, model)
