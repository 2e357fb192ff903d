"""Provider adapters for text and image generation."""

from contentgen.providers.base import ImageProvider, TextProvider
from contentgen.providers.factory import ProviderRouter, provider_for_hint

__all__ = [
    "ImageProvider",
    "TextProvider",
    "ProviderRouter",
    "provider_for_hint",
]
