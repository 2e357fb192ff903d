"""Per-account generation settings."""

from contentgen.settings.account_settings import (
    AccountSettingsService,
    ImageSettings,
    PromptSettings,
)

__all__ = ["AccountSettingsService", "ImageSettings", "PromptSettings"]
