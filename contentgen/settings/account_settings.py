"""Per-account settings for image generation and prompt defaults.

Settings are stored as one JSON document per (account_id, setting_type).
Reads merge the stored document over the defaults below, so an account
only stores what it changed.
"""

from copy import deepcopy
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlmodel import Session, select

from contentgen.db.models import AccountSetting, SettingType
from contentgen.logging import get_logger
from contentgen.models import ImageOptions

logger = get_logger(__name__)


# =============================================================================
# Image generation
# =============================================================================

class ImageDefaults(BaseModel):
    aspect_ratio: Optional[str] = "16:9"
    resolution: Optional[str] = None
    style_type: str = "GENERAL"
    rendering_speed: str = "DEFAULT"
    magic_prompt: str = "AUTO"
    num_images: int = Field(default=1, ge=1, le=8)
    model_version: str = "V_2"
    negative_prompt: Optional[str] = None


class PromptEnhancement(BaseModel):
    prompt_prefix: str = ""
    prompt_suffix: str = ""
    use_account_branding: bool = True


class ImageSettings(BaseModel):
    """Account-level image overrides applied to every image step."""

    defaults: ImageDefaults = Field(default_factory=ImageDefaults)
    prompt_enhancement: PromptEnhancement = Field(default_factory=PromptEnhancement)
    brand_colors: list[str] = Field(default_factory=list)

    @property
    def branding_colors(self) -> list[str]:
        if not self.prompt_enhancement.use_account_branding:
            return []
        return self.brand_colors

    def apply_to_prompt(self, prompt: str) -> str:
        """prefix + prompt + suffix, then a brand color line if any."""
        parts = [
            self.prompt_enhancement.prompt_prefix.strip(),
            prompt.strip(),
            self.prompt_enhancement.prompt_suffix.strip(),
        ]
        enhanced = " ".join(p for p in parts if p)
        if self.branding_colors:
            enhanced += f"\n\nBrand colors: {', '.join(self.branding_colors)}"
        return enhanced

    def image_options(self, overrides: Optional[dict[str, Any]] = None) -> ImageOptions:
        """Account defaults, overridden by per-step options."""
        values = self.defaults.model_dump(exclude_none=True)
        if self.branding_colors:
            values["color_palette"] = list(self.branding_colors)
        values.update({k: v for k, v in (overrides or {}).items() if v is not None})
        if "resolution" in (overrides or {}):
            values.pop("aspect_ratio", None)
        return ImageOptions(**values)


# =============================================================================
# Prompt templates
# =============================================================================

class PromptSettings(BaseModel):
    """Account-level generation defaults.

    default_max_tokens stays unset unless the account chooses one; the
    runtime DEFAULT_MAX_OUTPUT_TOKENS applies otherwise.
    """

    default_temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    default_max_tokens: Optional[int] = Field(default=None, gt=0)
    enable_workflow_chaining: bool = True
    max_concurrent_generations: int = Field(default=3, ge=1)

    def generation_defaults(self) -> dict[str, Any]:
        values: dict[str, Any] = {"temperature": self.default_temperature}
        if self.default_max_tokens:
            values["max_output_tokens"] = self.default_max_tokens
        return values


SETTINGS_MODELS: dict[SettingType, type[BaseModel]] = {
    SettingType.image_generation: ImageSettings,
    SettingType.prompt_templates: PromptSettings,
}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class AccountSettingsService:
    """Reads and writes AccountSetting rows. Every call is account-filtered."""

    def __init__(self, session: Session):
        self.session = session

    def _row(self, account_id: UUID, setting_type: SettingType) -> Optional[AccountSetting]:
        statement = select(AccountSetting).where(
            AccountSetting.account_id == account_id,
            AccountSetting.setting_type == setting_type,
        )
        return self.session.exec(statement).first()

    def _load(self, account_id: UUID, setting_type: SettingType) -> BaseModel:
        model = SETTINGS_MODELS[setting_type]
        defaults = model().model_dump()
        row = self._row(account_id, setting_type)
        stored = row.settings_data if row is not None else {}
        return model.model_validate(_deep_merge(defaults, stored or {}))

    def get_image_settings(self, account_id: UUID) -> ImageSettings:
        return self._load(account_id, SettingType.image_generation)

    def get_prompt_settings(self, account_id: UUID) -> PromptSettings:
        return self._load(account_id, SettingType.prompt_templates)

    def update_settings(
        self,
        account_id: UUID,
        setting_type: SettingType,
        data: dict[str, Any],
        updated_by: Optional[str] = None,
    ) -> AccountSetting:
        """Merge data into the stored document, validating the result."""
        setting_type = SettingType(setting_type)
        row = self._row(account_id, setting_type)
        current = row.settings_data if row is not None else {}
        merged = _deep_merge(current or {}, data)
        # Raises pydantic.ValidationError on bad values; nothing is written
        SETTINGS_MODELS[setting_type].model_validate(
            _deep_merge(SETTINGS_MODELS[setting_type]().model_dump(), merged)
        )

        if row is None:
            row = AccountSetting(
                account_id=account_id,
                setting_type=setting_type,
                settings_data=merged,
                updated_by=updated_by,
            )
        else:
            # Reassign so the JSON column is marked dirty
            row.settings_data = merged
            row.updated_by = updated_by
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        logger.info(
            "account_settings_updated",
            account_id=str(account_id),
            setting_type=setting_type.value,
        )
        return row
