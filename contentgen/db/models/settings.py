"""Per-account settings documents (image generation, prompt defaults)."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel, Column, JSON

from contentgen.db.models.base import UUIDModel, TimestampMixin


class SettingType(str, Enum):
    image_generation = "image_generation"
    prompt_templates = "prompt_templates"


class AccountSetting(UUIDModel, TimestampMixin, table=True):
    """One JSON settings document per (account_id, setting_type)."""

    __tablename__ = "account_settings"
    __table_args__ = (
        UniqueConstraint(
            "account_id", "setting_type", name="uq_account_settings_type"
        ),
    )

    account_id: UUID = Field(foreign_key="accounts.id", index=True)
    setting_type: SettingType
    settings_data: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    updated_by: Optional[str] = Field(default=None, max_length=100)


class AccountSettingRead(SQLModel):
    id: UUID
    account_id: UUID
    setting_type: SettingType
    settings_data: dict[str, Any]
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
