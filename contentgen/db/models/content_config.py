"""Content configuration model.

Describes, per account, which content categories exist, how each is
generated (media type), parsed (parsing method) and stored (storage schema),
and which template drives it.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel, Column, JSON

from contentgen.db.models.base import UUIDModel, TimestampMixin


class MediaType(str, Enum):
    """Kind of artifact a category produces."""

    text = "text"
    image = "image"
    video = "video"
    audio = "audio"


class ParsingMethod(str, Enum):
    """Rule for turning raw provider text into content_data."""

    generic = "generic"
    social_media = "social_media"
    video_script = "video_script"
    prayer_points = "prayer_points"
    json = "json"
    structured = "structured"


class ContentConfigurationBase(SQLModel):
    """Base configuration fields shared across Create/Read."""

    category: str = Field(max_length=100, index=True)
    display_name: Optional[str] = Field(default=None, max_length=255)
    media_type: MediaType = Field(default=MediaType.text)
    parsing_method: ParsingMethod = Field(default=ParsingMethod.generic)
    storage_schema: Optional[dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )
    # Category name of the driving PromptTemplate
    template_ref: Optional[str] = Field(default=None, max_length=100)
    # Display hints, passed through into item metadata untouched
    ui_config: Optional[dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )
    is_active: bool = Field(default=True, index=True)
    execution_order: int = Field(default=0, ge=0)


class ContentConfiguration(
    UUIDModel, ContentConfigurationBase, TimestampMixin, table=True
):
    """Content configuration table. (account_id, category) is unique."""

    __tablename__ = "content_configurations"
    __table_args__ = (
        UniqueConstraint(
            "account_id", "category", name="uq_content_configurations_category"
        ),
    )

    account_id: UUID = Field(foreign_key="accounts.id", index=True)

    @property
    def template_category(self) -> str:
        return self.template_ref or self.category


class ContentConfigurationCreate(ContentConfigurationBase):
    """Schema for registering a configuration."""

    pass


class ContentConfigurationRead(ContentConfigurationBase):
    """Schema for reading configuration data."""

    id: UUID
    account_id: UUID
    created_at: datetime
