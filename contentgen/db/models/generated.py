"""Output models: GeneratedArticle, GeneratedContentItem.

One GeneratedArticle is written per pipeline run; every successful step
adds GeneratedContentItem rows linked to it.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from sqlmodel import Field, SQLModel, Column, JSON, Text

from contentgen.db.models.base import UUIDModel, TimestampMixin


PROCESSING_PLACEHOLDER = "…processing…"


class GeneratedArticleStatus(str, Enum):
    """Review lifecycle: draft -> review_pending -> approved | rejected."""

    draft = "draft"
    review_pending = "review_pending"
    approved = "approved"
    rejected = "rejected"


# =============================================================================
# Generated Article
# =============================================================================

class GeneratedArticleBase(SQLModel):
    """Base generated article fields."""

    based_on_article_id: Optional[UUID] = Field(default=None, index=True)
    based_on_evergreen_id: Optional[UUID] = Field(default=None, index=True)
    title: str = Field(max_length=500)
    body_draft: str = Field(
        default=PROCESSING_PLACEHOLDER,
        sa_column=Column(Text, nullable=False),
    )
    body_final: Optional[str] = Field(default=None, sa_column=Column(Text))
    content_type: str = Field(default="blog_post", max_length=100)
    word_count: int = Field(default=0, ge=0)
    status: GeneratedArticleStatus = Field(
        default=GeneratedArticleStatus.draft, index=True
    )
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = Field(default=None, max_length=100)


class GeneratedArticle(
    UUIDModel, GeneratedArticleBase, TimestampMixin, table=True
):
    """Generated article table.

    Source articles and evergreen ideas are referenced by id only, without
    foreign keys, so deleting either never cascades here.
    """

    __tablename__ = "generated_articles"

    account_id: UUID = Field(foreign_key="accounts.id", index=True)


class GeneratedArticleRead(GeneratedArticleBase):
    """Schema for reading generated article data."""

    id: UUID
    account_id: UUID
    created_at: datetime
    updated_at: Optional[datetime] = None


class GeneratedArticleUpdate(SQLModel):
    """Schema for a review update."""

    status: GeneratedArticleStatus
    body_final: Optional[str] = None


# =============================================================================
# Generated Content Item
# =============================================================================

class GeneratedContentItemBase(SQLModel):
    """Base content item fields."""

    category: str = Field(max_length=100, index=True)
    content_data: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    item_metadata: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    status: str = Field(default="draft", max_length=50)


class GeneratedContentItem(UUIDModel, GeneratedContentItemBase, table=True):
    """Generated content item table."""

    __tablename__ = "generated_content_items"

    account_id: UUID = Field(foreign_key="accounts.id", index=True)
    based_on_gen_article_id: UUID = Field(
        foreign_key="generated_articles.id", index=True
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
    )


class GeneratedContentItemRead(GeneratedContentItemBase):
    """Schema for reading content item data."""

    id: UUID
    account_id: UUID
    based_on_gen_article_id: UUID
    created_at: datetime
