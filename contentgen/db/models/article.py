"""Input models: SourceArticle, EvergreenIdea.

Source articles are produced by the scraping subsystem; the pipeline only
reads them and moves them from analyzed to processed. Evergreen ideas are
account-curated topics used when no fresh article is wanted.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlmodel import Field, SQLModel, Column, JSON, Text

from contentgen.db.models.base import UUIDModel, TimestampMixin


class SourceArticleStatus(str, Enum):
    """Lifecycle of a scraped article."""

    scraped = "scraped"
    analyzed = "analyzed"
    processed = "processed"
    skipped = "skipped"


# =============================================================================
# Source Article
# =============================================================================

class SourceArticleBase(SQLModel):
    """Base source article fields."""

    source_id: Optional[str] = Field(default=None, max_length=100)
    source_name: Optional[str] = Field(default=None, max_length=255)
    title: str = Field(max_length=500)
    url: Optional[str] = Field(default=None, max_length=2000)
    publication_date: Optional[datetime] = None
    full_text: Optional[str] = Field(default=None, sa_column=Column(Text))
    summary: Optional[str] = Field(default=None, sa_column=Column(Text))
    keywords: Optional[list[str]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )
    relevance_score: Optional[float] = None
    status: SourceArticleStatus = Field(default=SourceArticleStatus.scraped)


class SourceArticle(UUIDModel, SourceArticleBase, TimestampMixin, table=True):
    """Source article table."""

    __tablename__ = "source_articles"

    account_id: UUID = Field(foreign_key="accounts.id", index=True)


class SourceArticleCreate(SourceArticleBase):
    """Schema for inserting a source article."""

    pass


# =============================================================================
# Evergreen Idea
# =============================================================================

class EvergreenIdeaBase(SQLModel):
    """Base evergreen idea fields."""

    category: Optional[str] = Field(default=None, max_length=100)
    title_idea: str = Field(max_length=500)
    brief_description: Optional[str] = Field(default=None, sa_column=Column(Text))
    target_keywords: Optional[list[str]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )
    last_used_at: Optional[datetime] = None


class EvergreenIdea(UUIDModel, EvergreenIdeaBase, TimestampMixin, table=True):
    """Evergreen content idea table."""

    __tablename__ = "evergreen_ideas"

    account_id: UUID = Field(foreign_key="accounts.id", index=True)


class EvergreenIdeaCreate(EvergreenIdeaBase):
    """Schema for inserting an evergreen idea."""

    pass
