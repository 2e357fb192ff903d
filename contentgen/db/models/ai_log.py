"""AI response log model.

One row per provider round-trip, successful or not. Rows are append-only.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import Index
from sqlmodel import Field, SQLModel, Column, JSON, Text

from contentgen.db.models.base import UUIDModel


class AIResponseLogBase(SQLModel):
    """Base log fields; also the shape ResponseLogService.record() accepts."""

    gen_article_id: Optional[UUID] = None
    template_id: Optional[UUID] = None
    version_id: Optional[UUID] = None
    category: Optional[str] = Field(default=None, max_length=100)
    provider: str = Field(max_length=50)
    model: Optional[str] = Field(default=None, max_length=100)

    prompt_text: str = Field(default="", sa_column=Column(Text, nullable=False))
    system_message: Optional[str] = Field(default=None, sa_column=Column(Text))
    response_text: Optional[str] = Field(default=None, sa_column=Column(Text))

    input_tokens: int = Field(default=0)
    output_tokens: int = Field(default=0)
    total_tokens: int = Field(default=0)
    generation_time_ms: int = Field(default=0)

    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None

    stop_reason: str = Field(default="unknown", max_length=20)
    is_complete: bool = Field(default=False)
    is_truncated: bool = Field(default=False)
    safety_ratings: Optional[list[dict[str, Any]]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )
    content_filter_applied: bool = Field(default=False)

    success: bool = Field(default=True)
    error_message: Optional[str] = Field(default=None, sa_column=Column(Text))


class AIResponseLog(UUIDModel, AIResponseLogBase, table=True):
    """AI response log table."""

    __tablename__ = "ai_response_logs"
    __table_args__ = (
        Index("ix_ai_response_logs_account_created", "account_id", "created_at"),
        Index("ix_ai_response_logs_account_article", "account_id", "gen_article_id"),
    )

    account_id: UUID = Field(foreign_key="accounts.id")
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
    )


class AIResponseLogCreate(AIResponseLogBase):
    """Schema for writing a log row; account_id is supplied separately."""

    account_id: UUID


class AIResponseLogRead(AIResponseLogBase):
    """Schema for reading log rows."""

    id: UUID
    account_id: UUID
    created_at: datetime
