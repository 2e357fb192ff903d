"""Prompt template models: PromptTemplate, PromptVersion.

A template is a named, account-scoped prompt keyed by category. Its bodies
live in immutable versions; exactly one version is current while the
template is active.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import Index, UniqueConstraint, text
from sqlmodel import Field, SQLModel, Column, JSON, Text

from contentgen.db.models.base import UUIDModel, TimestampMixin


# =============================================================================
# Prompt Template
# =============================================================================

class PromptTemplateBase(SQLModel):
    """Base template fields shared across Create/Read."""

    name: str = Field(max_length=255, index=True)
    category: str = Field(max_length=100, index=True)
    description: Optional[str] = None
    is_active: bool = Field(default=True)
    created_by: str = Field(default="system", max_length=100)


class PromptTemplate(UUIDModel, PromptTemplateBase, TimestampMixin, table=True):
    """Prompt template table.

    At most one active template per (account_id, category); the partial
    unique index backs the check done in PromptTemplateStore.
    """

    __tablename__ = "prompt_templates"
    __table_args__ = (
        Index(
            "uq_prompt_templates_active_category",
            "account_id",
            "category",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

    account_id: UUID = Field(foreign_key="accounts.id", index=True)


class PromptTemplateCreate(SQLModel):
    """Schema for creating a template together with its first version."""

    name: str
    category: str
    description: Optional[str] = None
    prompt_body: str
    system_message: Optional[str] = None
    parameters: Optional[dict[str, Any]] = None
    created_by: str = "system"
    notes: Optional[str] = None


class PromptTemplateRead(PromptTemplateBase):
    """Schema for reading template data."""

    id: UUID
    account_id: UUID
    created_at: datetime
    updated_at: Optional[datetime] = None


# =============================================================================
# Prompt Version
# =============================================================================

class PromptVersionBase(SQLModel):
    """Base version fields shared across Create/Read."""

    prompt_body: str = Field(sa_column=Column(Text, nullable=False))
    system_message: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )
    # temperature, max_output_tokens, model_hint
    parameters: Optional[dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )
    created_by: str = Field(default="system", max_length=100)
    notes: Optional[str] = None


class PromptVersion(UUIDModel, PromptVersionBase, table=True):
    """Prompt version table.

    Rows are immutable once written except for the is_current flag.
    version_number starts at 1 and increases by one per template.
    """

    __tablename__ = "prompt_versions"
    __table_args__ = (
        UniqueConstraint(
            "template_id", "version_number", name="uq_prompt_versions_number"
        ),
        Index(
            "uq_prompt_versions_current",
            "template_id",
            unique=True,
            postgresql_where=text("is_current"),
            sqlite_where=text("is_current"),
        ),
    )

    template_id: UUID = Field(foreign_key="prompt_templates.id", index=True)
    account_id: UUID = Field(foreign_key="accounts.id", index=True)
    version_number: int = Field(ge=1)
    is_current: bool = Field(default=False)
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
    )


class PromptVersionRead(PromptVersionBase):
    """Schema for reading version data."""

    id: UUID
    template_id: UUID
    account_id: UUID
    version_number: int
    is_current: bool
    created_at: datetime
