"""Account model: the tenant every other row belongs to."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import Field, SQLModel

from contentgen.db.models.base import UUIDModel, TimestampMixin


class AccountBase(SQLModel):
    """Base account fields shared across Create/Read."""

    name: str = Field(max_length=255)
    slug: str = Field(unique=True, index=True, max_length=100)
    is_active: bool = Field(default=True)


class Account(UUIDModel, AccountBase, TimestampMixin, table=True):
    """Account table - one row per tenant.

    Accounts are created once by the (external) onboarding flow and are
    never deleted while they own data.
    """

    __tablename__ = "accounts"


class AccountCreate(AccountBase):
    """Schema for creating an account."""

    pass


class AccountRead(AccountBase):
    """Schema for reading account data."""

    id: UUID
    created_at: datetime
    updated_at: Optional[datetime] = None
