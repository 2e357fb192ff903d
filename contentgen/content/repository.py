"""Account-scoped repository layer.

Every repository is bound to one account_id at construction time. All
selects, updates and deletes include `account_id = ?`; inserts are stamped
with the bound account.

Usage:
    with session_scope(session_factory) as session:
        repo = GeneratedArticleRepository(session, account_id)
        article = repo.get(article_id)
        drafts = repo.list_by_status(GeneratedArticleStatus.draft)
"""

from datetime import datetime, timedelta
from typing import Any, Generic, Optional, TypeVar
from uuid import UUID

from sqlalchemy import func
from sqlmodel import Session, select

from contentgen.db.models import (
    EvergreenIdea,
    GeneratedArticle,
    GeneratedArticleStatus,
    GeneratedContentItem,
    SourceArticle,
    SourceArticleStatus,
)
from contentgen.errors import AccessDenied, NotFound

T = TypeVar("T")


# =============================================================================
# Base Repository
# =============================================================================

class AccountScopedRepository(Generic[T]):
    """Base repository with account-filtered CRUD operations."""

    model: type[T]

    def __init__(self, session: Session, account_id: UUID):
        if account_id is None:
            raise AccessDenied("Account context is required")
        self.session = session
        self.account_id = account_id

    def _select(self):
        return select(self.model).where(self.model.account_id == self.account_id)

    def _raise_missing(self, id: UUID) -> None:
        """Distinguish a row in another account from a row that does not exist.

        Only a count is read, never the foreign row itself.
        """
        statement = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.id == id)
        )
        if self.session.exec(statement).one() > 0:
            raise AccessDenied(
                f"{self.model.__name__} belongs to another account",
                details={"id": str(id)},
            )
        raise NotFound(
            f"{self.model.__name__} not found",
            details={"id": str(id)},
        )

    def find(self, id: UUID) -> Optional[T]:
        """Get a record by ID within this account, or None."""
        statement = self._select().where(self.model.id == id)
        return self.session.exec(statement).first()

    def get(self, id: UUID) -> T:
        """Get a record by ID; raises AccessDenied or NotFound on a miss."""
        obj = self.find(id)
        if obj is None:
            self._raise_missing(id)
        return obj

    def list_all(self, limit: Optional[int] = None) -> list[T]:
        statement = self._select()
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.exec(statement).all())

    def add(self, obj: T) -> T:
        """Stage an insert stamped with the bound account (no commit)."""
        existing = getattr(obj, "account_id", None)
        if existing is not None and existing != self.account_id:
            raise AccessDenied("Cannot insert a row for another account")
        obj.account_id = self.account_id
        self.session.add(obj)
        return obj

    def create(self, obj: T) -> T:
        """Insert, commit and refresh."""
        self.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def update(self, id: UUID, **values: Any) -> T:
        """Apply field updates to an in-account row and commit."""
        obj = self.get(id)
        for key, value in values.items():
            setattr(obj, key, value)
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def delete(self, id: UUID) -> bool:
        """Delete an in-account row. Returns True if deleted."""
        obj = self.find(id)
        if obj is None:
            return False
        self.session.delete(obj)
        self.session.commit()
        return True


# =============================================================================
# Source Article Repository
# =============================================================================

class SourceArticleRepository(AccountScopedRepository[SourceArticle]):
    """Repository for SourceArticle operations."""

    model = SourceArticle

    def list_by_status(
        self,
        status: SourceArticleStatus,
        limit: Optional[int] = None,
    ) -> list[SourceArticle]:
        statement = (
            self._select()
            .where(SourceArticle.status == status)
            .order_by(SourceArticle.relevance_score.desc())
        )
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.exec(statement).all())

    def mark_processed(self, id: UUID) -> Optional[SourceArticle]:
        """Move analyzed -> processed. Other states are left untouched."""
        article = self.get(id)
        if article.status != SourceArticleStatus.analyzed:
            return None
        article.status = SourceArticleStatus.processed
        self.session.add(article)
        self.session.commit()
        return article


# =============================================================================
# Evergreen Idea Repository
# =============================================================================

class EvergreenIdeaRepository(AccountScopedRepository[EvergreenIdea]):
    """Repository for EvergreenIdea operations."""

    model = EvergreenIdea

    def list_least_recently_used(
        self,
        category: Optional[str] = None,
        limit: int = 5,
    ) -> list[EvergreenIdea]:
        statement = self._select()
        if category:
            statement = statement.where(EvergreenIdea.category == category)
        # Never-used ideas first
        statement = statement.order_by(
            EvergreenIdea.last_used_at.is_(None).desc(),
            EvergreenIdea.last_used_at.asc(),
        ).limit(limit)
        return list(self.session.exec(statement).all())

    def touch(self, id: UUID) -> EvergreenIdea:
        return self.update(id, last_used_at=datetime.utcnow())


# =============================================================================
# Generated Article Repository
# =============================================================================

class GeneratedArticleRepository(AccountScopedRepository[GeneratedArticle]):
    """Repository for GeneratedArticle operations."""

    model = GeneratedArticle

    def list_by_status(
        self,
        status: Optional[GeneratedArticleStatus] = None,
        limit: int = 50,
    ) -> list[GeneratedArticle]:
        statement = self._select()
        if status is not None:
            statement = statement.where(GeneratedArticle.status == status)
        statement = statement.order_by(GeneratedArticle.created_at.desc()).limit(limit)
        return list(self.session.exec(statement).all())

    def count_by_status(self, since: Optional[datetime] = None) -> dict[str, int]:
        statement = (
            select(GeneratedArticle.status, func.count())
            .where(GeneratedArticle.account_id == self.account_id)
            .group_by(GeneratedArticle.status)
        )
        if since is not None:
            statement = statement.where(GeneratedArticle.created_at >= since)
        counts = {}
        for status, count in self.session.exec(statement).all():
            key = status.value if isinstance(status, GeneratedArticleStatus) else str(status)
            counts[key] = count
        return counts

    def count_since(self, days: int) -> int:
        since = datetime.utcnow() - timedelta(days=days)
        statement = (
            select(func.count())
            .select_from(GeneratedArticle)
            .where(
                GeneratedArticle.account_id == self.account_id,
                GeneratedArticle.created_at >= since,
            )
        )
        return self.session.exec(statement).one()


# =============================================================================
# Generated Content Item Repository
# =============================================================================

class ContentItemRepository(AccountScopedRepository[GeneratedContentItem]):
    """Repository for GeneratedContentItem operations."""

    model = GeneratedContentItem

    def list_for_article(
        self,
        gen_article_id: UUID,
        category: Optional[str] = None,
    ) -> list[GeneratedContentItem]:
        statement = self._select().where(
            GeneratedContentItem.based_on_gen_article_id == gen_article_id
        )
        if category:
            statement = statement.where(GeneratedContentItem.category == category)
        statement = statement.order_by(GeneratedContentItem.created_at)
        return list(self.session.exec(statement).all())

    def count_by_category(self, since: Optional[datetime] = None) -> dict[str, int]:
        statement = (
            select(GeneratedContentItem.category, func.count())
            .where(GeneratedContentItem.account_id == self.account_id)
            .group_by(GeneratedContentItem.category)
        )
        if since is not None:
            statement = statement.where(GeneratedContentItem.created_at >= since)
        return {category: count for category, count in self.session.exec(statement).all()}
