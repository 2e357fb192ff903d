"""Human review of generated articles.

Status lifecycle:

    draft ──queue──> review_pending ──> approved
      │                    │
      └──────> rejected <──┘

Approval and rejection stamp reviewed_at / reviewed_by. Setting the
current status again is allowed and only updates body_final.
"""

from datetime import datetime, timedelta
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import BaseModel
from sqlmodel import Session

from contentgen.content.repository import (
    ContentItemRepository,
    GeneratedArticleRepository,
)
from contentgen.db.models import (
    GeneratedArticle,
    GeneratedArticleRead,
    GeneratedArticleStatus,
    GeneratedContentItemRead,
)
from contentgen.errors import InvalidStatusTransition
from contentgen.logging import get_logger
from contentgen.tenancy import AccountContext

logger = get_logger(__name__)

ALLOWED_TRANSITIONS: dict[GeneratedArticleStatus, set[GeneratedArticleStatus]] = {
    GeneratedArticleStatus.draft: {
        GeneratedArticleStatus.review_pending,
        GeneratedArticleStatus.rejected,
    },
    GeneratedArticleStatus.review_pending: {
        GeneratedArticleStatus.approved,
        GeneratedArticleStatus.rejected,
    },
    GeneratedArticleStatus.approved: set(),
    GeneratedArticleStatus.rejected: set(),
}

REVIEWED_STATES = {GeneratedArticleStatus.approved, GeneratedArticleStatus.rejected}


class ArticleWithItems(BaseModel):
    article: GeneratedArticleRead
    items_by_category: dict[str, list[GeneratedContentItemRead]]


class ContentReviewService:
    """Review operations for one account's generated articles."""

    def __init__(self, session: Session, ctx: AccountContext):
        self.session = session
        self.ctx = ctx
        self.articles = GeneratedArticleRepository(session, ctx.account_id)
        self.items = ContentItemRepository(session, ctx.account_id)

    def list_articles(
        self,
        status: Optional[Union[GeneratedArticleStatus, str]] = None,
        limit: int = 50,
    ) -> list[GeneratedArticle]:
        if status is not None:
            status = GeneratedArticleStatus(status)
        return self.articles.list_by_status(status, limit=limit)

    def get_article_with_items(self, article_id: UUID) -> ArticleWithItems:
        article = self.articles.get(article_id)
        grouped: dict[str, list[GeneratedContentItemRead]] = {}
        for item in self.items.list_for_article(article_id):
            grouped.setdefault(item.category, []).append(
                GeneratedContentItemRead.model_validate(item)
            )
        return ArticleWithItems(
            article=GeneratedArticleRead.model_validate(article),
            items_by_category=grouped,
        )

    def queue_for_review(self, article_id: UUID) -> GeneratedArticle:
        """draft -> review_pending."""
        return self.update_status(article_id, GeneratedArticleStatus.review_pending)

    def update_status(
        self,
        article_id: UUID,
        status: Union[GeneratedArticleStatus, str],
        body_final: Optional[str] = None,
    ) -> GeneratedArticle:
        status = GeneratedArticleStatus(status)
        article = self.articles.get(article_id)
        current = GeneratedArticleStatus(article.status)

        if status != current and status not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransition(
                f"Cannot move article from {current.value} to {status.value}",
                details={"from": current.value, "to": status.value},
            )

        article.status = status
        if body_final is not None:
            article.body_final = body_final
        if status in REVIEWED_STATES and status != current:
            article.reviewed_at = datetime.utcnow()
            article.reviewed_by = str(self.ctx.user_id) if self.ctx.user_id else None

        self.session.add(article)
        self.session.commit()
        self.session.refresh(article)
        logger.info(
            "article_status_updated",
            account_id=str(self.ctx.account_id),
            article_id=str(article_id),
            from_status=current.value,
            to_status=status.value,
        )
        return article

    def generation_stats(self, days: int = 7) -> dict[str, Any]:
        since = datetime.utcnow() - timedelta(days=days)
        return {
            "window_days": days,
            "articles": self.articles.count_since(days),
            "articles_by_status": self.articles.count_by_status(since=since),
            "items_by_category": self.items.count_by_category(since=since),
        }
