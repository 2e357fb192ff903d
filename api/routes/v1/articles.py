"""Account-scoped generated articles and their review status."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from api.routes.v1.dependencies import AccountCtx, DbSession
from contentgen.db.models import (
    GeneratedArticleRead,
    GeneratedArticleStatus,
    GeneratedArticleUpdate,
)
from contentgen.review import ContentReviewService
from contentgen.review.service import ArticleWithItems


router = APIRouter(prefix="/v1/accounts/{account_id}", tags=["articles"])


@router.get("/articles", response_model=list[GeneratedArticleRead])
def list_articles(
    ctx: AccountCtx,
    session: DbSession,
    status: Optional[GeneratedArticleStatus] = Query(None, description="Filter by status"),
    limit: int = Query(50, ge=1, le=500),
):
    """Newest first."""
    service = ContentReviewService(session, ctx)
    return [
        GeneratedArticleRead.model_validate(a)
        for a in service.list_articles(status=status, limit=limit)
    ]


@router.get("/articles/stats")
def generation_stats(
    ctx: AccountCtx,
    session: DbSession,
    days: int = Query(7, ge=1, le=365),
):
    return ContentReviewService(session, ctx).generation_stats(days=days)


@router.get("/articles/{article_id}", response_model=ArticleWithItems)
def get_article(article_id: UUID, ctx: AccountCtx, session: DbSession):
    """The article with its content items grouped by category."""
    return ContentReviewService(session, ctx).get_article_with_items(article_id)


@router.patch("/articles/{article_id}", response_model=GeneratedArticleRead)
def update_article(
    article_id: UUID,
    request: GeneratedArticleUpdate,
    ctx: AccountCtx,
    session: DbSession,
):
    """Move the article through review; optionally set the final body."""
    article = ContentReviewService(session, ctx).update_status(
        article_id,
        request.status,
        body_final=request.body_final,
    )
    return GeneratedArticleRead.model_validate(article)
