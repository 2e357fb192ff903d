"""Account-scoped AI response log reads."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from api.routes.v1.dependencies import AccountCtx, LogService
from contentgen.db.models import AIResponseLogRead


router = APIRouter(prefix="/v1/accounts/{account_id}", tags=["logs"])


@router.get("/logs", response_model=list[AIResponseLogRead])
def list_logs(
    ctx: AccountCtx,
    log_service: LogService,
    limit: int = Query(50, ge=1, le=500),
    gen_article_id: Optional[UUID] = Query(None, description="Only rows for this article"),
    truncated: bool = Query(False, description="Only responses cut off by the token limit"),
):
    """Most recent provider round-trips for the account."""
    if gen_article_id is not None:
        rows = log_service.list_for_article(ctx.account_id, gen_article_id)
    elif truncated:
        rows = log_service.list_truncated(ctx.account_id, limit=limit)
    else:
        rows = log_service.list_recent(ctx.account_id, limit=limit)
    return [AIResponseLogRead.model_validate(r) for r in rows]


@router.get("/logs/usage")
def usage_summary(ctx: AccountCtx, log_service: LogService):
    """Token totals grouped by provider."""
    return log_service.usage_summary(ctx.account_id)
