"""Account-scoped pipeline runs.

POST /v1/accounts/{account_id}/runs generates every configured content
category for one source article (or evergreen idea) and returns the
RunResult once the run has finished.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, model_validator

from api.routes.v1.dependencies import AccountCtx, DbSession, Executor
from contentgen.content.repository import EvergreenIdeaRepository
from contentgen.models import RunResult


router = APIRouter(prefix="/v1/accounts/{account_id}", tags=["runs"])


class StartRunRequest(BaseModel):
    """Exactly one of article_id / evergreen_id."""

    article_id: Optional[UUID] = None
    evergreen_id: Optional[UUID] = None

    @model_validator(mode="after")
    def _one_source(self):
        if (self.article_id is None) == (self.evergreen_id is None):
            raise ValueError("Provide exactly one of article_id or evergreen_id")
        return self


@router.post("/runs", response_model=RunResult, status_code=status.HTTP_201_CREATED)
async def start_run(
    request: StartRunRequest,
    ctx: AccountCtx,
    session: DbSession,
    executor: Executor,
):
    """Run the account's workflow for one source and return the result."""
    if request.article_id is not None:
        return await executor.run_by_id(request.article_id, ctx.account_id)

    idea = EvergreenIdeaRepository(session, ctx.account_id).get(request.evergreen_id)
    return await executor.run_evergreen(idea, ctx.account_id)
