"""Bounded-parallel runs over many sources.

Runs go out in waves of at most `max_concurrent_runs` (default 3, lowered by
the account's `max_concurrent_generations` setting), gathered
concurrently, with a pause between waves to avoid saturating providers. A
run that raises is logged and left out of the results; the other runs in
its wave are unaffected.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Sequence, TypeVar
from uuid import UUID

import structlog

from contentgen.config import PipelineSettings
from contentgen.content.repository import (
    EvergreenIdeaRepository,
    SourceArticleRepository,
)
from contentgen.db.engine import session_scope
from contentgen.db.models import EvergreenIdea, SourceArticle, SourceArticleStatus
from contentgen.logging import get_logger, with_context
from contentgen.models import RunResult
from contentgen.pipeline.executor import PipelineExecutor
from contentgen.settings.account_settings import AccountSettingsService

logger = get_logger(__name__)

T = TypeVar("T")


class BatchRunner:
    """Drives PipelineExecutor over a list of sources for one account."""

    def __init__(
        self,
        executor: PipelineExecutor,
        settings: Optional[PipelineSettings] = None,
    ):
        self.executor = executor
        self.settings = settings or executor.settings

    def wave_size(self, account_id: UUID) -> int:
        """Runtime limit, lowered by the account's max_concurrent_generations."""
        with session_scope(self.executor.session_factory) as session:
            prompt_settings = AccountSettingsService(session).get_prompt_settings(account_id)
        return max(1, min(
            self.settings.max_concurrent_runs,
            prompt_settings.max_concurrent_generations,
        ))

    async def _waves(
        self,
        sources: Sequence[T],
        account_id: UUID,
        start: Callable[[T], Awaitable[RunResult]],
    ) -> list[RunResult]:
        if not sources:
            return []
        size = self.wave_size(account_id)
        results: list[RunResult] = []
        waves = [sources[i:i + size] for i in range(0, len(sources), size)]

        for number, wave in enumerate(waves, start=1):
            bound = with_context(operation="batch_run", wave=number)
            try:
                outcomes = await asyncio.gather(
                    *(start(source) for source in wave),
                    return_exceptions=True,
                )
            finally:
                structlog.contextvars.unbind_contextvars(*bound)
            for source, outcome in zip(wave, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(
                        "batch_run_failed",
                        account_id=str(account_id),
                        source_id=str(getattr(source, "id", "")),
                        error=str(outcome),
                        error_type=type(outcome).__name__,
                    )
                    continue
                results.append(outcome)

            if number < len(waves) and self.settings.batch_pause_seconds > 0:
                await asyncio.sleep(self.settings.batch_pause_seconds)

        logger.info(
            "batch_finished",
            account_id=str(account_id),
            requested=len(sources),
            completed=len(results),
        )
        return results

    async def run_many(
        self,
        articles: Sequence[SourceArticle],
        account_id: UUID,
    ) -> list[RunResult]:
        return await self._waves(
            articles,
            account_id,
            lambda article: self.executor.run(article, account_id),
        )

    async def run_evergreen_many(
        self,
        ideas: Sequence[EvergreenIdea],
        account_id: UUID,
    ) -> list[RunResult]:
        return await self._waves(
            ideas,
            account_id,
            lambda idea: self.executor.run_evergreen(idea, account_id),
        )

    async def run_top_stories(self, account_id: UUID, limit: int = 5) -> list[RunResult]:
        """Run the account's highest-relevance analyzed articles."""
        with session_scope(self.executor.session_factory) as session:
            articles = SourceArticleRepository(session, account_id).list_by_status(
                SourceArticleStatus.analyzed, limit=limit
            )
        logger.info(
            "top_stories_selected",
            account_id=str(account_id),
            count=len(articles),
        )
        return await self.run_many(articles, account_id)

    async def run_evergreen(
        self,
        account_id: UUID,
        category: Optional[str] = None,
        count: int = 1,
    ) -> list[RunResult]:
        """Run the least recently used evergreen ideas."""
        with session_scope(self.executor.session_factory) as session:
            ideas = EvergreenIdeaRepository(session, account_id).list_least_recently_used(
                category=category, limit=count
            )
        return await self.run_evergreen_many(ideas, account_id)
