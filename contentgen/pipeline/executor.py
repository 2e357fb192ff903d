"""Pipeline executor: runs one account's workflow against one source.

Protocol for a run:

1. Plan (planner, falling back to the legacy plan when empty). A
   WorkflowCycle aborts here, before any row is written or provider called.
2. Create the GeneratedArticle (status draft, placeholder body).
3. Seed the context from the source.
4. For each step: substitute, generate (logged per round-trip), parse,
   store items, export `<category>_output` (unless the account turned
   workflow chaining off). A failing step records an empty output and
   the run moves on.
5. Write the blog_post body and word count; mark the source processed.
6. Return a RunResult.

Cancellation is observed between steps only. A step that completes after
cancellation was signalled has its result discarded.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

from contentgen.audit.response_log import ResponseLogService
from contentgen.config import PipelineSettings, load_settings
from contentgen.content.config_registry import ContentConfigurationRegistry
from contentgen.content.repository import (
    ContentItemRepository,
    EvergreenIdeaRepository,
    GeneratedArticleRepository,
    SourceArticleRepository,
)
from contentgen.db.engine import SessionFactory, session_scope
from contentgen.db.models import (
    EvergreenIdea,
    GeneratedArticle,
    GeneratedContentItem,
    PROCESSING_PLACEHOLDER,
    SourceArticle,
)
from contentgen.errors import AccessDenied, ContentGenError, ProviderError
from contentgen.logging import bind_context, get_logger
from contentgen.models import (
    CategoryOutcome,
    GenerationConfig,
    ImageGeneration,
    RunMetadata,
    RunResult,
    Step,
    TextGeneration,
)
from contentgen.parsing.parsers import ImageAsset
from contentgen.pipeline.planner import WorkflowPlanner
from contentgen.pipeline.registry import (
    StepContext,
    StepHandlerRegistry,
    default_registry,
)
from contentgen.prompts.store import PromptTemplateStore
from contentgen.prompts.variables import substitute
from contentgen.providers.factory import ProviderRouter
from contentgen.quality import assess_source_quality
from contentgen.settings.account_settings import (
    AccountSettingsService,
    ImageSettings,
    PromptSettings,
)
from contentgen.tenancy import AccountContext

logger = get_logger(__name__)

BLOG_CATEGORY = "blog_post"
SUMMARY_CHARS = 300
NO_CONTENT = "No content available"

# (provider_url, filename) -> permanent URL
CdnUploader = Callable[[str, str], Awaitable[str]]


def count_words(text: Optional[str]) -> int:
    """Number of whitespace-delimited tokens."""
    return len((text or "").split())


@dataclass
class _Source:
    """Normalised run input, from a source article or an evergreen idea."""

    title: str
    content: str
    source_name: str
    url: str
    article_id: Optional[UUID] = None
    evergreen_id: Optional[UUID] = None
    summary: Optional[str] = None


@dataclass
class _RunState:
    account_id: UUID
    blog_id: UUID
    context: dict[str, Any]
    image_settings: ImageSettings
    prompt_settings: PromptSettings
    outcomes: list[CategoryOutcome] = field(default_factory=list)
    outputs: dict[str, str] = field(default_factory=dict)
    log_write_failures: int = 0

    def export(self, category: str, output: str) -> None:
        """Record a step's output; later prompts see it only with chaining on."""
        self.outputs[category] = output
        if self.prompt_settings.enable_workflow_chaining:
            self.context[f"{category}_output"] = output


class PipelineExecutor:
    """Runs planned steps for one source at a time.

    Args:
        session_factory: Opens a new Session; every DB interaction uses its
            own short session.
        router: Provider selection; adapters are shared across runs.
        settings: Runtime options snapshot.
        handlers: Step handler registry (defaults to the built-in one).
        cdn_uploader: Optional async callable that re-hosts image URLs.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        router: ProviderRouter,
        settings: Optional[PipelineSettings] = None,
        handlers: Optional[StepHandlerRegistry] = None,
        cdn_uploader: Optional[CdnUploader] = None,
        log_service: Optional[ResponseLogService] = None,
    ):
        self.session_factory = session_factory
        self.router = router
        self.settings = settings or load_settings()
        self.handlers = handlers or default_registry()
        self.cdn_uploader = cdn_uploader
        self.log_service = log_service or ResponseLogService(session_factory)

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def run(
        self,
        source_article: SourceArticle,
        account_id: UUID,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RunResult:
        """Generate all configured content for one source article."""
        if source_article.account_id != account_id:
            raise AccessDenied(
                "Source article belongs to another account",
                details={"article_id": str(source_article.id)},
            )
        content = source_article.full_text or source_article.summary or NO_CONTENT
        source = _Source(
            title=source_article.title or "",
            content=content,
            source_name=source_article.source_name or "Unknown",
            url=source_article.url or "",
            article_id=source_article.id,
            summary=source_article.summary,
        )
        return await self._execute(source, account_id, cancel_event)

    async def run_by_id(
        self,
        article_id: UUID,
        account_id: UUID,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RunResult:
        with session_scope(self.session_factory) as session:
            article = SourceArticleRepository(session, account_id).get(article_id)
        return await self.run(article, account_id, cancel_event)

    async def run_evergreen(
        self,
        idea: EvergreenIdea,
        account_id: UUID,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RunResult:
        """Same protocol, seeded from an evergreen idea instead of news."""
        if idea.account_id != account_id:
            raise AccessDenied(
                "Evergreen idea belongs to another account",
                details={"idea_id": str(idea.id)},
            )
        source = _Source(
            title=idea.title_idea,
            content=idea.brief_description or idea.title_idea,
            source_name="Evergreen",
            url="",
            evergreen_id=idea.id,
        )
        return await self._execute(source, account_id, cancel_event)

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def _plan(self, account_id: UUID) -> tuple[list[Step], bool, ImageSettings, PromptSettings]:
        ctx = AccountContext.system(account_id)
        with session_scope(self.session_factory) as session:
            planner = WorkflowPlanner(
                PromptTemplateStore(session, ctx),
                ContentConfigurationRegistry(session),
            )
            steps = planner.plan(account_id)
            used_fallback = False
            if not steps:
                steps = planner.fallback_plan(account_id)
                used_fallback = True
            account_settings = AccountSettingsService(session)
            image_settings = account_settings.get_image_settings(account_id)
            prompt_settings = account_settings.get_prompt_settings(account_id)
        return steps, used_fallback, image_settings, prompt_settings

    def _create_article(self, source: _Source, account_id: UUID) -> UUID:
        with session_scope(self.session_factory) as session:
            article = GeneratedArticleRepository(session, account_id).create(
                GeneratedArticle(
                    account_id=account_id,
                    based_on_article_id=source.article_id,
                    based_on_evergreen_id=source.evergreen_id,
                    title=source.title[:500] or "Untitled",
                    body_draft=PROCESSING_PLACEHOLDER,
                    content_type=BLOG_CATEGORY,
                    word_count=count_words(PROCESSING_PLACEHOLDER),
                )
            )
            return article.id

    @staticmethod
    def _initial_context(source: _Source, blog_id: UUID, account_id: UUID) -> dict[str, Any]:
        return {
            "article.title": source.title,
            "article.content": source.content,
            "article.summary": source.content[:SUMMARY_CHARS],
            "article.source": source.source_name,
            "article.url": source.url,
            "article_content": (
                f"Title: {source.title}\n\n"
                f"Content: {source.content}\n\n"
                f"Source: {source.source_name}"
            ),
            "blog.id": str(blog_id),
            "account.id": str(account_id),
        }

    async def _execute(
        self,
        source: _Source,
        account_id: UUID,
        cancel_event: Optional[asyncio.Event],
    ) -> RunResult:
        started_at = datetime.utcnow()
        start = time.monotonic()
        bind_context(account_id=account_id)

        steps, used_fallback, image_settings, prompt_settings = self._plan(account_id)
        blog_id = self._create_article(source, account_id)
        bind_context(run_id=str(blog_id))
        logger.info(
            "run_started",
            account_id=str(account_id),
            blog_id=str(blog_id),
            steps=len(steps),
            used_fallback_plan=used_fallback,
        )

        quality = assess_source_quality(source.title, source.content)
        run = _RunState(
            account_id=account_id,
            blog_id=blog_id,
            context=self._initial_context(source, blog_id, account_id),
            image_settings=image_settings,
            prompt_settings=prompt_settings,
        )

        cancelled = False
        for step in steps:
            if cancelled or (cancel_event is not None and cancel_event.is_set()):
                cancelled = True
                run.outcomes.append(CategoryOutcome(category=step.category, status="cancelled"))
                continue
            outcome = await self._run_step(run, step, cancel_event)
            if outcome.status == "cancelled":
                cancelled = True
            run.outcomes.append(outcome)

        self._finalize(run, source, mark_processed=not cancelled)

        if cancelled:
            state = "cancelled"
        elif any(o.status == "failed" for o in run.outcomes):
            state = "partial_complete"
        else:
            state = "done"

        duration_ms = int((time.monotonic() - start) * 1000)
        result = RunResult(
            blog_id=blog_id,
            account_id=account_id,
            state=state,
            outcomes=run.outcomes,
            metadata=RunMetadata(
                started_at=started_at,
                finished_at=datetime.utcnow(),
                duration_ms=duration_ms,
                steps_planned=len(steps),
                steps_succeeded=sum(1 for o in run.outcomes if o.status == "succeeded"),
                used_fallback_plan=used_fallback,
                log_write_failures=run.log_write_failures,
                source_quality=quality.model_dump(),
            ),
        )
        logger.info(
            "run_finished",
            account_id=str(account_id),
            blog_id=str(blog_id),
            state=state,
            duration_ms=duration_ms,
            failed=result.failed_categories,
        )
        return result

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _generation_config(self, run: _RunState, step: Step) -> GenerationConfig:
        parameters = run.prompt_settings.generation_defaults()
        parameters.update(step.parameters)
        return GenerationConfig.from_parameters(
            parameters,
            default_max_output_tokens=self.settings.default_max_output_tokens,
        )

    async def _run_step(
        self,
        run: _RunState,
        step: Step,
        cancel_event: Optional[asyncio.Event],
    ) -> CategoryOutcome:
        try:
            handler = self.handlers.lookup(step.parsing_method, step.media_type)
            prompt = substitute(step.prompt_body, run.context)
            system = (
                substitute(step.system_message, run.context).text
                if step.system_message else None
            )
            if prompt.missing:
                logger.warning(
                    "template_variables_missing",
                    account_id=str(run.account_id),
                    category=step.category,
                    missing=sorted(prompt.missing),
                )

            ctx = StepContext(
                step=step,
                prompt=prompt.text,
                system_message=system,
                generation_config=self._generation_config(run, step),
                router=self.router,
                image_settings=run.image_settings,
                run_context=run.context,
                log_round_trip=lambda **kw: self._log_round_trip(run, step, **kw),
                missing_variables=prompt.missing,
            )
            generation = await handler.generate(ctx)

            if cancel_event is not None and cancel_event.is_set():
                logger.info(
                    "step_result_discarded",
                    account_id=str(run.account_id),
                    category=step.category,
                )
                run.export(step.category, "")
                return CategoryOutcome(category=step.category, status="cancelled")

            parsed = handler.parse(generation, step)
            if isinstance(parsed, ImageAsset) and self.cdn_uploader is not None:
                await self._upload_images(run, step, parsed)
            records = parsed.record_dicts()
            self._store_items(run, step, records, self._item_metadata(step, generation, parsed, ctx))
            run.export(step.category, handler.chain_output(parsed, step.category))

            logger.info(
                "step_succeeded",
                account_id=str(run.account_id),
                category=step.category,
                records=len(records),
                degraded=parsed.degraded,
            )
            return CategoryOutcome(category=step.category, status="succeeded", items=records)

        except Exception as e:
            run.export(step.category, "")
            error_kind = e.error_kind if isinstance(e, ContentGenError) else "internal_error"
            log = logger.warning if isinstance(e, ProviderError) else logger.exception
            log(
                "step_failed",
                account_id=str(run.account_id),
                category=step.category,
                error_kind=error_kind,
                error=str(e),
            )
            return CategoryOutcome(
                category=step.category,
                status="failed",
                error_kind=error_kind,
                error_message=str(e) or type(e).__name__,
            )

    def _item_metadata(self, step: Step, generation, parsed, ctx: StepContext) -> dict[str, Any]:
        text = generation.text
        metadata = {
            "template_id": str(step.template_id) if step.template_id else None,
            "template_name": step.template_name,
            "version_id": str(step.version_id) if step.version_id else None,
            "version_number": step.version_number,
            "provider": text.provider,
            "model": text.model,
            "input_tokens": text.input_tokens,
            "output_tokens": text.output_tokens,
            "total_tokens": text.total_tokens,
            "latency_ms": text.latency_ms,
            "stop_reason": text.stop_reason,
            "is_truncated": text.is_truncated,
            "kind": parsed.kind,
            "degraded": parsed.degraded,
            "media_type": step.media_type,
            "parsing_method": step.parsing_method,
        }
        if ctx.missing_variables:
            metadata["missing_variables"] = sorted(ctx.missing_variables)
        if step.ui_config:
            metadata["ui_config"] = step.ui_config
        if step.storage_schema:
            metadata["storage_schema"] = step.storage_schema
        if generation.image is not None:
            metadata["image_provider"] = generation.image.provider
            metadata["image_model"] = generation.image.model
            metadata["image_latency_ms"] = generation.image.latency_ms
            metadata["prompt_fallback"] = generation.prompt_fallback
        return metadata

    async def _upload_images(self, run: _RunState, step: Step, parsed: ImageAsset) -> None:
        for record in parsed.records:
            filename = f"{step.category}-{run.blog_id}-{record.order_number}.jpg"
            try:
                record.image_url = await self.cdn_uploader(record.image_url, filename)
            except Exception as e:
                # Keep the provider URL; the image itself was generated
                logger.warning(
                    "cdn_upload_failed",
                    account_id=str(run.account_id),
                    category=step.category,
                    error=str(e),
                )

    def _store_items(
        self,
        run: _RunState,
        step: Step,
        records: list[dict[str, Any]],
        metadata: dict[str, Any],
    ) -> None:
        with session_scope(self.session_factory) as session:
            repo = ContentItemRepository(session, run.account_id)
            for record in records:
                repo.add(GeneratedContentItem(
                    account_id=run.account_id,
                    based_on_gen_article_id=run.blog_id,
                    category=step.category,
                    content_data=record,
                    item_metadata=metadata,
                ))
            session.commit()

    def _finalize(self, run: _RunState, source: _Source, mark_processed: bool) -> None:
        body = run.outputs.get(BLOG_CATEGORY) or ""
        with session_scope(self.session_factory) as session:
            articles = GeneratedArticleRepository(session, run.account_id)
            article = articles.get(run.blog_id)
            if body.strip():
                article.body_draft = body
            article.word_count = count_words(article.body_draft)
            session.add(article)
            session.commit()

            if not mark_processed:
                return
            if source.article_id is not None:
                if SourceArticleRepository(session, run.account_id).mark_processed(source.article_id) is None:
                    logger.info(
                        "source_status_unchanged",
                        account_id=str(run.account_id),
                        article_id=str(source.article_id),
                    )
            if source.evergreen_id is not None:
                EvergreenIdeaRepository(session, run.account_id).touch(source.evergreen_id)

    # -------------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------------

    def _log_round_trip(
        self,
        run: _RunState,
        step: Step,
        prompt: str,
        provider: str,
        model: Optional[str],
        system_message: Optional[str] = None,
        config: Optional[GenerationConfig] = None,
        text_result: Optional[TextGeneration] = None,
        image_result: Optional[ImageGeneration] = None,
        error: Optional[Exception] = None,
        elapsed_ms: int = 0,
    ) -> None:
        entry: dict[str, Any] = {
            "account_id": run.account_id,
            "gen_article_id": run.blog_id,
            "template_id": step.template_id,
            "version_id": step.version_id,
            "category": step.category,
            "provider": provider,
            "model": model,
            "prompt_text": prompt,
            "system_message": system_message,
            "temperature": config.temperature if config else None,
            "max_output_tokens": config.max_output_tokens if config else None,
        }
        if text_result is not None:
            entry.update(
                response_text=text_result.text,
                input_tokens=text_result.input_tokens,
                output_tokens=text_result.output_tokens,
                total_tokens=text_result.total_tokens,
                generation_time_ms=text_result.latency_ms,
                stop_reason=text_result.stop_reason,
                is_complete=text_result.is_complete,
                is_truncated=text_result.is_truncated,
                safety_ratings=text_result.safety_ratings,
                content_filter_applied=text_result.content_filter_applied,
                success=True,
            )
        elif image_result is not None:
            entry.update(
                response_text=image_result.url,
                generation_time_ms=image_result.latency_ms,
                stop_reason="stop",
                is_complete=True,
                safety_ratings=[{"is_image_safe": image_result.is_safe}],
                content_filter_applied=not image_result.is_safe,
                success=True,
            )
        else:
            entry.update(
                generation_time_ms=elapsed_ms,
                stop_reason="error",
                is_complete=False,
                success=False,
                error_message=str(error) if error else "unknown error",
            )

        if self.log_service.record(entry) is None:
            run.log_write_failures += 1
