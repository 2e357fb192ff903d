"""AI response log: one append-only row per provider round-trip.

Writes never propagate failures to the caller. A failed write is reported
with a structlog warning and counted in `write_failures`, and record()
returns None.
"""

from typing import Any, Optional, Union
from uuid import UUID

from sqlalchemy import and_, case, func, or_
from sqlmodel import select

from contentgen.db.engine import SessionFactory, session_scope
from contentgen.db.models import AIResponseLog, AIResponseLogCreate, PromptVersion
from contentgen.errors import LogWriteError
from contentgen.logging import get_logger
from contentgen.tenancy import AccountContext, require_system_operator

logger = get_logger(__name__)

DEFAULT_LIST_LIMIT = 50


class ResponseLogService:
    """Writes and reads AI response log rows.

    Every write uses its own short session, so a failed write never
    disturbs the caller's transaction.
    """

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory
        self.write_failures = 0

    def _write(self, entry: AIResponseLogCreate) -> UUID:
        try:
            with session_scope(self.session_factory) as session:
                row = AIResponseLog.model_validate(entry)
                session.add(row)
                session.commit()
                return row.id
        except Exception as e:
            raise LogWriteError(str(e), details={"category": entry.category}) from e

    def record(
        self,
        entry: Union[AIResponseLogCreate, dict[str, Any]],
    ) -> Optional[UUID]:
        """Append one row. Returns its id, or None when the write failed."""
        try:
            if isinstance(entry, dict):
                entry = AIResponseLogCreate.model_validate(entry)
            return self._write(entry)
        except Exception as e:
            # Swallowed: a log failure must not fail the run it describes
            self.write_failures += 1
            logger.warning(
                "response_log_write_failed",
                account_id=str(getattr(entry, "account_id", None) or ""),
                error=str(e),
            )
            return None

    # -------------------------------------------------------------------------
    # Reads (always account-filtered unless operator)
    # -------------------------------------------------------------------------

    def list_for_article(self, account_id: UUID, gen_article_id: UUID) -> list[AIResponseLog]:
        with session_scope(self.session_factory) as session:
            statement = (
                select(AIResponseLog)
                .where(
                    AIResponseLog.account_id == account_id,
                    AIResponseLog.gen_article_id == gen_article_id,
                )
                .order_by(AIResponseLog.created_at)
            )
            return list(session.exec(statement).all())

    def list_recent(self, account_id: UUID, limit: int = DEFAULT_LIST_LIMIT) -> list[AIResponseLog]:
        with session_scope(self.session_factory) as session:
            statement = (
                select(AIResponseLog)
                .where(AIResponseLog.account_id == account_id)
                .order_by(AIResponseLog.created_at.desc())
                .limit(limit)
            )
            return list(session.exec(statement).all())

    def list_truncated(self, account_id: UUID, limit: int = DEFAULT_LIST_LIMIT) -> list[AIResponseLog]:
        """Rows that hit the token limit or did not stop normally."""
        with session_scope(self.session_factory) as session:
            statement = (
                select(AIResponseLog)
                .where(
                    AIResponseLog.account_id == account_id,
                    or_(
                        AIResponseLog.is_truncated == True,
                        AIResponseLog.stop_reason != "stop",
                    ),
                )
                .order_by(AIResponseLog.created_at.desc())
                .limit(limit)
            )
            return list(session.exec(statement).all())

    def usage_summary(self, account_id: UUID) -> list[dict[str, Any]]:
        """Call counts, token totals and failures grouped by provider."""
        with session_scope(self.session_factory) as session:
            statement = (
                select(
                    AIResponseLog.provider,
                    func.count(AIResponseLog.id),
                    func.coalesce(func.sum(AIResponseLog.input_tokens), 0),
                    func.coalesce(func.sum(AIResponseLog.output_tokens), 0),
                    func.coalesce(func.sum(AIResponseLog.total_tokens), 0),
                    func.sum(case((AIResponseLog.success == False, 1), else_=0)),
                    func.sum(case((AIResponseLog.is_truncated == True, 1), else_=0)),
                )
                .where(AIResponseLog.account_id == account_id)
                .group_by(AIResponseLog.provider)
                .order_by(AIResponseLog.provider)
            )
            return [
                {
                    "provider": provider,
                    "calls": calls,
                    "input_tokens": int(input_tokens),
                    "output_tokens": int(output_tokens),
                    "total_tokens": int(total_tokens),
                    "failures": int(failures or 0),
                    "truncated": int(truncated or 0),
                }
                for provider, calls, input_tokens, output_tokens, total_tokens, failures, truncated
                in session.exec(statement).all()
            ]

    def version_usage(self, account_id: UUID, template_id: UUID) -> list[dict[str, Any]]:
        """Per-version use counts and averages for one template, newest first.

        Versions that were never used are included with zero counts.
        """
        with session_scope(self.session_factory) as session:
            statement = (
                select(
                    PromptVersion.id,
                    PromptVersion.version_number,
                    PromptVersion.is_current,
                    PromptVersion.created_at,
                    func.count(AIResponseLog.id),
                    func.sum(case((AIResponseLog.success == True, 1), else_=0)),
                    func.avg(AIResponseLog.generation_time_ms),
                    func.avg(AIResponseLog.total_tokens),
                )
                .select_from(PromptVersion)
                .outerjoin(
                    AIResponseLog,
                    and_(
                        AIResponseLog.version_id == PromptVersion.id,
                        AIResponseLog.account_id == account_id,
                    ),
                )
                .where(
                    PromptVersion.template_id == template_id,
                    PromptVersion.account_id == account_id,
                )
                .group_by(
                    PromptVersion.id,
                    PromptVersion.version_number,
                    PromptVersion.is_current,
                    PromptVersion.created_at,
                )
                .order_by(PromptVersion.version_number.desc())
            )
            return [
                {
                    "version_id": version_id,
                    "version_number": version_number,
                    "is_current": is_current,
                    "version_created_at": created_at,
                    "total_uses": int(uses),
                    "successful_uses": int(successes or 0),
                    "avg_generation_time_ms": (
                        round(float(avg_time), 1) if avg_time is not None else None
                    ),
                    "avg_total_tokens": (
                        round(float(avg_tokens), 1) if avg_tokens is not None else None
                    ),
                }
                for version_id, version_number, is_current, created_at, uses, successes,
                avg_time, avg_tokens in session.exec(statement).all()
            ]

    def list_all_for_operator(
        self,
        operator_ctx: AccountContext,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[AIResponseLog]:
        """Unfiltered read across accounts. System operators only."""
        require_system_operator(operator_ctx)
        logger.info(
            "operator_log_read",
            account_id=str(operator_ctx.account_id),
            user_id=str(operator_ctx.user_id),
        )
        with session_scope(self.session_factory) as session:
            statement = (
                select(AIResponseLog)
                .order_by(AIResponseLog.created_at.desc())
                .limit(limit)
            )
            return list(session.exec(statement).all())
