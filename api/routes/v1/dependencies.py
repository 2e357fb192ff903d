"""Dependencies for account-scoped routes.

Provides FastAPI dependencies to:
- Open a session from the app's session factory
- Build an AccountContext from the URL path and the X-User-ID header
- Hand route handlers the shared executor and response log service

Authentication happens upstream; by the time a request reaches these
routes the caller's identity has been attached as X-User-ID.
"""

from typing import Annotated, Generator, Optional
from uuid import UUID

from fastapi import Depends, Header, Path, Request
from sqlmodel import Session

from contentgen.audit import ResponseLogService
from contentgen.db import SessionFactory, session_scope
from contentgen.logging import bind_context
from contentgen.pipeline import PipelineExecutor
from contentgen.tenancy import AccountContext


def get_session_factory(request: Request) -> SessionFactory:
    return request.app.state.session_factory


def get_session(
    factory: Annotated[SessionFactory, Depends(get_session_factory)],
) -> Generator[Session, None, None]:
    """Yield a session for the duration of one request."""
    with session_scope(factory) as session:
        yield session


def get_account_context(
    account_id: Annotated[UUID, Path(description="Account UUID")],
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> AccountContext:
    """Build the request's account context and bind it to the log context.

    Usage:
        @router.get("/templates")
        def list_templates(ctx: AccountCtx, session: DbSession):
            ...
    """
    ctx = AccountContext(account_id=account_id, user_id=x_user_id)
    bind_context(account_id=account_id, user_id=x_user_id)
    return ctx


def get_executor(request: Request) -> PipelineExecutor:
    return request.app.state.executor


def get_log_service(request: Request) -> ResponseLogService:
    return request.app.state.log_service


# Type aliases for cleaner route signatures
DbSession = Annotated[Session, Depends(get_session)]
AccountCtx = Annotated[AccountContext, Depends(get_account_context)]
Executor = Annotated[PipelineExecutor, Depends(get_executor)]
LogService = Annotated[ResponseLogService, Depends(get_log_service)]
