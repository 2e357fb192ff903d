"""Account-scoped prompt templates and their version history."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from api.routes.v1.dependencies import AccountCtx, DbSession, LogService
from contentgen.db.models import (
    PromptTemplateCreate,
    PromptTemplateRead,
    PromptVersionRead,
)
from contentgen.models import RenderedPrompt
from contentgen.prompts import PromptTemplateStore


router = APIRouter(prefix="/v1/accounts/{account_id}", tags=["templates"])


# =============================================================================
# Request/Response Models
# =============================================================================


class CreateTemplateRequest(BaseModel):
    """Request to create a template together with its first version."""

    name: str
    category: str
    description: Optional[str] = None
    prompt_body: str
    system_message: Optional[str] = None
    parameters: Optional[dict[str, Any]] = None
    notes: Optional[str] = None


class CreateVersionRequest(BaseModel):
    """Request to append a new (current) version."""

    prompt_body: str
    system_message: Optional[str] = None
    parameters: Optional[dict[str, Any]] = None
    notes: Optional[str] = None


class TemplateWithVersion(BaseModel):
    template: PromptTemplateRead
    current_version: Optional[PromptVersionRead] = None


class RenderVersionRequest(BaseModel):
    """Test values keyed by placeholder name, e.g. {"article.title": "..."}."""

    variables: dict[str, Any] = Field(default_factory=dict)


class VersionUsage(BaseModel):
    version_id: UUID
    version_number: int
    is_current: bool
    version_created_at: datetime
    total_uses: int
    successful_uses: int
    avg_generation_time_ms: Optional[float] = None
    avg_total_tokens: Optional[float] = None


# =============================================================================
# Templates
# =============================================================================


@router.get("/templates", response_model=list[PromptTemplateRead])
def list_templates(
    ctx: AccountCtx,
    session: DbSession,
    include_inactive: bool = Query(False, description="Include deactivated templates"),
):
    store = PromptTemplateStore(session, ctx)
    return [
        PromptTemplateRead.model_validate(t)
        for t in store.list_templates(include_inactive=include_inactive)
    ]


@router.post(
    "/templates",
    response_model=TemplateWithVersion,
    status_code=status.HTTP_201_CREATED,
)
def create_template(request: CreateTemplateRequest, ctx: AccountCtx, session: DbSession):
    """Create a template; its version 1 becomes current."""
    store = PromptTemplateStore(session, ctx)
    template = store.create_template(PromptTemplateCreate(**request.model_dump()))
    return TemplateWithVersion(
        template=PromptTemplateRead.model_validate(template),
        current_version=PromptVersionRead.model_validate(
            store.get_current_version(template.id)
        ),
    )


@router.get("/templates/by-category/{category}", response_model=TemplateWithVersion)
def get_template_by_category(category: str, ctx: AccountCtx, session: DbSession):
    """The active template for a category, with its current version."""
    store = PromptTemplateStore(session, ctx)
    template = store.get_by_category(category)
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No active template for category '{category}'",
        )
    current = store.get_current_version(template.id)
    return TemplateWithVersion(
        template=PromptTemplateRead.model_validate(template),
        current_version=PromptVersionRead.model_validate(current) if current else None,
    )


@router.get("/templates/{template_id}", response_model=TemplateWithVersion)
def get_template(template_id: UUID, ctx: AccountCtx, session: DbSession):
    store = PromptTemplateStore(session, ctx)
    template = store.get_template(template_id)
    current = store.get_current_version(template_id)
    return TemplateWithVersion(
        template=PromptTemplateRead.model_validate(template),
        current_version=PromptVersionRead.model_validate(current) if current else None,
    )


@router.delete("/templates/{template_id}", response_model=PromptTemplateRead)
def deactivate_template(template_id: UUID, ctx: AccountCtx, session: DbSession):
    """Soft delete: the template and its versions are kept, marked inactive."""
    store = PromptTemplateStore(session, ctx)
    return PromptTemplateRead.model_validate(store.deactivate_template(template_id))


# =============================================================================
# Versions
# =============================================================================


@router.get("/templates/{template_id}/versions", response_model=list[PromptVersionRead])
def list_versions(template_id: UUID, ctx: AccountCtx, session: DbSession):
    """Version history, newest first."""
    store = PromptTemplateStore(session, ctx)
    return [PromptVersionRead.model_validate(v) for v in store.list_versions(template_id)]


@router.post(
    "/templates/{template_id}/versions",
    response_model=PromptVersionRead,
    status_code=status.HTTP_201_CREATED,
)
def create_version(
    template_id: UUID,
    request: CreateVersionRequest,
    ctx: AccountCtx,
    session: DbSession,
):
    store = PromptTemplateStore(session, ctx)
    version = store.create_version(
        template_id,
        request.prompt_body,
        system_message=request.system_message,
        parameters=request.parameters,
        notes=request.notes,
    )
    return PromptVersionRead.model_validate(version)


@router.put(
    "/templates/{template_id}/versions/{version_id}/current",
    response_model=PromptVersionRead,
)
def set_current_version(
    template_id: UUID,
    version_id: UUID,
    ctx: AccountCtx,
    session: DbSession,
):
    """Roll back (or forward) to an existing version."""
    store = PromptTemplateStore(session, ctx)
    return PromptVersionRead.model_validate(
        store.set_current_version(template_id, version_id)
    )


@router.post(
    "/templates/{template_id}/versions/{version_id}/test",
    response_model=RenderedPrompt,
)
def render_version(
    template_id: UUID,
    version_id: UUID,
    request: RenderVersionRequest,
    ctx: AccountCtx,
    session: DbSession,
):
    """Render a version with test values. No provider is called."""
    store = PromptTemplateStore(session, ctx)
    return store.render_version(template_id, version_id, request.variables)


@router.get("/templates/{template_id}/usage", response_model=list[VersionUsage])
def template_usage(
    template_id: UUID,
    ctx: AccountCtx,
    session: DbSession,
    log_service: LogService,
):
    """Per-version use counts from the AI response log."""
    PromptTemplateStore(session, ctx).get_template(template_id)
    return log_service.version_usage(ctx.account_id, template_id)
