"""Prompt template store with immutable version history.

Templates are account-scoped and keyed by category. Bodies live in
PromptVersion rows; edits create a new version rather than changing an
existing one. Exactly one version of an active template is current.

Usage:
    with session_scope(session_factory) as session:
        store = PromptTemplateStore(session, ctx)
        template = store.create_template(PromptTemplateCreate(...))
        v2 = store.create_version(template.id, "Write about {{article.title}}")
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from contentgen.content.repository import AccountScopedRepository
from contentgen.db.models import (
    PromptTemplate,
    PromptTemplateCreate,
    PromptVersion,
)
from contentgen.errors import ConflictingCategory, NotFound
from contentgen.logging import get_logger
from contentgen.models import RenderedPrompt
from contentgen.prompts import variables
from contentgen.tenancy import AccountContext

logger = get_logger(__name__)


class _TemplateRepository(AccountScopedRepository[PromptTemplate]):
    model = PromptTemplate


class _VersionRepository(AccountScopedRepository[PromptVersion]):
    model = PromptVersion


class PromptTemplateStore:
    """CRUD and version management for one account's prompt templates."""

    def __init__(self, session: Session, ctx: AccountContext):
        self.session = session
        self.ctx = ctx
        self.account_id = ctx.account_id
        self._templates = _TemplateRepository(session, ctx.account_id)
        self._versions = _VersionRepository(session, ctx.account_id)

    @property
    def _actor(self) -> str:
        return str(self.ctx.user_id) if self.ctx.user_id else "system"

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------

    def create_template(self, data: PromptTemplateCreate) -> PromptTemplate:
        """Validate, then write the template and its version 1 (current)."""
        variables.validate(data)

        if self.get_by_category(data.category) is not None:
            raise ConflictingCategory(
                f"An active template already exists for category '{data.category}'",
                details={"category": data.category},
            )

        created_by = data.created_by if data.created_by != "system" else self._actor
        template = PromptTemplate(
            account_id=self.account_id,
            name=data.name,
            category=data.category,
            description=data.description,
            is_active=True,
            created_by=created_by,
        )
        self._templates.add(template)
        version = PromptVersion(
            template_id=template.id,
            account_id=self.account_id,
            version_number=1,
            prompt_body=data.prompt_body,
            system_message=data.system_message,
            parameters=data.parameters,
            created_by=created_by,
            notes=data.notes,
            is_current=True,
        )
        self._versions.add(version)
        try:
            self.session.commit()
        except IntegrityError as e:
            # Concurrent insert won the partial unique index
            self.session.rollback()
            raise ConflictingCategory(
                f"An active template already exists for category '{data.category}'",
                details={"category": data.category},
            ) from e
        self.session.refresh(template)

        logger.info(
            "template_created",
            account_id=str(self.account_id),
            template_id=str(template.id),
            category=template.category,
        )
        return template

    def get_template(self, template_id: UUID) -> PromptTemplate:
        """Get a template by id. Raises NotFound or AccessDenied."""
        return self._templates.get(template_id)

    def list_templates(self, include_inactive: bool = False) -> list[PromptTemplate]:
        statement = self._templates._select()
        if not include_inactive:
            statement = statement.where(PromptTemplate.is_active == True)
        statement = statement.order_by(PromptTemplate.category, PromptTemplate.name)
        return list(self.session.exec(statement).all())

    def get_by_category(self, category: str) -> Optional[PromptTemplate]:
        """The active template for a category, or None."""
        statement = self._templates._select().where(
            PromptTemplate.category == category,
            PromptTemplate.is_active == True,
        )
        return self.session.exec(statement).first()

    def deactivate_template(self, template_id: UUID) -> PromptTemplate:
        """Mark a template inactive, freeing its category for a new one."""
        template = self._templates.update(template_id, is_active=False)
        logger.info(
            "template_deactivated",
            account_id=str(self.account_id),
            template_id=str(template_id),
        )
        return template

    # -------------------------------------------------------------------------
    # Versions
    # -------------------------------------------------------------------------

    def _lock_template(self, template_id: UUID) -> PromptTemplate:
        """Row-lock the template for the rest of the transaction.

        FOR UPDATE serialises concurrent version writers on PostgreSQL; the
        SQLite dialect omits the clause.
        """
        statement = (
            self._templates._select()
            .where(PromptTemplate.id == template_id)
            .with_for_update()
        )
        template = self.session.exec(statement).first()
        if template is None:
            self._templates._raise_missing(template_id)
        return template

    def _clear_current(self, template_id: UUID) -> None:
        statement = self._versions._select().where(
            PromptVersion.template_id == template_id,
            PromptVersion.is_current == True,
        )
        for version in self.session.exec(statement).all():
            version.is_current = False
            self.session.add(version)
        # Flush before a new current row exists so the partial unique index
        # never sees two current versions.
        self.session.flush()

    def create_version(
        self,
        template_id: UUID,
        body: str,
        system_message: Optional[str] = None,
        parameters: Optional[dict[str, Any]] = None,
        notes: Optional[str] = None,
    ) -> PromptVersion:
        """Append version max+1 and make it current, in one transaction."""
        try:
            template = self._lock_template(template_id)
            variables.validate({
                "name": template.name,
                "category": template.category,
                "prompt_body": body,
                "parameters": parameters,
            })

            statement = select(func.max(PromptVersion.version_number)).where(
                PromptVersion.template_id == template_id,
                PromptVersion.account_id == self.account_id,
            )
            current_max = self.session.exec(statement).one() or 0

            self._clear_current(template_id)
            version = PromptVersion(
                template_id=template_id,
                account_id=self.account_id,
                version_number=current_max + 1,
                prompt_body=body,
                system_message=system_message,
                parameters=parameters,
                created_by=self._actor,
                notes=notes,
                is_current=True,
            )
            self._versions.add(version)
            template.updated_at = datetime.utcnow()
            self.session.add(template)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(version)
        logger.info(
            "template_version_created",
            account_id=str(self.account_id),
            template_id=str(template_id),
            version_number=version.version_number,
        )
        return version

    def set_current_version(self, template_id: UUID, version_id: UUID) -> PromptVersion:
        """Make an existing version current; clear and set in one transaction."""
        try:
            self._lock_template(template_id)
            version = self.get_version(template_id, version_id)
            if not version.is_current:
                self._clear_current(template_id)
                version.is_current = True
                self.session.add(version)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(version)
        logger.info(
            "template_version_activated",
            account_id=str(self.account_id),
            template_id=str(template_id),
            version_number=version.version_number,
        )
        return version

    def list_versions(self, template_id: UUID) -> list[PromptVersion]:
        """All versions of a template, newest first."""
        self._templates.get(template_id)
        statement = (
            self._versions._select()
            .where(PromptVersion.template_id == template_id)
            .order_by(PromptVersion.version_number.desc())
        )
        return list(self.session.exec(statement).all())

    def get_version(self, template_id: UUID, version_id: UUID) -> PromptVersion:
        """A version of this template. Raises NotFound if it belongs elsewhere."""
        self._templates.get(template_id)
        version = self._versions.get(version_id)
        if version.template_id != template_id:
            raise NotFound(
                "Version does not belong to this template",
                details={"template_id": str(template_id), "version_id": str(version_id)},
            )
        return version

    def render_version(
        self,
        template_id: UUID,
        version_id: UUID,
        values: Optional[dict[str, Any]] = None,
    ) -> RenderedPrompt:
        """Dry run: substitute test values into a version without generating.

        Nothing is written and no provider is called.
        """
        version = self.get_version(template_id, version_id)
        values = values or {}
        prompt = variables.substitute(version.prompt_body, values)
        system = (
            variables.substitute(version.system_message, values)
            if version.system_message else None
        )
        missing = set(prompt.missing)
        if system is not None:
            missing |= system.missing
        return RenderedPrompt(
            template_id=template_id,
            version_id=version.id,
            version_number=version.version_number,
            prompt=prompt.text,
            system_message=system.text if system is not None else None,
            parameters=version.parameters,
            variables=variables.extract(version.prompt_body),
            missing=sorted(missing),
        )

    def get_current_version(self, template_id: UUID) -> Optional[PromptVersion]:
        self._templates.get(template_id)
        statement = self._versions._select().where(
            PromptVersion.template_id == template_id,
            PromptVersion.is_current == True,
        )
        return self.session.exec(statement).first()
