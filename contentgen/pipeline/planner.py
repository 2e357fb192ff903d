"""Workflow planning: active configurations + current template versions -> steps.

Steps are ordered by execution_order, ties broken by template name. A step
whose prompt references `<category>_output` must come after the step for
that category; a reference that the order cannot satisfy (including a
self-reference or a genuine cycle) raises WorkflowCycle, before any
provider is called.
"""

from enum import Enum
from typing import Any, Iterable, Optional
from uuid import UUID

from contentgen.content.config_registry import (
    FALLBACK_CONFIGURATIONS,
    ContentConfigurationRegistry,
)
from contentgen.db.models import PromptTemplate, PromptVersion
from contentgen.errors import WorkflowCycle
from contentgen.logging import get_logger
from contentgen.models import Step
from contentgen.prompts.store import PromptTemplateStore
from contentgen.prompts.variables import output_dependencies
from contentgen.tenancy import require_account

logger = get_logger(__name__)


def _value(v: Any) -> Any:
    return v.value if isinstance(v, Enum) else v


def check_dependencies(steps: list[Step]) -> None:
    """Raise WorkflowCycle unless every `X_output` reference follows X."""
    positions = {step.category: index for index, step in enumerate(steps)}
    for index, step in enumerate(steps):
        deps = output_dependencies(step.prompt_body) | output_dependencies(step.system_message)
        for dep in sorted(deps):
            if dep == step.category:
                raise WorkflowCycle(
                    f"Step '{step.category}' references its own output",
                    details={"category": step.category, "depends_on": dep},
                )
            if dep in positions and positions[dep] > index:
                raise WorkflowCycle(
                    f"Step '{step.category}' references '{dep}_output' "
                    f"but '{dep}' runs later",
                    details={
                        "category": step.category,
                        "depends_on": dep,
                        "order": [s.category for s in steps],
                    },
                )


class WorkflowPlanner:
    """Builds the ordered step list for one account."""

    def __init__(
        self,
        templates: PromptTemplateStore,
        registry: ContentConfigurationRegistry,
    ):
        self.templates = templates
        self.registry = registry

    def _resolve(self, category: str) -> Optional[tuple[PromptTemplate, PromptVersion]]:
        template = self.templates.get_by_category(category)
        if template is None:
            return None
        version = self.templates.get_current_version(template.id)
        if version is None:
            return None
        return template, version

    def _build(self, configs: Iterable[Any], account_id: UUID) -> list[Step]:
        steps = []
        for config in configs:
            template_category = getattr(config, "template_ref", None) or config.category
            resolved = self._resolve(template_category)
            if resolved is None:
                logger.warning(
                    "step_skipped_missing_template",
                    account_id=str(account_id),
                    category=config.category,
                    template_category=template_category,
                )
                continue
            template, version = resolved
            steps.append(Step(
                category=config.category,
                template_id=template.id,
                version_id=version.id,
                template_name=template.name,
                version_number=version.version_number,
                system_message=version.system_message,
                prompt_body=version.prompt_body,
                parameters=version.parameters or {},
                media_type=_value(config.media_type),
                parsing_method=_value(config.parsing_method),
                storage_schema=config.storage_schema,
                ui_config=config.ui_config,
                execution_order=config.execution_order,
            ))

        # Stable: equal (order, name) pairs keep configuration order
        steps.sort(key=lambda s: (s.execution_order, s.template_name))
        check_dependencies(steps)
        return steps

    def plan(self, account_id: UUID) -> list[Step]:
        """Steps from the account's active configurations.

        An empty list means the account has no usable configuration.
        """
        require_account(self.templates.ctx, account_id)
        configs = self.registry.get_active_configurations(account_id)
        steps = self._build(configs, account_id)
        logger.info(
            "workflow_planned",
            account_id=str(account_id),
            configurations=len(configs),
            steps=[s.category for s in steps],
        )
        return steps

    def fallback_plan(self, account_id: UUID) -> list[Step]:
        """The legacy category sequence, using whatever templates exist."""
        require_account(self.templates.ctx, account_id)
        steps = self._build(FALLBACK_CONFIGURATIONS, account_id)
        logger.info(
            "fallback_plan_used",
            account_id=str(account_id),
            steps=[s.category for s in steps],
        )
        return steps
