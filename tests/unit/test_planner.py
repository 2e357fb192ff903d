"""Tests for workflow planning."""

import pytest

from contentgen.content.config_registry import ContentConfigurationRegistry
from contentgen.errors import AccessDenied, WorkflowCycle
from contentgen.models import Step
from contentgen.pipeline import WorkflowPlanner, check_dependencies
from contentgen.prompts import PromptTemplateStore


def _planner(session, ctx) -> WorkflowPlanner:
    return WorkflowPlanner(PromptTemplateStore(session, ctx), ContentConfigurationRegistry(session))


class TestCheckDependencies:
    def test_satisfied_order(self):
        check_dependencies([
            Step(category="blog_post", prompt_body="Write"),
            Step(category="social_media", prompt_body="Promote {{blog_post_output}}"),
        ])

    def test_reference_to_later_step(self):
        with pytest.raises(WorkflowCycle) as exc_info:
            check_dependencies([
                Step(category="social_media", prompt_body="Promote {{blog_post_output}}"),
                Step(category="blog_post", prompt_body="Write"),
            ])
        assert exc_info.value.details["depends_on"] == "blog_post"

    def test_self_reference(self):
        with pytest.raises(WorkflowCycle):
            check_dependencies([Step(category="blog_post", prompt_body="{blog_post_output}")])

    def test_system_message_references_count(self):
        with pytest.raises(WorkflowCycle):
            check_dependencies([
                Step(category="a", prompt_body="x", system_message="Context: {{b_output}}"),
                Step(category="b", prompt_body="y"),
            ])

    def test_reference_to_unplanned_category_is_allowed(self):
        check_dependencies([Step(category="a", prompt_body="{{missing_output}}")])


class TestWorkflowPlanner:
    def test_plan_from_configurations(
        self, session, ctx_a, account_a, seed_template, seed_config
    ):
        seed_template(account_a, "blog_post", "Write about {{article.title}}",
                      parameters={"temperature": 0.5, "model_hint": "claude-sonnet"})
        seed_template(account_a, "prayer", "Pray about {{article.title}}")
        seed_config(account_a, "prayer", parsing_method="prayer_points", execution_order=2)
        seed_config(account_a, "blog_post", execution_order=1, ui_config={"icon": "doc"})

        steps = _planner(session, ctx_a).plan(account_a)

        assert [s.category for s in steps] == ["blog_post", "prayer"]
        blog = steps[0]
        assert blog.version_number == 1
        assert blog.parameters == {"temperature": 0.5, "model_hint": "claude-sonnet"}
        assert blog.model_hint == "claude-sonnet"
        assert blog.media_type == "text"
        assert blog.ui_config == {"icon": "doc"}
        assert steps[1].parsing_method == "prayer_points"

    def test_uses_current_version(self, session, ctx_a, account_a, seed_template, seed_config):
        template = seed_template(account_a, "blog_post", "Version one")
        seed_config(account_a, "blog_post")
        PromptTemplateStore(session, ctx_a).create_version(template.id, "Version two")

        (step,) = _planner(session, ctx_a).plan(account_a)
        assert step.prompt_body == "Version two"
        assert step.version_number == 2

    def test_ties_broken_by_template_name(
        self, session, ctx_a, account_a, seed_template, seed_config
    ):
        seed_template(account_a, "first", "x", name="Zebra")
        seed_template(account_a, "second", "y", name="Alpha")
        seed_config(account_a, "first", execution_order=1)
        seed_config(account_a, "second", execution_order=1)

        steps = _planner(session, ctx_a).plan(account_a)
        assert [s.template_name for s in steps] == ["Alpha", "Zebra"]

    def test_template_ref_selects_other_category_template(
        self, session, ctx_a, account_a, seed_template, seed_config
    ):
        seed_template(account_a, "shared_social", "Promote {{article.title}}")
        seed_config(account_a, "twitter_thread", template_ref="shared_social",
                    parsing_method="social_media")

        (step,) = _planner(session, ctx_a).plan(account_a)
        assert step.category == "twitter_thread"
        assert step.prompt_body == "Promote {{article.title}}"

    def test_configuration_without_template_is_skipped(
        self, session, ctx_a, account_a, seed_template, seed_config
    ):
        seed_template(account_a, "blog_post", "Write")
        seed_config(account_a, "blog_post")
        seed_config(account_a, "video_script", execution_order=1)

        steps = _planner(session, ctx_a).plan(account_a)
        assert [s.category for s in steps] == ["blog_post"]

    def test_out_of_order_reference_raises_cycle(
        self, session, ctx_a, account_a, seed_template, seed_config
    ):
        seed_template(account_a, "blog_post", "Write about {{article.title}}")
        seed_template(account_a, "social_media", "Promote {{blog_post_output}}")
        seed_config(account_a, "blog_post", execution_order=2)
        seed_config(account_a, "social_media", execution_order=1)

        with pytest.raises(WorkflowCycle):
            _planner(session, ctx_a).plan(account_a)

    def test_no_configurations_means_empty_plan(self, session, ctx_a, account_a, seed_template):
        seed_template(account_a, "blog_post", "Write")
        assert _planner(session, ctx_a).plan(account_a) == []

    def test_fallback_plan_uses_existing_templates(
        self, session, ctx_a, account_a, seed_template
    ):
        seed_template(account_a, "prayer", "Pray")
        seed_template(account_a, "blog_post", "Write")
        seed_template(account_a, "image_generation", "Describe an image")

        steps = _planner(session, ctx_a).fallback_plan(account_a)
        assert [s.category for s in steps] == ["blog_post", "prayer", "image_generation"]
        assert steps[1].parsing_method == "prayer_points"
        assert steps[2].media_type == "image"

    def test_plan_for_other_account_is_denied(self, session, ctx_a, account_b):
        with pytest.raises(AccessDenied):
            _planner(session, ctx_a).plan(account_b)
