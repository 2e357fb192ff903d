"""Tests for the prompt template store and its version history."""

import pytest
from sqlmodel import select

from contentgen.db.models import PromptTemplateCreate, PromptVersion
from contentgen.errors import AccessDenied, ConflictingCategory, InvalidTemplate, NotFound
from contentgen.prompts import PromptTemplateStore


def _create(store, category="blog_post", body="Write about {{article.title}}", **kw):
    return store.create_template(PromptTemplateCreate(
        name=kw.pop("name", f"{category} template"),
        category=category,
        prompt_body=body,
        **kw,
    ))


def _current_count(session, template_id) -> int:
    statement = select(PromptVersion).where(
        PromptVersion.template_id == template_id,
        PromptVersion.is_current == True,
    )
    return len(session.exec(statement).all())


class TestCreateTemplate:
    def test_creates_version_one_as_current(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        template = _create(store, system_message="You are a journalist.",
                           parameters={"temperature": 0.4})

        assert template.account_id == ctx_a.account_id
        assert template.is_active
        assert template.created_by == "editor-a"

        current = store.get_current_version(template.id)
        assert current.version_number == 1
        assert current.is_current
        assert current.system_message == "You are a journalist."
        assert current.parameters == {"temperature": 0.4}

    def test_invalid_template_writes_nothing(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        with pytest.raises(InvalidTemplate):
            _create(store, body="Broken {{article.title")
        assert store.list_templates(include_inactive=True) == []

    def test_invalid_parameters_write_nothing(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        with pytest.raises(InvalidTemplate):
            _create(store, parameters={"temperature": 1.5})
        assert store.list_templates(include_inactive=True) == []

    def test_second_active_template_for_category_conflicts(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        _create(store)
        with pytest.raises(ConflictingCategory):
            _create(store, name="Another blog template")

    def test_deactivated_category_can_be_reused(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        old = _create(store)
        store.deactivate_template(old.id)
        new = _create(store, name="Blog v2")

        assert store.get_by_category("blog_post").id == new.id
        assert [t.id for t in store.list_templates()] == [new.id]
        assert len(store.list_templates(include_inactive=True)) == 2

    def test_same_category_in_two_accounts(self, session, ctx_a, ctx_b):
        a = _create(PromptTemplateStore(session, ctx_a))
        b = _create(PromptTemplateStore(session, ctx_b))
        assert a.id != b.id


class TestVersions:
    def test_create_version_increments_and_moves_current(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        template = _create(store)

        v2 = store.create_version(template.id, "Second {{article.title}}", notes="tighter")
        v3 = store.create_version(template.id, "Third {{article.title}}")

        assert (v2.version_number, v3.version_number) == (2, 3)
        assert v3.is_current
        assert v2.notes == "tighter"
        assert store.get_current_version(template.id).id == v3.id
        assert _current_count(session, template.id) == 1

    def test_versions_listed_newest_first(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        template = _create(store)
        store.create_version(template.id, "Second")
        store.create_version(template.id, "Third")
        assert [v.version_number for v in store.list_versions(template.id)] == [3, 2, 1]

    def test_rollback_to_earlier_version(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        template = _create(store)
        v1 = store.get_current_version(template.id)
        store.create_version(template.id, "Second")

        restored = store.set_current_version(template.id, v1.id)
        assert restored.id == v1.id
        assert restored.is_current
        assert _current_count(session, template.id) == 1

        # Rolling back never renumbers; the next version continues from the max
        v3 = store.create_version(template.id, "Third")
        assert v3.version_number == 3

    def test_invalid_version_body_leaves_current_untouched(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        template = _create(store)
        with pytest.raises(InvalidTemplate):
            store.create_version(template.id, "{{unclosed")
        assert store.get_current_version(template.id).version_number == 1
        assert len(store.list_versions(template.id)) == 1

    @pytest.mark.parametrize("parameters", [
        {"temperature": 1.5},
        {"temperature": "warm"},
        {"max_output_tokens": 0},
        {"top_p": -0.1},
    ])
    def test_out_of_range_parameters_are_rejected(self, session, ctx_a, parameters):
        store = PromptTemplateStore(session, ctx_a)
        template = _create(store)

        with pytest.raises(InvalidTemplate) as exc_info:
            store.create_version(template.id, "Second {{article.title}}", parameters=parameters)

        assert exc_info.value.details["errors"]
        current = store.get_current_version(template.id)
        assert current.version_number == 1
        assert len(store.list_versions(template.id)) == 1

    def test_unknown_parameter_keys_are_accepted(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        template = _create(store)
        v2 = store.create_version(
            template.id, "Second", parameters={"temperature": 0.3, "model_hint": "claude-sonnet"}
        )
        assert v2.parameters == {"temperature": 0.3, "model_hint": "claude-sonnet"}

    def test_version_of_other_template_is_not_found(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        blog = _create(store)
        social = _create(store, category="social_media")
        social_v1 = store.get_current_version(social.id)
        with pytest.raises(NotFound):
            store.set_current_version(blog.id, social_v1.id)

    def test_unknown_template(self, session, ctx_a):
        from uuid import uuid4

        store = PromptTemplateStore(session, ctx_a)
        with pytest.raises(NotFound):
            store.get_template(uuid4())
        with pytest.raises(NotFound):
            store.create_version(uuid4(), "Body")


class TestRenderVersion:
    def test_renders_without_saving(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        template = _create(
            store,
            body="Write about {{article.title}} for {audience}. {{blog_post_output}}",
            system_message="You write for {{account.name}}.",
            parameters={"temperature": 0.4},
        )
        version = store.get_current_version(template.id)

        rendered = store.render_version(template.id, version.id, {
            "article.title": "Rain",
            "audience": "farmers",
        })

        assert rendered.prompt == "Write about Rain for farmers. "
        assert rendered.system_message == "You write for ."
        assert rendered.parameters == {"temperature": 0.4}
        assert rendered.version_number == 1
        assert rendered.missing == ["account.name", "blog_post_output"]
        assert [v.name for v in rendered.variables] == [
            "article.title", "audience", "blog_post_output",
        ]
        assert len(store.list_versions(template.id)) == 1

    def test_renders_a_non_current_version(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        template = _create(store)
        v1 = store.get_current_version(template.id)
        store.create_version(template.id, "Second {{article.title}}")

        rendered = store.render_version(template.id, v1.id, {"article": {"title": "Rain"}})

        assert rendered.prompt == "Write about Rain"
        assert rendered.system_message is None
        assert rendered.missing == []

    def test_version_of_other_template_is_not_found(self, session, ctx_a):
        store = PromptTemplateStore(session, ctx_a)
        blog = _create(store)
        social = _create(store, category="social_media")
        with pytest.raises(NotFound):
            store.render_version(blog.id, store.get_current_version(social.id).id)


class TestAccountIsolation:
    def test_other_accounts_template_is_access_denied(self, session, ctx_a, ctx_b):
        template_b = _create(PromptTemplateStore(session, ctx_b))
        store_a = PromptTemplateStore(session, ctx_a)

        with pytest.raises(AccessDenied):
            store_a.get_template(template_b.id)
        with pytest.raises(AccessDenied):
            store_a.list_versions(template_b.id)
        with pytest.raises(AccessDenied):
            store_a.create_version(template_b.id, "Hijack")
        with pytest.raises(AccessDenied):
            store_a.deactivate_template(template_b.id)

    def test_lists_only_own_rows(self, session, ctx_a, ctx_b):
        _create(PromptTemplateStore(session, ctx_b))
        own = _create(PromptTemplateStore(session, ctx_a), category="prayer")

        templates = PromptTemplateStore(session, ctx_a).list_templates(include_inactive=True)
        assert [t.id for t in templates] == [own.id]
        assert all(t.account_id == ctx_a.account_id for t in templates)
        assert PromptTemplateStore(session, ctx_a).get_by_category("blog_post") is None

    def test_other_accounts_template_is_untouched(self, session, ctx_a, ctx_b):
        store_b = PromptTemplateStore(session, ctx_b)
        template_b = _create(store_b)
        with pytest.raises(AccessDenied):
            PromptTemplateStore(session, ctx_a).create_version(template_b.id, "Hijack")
        assert len(store_b.list_versions(template_b.id)) == 1
        assert store_b.get_template(template_b.id).is_active
