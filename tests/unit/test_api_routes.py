"""Tests for the account-scoped v1 routes."""

import asyncio
from uuid import uuid4

import pytest


def _base(account_id) -> str:
    return f"/v1/accounts/{account_id}"


def _create_template(client, account_id, category="blog_post", body="Write about {{article.title}}"):
    response = client.post(f"{_base(account_id)}/templates", json={
        "name": f"{category} template",
        "category": category,
        "prompt_body": body,
        "parameters": {"temperature": 0.5},
    })
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestTemplateRoutes:
    def test_create_and_fetch(self, client, account_a):
        created = _create_template(client, account_a)
        template = created["template"]
        assert template["account_id"] == str(account_a)
        assert template["created_by"] == "editor-a"
        assert created["current_version"]["version_number"] == 1

        response = client.get(f"{_base(account_a)}/templates/{template['id']}")
        assert response.status_code == 200
        assert response.json()["current_version"]["prompt_body"] == "Write about {{article.title}}"

        listed = client.get(f"{_base(account_a)}/templates").json()
        assert [t["id"] for t in listed] == [template["id"]]

    def test_invalid_body_is_400(self, client, account_a):
        response = client.post(f"{_base(account_a)}/templates", json={
            "name": "Broken", "category": "blog_post", "prompt_body": "{{article.title",
        })
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_TEMPLATE"

    def test_second_active_template_conflicts(self, client, account_a):
        _create_template(client, account_a)
        response = client.post(f"{_base(account_a)}/templates", json={
            "name": "Again", "category": "blog_post", "prompt_body": "Write",
        })
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICTING_CATEGORY"

    def test_missing_field_is_validation_error(self, client, account_a):
        response = client.post(f"{_base(account_a)}/templates", json={"name": "No body"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_versions_and_rollback(self, client, account_a):
        template_id = _create_template(client, account_a)["template"]["id"]
        versions_url = f"{_base(account_a)}/templates/{template_id}/versions"

        response = client.post(versions_url, json={"prompt_body": "Second", "notes": "shorter"})
        assert response.status_code == 201
        assert response.json()["version_number"] == 2

        history = client.get(versions_url).json()
        assert [v["version_number"] for v in history] == [2, 1]
        first_id = history[1]["id"]

        response = client.put(f"{versions_url}/{first_id}/current")
        assert response.status_code == 200
        assert response.json()["is_current"] is True

        current = client.get(f"{_base(account_a)}/templates/{template_id}").json()
        assert current["current_version"]["id"] == first_id

    def test_out_of_range_version_parameters_are_400(self, client, account_a):
        template_id = _create_template(client, account_a)["template"]["id"]
        versions_url = f"{_base(account_a)}/templates/{template_id}/versions"

        response = client.post(versions_url, json={
            "prompt_body": "Second", "parameters": {"temperature": 1.5},
        })

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INVALID_TEMPLATE"
        assert error["details"]["errors"][0]["field"] == "temperature"
        assert [v["version_number"] for v in client.get(versions_url).json()] == [1]

    def test_render_version(self, client, text_provider, account_a):
        created = _create_template(client, account_a)
        template_id = created["template"]["id"]
        version_id = created["current_version"]["id"]

        response = client.post(
            f"{_base(account_a)}/templates/{template_id}/versions/{version_id}/test",
            json={"variables": {"article.title": "Rain"}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["prompt"] == "Write about Rain"
        assert body["parameters"] == {"temperature": 0.5}
        assert body["missing"] == []
        assert text_provider.prompts == []

    def test_render_version_reports_missing(self, client, account_a):
        created = _create_template(client, account_a)
        url = (
            f"{_base(account_a)}/templates/{created['template']['id']}"
            f"/versions/{created['current_version']['id']}/test"
        )
        response = client.post(url, json={})
        assert response.status_code == 200
        assert response.json()["missing"] == ["article.title"]

    def test_usage_per_version(
        self, client, text_provider, account_a, seed_article
    ):
        template_id = _create_template(client, account_a)["template"]["id"]
        text_provider.script("Blog body.")
        response = client.post(
            f"{_base(account_a)}/runs", json={"article_id": str(seed_article(account_a).id)}
        )
        assert response.status_code == 201

        usage = client.get(f"{_base(account_a)}/templates/{template_id}/usage").json()

        (v1,) = usage
        assert v1["version_number"] == 1
        assert v1["total_uses"] == 1
        assert v1["successful_uses"] == 1

    def test_usage_of_other_accounts_template_is_403(self, client, account_a, account_b):
        template_id = _create_template(client, account_b)["template"]["id"]
        response = client.get(f"{_base(account_a)}/templates/{template_id}/usage")
        assert response.status_code == 403

    def test_by_category(self, client, account_a):
        _create_template(client, account_a, category="prayer", body="Pray")

        response = client.get(f"{_base(account_a)}/templates/by-category/prayer")
        assert response.status_code == 200
        assert response.json()["template"]["category"] == "prayer"

        response = client.get(f"{_base(account_a)}/templates/by-category/video_script")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_deactivate(self, client, account_a):
        template_id = _create_template(client, account_a)["template"]["id"]

        response = client.delete(f"{_base(account_a)}/templates/{template_id}")
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        assert client.get(f"{_base(account_a)}/templates").json() == []
        inactive = client.get(f"{_base(account_a)}/templates?include_inactive=true").json()
        assert len(inactive) == 1

    def test_unknown_template_is_404(self, client, account_a):
        response = client.get(f"{_base(account_a)}/templates/{uuid4()}")
        assert response.status_code == 404


class TestAccountIsolation:
    def test_other_accounts_template_is_403(self, client, account_a, account_b):
        template_id = _create_template(client, account_b)["template"]["id"]

        response = client.get(f"{_base(account_a)}/templates/{template_id}")
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

        response = client.post(
            f"{_base(account_a)}/templates/{template_id}/versions",
            json={"prompt_body": "Hijack"},
        )
        assert response.status_code == 403

        versions = client.get(f"{_base(account_b)}/templates/{template_id}/versions").json()
        assert len(versions) == 1

    def test_bad_account_id_is_400(self, client):
        response = client.get("/v1/accounts/not-a-uuid/templates")
        assert response.status_code == 400


class TestRunRoutes:
    def test_run_article(self, client, text_provider, account_a, seed_template, seed_article):
        seed_template(account_a, "blog_post", "Write about {{article.title}}")
        source = seed_article(account_a)
        text_provider.script("Blog about TechCrunch AI.")

        response = client.post(f"{_base(account_a)}/runs", json={"article_id": str(source.id)})

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["state"] == "done"
        assert body["items_by_category"]["blog_post"][0]["content"] == "Blog about TechCrunch AI."

        article = client.get(f"{_base(account_a)}/articles/{body['blog_id']}").json()
        assert article["article"]["word_count"] == 4
        assert list(article["items_by_category"]) == ["blog_post"]

        logs = client.get(f"{_base(account_a)}/logs?gen_article_id={body['blog_id']}").json()
        assert len(logs) == 1
        assert logs[0]["is_complete"] is True

    def test_run_evergreen(self, client, account_a, seed_template, seed_idea):
        seed_template(account_a, "blog_post", "Explain {{article.title}}")
        idea = seed_idea(account_a)

        response = client.post(f"{_base(account_a)}/runs", json={"evergreen_id": str(idea.id)})

        assert response.status_code == 201, response.text
        article = client.get(f"{_base(account_a)}/articles/{response.json()['blog_id']}").json()
        assert article["article"]["based_on_evergreen_id"] == str(idea.id)

    def test_run_other_accounts_article_is_403(
        self, client, text_provider, account_a, account_b, seed_article
    ):
        source = seed_article(account_b)
        response = client.post(f"{_base(account_a)}/runs", json={"article_id": str(source.id)})
        assert response.status_code == 403
        assert text_provider.call_count == 0

    def test_cycle_is_422(self, client, account_a, seed_template, seed_config, seed_article):
        seed_template(account_a, "blog_post", "Write")
        seed_template(account_a, "social_media", "Promote {{blog_post_output}}")
        seed_config(account_a, "blog_post", execution_order=1)
        seed_config(account_a, "social_media", execution_order=0)
        source = seed_article(account_a)

        response = client.post(f"{_base(account_a)}/runs", json={"article_id": str(source.id)})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "WORKFLOW_CYCLE"

    @pytest.mark.parametrize("payload", [{}, {"article_id": str(uuid4()), "evergreen_id": str(uuid4())}])
    def test_exactly_one_source(self, client, account_a, payload):
        response = client.post(f"{_base(account_a)}/runs", json=payload)
        assert response.status_code == 400


class TestArticleRoutes:
    @pytest.fixture
    def article_id(self, executor, account_a, seed_template, seed_article):
        seed_template(account_a, "blog_post", "Write")
        return asyncio.run(executor.run(seed_article(account_a), account_a)).blog_id

    def test_list_and_filter(self, client, account_a, article_id):
        listed = client.get(f"{_base(account_a)}/articles").json()
        assert [a["id"] for a in listed] == [str(article_id)]
        assert client.get(f"{_base(account_a)}/articles?status=approved").json() == []

    def test_review_flow(self, client, account_a, article_id):
        url = f"{_base(account_a)}/articles/{article_id}"

        response = client.patch(url, json={"status": "review_pending"})
        assert response.status_code == 200

        response = client.patch(url, json={"status": "approved", "body_final": "Final text"})
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "approved"
        assert body["body_final"] == "Final text"
        assert body["reviewed_by"] == "editor-a"

        response = client.patch(url, json={"status": "draft"})
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    def test_stats(self, client, account_a, article_id):
        stats = client.get(f"{_base(account_a)}/articles/stats").json()
        assert stats["articles"] == 1
        assert stats["articles_by_status"] == {"draft": 1}
        assert stats["items_by_category"] == {"blog_post": 1}

    def test_other_account_cannot_review(self, client, account_b, article_id):
        response = client.patch(
            f"{_base(account_b)}/articles/{article_id}", json={"status": "approved"}
        )
        assert response.status_code == 403


class TestLogRoutes:
    def test_recent_and_usage(self, client, executor, account_a, seed_template, seed_article):
        seed_template(account_a, "blog_post", "Write")
        asyncio.run(executor.run(seed_article(account_a), account_a))

        logs = client.get(f"{_base(account_a)}/logs").json()
        assert len(logs) == 1
        assert logs[0]["provider"] == "gemini"
        assert client.get(f"{_base(account_a)}/logs?truncated=true").json() == []

        usage = client.get(f"{_base(account_a)}/logs/usage").json()
        assert usage[0]["provider"] == "gemini"
        assert usage[0]["calls"] == 1
