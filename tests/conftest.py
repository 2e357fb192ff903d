"""Shared fixtures and fake providers for testing."""

import asyncio
import os
import time
from typing import Callable, Optional, Union
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient

# Before any contentgen import: no test may reach a real database or provider
os.environ["DATABASE_URL"] = "sqlite://"
for _key in ("GEMINI_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY", "IDEOGRAM_API_KEY"):
    os.environ.pop(_key, None)

from api.main import create_app
from contentgen.config import load_settings
from contentgen.content.config_registry import ContentConfigurationRegistry
from contentgen.db import create_db_engine, init_db, make_session_factory, session_scope
from contentgen.db.models import (
    Account,
    ContentConfigurationCreate,
    EvergreenIdea,
    PromptTemplateCreate,
    SourceArticle,
    SourceArticleStatus,
)
from contentgen.models import (
    GenerationConfig,
    ImageGeneration,
    ImageOptions,
    TextGeneration,
)
from contentgen.pipeline import PipelineExecutor
from contentgen.prompts import PromptTemplateStore
from contentgen.providers import ImageProvider, ProviderRouter, TextProvider
from contentgen.tenancy import AccountContext


TextResponse = Union[str, TextGeneration, BaseException, Callable[[str], str]]


class FakeTextProvider(TextProvider):
    """Text provider returning scripted responses without API calls.

    Each call consumes the next scripted response; once the script is
    exhausted `default_response` is returned. A scripted exception is
    raised instead of returned.
    """

    name = "gemini"
    DEFAULT_MODEL = "fake-text-model"

    def __init__(
        self,
        responses: Optional[list[TextResponse]] = None,
        default_response: str = "Default response.",
        timeout_ms: int = 2000,
        delay_s: float = 0.0,
    ):
        super().__init__({"api_key": "test-key", "timeout_ms": timeout_ms})
        self.responses = list(responses or [])
        self.default_response = default_response
        self.delay_s = delay_s
        self.call_count = 0
        self.prompts: list[str] = []
        self.system_messages: list[Optional[str]] = []
        self.configs: list[GenerationConfig] = []

    def _get_api_key_from_env(self) -> Optional[str]:
        return None

    def script(self, *responses: TextResponse) -> "FakeTextProvider":
        self.responses.extend(responses)
        return self

    def _call_api(self, prompt, system_message, config) -> TextGeneration:
        self.call_count += 1
        self.prompts.append(prompt)
        self.system_messages.append(system_message)
        self.configs.append(config)
        if self.delay_s:
            time.sleep(self.delay_s)

        response = self.responses.pop(0) if self.responses else self.default_response
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, TextGeneration):
            return response
        if callable(response):
            response = response(prompt)
        return TextGeneration(
            text=response,
            input_tokens=len(prompt.split()),
            output_tokens=len(response.split()),
            stop_reason="stop",
        )


class FakeImageProvider(ImageProvider):
    """Image provider returning a numbered URL per call."""

    name = "ideogram"
    DEFAULT_MODEL = "V_3"

    def __init__(self, error: Optional[BaseException] = None, timeout_ms: int = 2000):
        super().__init__({"api_key": "test-key", "timeout_ms": timeout_ms})
        self.error = error
        self.call_count = 0
        self.prompts: list[str] = []
        self.options: list[ImageOptions] = []

    def _get_api_key_from_env(self) -> Optional[str]:
        return None

    async def _call_api(self, prompt: str, options: ImageOptions) -> ImageGeneration:
        self.call_count += 1
        self.prompts.append(prompt)
        self.options.append(options)
        if self.error is not None:
            raise self.error
        return ImageGeneration(
            url=f"https://images.example.com/{self.call_count}.png",
            prompt_echo=prompt,
            resolution="1312x736",
            seed=42,
            style=options.style_type,
        )


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every session in the test."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def session(session_factory):
    with session_scope(session_factory) as session:
        yield session


def _create_account(session_factory, name: str, slug: str) -> UUID:
    with session_scope(session_factory) as session:
        account = Account(name=name, slug=slug)
        session.add(account)
        session.commit()
        return account.id


@pytest.fixture
def account_a(session_factory) -> UUID:
    return _create_account(session_factory, "Account A", "account-a")


@pytest.fixture
def account_b(session_factory) -> UUID:
    return _create_account(session_factory, "Account B", "account-b")


@pytest.fixture
def ctx_a(account_a) -> AccountContext:
    return AccountContext(account_id=account_a, user_id="editor-a")


@pytest.fixture
def ctx_b(account_b) -> AccountContext:
    return AccountContext(account_id=account_b, user_id="editor-b")


# =============================================================================
# Seed helpers
# =============================================================================


@pytest.fixture
def seed_template(session_factory):
    """Create an active template (and its version 1) for an account."""

    def _seed(
        account_id: UUID,
        category: str,
        body: str,
        system_message: Optional[str] = None,
        parameters: Optional[dict] = None,
        name: Optional[str] = None,
    ):
        with session_scope(session_factory) as session:
            store = PromptTemplateStore(session, AccountContext.system(account_id))
            return store.create_template(PromptTemplateCreate(
                name=name or f"{category} template",
                category=category,
                prompt_body=body,
                system_message=system_message,
                parameters=parameters,
            ))

    return _seed


@pytest.fixture
def seed_config(session_factory):
    """Register a content configuration for an account."""

    def _seed(
        account_id: UUID,
        category: str,
        parsing_method: str = "generic",
        media_type: str = "text",
        execution_order: int = 0,
        **extra,
    ):
        with session_scope(session_factory) as session:
            return ContentConfigurationRegistry(session).register(
                account_id,
                ContentConfigurationCreate(
                    category=category,
                    display_name=category.replace("_", " ").title(),
                    parsing_method=parsing_method,
                    media_type=media_type,
                    execution_order=execution_order,
                    **extra,
                ),
            )

    return _seed


@pytest.fixture
def seed_article(session_factory):
    """Insert a source article for an account."""

    def _seed(account_id: UUID, **values) -> SourceArticle:
        values.setdefault("title", "Revolutionary AI Technology Breakthrough")
        values.setdefault("full_text", "AI has reached new heights…")
        values.setdefault("source_name", "TechCrunch")
        values.setdefault("url", "https://techcrunch.com/ai-breakthrough")
        values.setdefault("status", SourceArticleStatus.analyzed)
        with session_scope(session_factory) as session:
            article = SourceArticle(account_id=account_id, **values)
            session.add(article)
            session.commit()
            session.refresh(article)
            return article

    return _seed


@pytest.fixture
def seed_idea(session_factory):
    """Insert an evergreen idea for an account."""

    def _seed(account_id: UUID, **values) -> EvergreenIdea:
        values.setdefault("title_idea", "Why sleep matters")
        values.setdefault("brief_description", "The science of rest and recovery.")
        values.setdefault("category", "health")
        with session_scope(session_factory) as session:
            idea = EvergreenIdea(account_id=account_id, **values)
            session.add(idea)
            session.commit()
            session.refresh(idea)
            return idea

    return _seed


# =============================================================================
# Pipeline
# =============================================================================


@pytest.fixture
def settings():
    return load_settings(
        provider_timeout_ms=2000,
        batch_pause_seconds=0,
        max_concurrent_runs=3,
    )


@pytest.fixture
def text_provider() -> FakeTextProvider:
    return FakeTextProvider()


@pytest.fixture
def image_provider() -> FakeImageProvider:
    return FakeImageProvider()


@pytest.fixture
def router(settings, text_provider, image_provider) -> ProviderRouter:
    return ProviderRouter(
        settings,
        overrides={"gemini": text_provider, "ideogram": image_provider},
    )


@pytest.fixture
def executor(session_factory, router, settings) -> PipelineExecutor:
    return PipelineExecutor(session_factory, router, settings=settings)


# =============================================================================
# API
# =============================================================================


class SyncTestClient:
    """Synchronous wrapper around httpx AsyncClient for testing."""

    def __init__(self, app, raise_app_exceptions: bool = True, headers: Optional[dict] = None):
        self.app = app
        self.transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
        self.base_url = "http://testserver"
        self.headers = headers or {}

    def _run_async(self, coro):
        """Run async coroutine synchronously."""
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(coro)
        finally:
            loop.close()

    async def _request(self, method: str, url: str, **kwargs):
        async with AsyncClient(
            transport=self.transport,
            base_url=self.base_url,
            headers=self.headers,
        ) as client:
            return await client.request(method, url, **kwargs)

    def get(self, url: str, **kwargs):
        return self._run_async(self._request("GET", url, **kwargs))

    def post(self, url: str, **kwargs):
        return self._run_async(self._request("POST", url, **kwargs))

    def put(self, url: str, **kwargs):
        return self._run_async(self._request("PUT", url, **kwargs))

    def patch(self, url: str, **kwargs):
        return self._run_async(self._request("PATCH", url, **kwargs))

    def delete(self, url: str, **kwargs):
        return self._run_async(self._request("DELETE", url, **kwargs))


@pytest.fixture
def make_client():
    """SyncTestClient class, for tests that build their own app."""
    return SyncTestClient


@pytest.fixture
def app(session_factory, router, settings):
    return create_app(session_factory=session_factory, router=router, settings=settings)


@pytest.fixture
def client(app) -> SyncTestClient:
    return SyncTestClient(app, headers={"X-User-ID": "editor-a"})
