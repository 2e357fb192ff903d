"""Tests for the content configuration registry."""

import pytest

from contentgen.content.config_registry import (
    FALLBACK_CONFIGURATIONS,
    ContentConfigurationRegistry,
)
from contentgen.db.models import MediaType, ParsingMethod
from contentgen.errors import NotFound


class TestContentConfigurationRegistry:
    def test_active_configurations_ordered(self, session, account_a):
        registry = ContentConfigurationRegistry(session)
        registry.register(account_a, {"category": "video_script", "execution_order": 2,
                                      "media_type": "video", "parsing_method": "video_script"})
        registry.register(account_a, {"category": "social_media", "execution_order": 1})
        registry.register(account_a, {"category": "blog_post", "execution_order": 1})

        configs = registry.get_active_configurations(account_a)
        assert [c.category for c in configs] == ["blog_post", "social_media", "video_script"]
        assert configs[2].media_type == MediaType.video
        assert configs[2].parsing_method == ParsingMethod.video_script

    def test_register_updates_existing(self, session, account_a):
        registry = ContentConfigurationRegistry(session)
        first = registry.register(account_a, {"category": "prayer", "execution_order": 3})
        second = registry.register(account_a, {
            "category": "prayer",
            "execution_order": 5,
            "parsing_method": "prayer_points",
            "ui_config": {"icon": "hands"},
        })

        assert second.id == first.id
        assert second.execution_order == 5
        assert second.ui_config == {"icon": "hands"}
        assert len(registry.get_active_configurations(account_a)) == 1

    def test_deactivate(self, session, account_a):
        registry = ContentConfigurationRegistry(session)
        registry.register(account_a, {"category": "blog_post"})
        registry.deactivate(account_a, "blog_post")
        assert registry.get_active_configurations(account_a) == []
        assert registry.get_configuration(account_a, "blog_post").is_active is False

    def test_deactivate_unknown(self, session, account_a):
        with pytest.raises(NotFound):
            ContentConfigurationRegistry(session).deactivate(account_a, "nope")

    def test_account_scoped(self, session, account_a, account_b):
        registry = ContentConfigurationRegistry(session)
        registry.register(account_b, {"category": "blog_post"})
        assert registry.get_active_configurations(account_a) == []
        assert registry.get_configuration(account_a, "blog_post") is None

    def test_fallback_sequence(self):
        assert [c.category for c in FALLBACK_CONFIGURATIONS] == [
            "blog_post", "social_media", "video_script", "prayer", "image_generation",
        ]
        assert FALLBACK_CONFIGURATIONS[-1].media_type == MediaType.image
