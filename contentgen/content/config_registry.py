"""Per-account content configuration registry.

A configuration says which categories an account produces, in what order,
through which template, and how the provider output is parsed and stored.
Accounts without any configuration run the built-in fallback plan.
"""

from typing import Any, Optional, Union
from uuid import UUID

from sqlmodel import Session, select

from contentgen.db.models import (
    ContentConfiguration,
    ContentConfigurationCreate,
    MediaType,
    ParsingMethod,
)
from contentgen.errors import NotFound
from contentgen.logging import get_logger

logger = get_logger(__name__)


# Legacy categories, in the order the fallback plan runs them
FALLBACK_CONFIGURATIONS: tuple[ContentConfigurationCreate, ...] = (
    ContentConfigurationCreate(
        category="blog_post",
        display_name="Blog Post",
        media_type=MediaType.text,
        parsing_method=ParsingMethod.generic,
        storage_schema={"type": "text"},
        execution_order=0,
    ),
    ContentConfigurationCreate(
        category="social_media",
        display_name="Social Media Posts",
        media_type=MediaType.text,
        parsing_method=ParsingMethod.social_media,
        storage_schema={"type": "array", "fields": ["platform", "text", "hashtags", "order_number"]},
        execution_order=1,
    ),
    ContentConfigurationCreate(
        category="video_script",
        display_name="Video Script",
        media_type=MediaType.video,
        parsing_method=ParsingMethod.video_script,
        storage_schema={"type": "object", "fields": ["title", "script", "duration", "visual_suggestions"]},
        execution_order=2,
    ),
    ContentConfigurationCreate(
        category="prayer",
        display_name="Prayer Points",
        media_type=MediaType.text,
        parsing_method=ParsingMethod.prayer_points,
        storage_schema={"type": "array", "fields": ["order_number", "prayer_text", "theme"]},
        execution_order=3,
    ),
    ContentConfigurationCreate(
        category="image_generation",
        display_name="Image",
        media_type=MediaType.image,
        parsing_method=ParsingMethod.generic,
        storage_schema={"type": "image"},
        execution_order=4,
    ),
)


class ContentConfigurationRegistry:
    """Reads and maintains ContentConfiguration rows for any account.

    Every method takes an explicit account_id and filters on it.
    """

    def __init__(self, session: Session):
        self.session = session

    def _select(self, account_id: UUID):
        return select(ContentConfiguration).where(
            ContentConfiguration.account_id == account_id
        )

    def get_active_configurations(self, account_id: UUID) -> list[ContentConfiguration]:
        """Active configurations ordered by execution_order, then category."""
        statement = (
            self._select(account_id)
            .where(ContentConfiguration.is_active == True)
            .order_by(
                ContentConfiguration.execution_order,
                ContentConfiguration.category,
            )
        )
        return list(self.session.exec(statement).all())

    def get_configuration(
        self, account_id: UUID, category: str
    ) -> Optional[ContentConfiguration]:
        statement = self._select(account_id).where(
            ContentConfiguration.category == category
        )
        return self.session.exec(statement).first()

    def register(
        self,
        account_id: UUID,
        data: Union[ContentConfigurationCreate, dict[str, Any]],
    ) -> ContentConfiguration:
        """Insert or update the configuration for data.category."""
        if isinstance(data, dict):
            data = ContentConfigurationCreate.model_validate(data)

        config = self.get_configuration(account_id, data.category)
        if config is None:
            config = ContentConfiguration.model_validate(
                data, update={"account_id": account_id}
            )
            action = "created"
        else:
            for key, value in data.model_dump().items():
                setattr(config, key, value)
            action = "updated"

        self.session.add(config)
        self.session.commit()
        self.session.refresh(config)
        logger.info(
            "content_configuration_registered",
            account_id=str(account_id),
            category=config.category,
            action=action,
        )
        return config

    def deactivate(self, account_id: UUID, category: str) -> ContentConfiguration:
        config = self.get_configuration(account_id, category)
        if config is None:
            raise NotFound(
                f"No configuration for category '{category}'",
                details={"category": category},
            )
        config.is_active = False
        self.session.add(config)
        self.session.commit()
        self.session.refresh(config)
        return config
