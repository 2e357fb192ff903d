"""SQLModel table definitions.

This module exports all SQLModel table classes and their Create/Read variants.
All primary keys use UUID; every table except accounts carries account_id.

Model Categories:
- Tenancy: Account
- Prompts: PromptTemplate, PromptVersion
- Configuration: ContentConfiguration, AccountSetting
- Inputs: SourceArticle, EvergreenIdea
- Outputs: GeneratedArticle, GeneratedContentItem
- Audit: AIResponseLog
"""

# Base class
from contentgen.db.models.base import UUIDModel, TimestampMixin

# Tenancy
from contentgen.db.models.account import Account, AccountCreate, AccountRead

# Prompts
from contentgen.db.models.prompt import (
    PromptTemplate, PromptTemplateCreate, PromptTemplateRead,
    PromptVersion, PromptVersionRead,
)

# Configuration
from contentgen.db.models.content_config import (
    ContentConfiguration, ContentConfigurationCreate, ContentConfigurationRead,
    MediaType, ParsingMethod,
)
from contentgen.db.models.settings import (
    AccountSetting, AccountSettingRead, SettingType,
)

# Inputs
from contentgen.db.models.article import (
    SourceArticle, SourceArticleCreate, SourceArticleStatus,
    EvergreenIdea, EvergreenIdeaCreate,
)

# Outputs
from contentgen.db.models.generated import (
    GeneratedArticle, GeneratedArticleRead, GeneratedArticleUpdate,
    GeneratedArticleStatus, PROCESSING_PLACEHOLDER,
    GeneratedContentItem, GeneratedContentItemRead,
)

# Audit
from contentgen.db.models.ai_log import (
    AIResponseLog, AIResponseLogCreate, AIResponseLogRead,
)

__all__ = [
    # Base
    "UUIDModel",
    "TimestampMixin",
    # Tenancy
    "Account",
    "AccountCreate",
    "AccountRead",
    # Prompts
    "PromptTemplate",
    "PromptTemplateCreate",
    "PromptTemplateRead",
    "PromptVersion",
    "PromptVersionRead",
    # Configuration
    "ContentConfiguration",
    "ContentConfigurationCreate",
    "ContentConfigurationRead",
    "MediaType",
    "ParsingMethod",
    "AccountSetting",
    "AccountSettingRead",
    "SettingType",
    # Inputs
    "SourceArticle",
    "SourceArticleCreate",
    "SourceArticleStatus",
    "EvergreenIdea",
    "EvergreenIdeaCreate",
    # Outputs
    "GeneratedArticle",
    "GeneratedArticleRead",
    "GeneratedArticleUpdate",
    "GeneratedArticleStatus",
    "PROCESSING_PLACEHOLDER",
    "GeneratedContentItem",
    "GeneratedContentItemRead",
    # Audit
    "AIResponseLog",
    "AIResponseLogCreate",
    "AIResponseLogRead",
]
