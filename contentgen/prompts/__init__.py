"""Prompt templates: versioned storage and placeholder handling."""

from contentgen.prompts.store import PromptTemplateStore
from contentgen.prompts.variables import (
    extract,
    output_dependencies,
    substitute,
    validate,
)

__all__ = [
    "PromptTemplateStore",
    "extract",
    "output_dependencies",
    "substitute",
    "validate",
]
