"""Pydantic models for provider results, plans and run outcomes."""

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field


StopReason = Literal["stop", "length", "safety", "error", "unknown"]
VariableType = Literal["article", "id", "step_output", "custom"]
OutcomeStatus = Literal["succeeded", "failed", "cancelled"]
RunState = Literal["done", "partial_complete", "cancelled"]


# =============================================================================
# Provider inputs
# =============================================================================

class GenerationConfig(BaseModel):
    """Options forwarded to text providers. Unknown keys are dropped."""

    model_config = ConfigDict(extra="ignore")

    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    max_output_tokens: Optional[int] = Field(default=None, gt=0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    top_k: Optional[int] = Field(default=None, gt=0)
    stop_sequences: Optional[list[str]] = None

    @classmethod
    def from_parameters(
        cls,
        parameters: Optional[dict[str, Any]],
        default_max_output_tokens: Optional[int] = None,
    ) -> "GenerationConfig":
        """Build a config from a version's parameters mapping.

        model_hint and any other unrecognised key never reach the provider.
        """
        values = {
            k: v for k, v in (parameters or {}).items()
            if k in cls.model_fields and v is not None
        }
        if "max_output_tokens" not in values and default_max_output_tokens:
            values["max_output_tokens"] = default_max_output_tokens
        return cls(**values)


class ImageOptions(BaseModel):
    """Options forwarded to image providers. Unknown keys are dropped."""

    model_config = ConfigDict(extra="ignore")

    aspect_ratio: Optional[str] = None
    resolution: Optional[str] = None
    style_type: Optional[str] = None
    rendering_speed: Optional[str] = None
    magic_prompt: Optional[str] = None
    num_images: int = Field(default=1, ge=1, le=8)
    model_version: Optional[str] = None
    negative_prompt: Optional[str] = None
    seed: Optional[int] = None
    color_palette: Optional[list[str]] = None

    def size_options(self) -> dict[str, str]:
        """Return exactly one of resolution/aspect_ratio; resolution wins."""
        if self.resolution:
            return {"resolution": self.resolution}
        if self.aspect_ratio:
            return {"aspect_ratio": self.aspect_ratio}
        return {}


# =============================================================================
# Provider outputs
# =============================================================================

class TextGeneration(BaseModel):
    """Normalised result of one text round-trip."""

    text: str
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    stop_reason: StopReason = "unknown"
    safety_ratings: list[dict[str, Any]] = Field(default_factory=list)
    latency_ms: int = Field(default=0, ge=0)
    provider: str = ""
    model: str = ""

    @property
    def is_complete(self) -> bool:
        return self.stop_reason == "stop"

    @property
    def is_truncated(self) -> bool:
        return self.stop_reason == "length"

    @property
    def content_filter_applied(self) -> bool:
        return self.stop_reason == "safety"


class ImageGeneration(BaseModel):
    """Normalised result of one image round-trip."""

    url: str
    prompt_echo: str = ""
    resolution: Optional[str] = None
    seed: Optional[int] = None
    style: Optional[str] = None
    is_safe: bool = True
    latency_ms: int = Field(default=0, ge=0)
    provider: str = ""
    model: str = ""


# =============================================================================
# Templates and plans
# =============================================================================

class Variable(BaseModel):
    """A placeholder found in a template body."""

    name: str
    type: VariableType
    display_name: str
    position: int


class Substitution(BaseModel):
    """Substituted text plus the placeholder names that had no value."""

    text: str
    missing: set[str] = Field(default_factory=set)


class RenderedPrompt(BaseModel):
    """A version rendered against caller-supplied variables, for preview."""

    template_id: UUID
    version_id: UUID
    version_number: int
    prompt: str
    system_message: Optional[str] = None
    parameters: Optional[dict[str, Any]] = None
    variables: list[Variable] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)


class Step(BaseModel):
    """One planned template execution."""

    model_config = ConfigDict(frozen=True)

    category: str
    template_id: Optional[UUID] = None
    version_id: Optional[UUID] = None
    template_name: str = ""
    version_number: Optional[int] = None
    system_message: Optional[str] = None
    prompt_body: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    media_type: str = "text"
    parsing_method: str = "generic"
    storage_schema: Optional[dict[str, Any]] = None
    ui_config: Optional[dict[str, Any]] = None
    execution_order: int = 0

    @property
    def model_hint(self) -> Optional[str]:
        return self.parameters.get("model_hint")


# =============================================================================
# Run results
# =============================================================================

class CategoryOutcome(BaseModel):
    """What one step produced (or why it produced nothing)."""

    category: str
    status: OutcomeStatus
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    items: list[dict[str, Any]] = Field(default_factory=list)


class RunMetadata(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_ms: int = 0
    steps_planned: int = 0
    steps_succeeded: int = 0
    used_fallback_plan: bool = False
    log_write_failures: int = 0
    source_quality: Optional[dict[str, Any]] = None


class RunResult(BaseModel):
    """Returned by PipelineExecutor.run once the generated article exists."""

    blog_id: UUID
    account_id: UUID
    state: RunState
    outcomes: list[CategoryOutcome] = Field(default_factory=list)
    metadata: RunMetadata

    @computed_field
    @property
    def items_by_category(self) -> dict[str, list[dict[str, Any]]]:
        return {o.category: o.items for o in self.outcomes}

    @property
    def failed_categories(self) -> list[str]:
        return [o.category for o in self.outcomes if o.status == "failed"]
