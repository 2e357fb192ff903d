"""Step handler registry.

A StepHandler bundles the three things a step needs beyond its template:

    generate      provider round-trip(s) for the step
    parse         raw generation -> tagged content data
    chain_output  content data -> `<category>_output` string for later steps

Handlers are looked up by (parsing_method, media_type). Either half of the
key may be registered as "*" to match anything; the most specific entry
wins. Supporting a new kind of category is a register() call.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from contentgen.errors import ProviderError
from contentgen.models import (
    GenerationConfig,
    ImageGeneration,
    ImageOptions,
    Step,
    TextGeneration,
)
from contentgen.parsing import parsers
from contentgen.parsing.parsers import ContentData, ImageAsset, ImageRecord
from contentgen.providers.factory import ProviderRouter
from contentgen.settings.account_settings import ImageSettings

WILDCARD = "*"

GENERIC_IMAGE_DESCRIPTION = (
    "A professional, high-quality editorial illustration representing: {title}"
)


@dataclass
class StepGeneration:
    """What a handler's generate() produced."""

    text: TextGeneration
    image: Optional[ImageGeneration] = None
    prompt_fallback: bool = False

    @property
    def raw_text(self) -> str:
        return self.text.text


@dataclass
class StepContext:
    """Everything a handler may use while running one step.

    Provider calls must go through generate_text()/generate_image() so that
    every round-trip is written to the response log exactly once.
    """

    step: Step
    prompt: str
    system_message: Optional[str]
    generation_config: GenerationConfig
    router: ProviderRouter
    image_settings: ImageSettings
    run_context: dict[str, Any]
    log_round_trip: Callable[..., None]
    missing_variables: set[str] = field(default_factory=set)

    async def generate_text(
        self,
        prompt: Optional[str] = None,
        system_message: Optional[str] = None,
    ) -> TextGeneration:
        prompt = self.prompt if prompt is None else prompt
        system_message = self.system_message if system_message is None else system_message
        provider = self.router.text_provider(self.step.media_type, self.step.model_hint)
        start = time.monotonic()
        try:
            result = await provider.generate_text(prompt, system_message, self.generation_config)
        except ProviderError as e:
            self.log_round_trip(
                prompt=prompt,
                system_message=system_message,
                provider=provider.name,
                model=provider.model_id,
                config=self.generation_config,
                error=e,
                elapsed_ms=int((time.monotonic() - start) * 1000),
            )
            raise
        self.log_round_trip(
            prompt=prompt,
            system_message=system_message,
            provider=result.provider,
            model=result.model,
            config=self.generation_config,
            text_result=result,
        )
        return result

    async def generate_image(self, prompt: str, options: ImageOptions) -> ImageGeneration:
        provider = self.router.image_provider(self.step.model_hint)
        start = time.monotonic()
        try:
            result = await provider.generate_image(prompt, options)
        except ProviderError as e:
            self.log_round_trip(
                prompt=prompt,
                provider=provider.name,
                model=options.model_version or provider.model_id,
                error=e,
                elapsed_ms=int((time.monotonic() - start) * 1000),
            )
            raise
        self.log_round_trip(
            prompt=prompt,
            provider=result.provider,
            model=result.model,
            image_result=result,
        )
        return result


GenerateFn = Callable[[StepContext], Awaitable[StepGeneration]]
ParseFn = Callable[[StepGeneration, Step], ContentData]
ChainFn = Callable[[ContentData, str], str]


@dataclass(frozen=True)
class StepHandler:
    generate: GenerateFn
    parse: ParseFn
    chain_output: ChainFn = parsers.output_for_chaining


class StepHandlerRegistry:
    """Maps (parsing_method, media_type) to a StepHandler."""

    def __init__(self):
        self._handlers: dict[tuple[str, str], StepHandler] = {}

    def register(self, parsing_method: str, media_type: str, handler: StepHandler) -> None:
        self._handlers[(parsing_method, media_type)] = handler

    def lookup(self, parsing_method: str, media_type: str) -> StepHandler:
        for key in (
            (parsing_method, media_type),
            (parsing_method, WILDCARD),
            (WILDCARD, media_type),
            (WILDCARD, WILDCARD),
        ):
            if key in self._handlers:
                return self._handlers[key]
        raise KeyError(f"No step handler for ({parsing_method}, {media_type})")

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._handlers


# =============================================================================
# Built-in handlers
# =============================================================================

async def generate_text_step(ctx: StepContext) -> StepGeneration:
    """Text, video and audio steps: one text round-trip."""
    return StepGeneration(text=await ctx.generate_text())


def parse_text_step(generation: StepGeneration, step: Step) -> ContentData:
    return parsers.parse(generation.raw_text, step.parsing_method, step.category)


def extract_image_description(raw_text: str) -> str:
    """Pull a usable image prompt out of the descriptive-stage text."""
    text = parsers.strip_code_fence(raw_text or "")
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except ValueError:
            data = None
        if isinstance(data, dict):
            for key in ("prompt", "image_prompt", "description"):
                if isinstance(data.get(key), str):
                    text = data[key]
                    break
    return text.strip().strip('"').strip()


async def generate_image_step(ctx: StepContext) -> StepGeneration:
    """Image steps: describe the image as text, then render it.

    Account prefix/suffix and brand colors are applied to the description.
    A blank description falls back to a generic one built from the article
    title, flagged with prompt_fallback.
    """
    text_result = await ctx.generate_text()
    description = extract_image_description(text_result.text)
    prompt_fallback = False
    if not description:
        title = ctx.run_context.get("article.title") or "current events"
        description = GENERIC_IMAGE_DESCRIPTION.format(title=title)
        prompt_fallback = True

    final_prompt = ctx.image_settings.apply_to_prompt(description)
    options = ctx.image_settings.image_options(ctx.step.parameters.get("image_options"))
    image = await ctx.generate_image(final_prompt, options)
    return StepGeneration(text=text_result, image=image, prompt_fallback=prompt_fallback)


def parse_image_step(generation: StepGeneration, step: Step) -> ContentData:
    image = generation.image
    if image is None:
        return parsers.parse(generation.raw_text, step.parsing_method, step.category)
    return ImageAsset(records=[ImageRecord(
        image_url=image.url,
        prompt=image.prompt_echo,
        resolution=image.resolution,
        seed=image.seed,
        style=image.style,
        is_safe=image.is_safe,
        prompt_fallback=generation.prompt_fallback,
    )])


TEXT_HANDLER = StepHandler(generate=generate_text_step, parse=parse_text_step)
IMAGE_HANDLER = StepHandler(generate=generate_image_step, parse=parse_image_step)


def default_registry() -> StepHandlerRegistry:
    registry = StepHandlerRegistry()
    for media_type in ("text", "video", "audio"):
        registry.register(WILDCARD, media_type, TEXT_HANDLER)
    registry.register(WILDCARD, "image", IMAGE_HANDLER)
    registry.register(WILDCARD, WILDCARD, TEXT_HANDLER)
    return registry
