"""Ideogram image provider over the REST API (httpx)."""

import json
from typing import Any, Optional

import httpx

from contentgen.config import DEFAULT_IMAGE_MODEL, IDEOGRAM_API_KEY
from contentgen.errors import ProviderError
from contentgen.models import ImageGeneration, ImageOptions
from contentgen.providers.base import ImageProvider


GENERATE_URL = "https://api.ideogram.ai/v1/ideogram-v3/generate"

# Form defaults when neither the account nor the step sets them
DEFAULT_FORM = {
    "style_type": "GENERAL",
    "magic_prompt": "AUTO",
    "rendering_speed": "DEFAULT",
}

RETRYABLE_STATUS = {408, 425, 429, 500, 502, 503, 504}


class IdeogramImageProvider(ImageProvider):
    """Ideogram provider (the default image provider).

    Requests are multipart forms; the response carries a `data` list of
    images with url, prompt, resolution, seed, style_type and is_image_safe.
    """

    name = "ideogram"
    DEFAULT_MODEL = DEFAULT_IMAGE_MODEL

    def __init__(self, config: Optional[dict] = None):
        config = config or {}
        super().__init__(config)
        self.base_url = config.get("url", GENERATE_URL)
        # Tests pass an httpx.MockTransport here
        self.transport = config.get("transport")

    def _get_api_key_from_env(self) -> Optional[str]:
        return IDEOGRAM_API_KEY

    def _translate_error(self, error: Exception) -> ProviderError:
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            return ProviderError(
                f"Ideogram returned {status}: {error.response.text[:500]}",
                retryable=status in RETRYABLE_STATUS,
                provider=self.name,
                details={"status_code": status},
            )
        if isinstance(error, httpx.TransportError):
            return ProviderError(str(error), retryable=True, provider=self.name)
        return super()._translate_error(error)

    def build_form(self, prompt: str, options: ImageOptions) -> dict[str, str]:
        """Multipart form fields for one request."""
        form = {
            "prompt": prompt,
            "style_type": options.style_type or DEFAULT_FORM["style_type"],
            "magic_prompt": options.magic_prompt or DEFAULT_FORM["magic_prompt"],
            "rendering_speed": options.rendering_speed or DEFAULT_FORM["rendering_speed"],
            "num_images": str(options.num_images),
        }
        size = options.size_options()
        if "aspect_ratio" in size:
            # The v3 API spells ratios 16x9, account settings store 16:9
            form["aspect_ratio"] = size["aspect_ratio"].replace(":", "x")
        elif "resolution" in size:
            form["resolution"] = size["resolution"]
        if options.negative_prompt:
            form["negative_prompt"] = options.negative_prompt
        if options.seed is not None:
            form["seed"] = str(options.seed)
        if options.color_palette:
            form["color_palette"] = json.dumps({
                "members": [{"color_hex": color} for color in options.color_palette]
            })
        return form

    async def _call_api(self, prompt: str, options: ImageOptions) -> ImageGeneration:
        form = self.build_form(prompt, options)
        # multipart/form-data without file parts
        files = {key: (None, value) for key, value in form.items()}

        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout_s) as client:
            response = await client.post(
                self.base_url,
                files=files,
                headers={"Api-Key": self.api_key},
            )
            response.raise_for_status()
            payload = response.json()

        images: list[dict[str, Any]] = payload.get("data") or []
        if not images or not images[0].get("url"):
            raise ProviderError(
                "Ideogram returned no images",
                retryable=False,
                provider=self.name,
            )

        image = images[0]
        return ImageGeneration(
            url=image["url"],
            prompt_echo=image.get("prompt") or prompt,
            resolution=image.get("resolution"),
            seed=image.get("seed"),
            style=image.get("style_type") or form["style_type"],
            is_safe=bool(image.get("is_image_safe", True)),
            model=options.model_version or self.model_id,
        )
