"""Response parsers: raw provider text -> typed content data.

Each parsing method yields one tagged variant. Parsing never raises: any
malformed input comes back in the method's fallback shape with
`degraded=True`, and any unexpected failure comes back as a degraded
GenericText.
"""

import json
import re
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from contentgen.logging import get_logger

logger = get_logger(__name__)

PLATFORMS = ("facebook", "instagram", "linkedin", "twitter")

# First match wins, in this order
PRAYER_THEMES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("healing", ("heal", "health", "recovery", "restore", "sick", "cure")),
    ("leadership", ("lead", "wisdom", "guide", "guidance", "direction", "govern", "authorit")),
    ("support", ("support", "comfort", "provide", "provision", "protect", "strength", "care", "peace")),
    ("justice", ("justice", "fair", "truth", "righteous", "oppress")),
    ("hope", ("hope", "future", "tomorrow", "better", "renew")),
)

MAX_PRAYER_POINTS = 5
MIN_PRAYER_LENGTH = 10
SOCIAL_FALLBACK_CHARS = 300
DEFAULT_SCRIPT_TITLE = "Generated Video Script"
DEFAULT_SCRIPT_DURATION = 60

_SECTION_SPLIT = re.compile(r"\n\s*\n")
_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)\n?\s*```", re.DOTALL)


# =============================================================================
# Records
# =============================================================================

class PrayerPoint(BaseModel):
    order_number: int
    prayer_text: str
    theme: str = "general"


class SocialPost(BaseModel):
    platform: str
    text: str
    hashtags: list[str] = Field(default_factory=list)
    order_number: int


class ScriptRecord(BaseModel):
    title: str = DEFAULT_SCRIPT_TITLE
    script: str
    duration: int = DEFAULT_SCRIPT_DURATION
    visual_suggestions: list[Any] = Field(default_factory=list)


class Section(BaseModel):
    order_number: int
    content: str
    type: str


class ImageRecord(BaseModel):
    order_number: int = 1
    image_url: str
    prompt: str
    resolution: Optional[str] = None
    seed: Optional[int] = None
    style: Optional[str] = None
    is_safe: bool = True
    prompt_fallback: bool = False


# =============================================================================
# Variants
# =============================================================================

class _ParsedBase(BaseModel):
    degraded: bool = False

    def record_dicts(self) -> list[dict[str, Any]]:
        """Records as plain JSON-ready dicts, for storage."""
        return [
            r.model_dump() if isinstance(r, BaseModel) else dict(r)
            for r in self.records
        ]


class PrayerList(_ParsedBase):
    kind: Literal["prayer_list"] = "prayer_list"
    records: list[PrayerPoint] = Field(default_factory=list)


class SocialMap(_ParsedBase):
    kind: Literal["social_map"] = "social_map"
    records: list[SocialPost] = Field(default_factory=list)


class VideoScript(_ParsedBase):
    kind: Literal["video_script"] = "video_script"
    records: list[ScriptRecord] = Field(default_factory=list)


class StructuredList(_ParsedBase):
    kind: Literal["structured_list"] = "structured_list"
    records: list[Section] = Field(default_factory=list)


class GenericText(_ParsedBase):
    kind: Literal["generic_text"] = "generic_text"
    records: list[Section] = Field(default_factory=list)


class JsonDocument(_ParsedBase):
    kind: Literal["json_document"] = "json_document"
    records: list[dict[str, Any]] = Field(default_factory=list)


class ImageAsset(_ParsedBase):
    """Result of an image step; built by the image handler, not by parse()."""

    kind: Literal["image_asset"] = "image_asset"
    records: list[ImageRecord] = Field(default_factory=list)


ContentData = Annotated[
    Union[
        PrayerList, SocialMap, VideoScript, StructuredList, GenericText,
        JsonDocument, ImageAsset,
    ],
    Field(discriminator="kind"),
]


# =============================================================================
# Helpers
# =============================================================================

def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced code block, or the text itself."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _load_json(text: str) -> tuple[bool, Any]:
    """(ok, value). JSON errors are a normal outcome here, not exceptional."""
    candidate = strip_code_fence(text)
    if not candidate:
        return False, None
    try:
        return True, json.loads(candidate)
    except ValueError:
        return False, None


def _sections(text: str) -> list[str]:
    return [s.strip() for s in _SECTION_SPLIT.split(text) if s.strip()]


def prayer_theme(text: str) -> str:
    lowered = text.lower()
    for theme, keywords in PRAYER_THEMES:
        if any(keyword in lowered for keyword in keywords):
            return theme
    return "general"


def _hashtags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [tag for tag in value.split() if tag]
    if isinstance(value, (list, tuple)):
        return [str(tag) for tag in value if tag]
    return [str(value)]


def _platform_text(value: Any) -> tuple[str, list[str]]:
    if isinstance(value, dict):
        text = value.get("text") or value.get("content") or value.get("post") or ""
        return str(text), _hashtags(value.get("hashtags"))
    return str(value), []


# =============================================================================
# Parsers
# =============================================================================

def parse_prayer_points(text: str, category: str) -> PrayerList:
    entries = [s for s in _sections(text) if len(s) >= MIN_PRAYER_LENGTH]
    records = [
        PrayerPoint(order_number=i, prayer_text=entry, theme=prayer_theme(entry))
        for i, entry in enumerate(entries[:MAX_PRAYER_POINTS], start=1)
    ]
    return PrayerList(records=records, degraded=not records)


def _social_fallback(text: str) -> SocialMap:
    return SocialMap(
        records=[SocialPost(
            platform="general",
            text=text.strip()[:SOCIAL_FALLBACK_CHARS],
            hashtags=[],
            order_number=1,
        )],
        degraded=True,
    )


def parse_social_media(text: str, category: str) -> SocialMap:
    ok, data = _load_json(text)
    if not ok:
        return _social_fallback(text)

    posts = []
    if isinstance(data, dict):
        for platform in PLATFORMS:
            if platform in data and data[platform]:
                body, tags = _platform_text(data[platform])
                posts.append((platform, body, tags))
    elif isinstance(data, list):
        for entry in data:
            if isinstance(entry, dict) and entry.get("platform") in PLATFORMS:
                body, tags = _platform_text(entry)
                posts.append((entry["platform"], body, tags))

    if not posts:
        return _social_fallback(text)
    return SocialMap(records=[
        SocialPost(platform=platform, text=body, hashtags=tags, order_number=i)
        for i, (platform, body, tags) in enumerate(posts, start=1)
    ])


def parse_video_script(text: str, category: str) -> VideoScript:
    ok, data = _load_json(text)
    if ok and isinstance(data, dict) and data.get("script"):
        try:
            duration = int(data.get("duration") or DEFAULT_SCRIPT_DURATION)
        except (TypeError, ValueError):
            duration = DEFAULT_SCRIPT_DURATION
        visuals = data.get("visual_suggestions") or data.get("visualSuggestions") or []
        if not isinstance(visuals, list):
            visuals = [visuals]
        return VideoScript(records=[ScriptRecord(
            title=str(data.get("title") or DEFAULT_SCRIPT_TITLE),
            script=str(data["script"]),
            duration=duration,
            visual_suggestions=visuals,
        )])
    return VideoScript(records=[ScriptRecord(script=text)], degraded=True)


def parse_json(text: str, category: str) -> JsonDocument:
    ok, data = _load_json(text)
    if not ok:
        return JsonDocument(records=[{"content": text, "parsed": False}], degraded=True)
    if isinstance(data, dict):
        return JsonDocument(records=[data])
    if isinstance(data, list) and all(isinstance(d, dict) for d in data):
        return JsonDocument(records=data)
    return JsonDocument(records=[{"data": data}])


def parse_structured(text: str, category: str) -> StructuredList:
    return StructuredList(records=[
        Section(order_number=i, content=section, type=category)
        for i, section in enumerate(_sections(text), start=1)
    ])


def parse_generic(text: str, category: str) -> GenericText:
    return GenericText(records=[Section(order_number=1, content=text, type=category)])


PARSERS = {
    "prayer_points": parse_prayer_points,
    "social_media": parse_social_media,
    "video_script": parse_video_script,
    "json": parse_json,
    "structured": parse_structured,
    "generic": parse_generic,
}


def parse(
    raw_text: Optional[str],
    parsing_method: str,
    category: str,
) -> ContentData:
    """Map raw provider text to the variant for parsing_method. Never raises."""
    text = raw_text if isinstance(raw_text, str) else ("" if raw_text is None else str(raw_text))
    parser = PARSERS.get(parsing_method)
    if parser is None:
        logger.warning(
            "unknown_parsing_method",
            parsing_method=parsing_method,
            category=category,
        )
        result = parse_generic(text, category)
        result.degraded = True
        return result
    try:
        return parser(text, category)
    except Exception as e:
        logger.warning(
            "parse_degraded",
            parsing_method=parsing_method,
            category=category,
            error=str(e),
        )
        result = parse_generic(text, category)
        result.degraded = True
        return result


def _chain_value(record: dict[str, Any]) -> str:
    for key in ("text", "content", "script", "prayer_text"):
        value = record.get(key)
        if value:
            return str(value)
    return json.dumps(record, ensure_ascii=False, default=str)


def output_for_chaining(parsed: ContentData, category: str) -> str:
    """The string exported to later steps as `<category>_output`."""
    if isinstance(parsed, PrayerList):
        parts = [r.prayer_text for r in parsed.records]
    elif isinstance(parsed, SocialMap):
        parts = [f"{r.platform}: {r.text}" for r in parsed.records]
    elif isinstance(parsed, VideoScript):
        parts = [r.script for r in parsed.records]
    elif isinstance(parsed, ImageAsset):
        parts = [r.image_url for r in parsed.records]
    else:
        parts = [_chain_value(r) for r in parsed.record_dicts()]
    return "\n\n".join(p for p in parts if p)
