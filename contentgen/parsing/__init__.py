"""Parsing of raw provider output into typed content data."""

from contentgen.parsing.parsers import (
    ContentData,
    GenericText,
    ImageAsset,
    ImageRecord,
    JsonDocument,
    PrayerList,
    SocialMap,
    StructuredList,
    VideoScript,
    output_for_chaining,
    parse,
)

__all__ = [
    "ContentData",
    "GenericText",
    "ImageAsset",
    "ImageRecord",
    "JsonDocument",
    "PrayerList",
    "SocialMap",
    "StructuredList",
    "VideoScript",
    "output_for_chaining",
    "parse",
]
