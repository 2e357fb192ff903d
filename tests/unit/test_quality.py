"""Tests for source article quality assessment."""

from contentgen.quality import QualityThresholds, assess_source_quality


def _paragraphs(count: int, sentence: str) -> str:
    return "\n\n".join(" ".join([sentence] * 4) for _ in range(count))


class TestAssessSourceQuality:
    def test_no_content(self):
        result = assess_source_quality("Title", "")
        assert result.issues == ["no_content"]
        assert result.quality_score == 0.0
        assert not result.eligible

    def test_title_only(self):
        result = assess_source_quality(
            "Breaking: markets rally",
            "Breaking: markets rally!",
        )
        assert result.issues == ["title_only"]
        assert not result.eligible

    def test_short_content_is_flagged(self):
        result = assess_source_quality("AI", "AI has reached new heights in research labs.")
        assert "insufficient_length" in result.issues
        assert result.quality_tier == "poor"
        assert not result.eligible

    def test_long_structured_content_is_eligible(self):
        content = _paragraphs(
            6,
            "Researchers announced a measurable improvement in battery chemistry today.",
        )
        result = assess_source_quality("Battery research update", content)
        assert result.content_length == len(content)
        assert result.issues == []
        assert result.eligible
        assert result.quality_tier in ("good", "excellent")

    def test_custom_thresholds(self):
        thresholds = QualityThresholds(min_content_length=10, good_content_length=20,
                                       excellent_content_length=40, min_quality_score=0.1)
        result = assess_source_quality(
            "Short",
            "A compact but complete story about local elections and turnout.",
            thresholds,
        )
        assert result.eligible

    def test_none_inputs_never_raise(self):
        result = assess_source_quality(None, None)
        assert result.issues == ["no_content"]
