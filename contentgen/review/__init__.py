"""Review workflow for generated articles."""

from contentgen.review.service import ContentReviewService

__all__ = ["ContentReviewService"]
