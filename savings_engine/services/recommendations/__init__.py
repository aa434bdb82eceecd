"""Recommendation sources for per-category saving estimates."""

from savings_engine.services.recommendations.interface import (
    RecommendationError,
    RecommendationSourceInterface,
    StaticRecommendationSource,
)

__all__ = [
    "RecommendationError",
    "RecommendationSourceInterface",
    "StaticRecommendationSource",
]
