"""Storage classes"""

from cinestream_recommendation_service.storage.recommendation_cache import RecommendationCache

__all__ = ["RecommendationCache"]
