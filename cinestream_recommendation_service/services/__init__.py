"""Service classes"""

from .catalog_loader_service import MovieCatalogLoader
from .interaction_service import InteractionService
from .popularity_service import PopularityService
from .recommendation_service import RecommendationService

__all__ = ["InteractionService", "MovieCatalogLoader", "PopularityService", "RecommendationService"]
