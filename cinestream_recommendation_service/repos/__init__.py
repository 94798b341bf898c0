"""Repository classes"""

from cinestream_recommendation_service.repos.interaction_repository import InteractionRepository
from cinestream_recommendation_service.repos.movie_repository import MovieRepository

__all__ = [
    "InteractionRepository",
    "MovieRepository",
]
