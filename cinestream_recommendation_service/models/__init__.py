"""SQLAlchemy models"""

from cinestream_recommendation_service.models.base import Base
from cinestream_recommendation_service.models.movie import Movie
from cinestream_recommendation_service.models.movie_attribute import MovieAttribute
from cinestream_recommendation_service.models.user_interaction import UserInteraction

__all__ = [
    "Base",
    "Movie",
    "MovieAttribute",
    "UserInteraction",
]
