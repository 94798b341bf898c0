"""Service for recording user activity on movies."""
import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from cinestream_recommendation_service.errors import NotFoundError, ValidationError
from cinestream_recommendation_service.models.database import SessionLocal
from cinestream_recommendation_service.ranking import Action
from cinestream_recommendation_service.repos import InteractionRepository, MovieRepository
from cinestream_recommendation_service.storage import RecommendationCache

logger = logging.getLogger(__name__)

# Popularity counter bumped per action
COUNTER_FOR_ACTION = {
    Action.VIEW: "plays",
    Action.LIKE: "likes",
}


class InteractionService:
    """
    Appends interaction events and keeps popularity counters in step.

    Recording an event drops the user's cached recommendations so the next
    request reflects it.
    """

    def __init__(
            self,
            cache: RecommendationCache,
            session_factory: sessionmaker | Callable[[], Session] = SessionLocal
    ):
        self.cache = cache
        self.session_factory = session_factory

    def record(
            self,
            user_id: str,
            movie_id: str,
            action: str,
            timestamp: datetime | None = None
    ) -> dict:
        """
        Record an interaction.

        Args:
            user_id: Acting user
            movie_id: Target movie
            action: view, like, share or complete
            timestamp: Event time (default: now)

        Returns:
            Dict describing the stored event

        Raises:
            ValidationError: missing identifiers or unknown action
            NotFoundError: movie does not exist
        """
        if not user_id:
            raise ValidationError("user_id is required")
        if not movie_id:
            raise ValidationError("movie_id is required")
        try:
            action = Action(action)
        except ValueError:
            allowed = ", ".join(a.value for a in Action)
            raise ValidationError(f"action must be one of: {allowed}")

        db = self.session_factory()
        try:
            movie_repo = MovieRepository(db)
            if movie_repo.get_movie(movie_id) is None:
                raise NotFoundError(f"Movie {movie_id} not found")

            interaction = InteractionRepository(db).record_interaction(
                user_id=user_id,
                movie_id=movie_id,
                action=action.value,
                timestamp=timestamp,
            )

            counter = COUNTER_FOR_ACTION.get(action)
            if counter:
                movie_repo.increment_counter(movie_id, counter)

            result = {
                "id": interaction.id,
                "user_id": interaction.user_id,
                "movie_id": interaction.movie_id,
                "action": interaction.action,
                "timestamp": interaction.timestamp.isoformat(),
            }
        finally:
            db.close()

        removed = self.cache.invalidate_subject(user_id, kind="user")
        logger.info(f"Recorded {action.value} for user {user_id} on movie {movie_id}, invalidated {removed} cache entries")
        return result
