"""Service for recomputing movie popularity scores."""
import logging
from collections.abc import Callable
from datetime import UTC, datetime

import numpy as np
from sqlalchemy.orm import Session, sessionmaker

from cinestream_recommendation_service.models import Movie
from cinestream_recommendation_service.models.database import SessionLocal
from cinestream_recommendation_service.ranking.preferences import as_utc
from cinestream_recommendation_service.repos import MovieRepository

logger = logging.getLogger(__name__)

PLAYS_WEIGHT = 0.3
LIKES_WEIGHT = 0.6
NEWNESS_WEIGHT = 10.0
NEWNESS_WINDOW_HOURS = 168.0


def compute_popularity_scores(
        plays: np.ndarray,
        likes: np.ndarray,
        hours_since_created: np.ndarray
) -> np.ndarray:
    """
    Vectorized popularity score.

    score = plays * 0.3 + likes * 0.6 + newness * 10,
    newness = max(0, 1 - hours_since_created / 168)
    """
    newness = np.clip(1.0 - hours_since_created / NEWNESS_WINDOW_HOURS, 0.0, None)
    return plays * PLAYS_WEIGHT + likes * LIKES_WEIGHT + newness * NEWNESS_WEIGHT


class PopularityService:
    """Refreshes the `score` column from play/like counters and catalog age."""

    def __init__(self, session_factory: sessionmaker | Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def refresh_scores(self, now: datetime | None = None) -> int:
        """
        Recompute and store the popularity score of every movie.

        Args:
            now: Reference time for newness (default: current UTC time)

        Returns:
            Number of movies updated
        """
        now = now or datetime.now(UTC)

        db = self.session_factory()
        try:
            rows = db.query(Movie.id, Movie.plays, Movie.likes, Movie.created_at).all()
            if not rows:
                logger.info("No movies to score")
                return 0

            ids = [row.id for row in rows]
            plays = np.array([row.plays or 0 for row in rows], dtype=float)
            likes = np.array([row.likes or 0 for row in rows], dtype=float)
            hours = np.array(
                [(as_utc(now) - as_utc(row.created_at)).total_seconds() / 3600.0 for row in rows],
                dtype=float,
            )

            scores = compute_popularity_scores(plays, likes, hours)
            logger.info(
                f"Computed popularity for {len(ids)} movies "
                f"(mean {scores.mean():.2f}, max {scores.max():.2f})"
            )

            return MovieRepository(db).bulk_update_popularity_scores(
                dict(zip(ids, scores.tolist()))
            )
        finally:
            db.close()
