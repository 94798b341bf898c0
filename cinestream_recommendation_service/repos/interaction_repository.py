"""Repository for the user interaction log."""

import logging
from datetime import UTC, datetime

from sqlalchemy import desc
from sqlalchemy.orm import Session, joinedload

from cinestream_recommendation_service.models import UserInteraction
from cinestream_recommendation_service.ranking.types import Interaction

logger = logging.getLogger(__name__)


class InteractionRepository:
    """
    Repository for reading and appending user interactions.
    """

    def __init__(self, db: Session):
        self.db = db

    def record_interaction(
            self,
            user_id: str,
            movie_id: str,
            action: str,
            timestamp: datetime | None = None
    ) -> UserInteraction:
        """
        Append an interaction event.

        Args:
            user_id: Acting user
            movie_id: Target movie
            action: view, like, share or complete
            timestamp: Event time (default: now)

        Returns:
            UserInteraction object
        """
        interaction = UserInteraction(
            user_id=user_id,
            movie_id=movie_id,
            action=action,
            timestamp=timestamp or datetime.now(UTC),
        )
        self.db.add(interaction)
        self.db.commit()
        self.db.refresh(interaction)

        logger.debug(f"Recorded {action} by user {user_id} on movie {movie_id}")
        return interaction

    def find_recent_by_user(self, user_id: str, limit: int = 200) -> list[Interaction]:
        """
        Get a user's most recent interactions with their movies resolved.

        Args:
            user_id: User ID
            limit: Maximum number of interactions

        Returns:
            Interactions, newest first
        """
        rows = (
            self.db.query(UserInteraction)
            .options(joinedload(UserInteraction.movie))
            .filter(UserInteraction.user_id == user_id)
            .order_by(desc(UserInteraction.timestamp), desc(UserInteraction.id))
            .limit(limit)
            .all()
        )

        return [
            Interaction(
                user_id=row.user_id,
                item_id=row.movie_id,
                action=row.action,
                timestamp=row.timestamp,
                item=row.movie.to_item() if row.movie is not None else None,
            )
            for row in rows
        ]

