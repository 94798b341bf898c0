"""User activity events on movies."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from cinestream_recommendation_service.models.base import Base


class UserInteraction(Base):
    """A single view, like, share or complete event."""

    __tablename__ = "user_interactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    movie_id = Column(String(64), ForeignKey("movies.id"), nullable=False)
    action = Column(String(16), nullable=False)
    timestamp = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    movie = relationship("Movie")

    # Recent-activity lookups per user
    __table_args__ = (
        Index("idx_interaction_user_time", "user_id", "timestamp"),
    )

    def __repr__(self):
        return (
            f"<UserInteraction(user_id='{self.user_id}', movie_id='{self.movie_id}', "
            f"action='{self.action}')>"
        )
