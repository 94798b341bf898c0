"""Movie catalog entry mirrored from the movie service"""
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, Date, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import relationship

from cinestream_recommendation_service.models.base import Base
from cinestream_recommendation_service.ranking.types import Item, as_values


class Movie(Base):
    """Movie metadata used for ranking.

    Multi-valued attributes are stored as JSON for display and mirrored into
    `movie_attributes` rows for retrieval.
    """
    __tablename__ = 'movies'

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    thumbnail = Column(String(512), nullable=True)
    duration = Column(Integer, nullable=True)

    categories = Column(JSON, nullable=True)
    length_category = Column(String(50), nullable=True)
    directors = Column(JSON, nullable=True)
    actors = Column(JSON, nullable=True)
    keywords = Column(JSON, nullable=True)

    # Popularity
    score = Column(Float, default=0.0, nullable=False)
    plays = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)

    release_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    attributes = relationship(
        "MovieAttribute",
        back_populates="movie",
        cascade="all, delete-orphan",
    )

    def to_item(self) -> Item:
        """Convert to the ranking pipeline's Item, normalizing missing attributes."""
        return Item(
            id=self.id,
            title=self.title,
            categories=as_values(self.categories),
            length_bucket=self.length_category or None,
            directors=as_values(self.directors),
            actors=as_values(self.actors),
            keywords=as_values(self.keywords),
            popularity_score=float(self.score or 0.0),
            release_date=self.release_date,
            description=self.description,
            thumbnail=self.thumbnail,
            duration=self.duration,
        )

    def __repr__(self):
        return f"<Movie(id='{self.id}', title='{self.title}', score={self.score})>"
