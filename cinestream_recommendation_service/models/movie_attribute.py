"""Normalized attribute index for candidate retrieval."""

from sqlalchemy import Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from cinestream_recommendation_service.models.base import Base


class MovieAttribute(Base):
    """One attribute value carried by a movie.

    kind is one of: category, length, director, actor, keyword.
    """

    __tablename__ = "movie_attributes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    movie_id = Column(String(64), ForeignKey("movies.id", ondelete="CASCADE"), nullable=False)
    kind = Column(String(20), nullable=False)
    value = Column(String(255), nullable=False)

    movie = relationship("Movie", back_populates="attributes")

    __table_args__ = (
        Index("idx_attribute_kind_value", "kind", "value"),
        Index("idx_attribute_movie", "movie_id"),
    )

    def __repr__(self):
        return f"<MovieAttribute(movie_id='{self.movie_id}', {self.kind}='{self.value}')>"
