"""Repository for movie metadata and attribute-based retrieval."""

import logging
from collections.abc import Collection, Mapping
from datetime import UTC, datetime

from sqlalchemy import and_, desc, or_, select
from sqlalchemy.orm import Session

from cinestream_recommendation_service.models import Movie, MovieAttribute, UserInteraction
from cinestream_recommendation_service.ranking.types import Dimension, Item, as_date, as_values

logger = logging.getLogger(__name__)

_MOVIE_FIELDS = (
    "title",
    "description",
    "thumbnail",
    "duration",
    "categories",
    "length_category",
    "directors",
    "actors",
    "keywords",
    "release_date",
)


def _column_values(movie_data: Mapping) -> dict:
    """Pick the stored columns out of a movie payload, normalizing lists and dates."""
    values = {name: movie_data[name] for name in _MOVIE_FIELDS if name in movie_data}
    for name in ("categories", "directors", "actors", "keywords"):
        if name in values:
            values[name] = list(as_values(values[name]))
    if "length_category" in values:
        length = as_values(values["length_category"])
        values["length_category"] = length[0] if length else None
    if "release_date" in values:
        values["release_date"] = as_date(values["release_date"])
    return values


def _created_at(movie_data: Mapping) -> datetime:
    value = movie_data.get("created_at")
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value or datetime.now(UTC)


def _attribute_rows(movie_id: str, movie_data: Mapping) -> list[MovieAttribute]:
    """Expand a movie's attributes into one index row per value."""
    sources = {
        Dimension.CATEGORY: movie_data.get("categories"),
        Dimension.LENGTH: movie_data.get("length_category"),
        Dimension.DIRECTOR: movie_data.get("directors"),
        Dimension.ACTOR: movie_data.get("actors"),
        Dimension.KEYWORD: movie_data.get("keywords"),
    }
    rows = []
    for dimension, raw in sources.items():
        for value in dict.fromkeys(as_values(raw)):
            rows.append(MovieAttribute(movie_id=movie_id, kind=dimension.value, value=value))
    return rows


class MovieRepository:
    """
    Repository for the movie store.
    """

    def __init__(self, db: Session):
        self.db = db

    # ===== WRITES =====

    @staticmethod
    def _apply(movie: Movie, movie_data: Mapping):
        """Copy payload values onto a movie and rebuild its attribute index."""
        for name, value in _column_values(movie_data).items():
            setattr(movie, name, value)
        for counter in ("score", "plays", "likes"):
            if movie_data.get(counter) is not None:
                setattr(movie, counter, movie_data[counter])

        movie.attributes = _attribute_rows(movie.id, movie_data)

    def store_movie(self, movie_data: dict) -> Movie:
        """
        Store or update a movie and rebuild its attribute index.

        Args:
            movie_data: Dict with movie information (id and title required)

        Returns:
            Movie object
        """
        movie_id = str(movie_data["id"])
        movie = self.get_movie(movie_id)

        if movie is None:
            movie = Movie(id=movie_id, created_at=_created_at(movie_data))
            self.db.add(movie)

        self._apply(movie, movie_data)

        self.db.commit()
        self.db.refresh(movie)

        return movie

    def bulk_store_movies(self, movies_data: list[dict], batch_size: int = 100) -> int:
        """
        Sync the catalog with the given movies.

        Known movies are updated in place and new ones inserted. Movies absent
        from the payload are removed unless a user has interacted with them.

        Args:
            movies_data: List of movie data dicts
            batch_size: Batch size for upserts

        Returns:
            Number of movies stored
        """
        if not movies_data:
            logger.warning("Empty catalog payload, leaving stored movies untouched")
            return 0

        count = 0
        for i in range(0, len(movies_data), batch_size):
            batch = movies_data[i : i + batch_size]
            batch_ids = {str(m["id"]) for m in batch}
            existing = {
                movie.id: movie
                for movie in self.db.query(Movie).filter(Movie.id.in_(list(batch_ids)))
            }
            for movie_data in batch:
                movie_id = str(movie_data["id"])
                movie = existing.get(movie_id)
                if movie is None:
                    movie = Movie(id=movie_id, created_at=_created_at(movie_data))
                    self.db.add(movie)
                    existing[movie_id] = movie
                self._apply(movie, movie_data)
            self.db.commit()
            count += len(batch)

        removed = self._remove_stale_movies({str(m["id"]) for m in movies_data})

        logger.info(f"✓ Stored {count} movies, removed {removed} stale movies")
        return count

    def _remove_stale_movies(self, keep_ids: Collection[str]) -> int:
        """Delete movies outside `keep_ids` that no interaction references."""
        interacted = select(UserInteraction.movie_id).distinct()
        stale = (
            self.db.query(Movie)
            .filter(Movie.id.notin_(list(keep_ids)))
            .filter(Movie.id.notin_(interacted))
            .all()
        )
        for movie in stale:
            self.db.delete(movie)
        self.db.commit()
        return len(stale)

    def increment_counter(self, movie_id: str, counter: str, amount: int = 1) -> bool:
        """
        Increment the plays or likes counter of a movie.

        Returns:
            True if the movie exists
        """
        if counter not in ("plays", "likes"):
            raise ValueError(f"Unknown counter: {counter}")

        column = getattr(Movie, counter)
        updated = (
            self.db.query(Movie)
            .filter(Movie.id == movie_id)
            .update({column: column + amount}, synchronize_session=False)
        )
        self.db.commit()
        return updated > 0

    def bulk_update_popularity_scores(self, scores: Mapping[str, float]) -> int:
        """
        Write precomputed popularity scores.

        Args:
            scores: Mapping of movie ID to new score

        Returns:
            Number of movies updated
        """
        if not scores:
            return 0

        self.db.bulk_update_mappings(
            Movie,
            [{"id": movie_id, "score": float(score)} for movie_id, score in scores.items()],
        )
        self.db.commit()

        logger.info(f"✓ Updated popularity scores for {len(scores)} movies")
        return len(scores)

    # ===== READS =====

    def get_movie(self, movie_id: str) -> Movie | None:
        """Get movie ORM object by ID."""
        return self.db.query(Movie).filter(Movie.id == movie_id).first()

    def find_by_id(self, movie_id: str) -> Item | None:
        """Get a movie as a ranking Item."""
        movie = self.get_movie(movie_id)
        return movie.to_item() if movie else None

    def find_matching_any(
            self,
            attribute_filters: Mapping[Dimension, Collection[str]],
            exclude_ids: Collection[str] = (),
            limit: int = 300
    ) -> list[Item]:
        """
        Find movies carrying at least one of the given attribute values.

        Args:
            attribute_filters: Dimension -> accepted values (clauses are OR-ed)
            exclude_ids: Movie IDs to leave out
            limit: Maximum number of movies

        Returns:
            Matching movies, most popular first
        """
        clauses = [
            and_(MovieAttribute.kind == Dimension(dimension).value, MovieAttribute.value.in_(list(values)))
            for dimension, values in attribute_filters.items()
            if values
        ]
        if not clauses:
            return []

        matching_ids = select(MovieAttribute.movie_id).where(or_(*clauses))
        query = self.db.query(Movie).filter(Movie.id.in_(matching_ids))
        if exclude_ids:
            query = query.filter(Movie.id.notin_(list(exclude_ids)))

        movies = query.order_by(desc(Movie.score), Movie.id).limit(limit).all()
        return [m.to_item() for m in movies]

    def find_top_by_popularity(self, exclude_ids: Collection[str] = (), limit: int = 20) -> list[Item]:
        """
        Get the highest-scored movies (trending).

        Args:
            exclude_ids: Movie IDs to leave out
            limit: Maximum number of movies

        Returns:
            Movies ordered by score, descending
        """
        query = self.db.query(Movie)
        if exclude_ids:
            query = query.filter(Movie.id.notin_(list(exclude_ids)))

        movies = query.order_by(desc(Movie.score), Movie.id).limit(limit).all()
        return [m.to_item() for m in movies]

    def find_serendipitous(
            self,
            exclude_categories: Collection[str],
            exclude_ids: Collection[str] = (),
            min_score: float = 7.5,
            limit: int = 10
    ) -> list[Item]:
        """
        Find well-rated movies outside the given categories.

        Args:
            exclude_categories: Categories a pick must not carry
            exclude_ids: Movie IDs to leave out
            min_score: Minimum popularity score
            limit: Maximum number of movies

        Returns:
            Candidate surprise picks, most popular first
        """
        query = self.db.query(Movie).filter(Movie.score >= min_score)

        if exclude_categories:
            in_categories = select(MovieAttribute.movie_id).where(
                and_(
                    MovieAttribute.kind == Dimension.CATEGORY.value,
                    MovieAttribute.value.in_(list(exclude_categories)),
                )
            )
            query = query.filter(Movie.id.notin_(in_categories))

        if exclude_ids:
            query = query.filter(Movie.id.notin_(list(exclude_ids)))

        movies = query.order_by(desc(Movie.score), Movie.id).limit(limit).all()
        return [m.to_item() for m in movies]

