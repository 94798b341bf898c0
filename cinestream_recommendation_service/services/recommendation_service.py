"""Service for personalized and similar-movie recommendations."""
import logging
import random
from collections.abc import Callable, Collection
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from cinestream_recommendation_service.config import (
    get_blend_weights,
    get_cache_capacity,
    get_cache_hit_threshold,
    get_cache_ttl_seconds,
    get_decay_window_days,
    get_high_activity_cache_ttl_seconds,
    get_interaction_window,
    get_serendipity_min_score,
    get_serendipity_ratio,
)
from cinestream_recommendation_service.errors import (
    ExhaustedFallback,
    NotFoundError,
    UpstreamFailure,
    ValidationError,
)
from cinestream_recommendation_service.models.database import SessionLocal
from cinestream_recommendation_service.ranking import (
    ActivityLevel,
    CandidateCriteria,
    PreferenceBuilder,
    RecommendationScorer,
    SerendipityInjector,
    criteria_for_item,
    criteria_for_user,
    diversify,
)
from cinestream_recommendation_service.repos import InteractionRepository, MovieRepository
from cinestream_recommendation_service.storage import RecommendationCache

logger = logging.getLogger(__name__)

HIGH_ACTIVITY_THRESHOLD = 100
NORMAL_ACTIVITY_THRESHOLD = 30
SIMILAR_SLICE_FACTOR = 3


def classify_activity(interaction_count: int) -> ActivityLevel:
    """Bucket a user by the size of their recent interaction window."""
    if interaction_count > HIGH_ACTIVITY_THRESHOLD:
        return ActivityLevel.HIGH
    if interaction_count > NORMAL_ACTIVITY_THRESHOLD:
        return ActivityLevel.NORMAL
    return ActivityLevel.LOW


class RecommendationService:
    """
    Orchestrates the ranking pipeline for both recommendation modes.

    Every operation opens its own database session. Failures after
    validation fall back once to trending movies; a failed fallback is
    reported as ExhaustedFallback.
    """

    def __init__(
            self,
            session_factory: sessionmaker | Callable[[], Session] = SessionLocal,
            cache: RecommendationCache | None = None,
            rng: random.Random | None = None,
            now: Callable[[], datetime] | None = None,
            interaction_window: int | None = None
    ):
        """
        Initialize the recommendation service.

        Args:
            session_factory: Callable returning a new database session
            cache: Shared recommendation cache (default: configured from settings)
            rng: Random source for diversification and serendipity
            now: Clock returning an aware datetime (default: current UTC time)
            interaction_window: Recent interactions read per user (default: from config)
        """
        self.session_factory = session_factory
        self.cache = cache or RecommendationCache(
            capacity=get_cache_capacity(),
            default_ttl=get_cache_ttl_seconds(),
            hit_threshold=get_cache_hit_threshold(),
        )
        self.rng = rng or random.Random()
        self._now = now or (lambda: datetime.now(UTC))
        self.interaction_window = interaction_window or get_interaction_window()
        self.high_activity_ttl = get_high_activity_cache_ttl_seconds()

        blend = get_blend_weights()
        self.preference_builder = PreferenceBuilder(decay_window_days=get_decay_window_days())
        self.scorer = RecommendationScorer(
            base_weight=blend["base"],
            content_weight=blend["content"],
            recency_weight=blend["recency"],
        )
        self.serendipity_ratio = get_serendipity_ratio()
        self.serendipity_min_score = get_serendipity_min_score()
        self.base_weight = blend["base"]

        logger.info("Initialized RecommendationService")
        logger.info(
            f"Weights - Base: {blend['base']}, Content: {blend['content']}, "
            f"Recency: {blend['recency']}"
        )

    # ===== PUBLIC OPERATIONS =====

    def recommend_for_user(self, user_id: str, n: int = 20) -> list[dict]:
        """
        Get personalized recommendations for a user.

        Args:
            user_id: Requesting user
            n: Number of recommendations

        Returns:
            List of movie dicts; ranked results carry a 'reco' breakdown

        Raises:
            ValidationError: user_id missing or n not positive
            ExhaustedFallback: pipeline and trending fallback both failed
        """
        if not user_id:
            raise ValidationError("user_id is required")
        self._validate_n(n)

        seen_ids: set[str] = set()
        try:
            db = self.session_factory()
            try:
                return self._recommend_for_user(db, str(user_id), n, seen_ids)
            finally:
                db.close()
        except Exception as e:
            logger.error(f"Error recommending for user {user_id}, using trending: {e}", exc_info=True)
            return self._fallback(n, exclude_ids=seen_ids)

    def recommend_similar(self, movie_id: str, n: int = 10) -> list[dict]:
        """
        Get movies similar to a reference movie.

        Args:
            movie_id: Reference movie
            n: Number of recommendations

        Returns:
            List of movie dicts; ranked results carry a 'reco' breakdown

        Raises:
            ValidationError: movie_id missing or n not positive
            NotFoundError: reference movie does not exist
            ExhaustedFallback: pipeline and trending fallback both failed
        """
        if not movie_id:
            raise ValidationError("movie_id is required")
        self._validate_n(n)
        movie_id = str(movie_id)

        try:
            db = self.session_factory()
            try:
                return self._recommend_similar(db, movie_id, n)
            finally:
                db.close()
        except NotFoundError:
            raise
        except Exception as e:
            logger.error(f"Error finding movies similar to {movie_id}, using trending: {e}", exc_info=True)
            return self._fallback(n, exclude_ids={movie_id})

    def get_trending(self, n: int = 20) -> list[dict]:
        """
        Get the most popular movies, category-balanced.

        Raises:
            ValidationError: n not positive
            UpstreamFailure: movie store unavailable
        """
        self._validate_n(n)
        db = self.session_factory()
        try:
            return self._trending(db, n)
        finally:
            db.close()

    def invalidate_cache(self, pattern: str | None = None) -> int:
        """Remove cached results whose key contains `pattern` (all when empty)."""
        return self.cache.invalidate(pattern)

    def clear_cache(self) -> int:
        return self.cache.clear()

    def get_cache_stats(self) -> dict:
        return self.cache.stats()

    # ===== PIPELINES =====

    def _recommend_for_user(self, db: Session, user_id: str, n: int, seen_ids: set[str]) -> list[dict]:
        interaction_repo = InteractionRepository(db)
        movie_repo = MovieRepository(db)

        interactions = _fetch(
            "interaction lookup",
            interaction_repo.find_recent_by_user, user_id, self.interaction_window,
        )
        level = classify_activity(len(interactions))
        key = self.cache.build_key(user_id, f"user:{n}", level)

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        if not interactions:
            logger.info(f"No interactions for user {user_id}, serving trending")
            result = self._trending(db, n)
            self.cache.set(key, result)
            return result

        now = self._now()
        weights = self.preference_builder.build(interactions, now=now)
        seen_ids.update(weights.seen_ids)

        criteria = criteria_for_user(weights)
        if criteria is None:
            logger.info(f"No usable preferences for user {user_id}, serving trending")
            return self._trending(db, n, exclude_ids=weights.seen_ids)

        candidates = self._retrieve(movie_repo, criteria)
        if not candidates:
            logger.info(f"No candidates for user {user_id}, serving trending")
            return self._trending(db, n, exclude_ids=weights.seen_ids)

        ranked = self.scorer.score_by_preferences(candidates, weights, now=now)
        diversified = diversify(ranked, n, rng=self.rng)

        injector = SerendipityInjector(
            movie_repo.find_serendipitous,
            ratio=self.serendipity_ratio,
            min_score=self.serendipity_min_score,
            base_weight=self.base_weight,
            rng=self.rng,
        )
        final = injector.inject(diversified, weights.seen_ids, n)

        result = [c.to_dict() for c in final]
        ttl = self.high_activity_ttl if level == ActivityLevel.HIGH else None
        self.cache.set(key, result, ttl=ttl)

        logger.info(f"Generated {len(result)} recommendations for user {user_id} ({level.value} activity)")
        return result

    def _recommend_similar(self, db: Session, movie_id: str, n: int) -> list[dict]:
        movie_repo = MovieRepository(db)

        key = self.cache.build_key(movie_id, f"similar:{n}")
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        reference = _fetch("movie lookup", movie_repo.find_by_id, movie_id)
        if reference is None:
            raise NotFoundError(f"Movie {movie_id} not found")

        criteria = criteria_for_item(reference)
        if criteria is None:
            logger.info(f"Movie {movie_id} has no attributes, serving trending")
            return self._trending(db, n, exclude_ids={movie_id})

        candidates = self._retrieve(movie_repo, criteria)
        if not candidates:
            logger.info(f"No similar candidates for movie {movie_id}, serving trending")
            return self._trending(db, n, exclude_ids={movie_id})

        ranked = self.scorer.score_by_similarity(candidates, reference, now=self._now())
        top = ranked[:n * SIMILAR_SLICE_FACTOR]
        result = [c.to_dict() for c in diversify(top, n, rng=self.rng)]

        self.cache.set(key, result)
        logger.info(f"Generated {len(result)} similar movies for {movie_id}")
        return result

    def _retrieve(self, movie_repo: MovieRepository, criteria: CandidateCriteria):
        return _fetch(
            "candidate retrieval",
            movie_repo.find_matching_any, criteria.filters, criteria.exclude_ids, criteria.limit,
        )

    def _trending(self, db: Session, n: int, exclude_ids: Collection[str] = ()) -> list[dict]:
        movies = _fetch(
            "trending lookup",
            MovieRepository(db).find_top_by_popularity, exclude_ids, n,
        )
        return [m.to_dict() for m in diversify(movies, n, rng=self.rng)]

    def _fallback(self, n: int, exclude_ids: Collection[str] = ()) -> list[dict]:
        try:
            db = self.session_factory()
            try:
                return self._trending(db, n, exclude_ids=exclude_ids)
            finally:
                db.close()
        except Exception as e:
            logger.error(f"Trending fallback failed: {e}", exc_info=True)
            raise ExhaustedFallback("Unable to generate recommendations") from e

    @staticmethod
    def _validate_n(n: int):
        if not isinstance(n, int) or isinstance(n, bool) or n < 1:
            raise ValidationError("n must be a positive integer")


def _fetch(what: str, func, *args):
    """Call a data-layer function, reporting database errors as UpstreamFailure."""
    try:
        return func(*args)
    except SQLAlchemyError as e:
        raise UpstreamFailure(f"{what} failed: {e}") from e
