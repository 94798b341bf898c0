"""Score candidate movies against user preferences or a reference movie."""
import logging
from collections.abc import Sequence
from datetime import UTC, date, datetime

from cinestream_recommendation_service.ranking.preferences import as_utc
from cinestream_recommendation_service.ranking.types import (
    Dimension,
    Item,
    PreferenceWeights,
    ScoredCandidate,
)

logger = logging.getLogger(__name__)

SIMILARITY_WEIGHTS: dict[Dimension, float] = {
    Dimension.CATEGORY: 3.0,
    Dimension.LENGTH: 2.0,
    Dimension.DIRECTOR: 4.0,
    Dimension.ACTOR: 2.5,
    Dimension.KEYWORD: 1.5,
}

RECENCY_WINDOW_MONTHS = 6
RECENCY_POINTS_PER_MONTH = 2.0
DAYS_PER_MONTH = 30.0


def recency_bonus(release_date: date | None, now: datetime) -> float:
    """
    Bonus for recent releases: (6 - months_since_release) * 2, zero after six months.

    Unreleased (future-dated) movies count as released today.
    """
    if release_date is None:
        return 0.0
    days = (as_utc(now).date() - release_date).days
    months = max(0.0, days / DAYS_PER_MONTH)
    if months >= RECENCY_WINDOW_MONTHS:
        return 0.0
    return (RECENCY_WINDOW_MONTHS - months) * RECENCY_POINTS_PER_MONTH


def normalize_content(content_score: float, max_content_score: float) -> float:
    """Scale a raw content score to [0, 100] relative to the batch maximum."""
    if max_content_score <= 0:
        return 0.0
    return content_score / max_content_score * 100


class RecommendationScorer:
    """
    Blend popularity, content affinity and recency into one total score.

    total = base * base_weight + normalized_content * content_weight + recency_term

    In preference mode the recency bonus is folded into the raw content score
    before normalization and recency_term is 0. In similarity mode the bonus
    stays out of the content score and recency_term = bonus * recency_weight.
    """

    def __init__(
            self,
            base_weight: float = 0.6,
            content_weight: float = 0.4,
            recency_weight: float = 0.1,
            similarity_weights: dict[Dimension, float] | None = None,
            use_recency: bool = True
    ):
        self.base_weight = base_weight
        self.content_weight = content_weight
        self.recency_weight = recency_weight
        self.similarity_weights = dict(similarity_weights or SIMILARITY_WEIGHTS)
        self.use_recency = use_recency

    def preference_score(self, item: Item, weights: PreferenceWeights) -> float:
        """Dot product of the movie's attribute membership with the weight maps."""
        score = 0.0
        for dimension in Dimension:
            weight_map = weights.for_dimension(dimension)
            for value in item.values_for(dimension):
                score += weight_map.get(value, 0.0)
        return score

    def similarity_score(self, item: Item, reference: Item) -> float:
        """Weighted attribute overlap with the reference movie."""
        score = 0.0
        for dimension in Dimension:
            weight = self.similarity_weights[dimension]
            if dimension is Dimension.LENGTH:
                # Exact match earns a flat bonus
                if item.length_bucket and item.length_bucket == reference.length_bucket:
                    score += weight
                continue
            shared = set(item.values_for(dimension)) & set(reference.values_for(dimension))
            score += len(shared) * weight
        return score

    def score_by_preferences(
            self,
            candidates: Sequence[Item],
            weights: PreferenceWeights,
            now: datetime | None = None
    ) -> list[ScoredCandidate]:
        """
        Score candidates for a user.

        Args:
            candidates: Retrieved movies
            weights: The user's accumulated preference weights
            now: Reference time for recency (default: current UTC time)

        Returns:
            Candidates sorted by total score, descending
        """
        now = now or datetime.now(UTC)
        scored = []
        for item in candidates:
            bonus = recency_bonus(item.release_date, now) if self.use_recency else 0.0
            scored.append(ScoredCandidate(
                item=item,
                content_score=self.preference_score(item, weights) + bonus,
                base_score=item.popularity_score,
                recency_bonus=bonus,
            ))
        return self._blend(scored, recency_in_content=True)

    def score_by_similarity(
            self,
            candidates: Sequence[Item],
            reference: Item,
            now: datetime | None = None
    ) -> list[ScoredCandidate]:
        """
        Score candidates by overlap with a reference movie.

        Args:
            candidates: Retrieved movies (reference excluded)
            reference: The movie to find neighbours for
            now: Reference time for recency (default: current UTC time)

        Returns:
            Candidates sorted by total score, descending
        """
        now = now or datetime.now(UTC)
        scored = [
            ScoredCandidate(
                item=item,
                content_score=self.similarity_score(item, reference),
                base_score=item.popularity_score,
                recency_bonus=recency_bonus(item.release_date, now) if self.use_recency else 0.0,
            )
            for item in candidates
        ]
        return self._blend(scored, recency_in_content=False)

    def _blend(self, scored: list[ScoredCandidate], recency_in_content: bool) -> list[ScoredCandidate]:
        max_content = max((c.content_score for c in scored), default=0.0)

        for c in scored:
            total = (
                c.base_score * self.base_weight
                + normalize_content(c.content_score, max_content) * self.content_weight
            )
            if not recency_in_content:
                total += c.recency_bonus * self.recency_weight
            c.total_score = total

        # sorted() is stable: ties keep retrieval order
        ranked = sorted(scored, key=lambda c: c.total_score, reverse=True)
        if ranked:
            logger.debug(
                f"Scored {len(ranked)} candidates, max content {max_content:.3f}, "
                f"top total {ranked[0].total_score:.3f}"
            )
        return ranked
