"""Splice high-rated, category-novel surprise picks into a result list."""
import logging
import math
import random
from collections.abc import Callable, Collection, Sequence

from cinestream_recommendation_service.ranking.types import Item, ScoredCandidate

logger = logging.getLogger(__name__)

SERENDIPITY_RATIO = 0.15
SERENDIPITY_MIN_SCORE = 7.5

# (exclude_categories, exclude_ids, min_score, limit) -> movies
SerendipityFinder = Callable[[Collection[str], Collection[str], float, int], list[Item]]


class SerendipityInjector:
    """
    Best-effort discovery step run after diversification.

    Surprise picks are movies outside every category already in the list,
    with a popularity score of at least `min_score`. Failures never
    propagate: the incoming list is returned unchanged.
    """

    def __init__(
            self,
            finder: SerendipityFinder,
            ratio: float = SERENDIPITY_RATIO,
            min_score: float = SERENDIPITY_MIN_SCORE,
            base_weight: float = 0.6,
            rng: random.Random | None = None
    ):
        self.finder = finder
        self.ratio = ratio
        self.min_score = min_score
        self.base_weight = base_weight
        self.rng = rng or random.Random()

    def surprise_count(self, target_size: int) -> int:
        return math.ceil(target_size * self.ratio)

    def inject(
            self,
            recommendations: Sequence[ScoredCandidate],
            seen_ids: Collection[str],
            target_size: int
    ) -> list[ScoredCandidate]:
        """
        Insert surprise picks at random positions.

        Args:
            recommendations: Diversified results
            seen_ids: Movie IDs the user already interacted with
            target_size: Length the result is truncated back to

        Returns:
            New list of at most `target_size` candidates
        """
        original = list(recommendations)
        try:
            count = self.surprise_count(target_size)
            if count <= 0:
                return original[:target_size]

            represented = {c for rec in original for c in rec.item.categories}
            exclude_ids = set(seen_ids) | {rec.item.id for rec in original}

            pool = self.finder(represented, exclude_ids, self.min_score, count * 2)
            pool = [item for item in pool if item.id not in exclude_ids]
            self.rng.shuffle(pool)

            result = list(original)
            for item in pool[:count]:
                pick = ScoredCandidate(
                    item=item,
                    base_score=item.popularity_score,
                    total_score=item.popularity_score * self.base_weight,
                    is_serendipity=True,
                )
                result.insert(self.rng.randint(0, len(result)), pick)

            logger.debug(f"Injected {min(count, len(pool))} serendipity picks")
            return result[:target_size]

        except Exception as e:
            logger.warning(f"Serendipity injection failed, keeping original results: {e}", exc_info=True)
            return original
