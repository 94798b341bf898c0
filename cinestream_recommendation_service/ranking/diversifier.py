"""Category-balanced reordering of ranked results."""
import random
from collections.abc import Sequence
from typing import TypeVar

from cinestream_recommendation_service.ranking.types import Item, ScoredCandidate

OTHER_CATEGORY = "other"

T = TypeVar("T", Item, ScoredCandidate)


def _item_of(candidate: Item | ScoredCandidate) -> Item:
    return candidate.item if isinstance(candidate, ScoredCandidate) else candidate


def diversify(
        ranked: Sequence[T],
        size: int,
        rng: random.Random | None = None
) -> list[T]:
    """
    Interleave candidates across category buckets.

    A movie lands in one bucket per category it carries (movies without
    categories go to "other"). Members of each bucket and the bucket order
    are shuffled, then buckets are visited round-robin taking at most one
    not-yet-emitted movie per bucket per pass. Any shortfall is backfilled
    from the ranked input in score order.

    The output order is random on purpose: repeated calls with the same
    input may differ. Pass a seeded generator for reproducible output.

    Args:
        ranked: Candidates in descending score order
        size: Maximum number of results
        rng: Random source (default: module-level random)

    Returns:
        At most `size` candidates with unique movie IDs
    """
    if size <= 0 or not ranked:
        return []
    rng = rng or random.Random()

    buckets: dict[str, list[T]] = {}
    for candidate in ranked:
        for category in _item_of(candidate).categories or (OTHER_CATEGORY,):
            buckets.setdefault(category, []).append(candidate)

    bucket_lists = list(buckets.values())
    for members in bucket_lists:
        rng.shuffle(members)
    rng.shuffle(bucket_lists)

    result: list[T] = []
    emitted: set[str] = set()
    positions = [0] * len(bucket_lists)

    while len(result) < size:
        added = False
        for i, members in enumerate(bucket_lists):
            # Skip members already emitted through another category
            while positions[i] < len(members) and _item_of(members[positions[i]]).id in emitted:
                positions[i] += 1
            if positions[i] >= len(members):
                continue

            candidate = members[positions[i]]
            positions[i] += 1
            result.append(candidate)
            emitted.add(_item_of(candidate).id)
            added = True
            if len(result) >= size:
                break
        if not added:
            break

    if len(result) < size:
        for candidate in ranked:
            item_id = _item_of(candidate).id
            if item_id in emitted:
                continue
            result.append(candidate)
            emitted.add(item_id)
            if len(result) >= size:
                break

    return result[:size]
