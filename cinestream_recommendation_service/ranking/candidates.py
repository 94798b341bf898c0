"""Derive candidate retrieval criteria for both recommendation modes."""
from cinestream_recommendation_service.ranking.types import (
    CandidateCriteria,
    Dimension,
    Item,
    PreferenceWeights,
)

USER_CANDIDATE_LIMIT = 300
SIMILAR_CANDIDATE_LIMIT = 200


def criteria_for_user(
        weights: PreferenceWeights,
        limit: int = USER_CANDIDATE_LIMIT
) -> CandidateCriteria | None:
    """
    One clause per non-empty weight map, excluding everything already seen.

    Returns:
        CandidateCriteria, or None when the user has no usable preferences
    """
    if weights.is_empty():
        return None

    filters = {
        dimension: tuple(weights.for_dimension(dimension).keys())
        for dimension in Dimension
        if weights.for_dimension(dimension)
    }

    return CandidateCriteria(
        filters=filters,
        exclude_ids=frozenset(weights.seen_ids),
        limit=limit,
    )


def criteria_for_item(
        reference: Item,
        limit: int = SIMILAR_CANDIDATE_LIMIT
) -> CandidateCriteria | None:
    """
    Clauses taken from the reference movie's own attribute values.

    Returns:
        CandidateCriteria, or None when the movie carries no attributes
    """
    filters = {
        dimension: reference.values_for(dimension)
        for dimension in Dimension
        if reference.values_for(dimension)
    }
    if not filters:
        return None

    return CandidateCriteria(
        filters=filters,
        exclude_ids=frozenset({reference.id}),
        limit=limit,
    )
