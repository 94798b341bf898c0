"""Ranking pipeline: preferences, retrieval criteria, scoring, diversification"""

from cinestream_recommendation_service.ranking.candidates import criteria_for_item, criteria_for_user
from cinestream_recommendation_service.ranking.diversifier import diversify
from cinestream_recommendation_service.ranking.preferences import PreferenceBuilder
from cinestream_recommendation_service.ranking.scorer import RecommendationScorer
from cinestream_recommendation_service.ranking.serendipity import SerendipityInjector
from cinestream_recommendation_service.ranking.types import (
    Action,
    ActivityLevel,
    CandidateCriteria,
    Dimension,
    Interaction,
    Item,
    PreferenceWeights,
    ScoredCandidate,
)

__all__ = [
    "Action",
    "ActivityLevel",
    "CandidateCriteria",
    "Dimension",
    "Interaction",
    "Item",
    "PreferenceBuilder",
    "PreferenceWeights",
    "RecommendationScorer",
    "ScoredCandidate",
    "SerendipityInjector",
    "criteria_for_item",
    "criteria_for_user",
    "diversify",
]
