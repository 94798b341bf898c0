"""Build per-user attribute weights from recent interactions."""
import logging
import math
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime

from cinestream_recommendation_service.ranking.types import Dimension, Interaction, PreferenceWeights

logger = logging.getLogger(__name__)

ACTION_WEIGHTS: dict[str, float] = {
    "view": 1.0,
    "like": 3.0,
    "share": 4.0,
    "complete": 5.0,
}
DEFAULT_ACTION_WEIGHT = 1.0
DECAY_WINDOW_DAYS = 30.0


def as_utc(ts: datetime) -> datetime:
    """Treat naive timestamps (as returned by SQLite/MySQL) as UTC."""
    return ts.replace(tzinfo=UTC) if ts.tzinfo is None else ts


def days_between(earlier: datetime, later: datetime) -> float:
    """Elapsed days from earlier to later, never negative."""
    seconds = (as_utc(later) - as_utc(earlier)).total_seconds()
    return max(0.0, seconds / 86400.0)


def time_decay(days: float, window_days: float = DECAY_WINDOW_DAYS) -> float:
    """
    Exponential decay: exp(-days / window). Equals 1.0 at zero days.

    Args:
        days: Days since the interaction
        window_days: Decay time constant

    Returns:
        Weight in (0, 1]
    """
    return math.exp(-max(0.0, days) / window_days)


class PreferenceBuilder:
    """
    Folds an interaction window into five attribute-weight maps.

    Each interaction contributes action_weight x time_decay to every attribute
    value its movie carries.
    """

    def __init__(
            self,
            action_weights: Mapping[str, float] | None = None,
            decay_window_days: float = DECAY_WINDOW_DAYS
    ):
        self.action_weights = dict(action_weights or ACTION_WEIGHTS)
        self.decay_window_days = decay_window_days

    def interaction_weight(self, interaction: Interaction, now: datetime) -> float:
        action_weight = self.action_weights.get(interaction.action, DEFAULT_ACTION_WEIGHT)
        days = days_between(interaction.timestamp, now)
        return action_weight * time_decay(days, self.decay_window_days)

    def build(self, interactions: Iterable[Interaction], now: datetime | None = None) -> PreferenceWeights:
        """
        Accumulate preference weights.

        Args:
            interactions: Recent interactions (newest first), items resolved
            now: Reference time for decay (default: current UTC time)

        Returns:
            PreferenceWeights with summed weights and seen movie IDs
        """
        if now is None:
            now = datetime.now(UTC)

        weights = PreferenceWeights()
        skipped = 0

        for interaction in interactions:
            item = interaction.item
            if item is None:
                skipped += 1
                continue

            weights.seen_ids.add(item.id)
            w = self.interaction_weight(interaction, now)

            for dimension in Dimension:
                target = weights.for_dimension(dimension)
                for value in item.values_for(dimension):
                    target[value] = target.get(value, 0.0) + w

        if skipped:
            logger.debug(f"Skipped {skipped} interactions with no resolvable movie")

        return weights
