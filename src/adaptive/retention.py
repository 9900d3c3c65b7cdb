"""
Forgetting-curve retention estimate.

R(t) = exp(-t / S)

where t is the number of days since the last review and S is the item's
memory strength in days. Higher ease or longer intervals mean slower
decay. The estimate is advisory: it is surfaced to the caller or fed to
the DifficultyAdjuster and never changes scheduling state.
"""

from __future__ import annotations

import math
from datetime import date

from src.adaptive.errors import InvalidInputError
from src.adaptive.models import (
    DEFAULT_EASE_FACTOR,
    AlgorithmVariant,
    SpacedRepetitionState,
    ensure_date,
)


class RetentionModel:
    """Exponential forgetting-curve estimator."""

    def __init__(self, reference_ease: float = DEFAULT_EASE_FACTOR):
        self.reference_ease = reference_ease

    @staticmethod
    def estimate_retention(elapsed_days: float, strength: float) -> float:
        """
        Probability of recall after elapsed_days.

        Args:
            elapsed_days: Days since last review (>= 0)
            strength: Memory strength in days (> 0)

        Returns:
            Recall probability in [0, 1]
        """
        if isinstance(elapsed_days, bool) or not isinstance(elapsed_days, (int, float)):
            raise InvalidInputError(f"elapsed_days must be a number, got {elapsed_days!r}")
        if math.isnan(elapsed_days) or elapsed_days < 0:
            raise InvalidInputError(f"elapsed_days must be >= 0, got {elapsed_days}")
        if not isinstance(strength, (int, float)) or math.isnan(strength) or strength <= 0:
            raise InvalidInputError(f"strength must be > 0, got {strength!r}")

        if elapsed_days == 0:
            return 1.0
        # exp underflows to 0.0 for huge ratios, never below
        return min(1.0, max(0.0, math.exp(-elapsed_days / strength)))

    def strength_for(self, state: SpacedRepetitionState) -> float:
        """Memory strength in days implied by a scheduling state."""
        if state.variant is AlgorithmVariant.SM2:
            return state.interval_days * (state.ease_factor / self.reference_ease)
        return float(state.interval_days)

    def estimate_for_state(self, state: SpacedRepetitionState, today: date) -> float:
        """Current retention of an item; a never-reviewed item reports 1.0."""
        today = ensure_date(today)
        if state.last_reviewed is None:
            return 1.0
        elapsed = max(0, (today - state.last_reviewed).days)
        return self.estimate_retention(elapsed, self.strength_for(state))
