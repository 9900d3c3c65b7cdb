"""
Dynamic Difficulty Adjustment.

Estimates the intrinsic difficulty of each item from its recent
responses:
- Exponentially weighted accuracy (recent answers count more)
- Exponentially weighted latency, compared against peer items

Difficulty rises while accuracy sits below the threshold or the item is
answered slower than its peers, and falls otherwise. The value lives in
[0, 1] and reaches the scheduling engines only through the explicit
difficulty_penalty argument (see quality_penalty).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from loguru import logger

from src.adaptive.errors import InvalidInputError
from src.adaptive.models import (
    DifficultySignal,
    ItemResponse,
    round_half_up,
    validate_response,
)
from src.adaptive.settings import EngineSettings


@dataclass
class DifficultyConfig:
    """Configuration for difficulty adjustment."""

    window: int = 20  # Most recent responses considered
    decay: float = 0.8  # Weight multiplier per step of age
    accuracy_threshold: float = 0.7  # Below this, difficulty rises
    latency_tolerance: float = 1.25  # Allowed multiple of peer latency
    learning_rate: float = 0.2  # Fraction of the distance to 0 or 1 moved per adjust
    initial_difficulty: float = 0.5
    max_penalty: int = 2  # Quality points removed at difficulty 1.0

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> DifficultyConfig:
        return cls(
            window=settings.difficulty_window,
            decay=settings.difficulty_decay,
            accuracy_threshold=settings.difficulty_accuracy_threshold,
            latency_tolerance=settings.difficulty_latency_tolerance,
            learning_rate=settings.difficulty_learning_rate,
            max_penalty=settings.difficulty_max_penalty,
        )


class DifficultyAdjuster:
    """
    Tracks a DifficultySignal per item.

    adjust() is a pure function of its arguments. update_item() keeps one
    signal per item and reads the other items' latencies as the peer
    baseline; callers serialize update_item() calls per item.
    """

    def __init__(self, config: DifficultyConfig | None = None):
        self.config = config or DifficultyConfig()
        self._signals: dict[str, DifficultySignal] = {}

    # -------------------------------------------------------------------------
    # Pure computation
    # -------------------------------------------------------------------------

    def weighted_stats(self, history: Sequence[ItemResponse]) -> tuple[float, float, int]:
        """
        Exponentially weighted (accuracy, latency_ms, sample_size).

        history is ordered oldest to newest; the newest response has
        weight 1 and each older one is scaled by another factor of decay.
        """
        recent = list(history)[-self.config.window:]
        if not recent:
            return 0.0, 0.0, 0

        total_weight = 0.0
        correct_weight = 0.0
        latency_sum = 0.0
        for age, event in enumerate(reversed(recent)):
            validate_response(event)
            weight = self.config.decay ** age
            total_weight += weight
            if event.is_correct:
                correct_weight += weight
            latency_sum += weight * event.latency_ms

        return correct_weight / total_weight, latency_sum / total_weight, len(recent)

    def adjust(
        self,
        history: Sequence[ItemResponse],
        prior_difficulty: float,
        peer_latency_ms: float | None = None,
    ) -> float:
        """
        Compute a new difficulty from recent responses.

        Args:
            history: Recent responses for one item, oldest first
            prior_difficulty: Current difficulty in [0, 1]
            peer_latency_ms: Typical latency of comparable items, if known

        Returns:
            New difficulty in [0, 1]
        """
        if not isinstance(prior_difficulty, (int, float)) or not 0.0 <= prior_difficulty <= 1.0:
            raise InvalidInputError(f"prior_difficulty must be in [0, 1], got {prior_difficulty!r}")
        if peer_latency_ms is not None and peer_latency_ms < 0:
            raise InvalidInputError(f"peer_latency_ms must be >= 0, got {peer_latency_ms}")

        accuracy, latency, n = self.weighted_stats(history)
        if n == 0:
            return float(prior_difficulty)

        struggling = accuracy < self.config.accuracy_threshold
        slow = bool(peer_latency_ms) and latency > peer_latency_ms * self.config.latency_tolerance

        rate = self.config.learning_rate
        if struggling or slow:
            new_difficulty = prior_difficulty + rate * (1.0 - prior_difficulty)
        else:
            new_difficulty = prior_difficulty - rate * prior_difficulty

        return max(0.0, min(1.0, new_difficulty))

    def quality_penalty(self, difficulty: float) -> int:
        """Quality points to pass as an engine's difficulty_penalty."""
        if not 0.0 <= difficulty <= 1.0:
            raise InvalidInputError(f"difficulty must be in [0, 1], got {difficulty}")
        return min(5, round_half_up(difficulty * self.config.max_penalty))

    # -------------------------------------------------------------------------
    # Per-item signals
    # -------------------------------------------------------------------------

    def peer_latency(self, exclude_item: str | None = None) -> float | None:
        """Mean weighted latency across tracked items other than exclude_item."""
        latencies = [
            s.weighted_latency_ms
            for item_id, s in self._signals.items()
            if item_id != exclude_item and s.sample_size > 0
        ]
        if not latencies:
            return None
        return sum(latencies) / len(latencies)

    def update_item(self, item_id: str, history: Sequence[ItemResponse]) -> DifficultySignal:
        """Recompute and store the difficulty signal of one item."""
        prior = self.signal_for(item_id).difficulty
        peer = self.peer_latency(exclude_item=item_id)

        new_difficulty = self.adjust(history, prior, peer)
        accuracy, latency, n = self.weighted_stats(history)

        signal = DifficultySignal(
            item_id=item_id,
            difficulty=new_difficulty,
            weighted_accuracy=accuracy,
            weighted_latency_ms=latency,
            sample_size=n,
        )
        self._signals[item_id] = signal

        logger.debug(
            f"Difficulty {item_id}: {prior:.2f}->{new_difficulty:.2f} "
            f"(acc={accuracy:.2f}, latency={latency:.0f}ms, peer={peer})"
        )
        return signal

    def signal_for(self, item_id: str) -> DifficultySignal:
        """Stored signal, or the configured starting difficulty for an unseen item."""
        return self._signals.get(
            item_id,
            DifficultySignal(item_id=item_id, difficulty=self.config.initial_difficulty),
        )

    def penalty_for(self, item_id: str) -> int:
        return self.quality_penalty(self.signal_for(item_id).difficulty)
