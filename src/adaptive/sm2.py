"""
SM-2 Spaced Repetition Engine.

Implements the SuperMemo-2 update rule as a pure function over explicit
inputs: the same (state, quality, today) always yields the same state.

SM-2 Grade Scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from loguru import logger

from src.adaptive.errors import AlgorithmMismatchError
from src.adaptive.models import (
    AlgorithmVariant,
    ItemResponse,
    QualityResponse,
    ResponseKind,
    SpacedRepetitionState,
    advance,
    ensure_date,
    round_half_up,
    validate_latency,
    validate_penalty,
    validate_quality,
)
from src.adaptive.settings import EngineSettings

PASSING_QUALITY = 3


@dataclass
class SM2Config:
    """Configuration for SM-2 algorithm."""

    initial_easiness: float = 2.5
    minimum_easiness: float = 1.3
    first_interval: int = 1  # Days for first review
    second_interval: int = 6  # Days for second review

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> SM2Config:
        return cls(
            initial_easiness=settings.sm2_initial_ease,
            minimum_easiness=settings.sm2_minimum_ease,
            first_interval=settings.sm2_first_interval,
            second_interval=settings.sm2_second_interval,
        )


class SM2Engine:
    """
    Implements the SM-2 spaced repetition algorithm.

    Each state carries:
    - Easiness Factor (EF): How easy the item is (2.5 default, min 1.3)
    - Interval: Days until next review
    - Repetitions: Consecutive correct recalls
    """

    variant = AlgorithmVariant.SM2
    response_kind = ResponseKind.QUALITY

    def __init__(self, config: SM2Config | None = None):
        """
        Initialize SM-2 engine.

        Args:
            config: Custom configuration (uses defaults if None)
        """
        self.config = config or SM2Config()

    def initial_state(self, user_id: str, item_id: str, today: date) -> SpacedRepetitionState:
        return SpacedRepetitionState.new_sm2(
            user_id, item_id, today, ease_factor=self.config.initial_easiness
        )

    def next_ease(self, ease_factor: float, quality: int) -> float:
        """EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored."""
        ef_delta = 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
        return max(self.config.minimum_easiness, ease_factor + ef_delta)

    def update(
        self,
        state: SpacedRepetitionState,
        quality: int,
        today: date,
        difficulty_penalty: int = 0,
    ) -> SpacedRepetitionState:
        """
        Calculate the next review state for a graded response.

        Args:
            state: Current SM-2 state for the item
            quality: User grade (0-5)
            today: Review date
            difficulty_penalty: Quality points to subtract before grading
                (see DifficultyAdjuster.quality_penalty); 0 disables coupling

        Returns:
            New SpacedRepetitionState with updated interval and next_review
        """
        validate_quality(quality)
        penalty = validate_penalty(difficulty_penalty)
        today = ensure_date(today)
        if state.variant is not AlgorithmVariant.SM2:
            raise AlgorithmMismatchError(state.variant.value, ResponseKind.QUALITY.value)

        effective = self.effective_quality(quality, penalty)
        new_ef = self.next_ease(state.ease_factor, effective)

        if effective < PASSING_QUALITY:
            # Failed - reset to beginning
            new_repetitions = 0
            new_interval = self.config.first_interval
        else:
            # Passed - advance
            new_repetitions = state.repetitions + 1

            if new_repetitions == 1:
                new_interval = self.config.first_interval
            elif new_repetitions == 2:
                new_interval = self.config.second_interval
            else:
                new_interval = max(1, round_half_up(state.interval_days * new_ef))

        new_state = SpacedRepetitionState(
            user_id=state.user_id,
            item_id=state.item_id,
            variant=AlgorithmVariant.SM2,
            next_review=advance(today, new_interval),
            interval_days=new_interval,
            repetitions=new_repetitions,
            ease_factor=new_ef,
            last_reviewed=today,
        )

        logger.debug(
            f"SM-2 {state.item_id}: q={quality} (effective {effective}), "
            f"EF {state.ease_factor:.2f}->{new_ef:.2f}, interval={new_interval}d"
        )

        return new_state

    @staticmethod
    def effective_quality(quality: int, difficulty_penalty: int = 0) -> int:
        return max(0, quality - difficulty_penalty)

    def apply(
        self,
        state: SpacedRepetitionState,
        event: ItemResponse,
        today: date,
        difficulty_penalty: int = 0,
    ) -> SpacedRepetitionState:
        """SchedulingAlgorithm entry point for QualityResponse events."""
        if not isinstance(event, QualityResponse):
            raise AlgorithmMismatchError(self.response_kind.value, event.kind.value)
        validate_latency(event.latency_ms)
        return self.update(state, event.quality, today, difficulty_penalty)

    def grade_from_response(
        self,
        is_correct: bool,
        response_ms: int,
        expected_ms: int = 10000,
    ) -> int:
        """
        Convert a response to an SM-2 grade.

        Args:
            is_correct: Whether the answer was correct
            response_ms: Time taken to respond
            expected_ms: Expected response time

        Returns:
            Grade 0-5
        """
        validate_latency(response_ms)
        if not is_correct:
            # Incorrect responses: 0-2
            if response_ms < expected_ms * 0.5:
                return 2  # Quick wrong = almost knew it
            elif response_ms < expected_ms:
                return 1  # Wrong but remembered when shown
            else:
                return 0  # Complete blackout

        # Correct responses: 3-5
        if response_ms < expected_ms * 0.5:
            return 5  # Quick and correct = perfect recall
        elif response_ms < expected_ms:
            return 4  # Correct with some hesitation
        else:
            return 3  # Correct but struggled
