"""Leitner box scheduling."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from loguru import logger

from src.adaptive.errors import AlgorithmMismatchError, InvalidInputError
from src.adaptive.models import (
    MIN_BOX,
    AlgorithmVariant,
    CorrectnessResponse,
    ItemResponse,
    ResponseKind,
    SpacedRepetitionState,
    advance,
    ensure_date,
    round_half_up,
    validate_latency,
    validate_penalty,
)
from src.adaptive.settings import EngineSettings

# Leitner box intervals (in days): box 1 = 1d, box 2 = 3d, box 3 = 7d, box 4 = 14d, box 5 = 30d
DEFAULT_SCHEDULE: tuple[int, ...] = (1, 3, 7, 14, 30)


@dataclass
class LeitnerConfig:
    """Per-box review intervals; index 0 is box 1."""

    schedule: tuple[int, ...] = field(default=DEFAULT_SCHEDULE)

    def __post_init__(self):
        self.schedule = tuple(self.schedule)
        if not self.schedule:
            raise InvalidInputError("Leitner schedule needs at least one box")
        if any(days < 1 for days in self.schedule):
            raise InvalidInputError("Leitner intervals must be >= 1 day")
        if any(b <= a for a, b in zip(self.schedule, self.schedule[1:])):
            raise InvalidInputError("Leitner schedule must increase with box index")

    @property
    def max_box(self) -> int:
        return len(self.schedule)

    def interval_for(self, box: int) -> int:
        return self.schedule[box - 1]

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> LeitnerConfig:
        return cls(schedule=tuple(settings.leitner_schedule))


class LeitnerEngine:
    """
    Box-based promotion/demotion.

    A correct answer moves the item up one box (capped at the top box);
    a wrong answer sends it back to box 1, not one box down.
    """

    variant = AlgorithmVariant.LEITNER
    response_kind = ResponseKind.CORRECTNESS

    def __init__(self, config: LeitnerConfig | None = None):
        self.config = config or LeitnerConfig()

    @property
    def max_box(self) -> int:
        return self.config.max_box

    def initial_state(self, user_id: str, item_id: str, today: date) -> SpacedRepetitionState:
        return SpacedRepetitionState.new_leitner(user_id, item_id, today)

    def update(
        self,
        state: SpacedRepetitionState,
        correct: bool,
        today: date,
        difficulty_penalty: int = 0,
    ) -> SpacedRepetitionState:
        """
        Move the item between boxes and schedule its next review.

        A positive difficulty_penalty shortens the interval of the new box
        to schedule[box] / (1 + penalty); the box move itself is unchanged.
        """
        if not isinstance(correct, bool):
            raise InvalidInputError(f"correct must be a bool, got {correct!r}")
        penalty = validate_penalty(difficulty_penalty)
        today = ensure_date(today)
        if state.variant is not AlgorithmVariant.LEITNER:
            raise AlgorithmMismatchError(state.variant.value, ResponseKind.CORRECTNESS.value)
        if not MIN_BOX <= state.box <= self.max_box:
            raise InvalidInputError(f"box {state.box} outside [{MIN_BOX}, {self.max_box}]")

        if correct:
            new_box = min(state.box + 1, self.max_box)
            new_repetitions = state.repetitions + 1
        else:
            new_box = MIN_BOX
            new_repetitions = 0

        interval = self.config.interval_for(new_box)
        if penalty:
            interval = max(1, round_half_up(interval / (1 + penalty)))

        logger.debug(
            f"Leitner {state.item_id}: {'correct' if correct else 'wrong'}, "
            f"box {state.box}->{new_box}, interval={interval}d"
        )

        return SpacedRepetitionState(
            user_id=state.user_id,
            item_id=state.item_id,
            variant=AlgorithmVariant.LEITNER,
            next_review=advance(today, interval),
            interval_days=interval,
            repetitions=new_repetitions,
            box=new_box,
            last_reviewed=today,
        )

    def apply(
        self,
        state: SpacedRepetitionState,
        event: ItemResponse,
        today: date,
        difficulty_penalty: int = 0,
    ) -> SpacedRepetitionState:
        """SchedulingAlgorithm entry point for CorrectnessResponse events."""
        if not isinstance(event, CorrectnessResponse):
            raise AlgorithmMismatchError(self.response_kind.value, event.kind.value)
        validate_latency(event.latency_ms)
        return self.update(state, event.correct, today, difficulty_penalty)
