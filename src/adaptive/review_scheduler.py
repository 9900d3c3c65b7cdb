"""
Review Scheduler.

Orchestrates one review step:
1. Pick the next due item from the caller's candidates
2. Route a response to the SchedulingAlgorithm matching the state's tag
3. Update side aggregates (weak topics, difficulty) when attached
4. Return the new state plus a human-readable outcome

The scheduler keeps no scheduling state of its own. Persisting the
returned state is the caller's job.
"""

from __future__ import annotations

from datetime import date
from typing import Hashable, Iterable, Sequence, TypeVar

from loguru import logger

from src.adaptive.algorithm import (
    AlgorithmRegistry,
    SchedulingAlgorithm,
    default_algorithms,
    resolve_algorithm,
)
from src.adaptive.difficulty import DifficultyAdjuster
from src.adaptive.errors import AlgorithmMismatchError, InvalidInputError
from src.adaptive.models import (
    AlgorithmVariant,
    ItemResponse,
    QualityResponse,
    QuizItem,
    ReviewOutcome,
    SpacedRepetitionState,
    ensure_date,
    reset_state,
    validate_penalty,
    validate_response,
)
from src.adaptive.retention import RetentionModel
from src.adaptive.settings import EngineSettings, get_settings
from src.adaptive.weak_topics import WeakTopicDetector

ItemT = TypeVar("ItemT", bound=Hashable)


def _queue_key(pair: tuple[object, SpacedRepetitionState]) -> tuple:
    """Earliest due date, then least-mastered, then identity."""
    _, state = pair
    return (state.next_review, state.repetitions, state.item_id)


class ReviewScheduler:
    """
    Stateless orchestrator over the configured scheduling algorithms.

    Usage:
        scheduler = ReviewScheduler()
        item = scheduler.next_item(store.list_due(user, today), today)
        new_state, outcome = scheduler.record_response(state, event, today)
        store.save(user, item, new_state)
    """

    def __init__(
        self,
        algorithms: AlgorithmRegistry | None = None,
        retention: RetentionModel | None = None,
        weak_topics: WeakTopicDetector | None = None,
        difficulty: DifficultyAdjuster | None = None,
        settings: EngineSettings | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            algorithms: Variant -> algorithm registry (SM-2 + Leitner if None)
            retention: Forgetting-curve model for outcome diagnostics
            weak_topics: Detector updated with each response's topic, if given
            difficulty: Adjuster updated with each item's history, if given
            settings: Engine settings (cached environment settings if None)
        """
        self.settings = settings or get_settings()
        self.algorithms = dict(algorithms) if algorithms is not None else default_algorithms(self.settings)
        self.retention = retention or RetentionModel(reference_ease=self.settings.sm2_initial_ease)
        self.weak_topics = weak_topics
        self.difficulty = difficulty
        self.message_template = self.settings.outcome_message_template
        self.include_retention = self.settings.include_retention

    # =========================================================================
    # Selection
    # =========================================================================

    def due_queue(
        self,
        candidates: Iterable[tuple[ItemT, SpacedRepetitionState]],
        today: date,
        limit: int | None = None,
    ) -> list[tuple[ItemT, SpacedRepetitionState]]:
        """
        All due candidates in review order.

        Args:
            candidates: (item, state) pairs, as returned by StateStore.list_due
            today: Current date
            limit: Maximum number of entries to return

        Returns:
            Due pairs sorted by next_review, repetitions, item id
        """
        today = ensure_date(today)
        due = sorted(
            (pair for pair in candidates if pair[1].is_due(today)),
            key=_queue_key,
        )
        return due[:limit] if limit is not None else due

    def next_item(
        self,
        candidates: Iterable[tuple[ItemT, SpacedRepetitionState]],
        today: date,
    ) -> ItemT | None:
        """The single next item to review, or None when nothing is due."""
        queue = self.due_queue(candidates, today, limit=1)
        if not queue:
            return None
        return queue[0][0]

    # =========================================================================
    # Recording
    # =========================================================================

    def algorithm_for(self, state: SpacedRepetitionState) -> SchedulingAlgorithm:
        return resolve_algorithm(self.algorithms, state.variant)

    def record_response(
        self,
        state: SpacedRepetitionState,
        event: ItemResponse,
        today: date,
        item: QuizItem | None = None,
        difficulty_penalty: int = 0,
        history: Sequence[ItemResponse] | None = None,
    ) -> tuple[SpacedRepetitionState, ReviewOutcome]:
        """
        Record a review and compute the updated scheduling state.

        All validation happens before anything is updated, so a rejected
        call leaves the state and the side aggregates untouched.

        Args:
            state: Current state for the reviewed item
            event: QualityResponse (SM-2) or CorrectnessResponse (Leitner)
            today: Review date
            item: The reviewed item; its topic feeds the weak-topic detector
            difficulty_penalty: Explicit quality penalty forwarded to the engine
            history: Earlier responses for this item, oldest first; feeds
                the difficulty adjuster together with this event

        Returns:
            (new_state, outcome)
        """
        today = ensure_date(today)
        validate_response(event)
        penalty = validate_penalty(difficulty_penalty)
        if event.item_id != state.item_id:
            raise InvalidInputError(
                f"Response for {event.item_id!r} applied to state of {state.item_id!r}"
            )
        if item is not None and item.item_id != state.item_id:
            raise InvalidInputError(f"Item {item.item_id!r} does not match state {state.item_id!r}")
        if item is not None and self.weak_topics is not None and not item.topic:
            raise InvalidInputError(f"Item {item.item_id!r} has no topic")
        if state.last_reviewed is not None and today < state.last_reviewed:
            raise InvalidInputError(
                f"Review date {today} precedes last review {state.last_reviewed}"
            )
        if history is not None:
            for past in history:
                validate_response(past)

        algorithm = self.algorithm_for(state)
        if event.kind is not algorithm.response_kind:
            raise AlgorithmMismatchError(algorithm.response_kind.value, event.kind.value)

        retention = self.retention.estimate_for_state(state, today) if self.include_retention else None
        new_state = algorithm.apply(state, event, today, penalty)
        message = self.format_message(new_state.interval_days)

        flagged: frozenset[str] = frozenset()
        if self.weak_topics is not None and item is not None:
            self.weak_topics.record_response(item.topic, event.is_correct, event.latency_ms)
            flagged = frozenset(self.weak_topics.weak_topics())
        if self.difficulty is not None and history is not None:
            self.difficulty.update_item(state.item_id, [*history, event])

        effective = None
        if isinstance(event, QualityResponse):
            effective = max(0, event.quality - penalty)

        outcome = ReviewOutcome(
            state=new_state,
            message=message,
            interval_days=new_state.interval_days,
            retention_estimate=retention,
            effective_quality=effective,
            flagged_topics=flagged,
        )

        logger.debug(
            f"Recorded review for {state.item_id} ({state.variant.value}): "
            f"next_review={new_state.next_review}, interval={new_state.interval_days}d"
        )

        return new_state, outcome

    def format_message(self, days: int) -> str:
        try:
            return self.message_template.format(days=days, unit="day" if days == 1 else "days")
        except (KeyError, IndexError, ValueError) as e:
            raise InvalidInputError(
                f"Bad outcome message template {self.message_template!r}: {e}"
            ) from e

    def replay(
        self,
        state: SpacedRepetitionState,
        events: Iterable[tuple[ItemResponse, date]],
        item: QuizItem | None = None,
    ) -> tuple[SpacedRepetitionState, list[ReviewOutcome]]:
        """Fold a sequence of (event, review date) pairs into a state."""
        outcomes: list[ReviewOutcome] = []
        for event, today in events:
            state, outcome = self.record_response(state, event, today, item=item)
            outcomes.append(outcome)
        return state, outcomes

    # =========================================================================
    # State lifecycle
    # =========================================================================

    def initial_state(
        self,
        user_id: str,
        item_id: str,
        variant: AlgorithmVariant,
        today: date,
    ) -> SpacedRepetitionState:
        """First-exposure state for an item under the given algorithm."""
        algorithm = resolve_algorithm(self.algorithms, variant)
        return algorithm.initial_state(user_id, item_id, ensure_date(today))

    def reset(
        self,
        state: SpacedRepetitionState,
        variant: AlgorithmVariant,
        today: date,
    ) -> SpacedRepetitionState:
        """Explicitly move a state onto another algorithm, discarding progress."""
        resolve_algorithm(self.algorithms, variant)
        new_state = reset_state(state, variant, today)
        logger.info(
            f"Reset {state.item_id} for {state.user_id}: "
            f"{state.variant.value} -> {new_state.variant.value}"
        )
        return new_state
