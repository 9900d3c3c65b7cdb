"""
Data models for the adaptive review engine.

Scheduling state is immutable: every engine update returns a new
SpacedRepetitionState and never edits the one it was given.

State invariants (checked on construction):
- ease_factor >= 1.3 (SM-2 only)
- interval_days >= 1
- box in [1, max_box] (Leitner only)
- next_review >= last_reviewed
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Union

from src.adaptive.errors import InvalidInputError, UnknownAlgorithmVariant

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
MIN_BOX = 1
DEFAULT_MAX_BOX = 5


# =============================================================================
# Helpers
# =============================================================================


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (15.5 -> 16)."""
    return int(math.floor(value + 0.5))


def ensure_date(value: Any, name: str = "today") -> date:
    """
    Validate a calendar date argument.

    Datetimes are truncated to their date; anything else that is not a
    date is rejected.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise InvalidInputError(f"{name} must be a date, got {type(value).__name__}")


def _parse_iso_date(value: Any, name: str) -> date | None:
    if value is None:
        return None
    if isinstance(value, date):
        return ensure_date(value, name)
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise InvalidInputError(f"Malformed {name}: {value!r}") from e


# =============================================================================
# Content
# =============================================================================


@dataclass(frozen=True)
class QuizItem:
    """A quiz item. Owned by the content store; the engine only reads id and topic."""

    item_id: str
    topic: str
    content_ref: str | None = None


# =============================================================================
# Scheduling State
# =============================================================================


class AlgorithmVariant(str, Enum):
    """Scheduling algorithm governing a state."""

    SM2 = "sm2"
    LEITNER = "leitner"

    @classmethod
    def parse(cls, tag: Any) -> AlgorithmVariant:
        """Resolve a stored tag, raising UnknownAlgorithmVariant for anything else."""
        if isinstance(tag, cls):
            return tag
        try:
            return cls(str(tag).lower())
        except ValueError:
            raise UnknownAlgorithmVariant(tag) from None


@dataclass(frozen=True)
class SpacedRepetitionState:
    """
    Scheduling state for a single (user, item) pair.

    Exactly one algorithm governs a state: SM-2 states carry an ease
    factor and no box, Leitner states carry a box and no ease factor.
    Switching algorithms goes through reset_state().
    """

    user_id: str
    item_id: str
    variant: AlgorithmVariant
    next_review: date
    interval_days: int = 1
    repetitions: int = 0
    ease_factor: float | None = None
    box: int | None = None
    last_reviewed: date | None = None

    def __post_init__(self):
        object.__setattr__(self, "variant", AlgorithmVariant.parse(self.variant))
        if self.variant is AlgorithmVariant.SM2:
            if self.ease_factor is None or self.box is not None:
                raise InvalidInputError("SM-2 state needs an ease factor and no box")
            if self.ease_factor < MIN_EASE_FACTOR:
                raise InvalidInputError(
                    f"ease_factor {self.ease_factor} below floor {MIN_EASE_FACTOR}"
                )
        else:
            if self.box is None or self.ease_factor is not None:
                raise InvalidInputError("Leitner state needs a box and no ease factor")
            if self.box < MIN_BOX:
                raise InvalidInputError(f"box {self.box} below {MIN_BOX}")

        if self.interval_days < 1:
            raise InvalidInputError(f"interval_days must be >= 1, got {self.interval_days}")
        if self.repetitions < 0:
            raise InvalidInputError(f"repetitions must be >= 0, got {self.repetitions}")
        if self.last_reviewed is not None and self.next_review < self.last_reviewed:
            raise InvalidInputError("next_review precedes last_reviewed")

    @classmethod
    def new_sm2(
        cls,
        user_id: str,
        item_id: str,
        today: date,
        ease_factor: float = DEFAULT_EASE_FACTOR,
    ) -> SpacedRepetitionState:
        """First-exposure SM-2 state, due immediately."""
        return cls(
            user_id=user_id,
            item_id=item_id,
            variant=AlgorithmVariant.SM2,
            next_review=ensure_date(today),
            ease_factor=ease_factor,
        )

    @classmethod
    def new_leitner(cls, user_id: str, item_id: str, today: date) -> SpacedRepetitionState:
        """First-exposure Leitner state in box 1, due immediately."""
        return cls(
            user_id=user_id,
            item_id=item_id,
            variant=AlgorithmVariant.LEITNER,
            next_review=ensure_date(today),
            box=MIN_BOX,
        )

    def is_due(self, today: date) -> bool:
        """Whether the item should be reviewed on the given day."""
        return self.next_review <= today

    def days_overdue(self, today: date) -> int:
        """Days past the scheduled review date."""
        return max(0, (today - self.next_review).days)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "item_id": self.item_id,
            "variant": self.variant.value,
            "next_review": self.next_review.isoformat(),
            "interval_days": self.interval_days,
            "repetitions": self.repetitions,
            "ease_factor": self.ease_factor,
            "box": self.box,
            "last_reviewed": self.last_reviewed.isoformat() if self.last_reviewed else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SpacedRepetitionState:
        """Rebuild a state from its stored form (see to_dict)."""
        return cls(
            user_id=data["user_id"],
            item_id=data["item_id"],
            variant=AlgorithmVariant.parse(data["variant"]),
            next_review=_parse_iso_date(data["next_review"], "next_review"),
            interval_days=int(data.get("interval_days", 1)),
            repetitions=int(data.get("repetitions", 0)),
            ease_factor=data.get("ease_factor"),
            box=data.get("box"),
            last_reviewed=_parse_iso_date(data.get("last_reviewed"), "last_reviewed"),
        )


def reset_state(
    state: SpacedRepetitionState,
    variant: AlgorithmVariant,
    today: date,
) -> SpacedRepetitionState:
    """
    Explicitly reset a state onto a (possibly different) algorithm.

    Learning progress is discarded: the item starts over as if newly seen,
    due today. Identity and last_reviewed are preserved.
    """
    today = ensure_date(today)
    variant = AlgorithmVariant.parse(variant)
    if variant is AlgorithmVariant.SM2:
        fresh = SpacedRepetitionState.new_sm2(state.user_id, state.item_id, today)
    else:
        fresh = SpacedRepetitionState.new_leitner(state.user_id, state.item_id, today)
    if state.last_reviewed is not None and state.last_reviewed <= today:
        fresh = replace(fresh, last_reviewed=state.last_reviewed)
    return fresh


# =============================================================================
# Response Events
# =============================================================================


class ResponseKind(str, Enum):
    """Shape of a response event."""

    QUALITY = "quality"  # SM-2 0-5 rating
    CORRECTNESS = "correctness"  # Leitner right/wrong


@dataclass(frozen=True)
class QualityResponse:
    """
    An SM-2 graded response.

    Quality scale:
    0 - Complete blackout
    1 - Incorrect, remembered on seeing the answer
    2 - Incorrect, answer seemed easy to recall
    3 - Correct with significant difficulty
    4 - Correct after some hesitation
    5 - Perfect recall
    """

    item_id: str
    quality: int
    latency_ms: float = 0.0
    timestamp: datetime | None = None

    kind = ResponseKind.QUALITY

    @property
    def is_correct(self) -> bool:
        return self.quality >= 3


@dataclass(frozen=True)
class CorrectnessResponse:
    """A right/wrong response, as used by Leitner boxes."""

    item_id: str
    correct: bool
    latency_ms: float = 0.0
    timestamp: datetime | None = None

    kind = ResponseKind.CORRECTNESS

    @property
    def is_correct(self) -> bool:
        return self.correct


ItemResponse = Union[QualityResponse, CorrectnessResponse]


def validate_quality(quality: Any) -> int:
    """Return quality if it is an integer rating in 0..5."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidInputError(f"quality must be an integer 0-5, got {quality!r}")
    if not 0 <= quality <= 5:
        raise InvalidInputError(f"quality must be in 0-5, got {quality}")
    return quality


def validate_latency(latency_ms: Any) -> float:
    """Return latency as float if it is a finite, non-negative number."""
    if isinstance(latency_ms, bool) or not isinstance(latency_ms, (int, float)):
        raise InvalidInputError(f"latency must be a number, got {latency_ms!r}")
    if math.isnan(latency_ms) or latency_ms < 0:
        raise InvalidInputError(f"latency must be non-negative, got {latency_ms}")
    return float(latency_ms)


def validate_penalty(penalty: Any) -> int:
    """Return a difficulty penalty if it is an integer in 0..5."""
    if isinstance(penalty, bool) or not isinstance(penalty, int):
        raise InvalidInputError(f"difficulty_penalty must be an integer, got {penalty!r}")
    if not 0 <= penalty <= 5:
        raise InvalidInputError(f"difficulty_penalty must be in 0-5, got {penalty}")
    return penalty


def validate_response(event: Any) -> ItemResponse:
    """Check an incoming response event before anything is updated."""
    if isinstance(event, QualityResponse):
        validate_quality(event.quality)
    elif isinstance(event, CorrectnessResponse):
        if not isinstance(event.correct, bool):
            raise InvalidInputError(f"correct must be a bool, got {event.correct!r}")
    else:
        raise InvalidInputError(f"Unsupported response event: {type(event).__name__}")
    validate_latency(event.latency_ms)
    if event.timestamp is not None and not isinstance(event.timestamp, datetime):
        raise InvalidInputError("timestamp must be a datetime")
    return event


# =============================================================================
# Aggregates & Signals
# =============================================================================


@dataclass(frozen=True)
class TopicAccuracyAggregate:
    """Running accuracy and latency for a (user, topic) pair."""

    topic: str
    attempts: int = 0
    correct: int = 0
    mean_latency_ms: float = 0.0

    @property
    def accuracy(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.correct / self.attempts

    def record(self, correct: bool, latency_ms: float) -> TopicAccuracyAggregate:
        """Fold one response into the aggregate (incremental mean)."""
        attempts = self.attempts + 1
        mean = self.mean_latency_ms + (latency_ms - self.mean_latency_ms) / attempts
        return TopicAccuracyAggregate(
            topic=self.topic,
            attempts=attempts,
            correct=self.correct + (1 if correct else 0),
            mean_latency_ms=mean,
        )

    def merge(self, other: TopicAccuracyAggregate) -> TopicAccuracyAggregate:
        """Combine two partial aggregates of the same topic."""
        if other.topic != self.topic:
            raise InvalidInputError(f"Cannot merge {other.topic!r} into {self.topic!r}")
        attempts = self.attempts + other.attempts
        if attempts == 0:
            return self
        mean = (
            self.mean_latency_ms * self.attempts + other.mean_latency_ms * other.attempts
        ) / attempts
        return TopicAccuracyAggregate(
            topic=self.topic,
            attempts=attempts,
            correct=self.correct + other.correct,
            mean_latency_ms=mean,
        )


@dataclass(frozen=True)
class DifficultySignal:
    """Estimated intrinsic difficulty of an item, in [0, 1]."""

    item_id: str
    difficulty: float
    weighted_accuracy: float = 0.0
    weighted_latency_ms: float = 0.0
    sample_size: int = 0


@dataclass(frozen=True)
class WeakTopicEntry:
    """One row of the weak-topic report."""

    topic: str
    accuracy: float
    attempts: int


# =============================================================================
# Outcome
# =============================================================================


@dataclass(frozen=True)
class ReviewOutcome:
    """What the caller gets back after recording a response."""

    state: SpacedRepetitionState
    message: str
    interval_days: int
    retention_estimate: float | None = None
    effective_quality: int | None = None
    flagged_topics: frozenset[str] = field(default_factory=frozenset)

    @property
    def next_review(self) -> date:
        return self.state.next_review


def advance(today: date, days: int) -> date:
    """today + days, as a date."""
    return today + timedelta(days=days)
