"""
Weak Topic Detection.

Keeps one running TopicAccuracyAggregate per topic for a single learner
and flags topics whose accuracy falls under a threshold. Topics with
fewer than min_attempts responses are never flagged: too little evidence
is not a weakness.

Detection reads nothing but the aggregates, so a report can always be
re-derived from what the caller persisted.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from loguru import logger

from src.adaptive.errors import InvalidInputError
from src.adaptive.models import TopicAccuracyAggregate, WeakTopicEntry, validate_latency
from src.adaptive.settings import EngineSettings


class WeakTopicDetector:
    """Per-topic accuracy aggregates for one user."""

    def __init__(
        self,
        user_id: str,
        min_attempts: int = 5,
        threshold: float = 0.5,
    ):
        """
        Args:
            user_id: Learner whose responses are aggregated
            min_attempts: Attempts required before a topic can be flagged
            threshold: Topics with accuracy strictly below this are weak
        """
        if min_attempts < 0:
            raise InvalidInputError(f"min_attempts must be >= 0, got {min_attempts}")
        if not 0.0 <= threshold <= 1.0:
            raise InvalidInputError(f"threshold must be in [0, 1], got {threshold}")
        self.user_id = user_id
        self.min_attempts = min_attempts
        self.threshold = threshold
        self._aggregates: dict[str, TopicAccuracyAggregate] = {}

    @classmethod
    def from_settings(cls, user_id: str, settings: EngineSettings) -> WeakTopicDetector:
        return cls(
            user_id,
            min_attempts=settings.weak_topic_min_attempts,
            threshold=settings.weak_topic_threshold,
        )

    @property
    def aggregates(self) -> dict[str, TopicAccuracyAggregate]:
        """Snapshot of the current aggregates, keyed by topic."""
        return dict(self._aggregates)

    def load(self, aggregates: Iterable[TopicAccuracyAggregate]) -> None:
        """Rehydrate aggregates persisted by the caller."""
        for aggregate in aggregates:
            existing = self._aggregates.get(aggregate.topic)
            self._aggregates[aggregate.topic] = (
                existing.merge(aggregate) if existing else aggregate
            )

    def record_response(self, topic: str, correct: bool, latency_ms: float) -> TopicAccuracyAggregate:
        """Fold one response into the topic's aggregate."""
        if not topic:
            raise InvalidInputError("topic must be a non-empty string")
        if not isinstance(correct, bool):
            raise InvalidInputError(f"correct must be a bool, got {correct!r}")
        latency_ms = validate_latency(latency_ms)

        current = self._aggregates.get(topic, TopicAccuracyAggregate(topic=topic))
        updated = current.record(correct, latency_ms)
        self._aggregates[topic] = updated
        return updated

    @staticmethod
    def detect_weak(
        aggregates: Mapping[str, TopicAccuracyAggregate] | Iterable[TopicAccuracyAggregate],
        min_attempts: int,
        threshold: float,
    ) -> set[str]:
        """Topics with attempts >= min_attempts and accuracy < threshold."""
        if min_attempts < 0:
            raise InvalidInputError(f"min_attempts must be >= 0, got {min_attempts}")
        if not 0.0 <= threshold <= 1.0:
            raise InvalidInputError(f"threshold must be in [0, 1], got {threshold}")

        values = aggregates.values() if isinstance(aggregates, Mapping) else aggregates
        return {
            agg.topic
            for agg in values
            if agg.attempts > 0 and agg.attempts >= min_attempts and agg.accuracy < threshold
        }

    def weak_topics(self) -> set[str]:
        return self.detect_weak(self._aggregates, self.min_attempts, self.threshold)

    def weak_topic_report(self) -> list[WeakTopicEntry]:
        """
        Weak topics, weakest first.

        Sorted by accuracy ascending, then attempts descending (more
        evidence first), then topic name.
        """
        weak = self.weak_topics()
        report = sorted(
            (
                WeakTopicEntry(topic=agg.topic, accuracy=agg.accuracy, attempts=agg.attempts)
                for agg in self._aggregates.values()
                if agg.topic in weak
            ),
            key=lambda e: (e.accuracy, -e.attempts, e.topic),
        )
        if report:
            logger.warning(
                f"User {self.user_id}: {len(report)} weak topic(s): "
                + ", ".join(f"{e.topic} ({e.accuracy:.0%})" for e in report)
            )
        return report
