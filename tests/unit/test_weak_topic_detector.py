"""Unit tests for WeakTopicDetector and TopicAccuracyAggregate."""

import itertools

import pytest

from src.adaptive.errors import InvalidInputError
from src.adaptive.models import TopicAccuracyAggregate, WeakTopicEntry
from src.adaptive.weak_topics import WeakTopicDetector


def feed(detector, topic, correct, wrong, latency=3000.0):
    for _ in range(correct):
        detector.record_response(topic, True, latency)
    for _ in range(wrong):
        detector.record_response(topic, False, latency)


@pytest.fixture
def detector():
    return WeakTopicDetector("learner-1", min_attempts=5, threshold=0.5)


class TestRecordResponse:
    def test_incremental_counts(self, detector):
        feed(detector, "Algebra", correct=2, wrong=1)
        agg = detector.aggregates["Algebra"]
        assert (agg.attempts, agg.correct) == (3, 2)
        assert agg.accuracy == pytest.approx(2 / 3)

    def test_rolling_mean_latency(self, detector):
        for latency in (1000, 2000, 6000):
            detector.record_response("Algebra", True, latency)
        assert detector.aggregates["Algebra"].mean_latency_ms == pytest.approx(3000)

    def test_rejects_negative_latency(self, detector):
        with pytest.raises(InvalidInputError):
            detector.record_response("Algebra", True, -10)
        assert detector.aggregates == {}

    def test_rejects_empty_topic(self, detector):
        with pytest.raises(InvalidInputError):
            detector.record_response("", True, 100)

    def test_aggregates_snapshot_is_a_copy(self, detector):
        feed(detector, "Algebra", 1, 0)
        detector.aggregates.clear()
        assert "Algebra" in detector.aggregates


class TestDetectWeak:
    def test_weak_topic_flagged_and_thin_topic_ignored(self, detector):
        feed(detector, "Algebra", correct=3, wrong=7)
        feed(detector, "Geometry", correct=1, wrong=1)
        assert detector.weak_topics() == {"Algebra"}

    def test_threshold_is_strict(self, detector):
        feed(detector, "Calculus", correct=5, wrong=5)
        assert detector.weak_topics() == set()

    def test_static_query_over_aggregates(self):
        aggregates = [
            TopicAccuracyAggregate("Algebra", attempts=10, correct=3),
            TopicAccuracyAggregate("Geometry", attempts=2, correct=1),
        ]
        assert WeakTopicDetector.detect_weak(aggregates, 5, 0.5) == {"Algebra"}

    def test_never_flags_below_min_attempts(self):
        aggregates = [
            TopicAccuracyAggregate(f"t{a}-{c}", attempts=a, correct=c)
            for a, c in itertools.product(range(0, 12), range(0, 12))
            if c <= a
        ]
        for min_attempts in range(0, 12):
            flagged = WeakTopicDetector.detect_weak(aggregates, min_attempts, 0.6)
            by_topic = {agg.topic: agg for agg in aggregates}
            assert all(by_topic[t].attempts >= min_attempts for t in flagged)

    def test_rederivable_from_aggregates(self, detector):
        feed(detector, "Algebra", correct=1, wrong=6)
        feed(detector, "Biology", correct=6, wrong=1)
        rebuilt = WeakTopicDetector("learner-1", min_attempts=5, threshold=0.5)
        rebuilt.load(detector.aggregates.values())
        assert rebuilt.weak_topics() == detector.weak_topics() == {"Algebra"}

    @pytest.mark.parametrize("min_attempts,threshold", [(-1, 0.5), (5, 1.5)])
    def test_rejects_bad_parameters(self, min_attempts, threshold):
        with pytest.raises(InvalidInputError):
            WeakTopicDetector.detect_weak({}, min_attempts, threshold)

    @pytest.mark.parametrize("min_attempts,threshold", [(-1, 0.5), (5, 1.5), (5, -0.1)])
    def test_constructor_rejects_bad_parameters(self, min_attempts, threshold):
        with pytest.raises(InvalidInputError):
            WeakTopicDetector("learner-1", min_attempts=min_attempts, threshold=threshold)


class TestWeakTopicReport:
    def test_sorted_weakest_first(self, detector):
        feed(detector, "Algebra", correct=3, wrong=7)  # 0.30 over 10
        feed(detector, "Chemistry", correct=1, wrong=5)  # 0.17 over 6
        feed(detector, "Physics", correct=3, wrong=7)  # ties Algebra
        feed(detector, "Biology", correct=9, wrong=1)
        feed(detector, "Physics", correct=0, wrong=0)

        report = detector.weak_topic_report()
        assert [e.topic for e in report] == ["Chemistry", "Algebra", "Physics"]
        assert report[1] == WeakTopicEntry(topic="Algebra", accuracy=0.3, attempts=10)

    def test_more_evidence_first_on_equal_accuracy(self, detector):
        feed(detector, "Small", correct=1, wrong=4)
        feed(detector, "Large", correct=2, wrong=8)
        assert [e.topic for e in detector.weak_topic_report()] == ["Large", "Small"]

    def test_empty_report(self, detector):
        assert detector.weak_topic_report() == []


class TestAggregateMerge:
    def test_merge_matches_sequential_recording(self):
        a = TopicAccuracyAggregate("Algebra").record(True, 1000).record(False, 3000)
        b = TopicAccuracyAggregate("Algebra").record(True, 2000)
        sequential = (
            TopicAccuracyAggregate("Algebra")
            .record(True, 1000)
            .record(False, 3000)
            .record(True, 2000)
        )
        merged = a.merge(b)
        assert (merged.attempts, merged.correct) == (sequential.attempts, sequential.correct)
        assert merged.mean_latency_ms == pytest.approx(sequential.mean_latency_ms)

    def test_merge_is_associative(self):
        parts = [
            TopicAccuracyAggregate("T", attempts=3, correct=1, mean_latency_ms=900),
            TopicAccuracyAggregate("T", attempts=5, correct=4, mean_latency_ms=1500),
            TopicAccuracyAggregate("T", attempts=2, correct=0, mean_latency_ms=4000),
        ]
        left = parts[0].merge(parts[1]).merge(parts[2])
        right = parts[0].merge(parts[1].merge(parts[2]))
        assert (left.attempts, left.correct) == (right.attempts, right.correct)
        assert left.mean_latency_ms == pytest.approx(right.mean_latency_ms)

    def test_merge_rejects_other_topic(self):
        with pytest.raises(InvalidInputError):
            TopicAccuracyAggregate("A").merge(TopicAccuracyAggregate("B"))
