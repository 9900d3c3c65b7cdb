"""
Unit tests for the SM-2 engine.

Run: pytest tests/unit/test_sm2_engine.py -v
"""

from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest

from src.adaptive.errors import AlgorithmMismatchError, InvalidInputError
from src.adaptive.models import CorrectnessResponse, QualityResponse, SpacedRepetitionState
from src.adaptive.sm2 import SM2Config, SM2Engine


@pytest.fixture
def engine():
    return SM2Engine()


@pytest.fixture
def mature_state(sm2_state):
    """EF=2.5, interval=6, two successful reviews."""
    return replace(sm2_state, interval_days=6, repetitions=2, ease_factor=2.5)


class TestSuccessfulRecall:
    def test_first_success_schedules_one_day(self, engine, sm2_state, today):
        new = engine.update(sm2_state, 4, today)
        assert new.repetitions == 1
        assert new.interval_days == 1
        assert new.next_review == today + timedelta(days=1)

    def test_second_success_schedules_six_days(self, engine, sm2_state, today):
        first = engine.update(sm2_state, 4, today)
        second = engine.update(first, 4, first.next_review)
        assert second.repetitions == 2
        assert second.interval_days == 6

    def test_perfect_recall_on_mature_item(self, engine, mature_state, today):
        """EF rises to 2.6 first, then 6 x 2.6 = 15.6 rounds to 16."""
        new = engine.update(mature_state, 5, today)
        assert new.interval_days == 16
        assert new.ease_factor == pytest.approx(2.6)
        assert new.repetitions == 3
        assert new.next_review == today + timedelta(days=16)
        assert new.last_reviewed == today

    def test_quality_four_keeps_ease(self, engine, mature_state, today):
        new = engine.update(mature_state, 4, today)
        assert new.ease_factor == pytest.approx(2.5)
        assert new.interval_days == 15

    def test_interval_keeps_growing(self, engine, mature_state, today):
        state = mature_state
        intervals = []
        for _ in range(4):
            state = engine.update(state, 5, state.next_review)
            intervals.append(state.interval_days)
        assert intervals == sorted(intervals)
        assert intervals[0] == 16


class TestFailedRecall:
    def test_quality_two_resets_progress(self, engine, mature_state, today):
        new = engine.update(mature_state, 2, today)
        assert new.repetitions == 0
        assert new.interval_days == 1
        # EF still moves per formula: 2.5 - 0.32
        assert new.ease_factor == pytest.approx(2.18)

    @pytest.mark.parametrize("quality", [0, 1, 2])
    @pytest.mark.parametrize("reps,interval,ef", [(0, 1, 2.5), (3, 16, 2.6), (12, 200, 1.3)])
    def test_any_failure_resets(self, engine, sm2_state, today, quality, reps, interval, ef):
        state = replace(sm2_state, repetitions=reps, interval_days=interval, ease_factor=ef)
        new = engine.update(state, quality, today)
        assert new.repetitions == 0
        assert new.interval_days == 1

    def test_ease_never_drops_below_floor(self, engine, sm2_state, today):
        state = sm2_state
        day = today
        for _ in range(50):
            state = engine.update(state, 0, day)
            day = state.next_review
            assert state.ease_factor >= 1.3
        assert state.ease_factor == pytest.approx(1.3)


class TestDifficultyPenalty:
    def test_penalty_can_turn_pass_into_fail(self, engine, mature_state, today):
        new = engine.update(mature_state, 3, today, difficulty_penalty=1)
        assert new.repetitions == 0
        assert new.interval_days == 1

    def test_effective_quality_floored_at_zero(self, engine):
        assert engine.effective_quality(1, 3) == 0

    def test_zero_penalty_matches_plain_update(self, engine, mature_state, today):
        assert engine.update(mature_state, 5, today, 0) == engine.update(mature_state, 5, today)


class TestValidation:
    @pytest.mark.parametrize("quality", [-1, 6, 2.5, "3", True, None])
    def test_rejects_bad_quality(self, engine, sm2_state, today, quality):
        with pytest.raises(InvalidInputError):
            engine.update(sm2_state, quality, today)

    def test_rejects_malformed_date(self, engine, sm2_state):
        with pytest.raises(InvalidInputError):
            engine.update(sm2_state, 4, "2024-03-01")

    def test_accepts_datetime_as_date(self, engine, sm2_state):
        new = engine.update(sm2_state, 4, datetime(2024, 3, 1, 18, 30))
        assert new.last_reviewed == date(2024, 3, 1)

    def test_rejects_leitner_state(self, engine, leitner_state, today):
        with pytest.raises(AlgorithmMismatchError):
            engine.update(leitner_state, 4, today)

    def test_apply_rejects_correctness_event(self, engine, sm2_state, today):
        event = CorrectnessResponse(item_id="item-1", correct=True)
        with pytest.raises(AlgorithmMismatchError):
            engine.apply(sm2_state, event, today)

    def test_apply_rejects_negative_latency(self, engine, sm2_state, today):
        event = QualityResponse(item_id="item-1", quality=4, latency_ms=-5)
        with pytest.raises(InvalidInputError):
            engine.apply(sm2_state, event, today)


class TestPurity:
    def test_input_state_untouched(self, engine, mature_state, today):
        snapshot = mature_state.to_dict()
        engine.update(mature_state, 5, today)
        assert mature_state.to_dict() == snapshot

    def test_repeated_calls_identical(self, engine, mature_state, today):
        results = {engine.update(mature_state, q, today) for q in [3] * 10}
        assert len(results) == 1


class TestCustomConfig:
    def test_custom_intervals(self, sm2_state, today):
        engine = SM2Engine(SM2Config(first_interval=2, second_interval=5))
        first = engine.update(sm2_state, 5, today)
        second = engine.update(first, 5, today)
        assert (first.interval_days, second.interval_days) == (2, 5)

    def test_from_settings(self, settings):
        config = SM2Config.from_settings(settings)
        assert config.initial_easiness == 2.5
        assert config.second_interval == 6

    def test_initial_state_uses_configured_ease(self, today):
        engine = SM2Engine(SM2Config(initial_easiness=2.0))
        state = engine.initial_state("u", "i", today)
        assert isinstance(state, SpacedRepetitionState)
        assert state.ease_factor == 2.0
        assert state.next_review == today


class TestGradeFromResponse:
    @pytest.mark.parametrize(
        "correct,ms,grade",
        [
            (True, 2000, 5),
            (True, 7000, 4),
            (True, 15000, 3),
            (False, 2000, 2),
            (False, 7000, 1),
            (False, 15000, 0),
        ],
    )
    def test_mapping(self, engine, correct, ms, grade):
        assert engine.grade_from_response(correct, ms) == grade
