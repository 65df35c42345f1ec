"""
Unit tests for response rating, accuracy tracking and mastery stages.
"""

from datetime import timedelta

import pytest

from cadence.memory.fsrs import MemoryRecord, MemoryState, Rating
from cadence.memory.mastery import (
    MasteryStage,
    MasteryState,
    ResponseData,
    StageTransition,
    determine_cue_level,
    determine_stage,
    response_to_rating,
    scaffolding_gap,
    stage_progress,
    update_mastery,
)


def _state(free=0.0, assisted=0.0, exposures=1, stability=1.0, stage=MasteryStage.UNKNOWN):
    return MasteryState(
        stage=stage,
        memory=MemoryRecord(stability=stability, reps=exposures),
        cue_free_accuracy=free,
        cue_assisted_accuracy=assisted,
        exposure_count=exposures,
    )


class TestResponseToRating:
    """Tests for mapping a response to a rating."""

    def test_incorrect_is_again(self):
        """Incorrect answers are Again."""
        assert response_to_rating(ResponseData(correct=False, cue_level=2)) is Rating.AGAIN

    def test_cued_correct_is_hard(self):
        """Correct with a cue is Hard."""
        assert response_to_rating(ResponseData(correct=True, cue_level=1, response_time_ms=100)) is Rating.HARD

    def test_slow_correct_is_good(self):
        """Slow cue-free correct answers are Good."""
        assert response_to_rating(ResponseData(correct=True, response_time_ms=5001)) is Rating.GOOD

    def test_fast_correct_is_easy(self):
        """Fast cue-free correct answers are Easy."""
        assert response_to_rating(ResponseData(correct=True, response_time_ms=5000)) is Rating.EASY

    def test_threshold_configurable(self):
        """The Easy latency threshold should be configurable."""
        response = ResponseData(correct=True, response_time_ms=3000)
        assert response_to_rating(response, easy_latency_threshold_ms=2000) is Rating.GOOD


class TestDetermineStage:
    """Tests for stage classification."""

    def test_no_exposures_is_stage_zero(self):
        """No exposures means stage 0."""
        assert determine_stage(0, 1.0, 1.0, 100.0) is MasteryStage.UNKNOWN

    def test_stage_four(self):
        """High accuracy, month stability and no gap is stage 4."""
        assert determine_stage(10, 0.95, 0.97, 31.0) is MasteryStage.AUTOMATIC

    def test_stage_three(self):
        """Reliable recall with week stability is stage 3."""
        assert determine_stage(10, 0.8, 0.8, 8.0) is MasteryStage.CONTROLLED

    def test_stage_two_by_free_or_assisted(self):
        """Either accuracy can reach stage 2."""
        assert determine_stage(5, 0.6, 0.0, 1.0) is MasteryStage.RECALL
        assert determine_stage(5, 0.0, 0.8, 1.0) is MasteryStage.RECALL

    def test_stage_one(self):
        """Assisted accuracy of 0.5 is stage 1."""
        assert determine_stage(3, 0.1, 0.5, 1.0) is MasteryStage.RECOGNITION

    def test_else_stage_zero(self):
        """Low accuracy falls back to stage 0."""
        assert determine_stage(3, 0.1, 0.2, 1.0) is MasteryStage.UNKNOWN

    def test_month_stability_needed_for_stage_four(self):
        """Stage 4 needs stability above 30 days."""
        assert determine_stage(10, 0.95, 0.95, 30.0) is MasteryStage.CONTROLLED

    def test_scaffolding_gap_blocks_stage_four(self):
        """A large scaffolding gap blocks stage 4."""
        assert determine_stage(10, 0.9, 1.05, 40.0) is MasteryStage.CONTROLLED

    def test_stability_just_under_week_drops_to_two(self):
        """Failing the stability check can skip stage 3."""
        assert determine_stage(10, 0.95, 0.95, 7.0) is MasteryStage.RECALL

    def test_deterministic(self):
        """The same inputs give the same stage."""
        triple = (6, 0.77, 0.81, 9.5)
        assert determine_stage(*triple) == determine_stage(*triple)


class TestCueLevel:
    """Tests for cue level selection."""

    def test_zero_exposures_full_scaffolding(self):
        """No exposures means cue level 3."""
        assert determine_cue_level(MasteryState()) == 3

    def test_small_gap_many_attempts_no_cues(self):
        """A small gap after many attempts removes cues."""
        assert determine_cue_level(_state(free=0.8, assisted=0.85, exposures=4)) == 0

    def test_minimal_cues(self):
        """A moderate gap gives minimal cues."""
        assert determine_cue_level(_state(free=0.7, assisted=0.85, exposures=3)) == 1

    def test_moderate_cues(self):
        """A wider gap gives moderate cues."""
        assert determine_cue_level(_state(free=0.6, assisted=0.85, exposures=2)) == 2

    def test_full_cues_for_large_gap(self):
        """A large gap gives full cues."""
        assert determine_cue_level(_state(free=0.2, assisted=0.9, exposures=8)) == 3

    def test_gap_never_negative(self):
        """The scaffolding gap is floored at 0."""
        assert scaffolding_gap(_state(free=0.9, assisted=0.3)) == 0.0


class TestUpdateMastery:
    """Tests for update_mastery."""

    def test_first_correct_cue_free(self, scheduler, now):
        """A first fast correct answer updates cue-free accuracy."""
        update = update_mastery(MasteryState(), ResponseData(True, 0, 2000), now, scheduler)
        weight = 1 / (1 * 0.3 + 1)
        assert update.rating is Rating.EASY
        assert update.state.exposure_count == 1
        assert update.state.cue_free_accuracy == pytest.approx(weight)
        assert update.state.cue_assisted_accuracy == 0.0
        assert update.state.memory.state is MemoryState.REVIEW
        assert update.next_review == now + timedelta(days=update.interval_days)

    def test_cued_response_updates_assisted_only(self, scheduler, now):
        """Cued answers only update assisted accuracy."""
        start = _state(free=0.5, assisted=0.5, exposures=2, stability=3.0)
        start.memory = MemoryRecord(stability=3.0, last_review=now - timedelta(days=2),
                                    reps=2, state=MemoryState.REVIEW)
        update = update_mastery(start, ResponseData(True, 2, 4000), now, scheduler)
        weight = 1 / (3 * 0.3 + 1)
        assert update.rating is Rating.HARD
        assert update.state.cue_free_accuracy == 0.5
        assert update.state.cue_assisted_accuracy == pytest.approx(0.5 * (1 - weight) + weight)

    def test_ten_agains(self, scheduler, now):
        """Ten Agains leave the item at stage 0 on the floor."""
        state = MasteryState()
        for day in range(10):
            state = update_mastery(
                state, ResponseData(False, 0, 8000), now + timedelta(days=day), scheduler
            ).state
        assert state.memory.lapses == 10
        assert state.memory.state is MemoryState.RELEARNING
        assert state.memory.stability == pytest.approx(0.1)
        assert state.stage is MasteryStage.UNKNOWN

    def test_agains_regress_from_higher_stage(self, scheduler, now):
        """A lapse should demote a controlled item."""
        state = MasteryState(
            stage=MasteryStage.CONTROLLED,
            memory=MemoryRecord(stability=12.0, difficulty=4.0, last_review=now - timedelta(days=10),
                                reps=8, state=MemoryState.REVIEW),
            cue_free_accuracy=0.8,
            cue_assisted_accuracy=0.8,
            exposure_count=8,
        )
        update = update_mastery(state, ResponseData(False), now, scheduler)
        assert update.state.stage < MasteryStage.CONTROLLED
        assert update.transition.direction == "demoted"

    def test_input_state_unchanged(self, scheduler, now):
        """update_mastery should not mutate its input."""
        state = MasteryState()
        update_mastery(state, ResponseData(True), now, scheduler)
        assert state.exposure_count == 0
        assert state.memory.is_new

    def test_bounds_hold(self, scheduler, now):
        """Accuracies, stability and difficulty stay in range."""
        state = MasteryState()
        pattern = [True, False, True, True, False, True, True, True]
        for i, correct in enumerate(pattern):
            update = update_mastery(
                state, ResponseData(correct, i % 2, 1000 * i), now + timedelta(days=i), scheduler
            )
            state = update.state
            assert 0.0 <= state.cue_free_accuracy <= 1.0
            assert 0.0 <= state.cue_assisted_accuracy <= 1.0
            assert state.memory.stability > 0
            assert 1.0 <= state.memory.difficulty <= 10.0
            assert int(state.stage) in range(5)


class TestStageTransitionAndProgress:
    """Tests for transitions, progress and display."""

    def test_direction(self):
        """Transitions report their direction."""
        assert StageTransition(MasteryStage.RECALL, MasteryStage.CONTROLLED).direction == "promoted"
        assert StageTransition(MasteryStage.RECALL, MasteryStage.UNKNOWN).direction == "demoted"
        assert not StageTransition(MasteryStage.RECALL, MasteryStage.RECALL).changed

    def test_progress_bounds(self):
        """Progress is 0 for unseen items and 1 at stage 4."""
        assert stage_progress(MasteryState()) == 0.0
        assert stage_progress(_state(stage=MasteryStage.AUTOMATIC)) == 1.0

    def test_progress_toward_recognition(self):
        """Stage 0 progress follows assisted accuracy."""
        state = _state(assisted=0.25, stage=MasteryStage.UNKNOWN)
        assert stage_progress(state) == pytest.approx(0.5)

    def test_progress_toward_controlled(self):
        """Stage 2 progress averages accuracy and stability."""
        state = _state(free=0.75, stability=3.5, stage=MasteryStage.RECALL)
        assert stage_progress(state) == pytest.approx(0.75)

    def test_display(self):
        """Stages expose a display name and color."""
        assert MasteryStage.AUTOMATIC.display_name == "Automatic"
        assert MasteryStage.UNKNOWN.color == "dim"
