"""
Unit tests for the per-learner response loop.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from cadence.ability.estimation import ItemResponse, estimate_theta
from cadence.ability.irt_model import ItemParameter
from cadence.core.dimensions import SessionMode, SkillDimension
from cadence.errors import OutOfOrderResponseError
from cadence.learner import LearnerLoop, LearnerState
from cadence.memory.mastery import MasteryStage, ResponseData
from cadence.priority.cache import EngineCache
from cadence.priority.engine import CandidateItem


@pytest.fixture
def loop(scheduler, priority_engine, estimation_config):
    return LearnerLoop(
        LearnerState("learner-1"),
        scheduler=scheduler,
        engine=priority_engine,
        estimation=estimation_config,
    )


@pytest.fixture
def word():
    return ItemParameter(item_id="word", a=1.2, b=0.5, dimension=SkillDimension.LEXICAL)


class TestRecordResponse:
    """Tests for LearnerLoop.record_response."""

    def test_learning_mode_leaves_ability(self, loop, word, now):
        """LEARNING responses should not move ability."""
        before = dict(loop.state.profile.estimates)
        outcome = loop.record_response(word, ResponseData(True), now, SessionMode.LEARNING)
        assert outcome.ability == {}
        assert loop.state.profile.estimates == before
        assert loop.state.histories.get(SkillDimension.LEXICAL, []) == []

    def test_learning_mode_still_updates_memory(self, loop, word, now):
        """LEARNING responses should still update memory."""
        outcome = loop.record_response(word, ResponseData(True), now, SessionMode.LEARNING)
        assert outcome.mastery.state.exposure_count == 1
        assert loop.state.mastery["word"].memory.reps == 1

    def test_training_moves_halfway(self, loop, word, now, estimation_config):
        """TRAINING should move theta halfway to the fresh estimate."""
        outcome = loop.record_response(word, ResponseData(True), now, SessionMode.TRAINING)
        fresh = estimate_theta([ItemResponse(word, True)], estimation_config)
        lexical = outcome.ability[SkillDimension.LEXICAL]
        assert lexical.theta == pytest.approx(0.5 * fresh.theta)
        assert 0.0 < lexical.theta < fresh.theta

    def test_evaluation_takes_fresh_estimate(self, loop, word, now, estimation_config):
        """EVALUATION should take the fresh estimate."""
        outcome = loop.record_response(word, ResponseData(False), now, SessionMode.EVALUATION)
        fresh = estimate_theta([ItemResponse(word, False)], estimation_config)
        assert outcome.ability[SkillDimension.LEXICAL].theta == pytest.approx(fresh.theta)
        assert loop.state.profile.theta(SkillDimension.LEXICAL) < 0.0

    def test_global_updated_alongside_dimension(self, loop, word, now):
        """GLOBAL should update with the item's dimension only."""
        outcome = loop.record_response(word, ResponseData(True), now, SessionMode.EVALUATION)
        assert set(outcome.ability) == {SkillDimension.LEXICAL, SkillDimension.GLOBAL}
        assert len(loop.state.history(SkillDimension.GLOBAL)) == 1
        assert loop.state.profile.theta(SkillDimension.SYNTACTIC) == 0.0

    def test_out_of_order_rejected(self, loop, word, now):
        """An earlier response should raise and change nothing."""
        loop.record_response(word, ResponseData(True), now)
        with pytest.raises(OutOfOrderResponseError) as exc:
            loop.record_response(word, ResponseData(True), now - timedelta(minutes=1))
        assert exc.value.learner_id == "learner-1"
        assert loop.state.mastery["word"].exposure_count == 1

    def test_aware_last_response_with_naive_time(self, loop, word):
        """Aware and naive times should compare without a TypeError."""
        loop.state.last_response_at = datetime(2024, 6, 1, tzinfo=timezone.utc)
        loop.record_response(word, ResponseData(True), datetime(2024, 6, 2))
        assert loop.state.mastery["word"].exposure_count == 1
        with pytest.raises(OutOfOrderResponseError):
            loop.record_response(word, ResponseData(True), datetime(2024, 5, 30))

    def test_same_instant_accepted(self, loop, word, now):
        """A response at the same instant should be accepted."""
        loop.record_response(word, ResponseData(True), now)
        loop.record_response(word, ResponseData(False), now)
        assert loop.state.mastery["word"].exposure_count == 2
        assert loop.state.last_response_at == now

    def test_mastery_progresses(self, loop, word, now):
        """Repeated fast correct answers should raise the stage."""
        for day in range(6):
            loop.record_response(word, ResponseData(True, 0, 2000), now + timedelta(days=day))
        assert loop.state.mastery["word"].stage >= MasteryStage.RECALL

    def test_cue_level_for_unseen_item(self, loop):
        """Unseen items should get full scaffolding."""
        assert loop.cue_level("never-seen") == 3


class TestQueue:
    """Tests for queue building through the loop."""

    def test_reviewed_item_becomes_due(self, loop, word, now):
        """A reviewed item should come back as due."""
        loop.record_response(word, ResponseData(True, 0, 8000), now)
        candidates = [CandidateItem(item_id="word", difficulty=0.5), CandidateItem(item_id="other")]
        queue = loop.next_queue(candidates, now + timedelta(days=30))
        entries = {e.item_id: e for e in queue}
        assert entries["word"].is_due
        assert entries["other"].is_new
        assert queue[0].item_id == "word"

    def test_next_session(self, loop, now):
        """next_session should slice the ranked queue."""
        candidates = [CandidateItem(item_id=f"c{i}") for i in range(8)]
        session = loop.next_session(candidates, now, session_size=3, new_item_ratio=0.5)
        assert [e.item_id for e in session] == ["c0", "c1", "c2"]

    def test_loop_built_from_cache(self, now):
        """Loops built from one cache should share engines."""
        cache = EngineCache(maxsize=4, ttl=60)
        first = LearnerLoop(LearnerState("a"), cache=cache)
        second = LearnerLoop(LearnerState("b"), cache=cache)
        assert first.engine is second.engine
        assert first.scheduler is second.scheduler
        assert cache.hits == 2


class TestConcurrency:
    """Tests for learners processed on separate threads."""

    def test_learners_processed_in_parallel(self, scheduler, priority_engine, estimation_config, now):
        """Independent learners should not interfere."""
        loops = [
            LearnerLoop(LearnerState(f"l{i}"), scheduler, priority_engine, estimation_config)
            for i in range(4)
        ]
        item = ItemParameter(item_id="shared", b=0.0)

        def run(learner_loop):
            for step in range(5):
                learner_loop.record_response(
                    item, ResponseData(step % 2 == 0), now + timedelta(hours=step)
                )

        threads = [threading.Thread(target=run, args=(lp,)) for lp in loops]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        thetas = {lp.state.profile.global_theta for lp in loops}
        assert len(thetas) == 1
        assert all(lp.state.mastery["shared"].exposure_count == 5 for lp in loops)
