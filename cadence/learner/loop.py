"""
Per-learner feedback loop.

    queue -> item shown -> response -> memory update -> ability update -> queue

Responses for one learner are applied strictly in chronological order and
one at a time (the state's lock); different learners never share state and
can be processed in parallel.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from cadence.ability.estimation import (
    AbilityEstimate,
    EstimationConfig,
    ItemResponse,
    default_estimation_config,
)
from cadence.ability.irt_model import ItemParameter
from cadence.core.dimensions import SessionMode, SkillDimension
from cadence.core.timeutils import days_between
from cadence.errors import OutOfOrderResponseError
from cadence.learner.state import LearnerState
from cadence.memory.fsrs import FSRSScheduler
from cadence.memory.mastery import MasteryUpdate, ResponseData, determine_cue_level, update_mastery
from cadence.priority.cache import EngineCache
from cadence.priority.engine import CandidateItem, PriorityEngine
from cadence.queue.builder import QueueEntry, build_queue, get_session_slice


@dataclass(frozen=True)
class ResponseOutcome:
    """What one response changed."""

    item_id: str
    mastery: MasteryUpdate
    ability: dict[SkillDimension, AbilityEstimate] = field(default_factory=dict)
    mode: SessionMode = SessionMode.TRAINING


class LearnerLoop:
    """
    Drives one learner through the schedule.

    Usage:
        loop = LearnerLoop(LearnerState("learner-1"))
        session = loop.next_session(candidates, now)
        outcome = loop.record_response(item, ResponseData(True), now, SessionMode.TRAINING)
    """

    def __init__(
        self,
        state: LearnerState,
        scheduler: FSRSScheduler | None = None,
        engine: PriorityEngine | None = None,
        estimation: EstimationConfig | None = None,
        cache: EngineCache | None = None,
    ):
        self.state = state
        if cache is not None and (scheduler is None or engine is None):
            from config import get_settings

            settings = get_settings()
            scheduler = scheduler or cache.scheduler(settings.get_fsrs_parameters())
            engine = engine or cache.priority_engine(settings.get_priority_config())
        self.scheduler = scheduler or FSRSScheduler()
        self.engine = engine or PriorityEngine()
        self.estimation = estimation or default_estimation_config()

    @property
    def learner_id(self) -> str:
        return self.state.learner_id

    # =========================================================================
    # QUEUE
    # =========================================================================

    def next_queue(self, candidates: Sequence[CandidateItem], now: datetime) -> list[QueueEntry]:
        with self.state.lock:
            return build_queue(
                candidates,
                self.state.profile,
                self.state.memory_index(),
                now,
                engine=self.engine,
                scheduler=self.scheduler,
            )

    def next_session(
        self,
        candidates: Sequence[CandidateItem],
        now: datetime,
        session_size: int | None = None,
        new_item_ratio: float | None = None,
    ) -> list[QueueEntry]:
        return get_session_slice(self.next_queue(candidates, now), session_size, new_item_ratio)

    def cue_level(self, item_id: str) -> int:
        return determine_cue_level(self.state.mastery_for(item_id))

    # =========================================================================
    # RESPONSES
    # =========================================================================

    def record_response(
        self,
        item: ItemParameter,
        response: ResponseData,
        now: datetime,
        mode: SessionMode = SessionMode.TRAINING,
    ) -> ResponseOutcome:
        """
        Apply one response: memory first, then ability.

        Raises:
            OutOfOrderResponseError: if `now` predates the last applied response
        """
        with self.state.lock:
            last = self.state.last_response_at
            if last is not None and days_between(last, now) < 0:
                raise OutOfOrderResponseError(self.learner_id, last, now)

            mastery = update_mastery(
                self.state.mastery_for(item.item_id), response, now, self.scheduler
            )
            self.state.mastery[item.item_id] = mastery.state

            changed: dict[SkillDimension, AbilityEstimate] = {}
            if mode.updates_ability:
                evidence = ItemResponse(item, response.correct)
                self.state.history(item.dimension).append(evidence)
                if item.dimension is not SkillDimension.GLOBAL:
                    self.state.history(SkillDimension.GLOBAL).append(evidence)
                changed = self.state.profile.update(
                    item.dimension, self.state.histories, mode, self.estimation
                )

            self.state.last_response_at = now

        logger.debug(
            f"Learner {self.learner_id}: {item.item_id} rated {mastery.rating.name}, "
            f"stage {int(mastery.state.stage)}, {len(changed)} ability slots updated"
        )
        return ResponseOutcome(item_id=item.item_id, mastery=mastery, ability=changed, mode=mode)
