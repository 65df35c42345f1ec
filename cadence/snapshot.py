"""
JSON snapshot models.

The core itself never touches storage. These pydantic models are the one
serialisation boundary: a learner snapshot (items, mastery, abilities and
response histories) and a calibration matrix, both read and written by the
CLI. Persisted values are accepted as-is; out-of-range memory fields are
clamped by the scheduler with a warning rather than rejected here.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field

from cadence.ability.estimation import AbilityEstimate, EstimationMethod, ItemResponse
from cadence.ability.irt_model import ItemParameter
from cadence.ability.profile import AbilityProfile
from cadence.core.dimensions import SkillDimension
from cadence.learner.state import LearnerState
from cadence.memory.fsrs import MemoryRecord, MemoryState
from cadence.memory.mastery import MasteryStage, MasteryState
from cadence.priority.engine import CandidateItem


class ItemSnapshot(BaseModel):
    """Calibration and value metrics for one item."""

    item_id: str
    dimension: SkillDimension = SkillDimension.LEXICAL
    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    difficulty: float | None = None  # defaults to b
    frequency: float | None = None
    relational_density: float | None = None
    contextual_contribution: float | None = None
    transfer_gain: float | None = None

    def to_parameter(self) -> ItemParameter:
        return ItemParameter(
            item_id=self.item_id, a=self.a, b=self.b, c=self.c, dimension=self.dimension
        )

    def to_candidate(self) -> CandidateItem:
        return CandidateItem(
            item_id=self.item_id,
            difficulty=self.b if self.difficulty is None else self.difficulty,
            dimension=self.dimension,
            frequency=self.frequency,
            relational_density=self.relational_density,
            contextual_contribution=self.contextual_contribution,
            transfer_gain=self.transfer_gain,
        )


class MemorySnapshot(BaseModel):
    stability: float = 0.0
    difficulty: float = 5.0
    last_review: datetime | None = None
    reps: int = 0
    lapses: int = 0
    state: MemoryState = MemoryState.NEW

    def to_record(self) -> MemoryRecord:
        return MemoryRecord(**self.model_dump())

    @classmethod
    def from_record(cls, record: MemoryRecord) -> MemorySnapshot:
        return cls(
            stability=record.stability,
            difficulty=record.difficulty,
            last_review=record.last_review,
            reps=record.reps,
            lapses=record.lapses,
            state=record.state,
        )


class MasterySnapshot(BaseModel):
    item_id: str
    stage: int = Field(default=0, ge=0, le=4)
    memory: MemorySnapshot = Field(default_factory=MemorySnapshot)
    cue_free_accuracy: float = 0.0
    cue_assisted_accuracy: float = 0.0
    exposure_count: int = 0

    def to_state(self) -> MasteryState:
        return MasteryState(
            stage=MasteryStage(self.stage),
            memory=self.memory.to_record(),
            cue_free_accuracy=self.cue_free_accuracy,
            cue_assisted_accuracy=self.cue_assisted_accuracy,
            exposure_count=self.exposure_count,
        )


class EstimateSnapshot(BaseModel):
    theta: float = 0.0
    se: float = 1.0
    method: EstimationMethod = EstimationMethod.PRIOR
    flagged: bool = False
    iterations: int = 0
    response_count: int = 0

    def to_estimate(self) -> AbilityEstimate:
        return AbilityEstimate(**self.model_dump())


class ResponseSnapshot(BaseModel):
    item_id: str
    correct: bool


class LearnerSnapshot(BaseModel):
    """Everything needed to rebuild one learner's state."""

    learner_id: str
    now: datetime | None = None
    items: list[ItemSnapshot] = Field(default_factory=list)
    mastery: list[MasterySnapshot] = Field(default_factory=list)
    abilities: dict[SkillDimension, EstimateSnapshot] = Field(default_factory=dict)
    histories: dict[SkillDimension, list[ResponseSnapshot]] = Field(default_factory=dict)
    last_response_at: datetime | None = None

    @classmethod
    def load(cls, path: Path) -> LearnerSnapshot:
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    def save(self, path: Path) -> None:
        Path(path).write_text(self.model_dump_json(indent=2), encoding="utf-8")

    def item_parameters(self) -> dict[str, ItemParameter]:
        return {item.item_id: item.to_parameter() for item in self.items}

    def candidates(self) -> list[CandidateItem]:
        return [item.to_candidate() for item in self.items]

    def to_state(self) -> LearnerState:
        parameters = self.item_parameters()
        histories: dict[SkillDimension, list[ItemResponse]] = {}
        for dimension, responses in self.histories.items():
            resolved = []
            for response in responses:
                parameter = parameters.get(response.item_id)
                if parameter is None:
                    logger.warning(f"History references unknown item {response.item_id}; skipping")
                    continue
                resolved.append(ItemResponse(parameter, response.correct))
            histories[dimension] = resolved

        profile = AbilityProfile(
            {dimension: snap.to_estimate() for dimension, snap in self.abilities.items()}
        )
        return LearnerState(
            learner_id=self.learner_id,
            profile=profile,
            mastery={m.item_id: m.to_state() for m in self.mastery},
            histories=histories,
            last_response_at=self.last_response_at,
        )

    def update_from_state(self, state: LearnerState) -> LearnerSnapshot:
        """Copy of this snapshot carrying the learner's current state."""
        return self.model_copy(
            update={
                "mastery": [
                    MasterySnapshot(
                        item_id=item_id,
                        stage=int(m.stage),
                        memory=MemorySnapshot.from_record(m.memory),
                        cue_free_accuracy=m.cue_free_accuracy,
                        cue_assisted_accuracy=m.cue_assisted_accuracy,
                        exposure_count=m.exposure_count,
                    )
                    for item_id, m in state.mastery.items()
                ],
                "abilities": {
                    dimension: EstimateSnapshot(
                        theta=est.theta,
                        se=est.se,
                        method=est.method,
                        flagged=est.flagged,
                        iterations=est.iterations,
                        response_count=est.response_count,
                    )
                    for dimension, est in state.profile.estimates.items()
                },
                "histories": {
                    dimension: [
                        ResponseSnapshot(item_id=r.item.item_id, correct=r.correct)
                        for r in responses
                    ]
                    for dimension, responses in state.histories.items()
                },
                "last_response_at": state.last_response_at,
            }
        )


class CalibrationMatrix(BaseModel):
    """Learners x items response matrix for offline calibration."""

    items: list[ItemSnapshot]
    responses: list[list[int | None]]
    learner_ids: list[str] | None = None

    @classmethod
    def load(cls, path: Path) -> CalibrationMatrix:
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))
