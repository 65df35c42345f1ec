"""
Learner state aggregate.

Everything the core mutates for one learner lives here and nowhere else:
the ability profile, per-item mastery (which embeds the memory record) and
the per-dimension response histories the ability estimates are computed
from. Item parameters are shared and read-only, so they are referenced,
never copied.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime

from cadence.ability.estimation import ItemResponse
from cadence.ability.profile import AbilityProfile
from cadence.core.dimensions import SkillDimension
from cadence.memory.fsrs import MemoryRecord
from cadence.memory.mastery import MasteryState


@dataclass
class LearnerState:
    learner_id: str
    profile: AbilityProfile = field(default_factory=AbilityProfile.from_prior)
    mastery: dict[str, MasteryState] = field(default_factory=dict)
    histories: dict[SkillDimension, list[ItemResponse]] = field(default_factory=dict)
    last_response_at: datetime | None = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def mastery_for(self, item_id: str) -> MasteryState:
        """Mastery for an item, a fresh state if the learner has never seen it."""
        return self.mastery.get(item_id) or MasteryState()

    def memory_index(self) -> dict[str, MemoryRecord]:
        return {item_id: state.memory for item_id, state in self.mastery.items()}

    def history(self, dimension: SkillDimension) -> list[ItemResponse]:
        return self.histories.setdefault(dimension, [])
