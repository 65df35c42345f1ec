"""
Queue Builder.

Scores every candidate with the PriorityEngine, sorts them into one queue and
cuts a session-sized slice mixing due reviews with new introductions.

Ordering is fully deterministic: descending final score, ties broken by
input position.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from cadence.ability.profile import AbilityProfile
from cadence.memory.fsrs import FSRSScheduler, MemoryRecord
from cadence.priority.engine import CandidateItem, PriorityEngine, PriorityRecord
from cadence.priority.weights import ProficiencyBand


@dataclass(frozen=True)
class QueueEntry:
    """A ranked candidate."""

    item: CandidateItem
    record: PriorityRecord
    position: int
    is_due: bool

    @property
    def item_id(self) -> str:
        return self.item.item_id

    @property
    def final_score(self) -> float:
        return self.record.final_score

    @property
    def is_new(self) -> bool:
        return not self.is_due


def build_queue(
    candidates: Sequence[CandidateItem],
    profile: AbilityProfile,
    memory_index: Mapping[str, MemoryRecord],
    now: datetime,
    engine: PriorityEngine | None = None,
    scheduler: FSRSScheduler | None = None,
    band: ProficiencyBand | None = None,
) -> list[QueueEntry]:
    """
    Rank all candidates for one learner.

    Args:
        candidates: Items with their value metrics, in a stable input order
        profile: Learner ability profile
        memory_index: item_id -> MemoryRecord for items the learner has seen
        now: Evaluation time
        engine: Priority engine (built from settings when omitted)
        scheduler: Memory scheduler used to derive due dates
        band: Proficiency band override (inferred from global theta otherwise)

    Returns:
        QueueEntry list sorted by final score, highest first
    """
    engine = engine or PriorityEngine()
    scheduler = scheduler or FSRSScheduler()
    band = band or engine.band(profile.global_theta)

    entries = []
    for position, item in enumerate(candidates):
        memory = memory_index.get(item.item_id)
        if memory is not None:
            memory = scheduler.sanitize(memory)
        due = scheduler.next_review_date(memory) if memory is not None else None
        record = engine.score(
            item,
            ability=profile.theta(item.dimension),
            global_theta=profile.global_theta,
            due=due,
            now=now,
            band=band,
        )
        entries.append(
            QueueEntry(
                item=item,
                record=record,
                position=position,
                is_due=memory is not None and not memory.is_new,
            )
        )

    # sorted() is stable, so equal scores keep input order
    entries = sorted(entries, key=lambda e: -e.final_score)
    logger.debug(f"Built queue of {len(entries)} items ({band.value} band)")
    return entries


def _interleave(due: list[QueueEntry], new: list[QueueEntry]) -> list[QueueEntry]:
    """Spread the new entries evenly through the due ones."""
    total = len(due) + len(new)
    result: list[QueueEntry] = []
    di = ni = 0
    for slot in range(total):
        take_new = ni < len(new) and (
            di >= len(due) or (ni + 1) * total <= (slot + 1) * len(new)
        )
        if take_new:
            result.append(new[ni])
            ni += 1
        else:
            result.append(due[di])
            di += 1
    return result


def get_session_slice(
    queue: Sequence[QueueEntry],
    session_size: int | None = None,
    new_item_ratio: float | None = None,
) -> list[QueueEntry]:
    """
    Cut a session from a ranked queue.

    floor(session_size * new_item_ratio) slots go to new items and the rest
    to due items, each taken in rank order. When one side runs short the
    other fills its slots; the chosen new items are interleaved through the
    due ones in proportion.
    """
    if session_size is None or new_item_ratio is None:
        from config import get_settings

        defaults = get_settings().get_queue_config()
        session_size = defaults["session_size"] if session_size is None else session_size
        new_item_ratio = defaults["new_item_ratio"] if new_item_ratio is None else new_item_ratio

    if session_size <= 0:
        return []
    new_item_ratio = min(1.0, max(0.0, new_item_ratio))

    due = [e for e in queue if e.is_due]
    new = [e for e in queue if not e.is_due]

    new_slots = math.floor(session_size * new_item_ratio)
    due_slots = session_size - new_slots

    chosen_due = due[:due_slots]
    chosen_new = new[:new_slots]

    # Backfill from whichever side still has items
    shortfall = session_size - len(chosen_due) - len(chosen_new)
    if shortfall > 0 and len(chosen_due) < len(due):
        extra = due[len(chosen_due): len(chosen_due) + shortfall]
        chosen_due += extra
        shortfall -= len(extra)
    if shortfall > 0 and len(chosen_new) < len(new):
        chosen_new += new[len(chosen_new): len(chosen_new) + shortfall]

    logger.debug(
        f"Session slice: {len(chosen_due)} due + {len(chosen_new)} new "
        f"(target {due_slots}/{new_slots})"
    )
    return _interleave(chosen_due, chosen_new)
