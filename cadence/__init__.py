"""
Cadence - adaptive scheduling core for language learning.

Estimates learner ability (IRT), schedules reviews (FSRS-4) and ranks
candidate items into one queue.

Packages:
- ability: theta estimation, item selection, calibration, ability profile
- memory: memory records, scheduler, mastery stages
- priority: value/cost/urgency scoring and the engine cache
- queue: ranked queue and session slices
- learner: per-learner state and the response loop
"""

__version__ = "1.0.0"
