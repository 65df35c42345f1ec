"""
Core Module - Shared enums and helpers.

Components:
- dimensions: SkillDimension and SessionMode
- timeutils: day/hour differences tolerant of naive and aware datetimes

All component packages (ability, memory, priority, queue, learner) import
shared concepts from here rather than redefining them.
"""

from cadence.core.dimensions import SessionMode, SkillDimension
from cadence.core.timeutils import clamp, days_between, hours_between

__all__ = [
    "SkillDimension",
    "SessionMode",
    "clamp",
    "days_between",
    "hours_between",
]
