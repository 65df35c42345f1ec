"""
Shared enums for the scheduling core.

Design:
- SkillDimension: the tracked ability dimensions plus the global aggregate
- SessionMode: the context a response was given in, which decides whether
  (and how strongly) it moves the learner's ability estimate
"""

from __future__ import annotations

from enum import Enum


class SkillDimension(str, Enum):
    """
    Linguistic skill dimensions tracked per learner.

    Follows the component cascade PHON -> MORPH -> LEX -> SYNT -> PRAG.
    GLOBAL aggregates every response regardless of dimension.
    """

    PHONOLOGY = "phonology"
    MORPHOLOGY = "morphology"
    LEXICAL = "lexical"
    SYNTACTIC = "syntactic"
    PRAGMATIC = "pragmatic"
    GLOBAL = "global"

    @property
    def short_code(self) -> str:
        """Compact code for tables and logs."""
        return {
            SkillDimension.PHONOLOGY: "PHON",
            SkillDimension.MORPHOLOGY: "MORPH",
            SkillDimension.LEXICAL: "LEX",
            SkillDimension.SYNTACTIC: "SYNT",
            SkillDimension.PRAGMATIC: "PRAG",
            SkillDimension.GLOBAL: "GLOBAL",
        }[self]


class SessionMode(str, Enum):
    """
    Context a response was captured in.

    LEARNING responses are practice with new material and never move ability;
    TRAINING responses move it at a reduced weight; EVALUATION at full weight.
    """

    LEARNING = "learning"
    TRAINING = "training"
    EVALUATION = "evaluation"

    @property
    def updates_ability(self) -> bool:
        return self is not SessionMode.LEARNING
