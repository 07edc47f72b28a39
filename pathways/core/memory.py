# ═══════════════════════════════════════════════════════════════════════════════
# PART 9: MEMORY CONSOLIDATION
# Design: C2 (Memory Systems)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════


"""
C2: "What you remember depends on how you feel, and how you feel is nudged by
what you remember. A low mood pulls up losses, and the losses keep the mood
low. Keep the nudge small and slow: it takes weeks, not minutes."
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence, Tuple

import numpy as np

from pathways.core.state import IndividualState, StateDimension

logger = logging.getLogger(__name__)


class MemoryTag(Enum):
    """What a memory is about."""
    MISSION = "mission"
    PERSONAL = "personal"
    VIOLENCE = "violence"
    BETRAYAL = "betrayal"
    INJUSTICE = "injustice"
    CEREMONY = "ceremony"
    SCARCITY = "scarcity"
    DEATH = "death"
    CRISIS = "crisis"
    RELATIONSHIP_BREAKDOWN = "relationship_breakdown"
    THERAPY = "therapy"
    SUPPORT = "support"
    ACHIEVEMENT = "achievement"
    LOSS = "loss"
    CONFLICT = "conflict"
    COOPERATION = "cooperation"
    MILESTONE = "milestone"

    @property
    def is_negative(self) -> bool:
        return self in _NEGATIVE_TAGS

    @property
    def is_positive(self) -> bool:
        return self in _POSITIVE_TAGS


_NEGATIVE_TAGS = frozenset({
    MemoryTag.VIOLENCE,
    MemoryTag.BETRAYAL,
    MemoryTag.INJUSTICE,
    MemoryTag.DEATH,
    MemoryTag.CRISIS,
    MemoryTag.RELATIONSHIP_BREAKDOWN,
    MemoryTag.LOSS,
    MemoryTag.CONFLICT,
    MemoryTag.SCARCITY,
})

_POSITIVE_TAGS = frozenset({
    MemoryTag.CEREMONY,
    MemoryTag.THERAPY,
    MemoryTag.SUPPORT,
    MemoryTag.ACHIEVEMENT,
    MemoryTag.COOPERATION,
})


@dataclass(frozen=True)
class MemoryEntry:
    """A remembered episode with its emotional snapshot."""
    formed_at: datetime
    summary: str = ""
    valence: float = 0.0                     # Snapshot valence, -1..1
    arousal: float = 0.0                     # Snapshot arousal, -1..1
    salience: float = 0.5                    # 0..1
    tags: FrozenSet[MemoryTag] = frozenset()

    def get_state(self) -> dict:
        return {
            "formed_at": self.formed_at.isoformat(),
            "summary": self.summary,
            "valence": self.valence,
            "arousal": self.arousal,
            "salience": self.salience,
            "tags": sorted(t.value for t in self.tags),
        }


@dataclass
class ConsolidationConfig:
    """Mood-congruent priming constants."""
    priming_scale_per_day: float = 0.01
    max_priming_effect: float = 0.2
    arousal_salience_threshold: float = 0.5
    arousal_priming_factor: float = 0.02
    valence_weight: float = 0.1

    # Tag polarity vs snapshot valence in a memory's felt valence
    tag_weight: float = 0.7
    snapshot_weight: float = 0.3


@dataclass
class PrimingDeltas:
    valence_delta: float = 0.0
    arousal_delta: float = 0.0


def memories_formed_by(memories: Sequence[MemoryEntry], at: datetime) -> List[MemoryEntry]:
    return [m for m in memories if m.formed_at <= at]


def tag_polarity(tags: FrozenSet[MemoryTag]) -> Tuple[float, bool]:
    """(positive - negative) / total polarity tags, and whether there were any."""
    positive = sum(1 for t in tags if t.is_positive)
    negative = sum(1 for t in tags if t.is_negative)
    total = positive + negative
    if total == 0:
        return 0.0, False
    return (positive - negative) / total, True


def mood_congruence(mood_valence: float, polarity: float, has_polarity: bool) -> float:
    """Retrieval weight: congruent memories come up more, incongruent less."""
    if not has_polarity or abs(mood_valence) < 0.1:
        return 1.0
    if abs(polarity) < 0.1:
        return 1.0
    if (mood_valence < 0.0) == (polarity < 0.0):
        return 1.0 + abs(mood_valence) * 0.5
    return 1.0 - abs(mood_valence) * 0.3


class MemoryConsolidation(ABC):
    """Folds remembered episodes back into the state."""

    @abstractmethod
    def apply(
        self,
        state: IndividualState,
        memories: Sequence[MemoryEntry],
        duration: timedelta,
    ) -> IndividualState:
        ...


class NoConsolidation(MemoryConsolidation):
    def apply(self, state, memories, duration):
        return state


class MoodCongruentConsolidation(MemoryConsolidation):
    """
    Mood-congruent priming.

    Each memory contributes felt_valence * salience * congruence * 0.1; the
    mean is clamped to +-0.2. Salient memories add arousal. Both are scaled by
    min(1, days * 0.01) and added to the mood deltas.
    """

    def __init__(self, config: Optional[ConsolidationConfig] = None) -> None:
        self.config = config or ConsolidationConfig()

    # ── Public Methods ───────────────────────────────────────────────────────

    def priming(self, memories: Sequence[MemoryEntry], mood_valence: float) -> PrimingDeltas:
        cfg = self.config
        if not memories:
            return PrimingDeltas()

        valence_terms = []
        arousal = 0.0
        for memory in memories:
            polarity, has_polarity = tag_polarity(memory.tags)
            if has_polarity:
                felt = polarity * cfg.tag_weight + memory.valence * cfg.snapshot_weight
            else:
                felt = memory.valence
            congruence = mood_congruence(mood_valence, polarity, has_polarity)
            valence_terms.append(felt * memory.salience * congruence * cfg.valence_weight)

            if memory.salience >= cfg.arousal_salience_threshold:
                arousal += memory.salience * cfg.arousal_priming_factor

        valence = float(np.clip(np.mean(valence_terms), -cfg.max_priming_effect, cfg.max_priming_effect))
        arousal = float(np.clip(arousal, 0.0, cfg.max_priming_effect))
        return PrimingDeltas(valence_delta=valence, arousal_delta=arousal)

    def apply(self, state, memories, duration):
        if duration <= timedelta(0) or not memories:
            return state

        deltas = self.priming(memories, state.effective(StateDimension.VALENCE))
        days = duration.total_seconds() / 86400.0
        scale = min(1.0, days * self.config.priming_scale_per_day)

        state.get(StateDimension.VALENCE).add_delta(deltas.valence_delta * scale)
        state.get(StateDimension.AROUSAL).add_delta(deltas.arousal_delta * scale)
        logger.debug(
            "Memory priming over %.1f days: valence %+.4f arousal %+.4f",
            days, deltas.valence_delta * scale, deltas.arousal_delta * scale,
        )
        return state
