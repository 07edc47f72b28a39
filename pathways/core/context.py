# ═══════════════════════════════════════════════════════════════════════════════
# PART 10: ECOLOGICAL CONTEXT
# Design: B1 (Ecological Systems)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════


"""
B1: "Nobody lives in a vacuum. A hostile home wears on you unless your
relationships buffer it; a cold one leaves you lonely. Turning points, the
moves and losses and marriages, open a window where you change more easily."
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from pathways.core.development import LifeStage
from pathways.core.state import IndividualState, StateDimension

logger = logging.getLogger(__name__)

NO_RELATIONSHIP_QUALITY = 0.3

# Proximal processes need regular, reasonably complex interaction to act
INTERACTION_FREQUENCY_THRESHOLD = 0.3
INTERACTION_COMPLEXITY_THRESHOLD = 0.3


@dataclass(frozen=True)
class TurningPoint:
    """A major life change that temporarily raises plasticity."""
    timestamp: datetime
    domain: str = "general"                  # e.g. "family", "work"
    magnitude: float = 1.0                   # 0..1
    event_id: Optional[str] = None


@dataclass
class EcologicalContext:
    """The environment an individual lives in. All levels 0..1."""
    stress: float = 0.0                      # Ambient environmental stress
    social_warmth: float = 0.5
    hostility: float = 0.0
    interaction_frequency: float = 0.0       # How often the environment is engaged
    interaction_complexity: float = 0.0
    turning_points: List[TurningPoint] = field(default_factory=list)

    @property
    def proximal_gate_open(self) -> bool:
        return (
            self.interaction_frequency >= INTERACTION_FREQUENCY_THRESHOLD
            and self.interaction_complexity >= INTERACTION_COMPLEXITY_THRESHOLD
        )

    def add_turning_point(self, turning_point: TurningPoint) -> None:
        self.turning_points.append(turning_point)
        self.turning_points.sort(key=lambda tp: tp.timestamp)

    def get_state(self) -> dict:
        return {
            "stress": self.stress,
            "social_warmth": self.social_warmth,
            "hostility": self.hostility,
            "interaction_frequency": self.interaction_frequency,
            "interaction_complexity": self.interaction_complexity,
            "turning_points": [
                {"timestamp": tp.timestamp.isoformat(), "domain": tp.domain, "magnitude": tp.magnitude}
                for tp in self.turning_points
            ],
        }


def relationship_quality(attached_count: int) -> float:
    """Crude buffer estimate from the number of attached relationships."""
    if attached_count > 0:
        return 0.5 + 0.1 * min(attached_count, 5)
    return NO_RELATIONSHIP_QUALITY


class ContextEffects(ABC):
    """Applies the environment's pull on state over a span of time."""

    @abstractmethod
    def apply(
        self,
        state: IndividualState,
        context: EcologicalContext,
        relationship_quality: float,
        duration: timedelta,
        life_stage: LifeStage,
        timestamp: datetime,
    ) -> IndividualState:
        ...


class NoContextEffects(ContextEffects):
    def apply(self, state, context, relationship_quality, duration, life_stage, timestamp):
        return state


class ProximalContextEffects(ContextEffects):
    """
    Immediate-environment effects, scaled by days / 30.

    Nothing happens unless the context's proximal gate is open, so an
    entity with no engaged environment keeps its state.

    stress     += (0.1 * env_stress + 0.05 * hostility * (1 - rq)) * scale
    loneliness += 0.1 * (1 - warmth) * (1 - rq) * scale
    """

    def apply(self, state, context, relationship_quality, duration, life_stage, timestamp):
        if duration <= timedelta(0) or not context.proximal_gate_open:
            return state

        scale = duration.total_seconds() / 86400.0 / 30.0
        unbuffered = 1.0 - relationship_quality

        stress = (0.1 * context.stress + 0.05 * context.hostility * unbuffered) * scale
        loneliness = 0.1 * (1.0 - context.social_warmth) * unbuffered * scale

        state.get(StateDimension.STRESS).add_delta(stress)
        state.get(StateDimension.LONELINESS).add_delta(loneliness)
        logger.debug(
            "Context over %s (%s): stress %+.4f loneliness %+.4f",
            duration, life_stage.value, stress, loneliness,
        )
        return state
