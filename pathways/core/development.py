# ═══════════════════════════════════════════════════════════════════════════════
# PART 5: DEVELOPMENTAL STAGES
# Design: N7 (Developmental Neuro) + E1 (Comparative Ethology)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════


"""
N7: "Sensitive periods exist because the brain NEEDS certain inputs at certain
times. The same loss hits a child twice as hard as an adult, and a betrayal
at sixteen shapes identity in a way it won't at sixty."

E1: "Stages come from maturity, not calendar years. A two-year-old dog is an
adult; a two-year-old elephant is a baby."
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence

from pathways.core.species import HUMAN, Species

if TYPE_CHECKING:
    from pathways.core.context import TurningPoint
    from pathways.core.entity import Entity
    from pathways.core.events import LifeEvent

DAYS_PER_YEAR = 365.25

HUMAN_MATURITY_YEARS = 25.0
# Stand-in for species that mature in under a year (stored as 0)
SUB_YEAR_MATURITY_YEARS = 0.12


class LifeStage(Enum):
    """Human-equivalent life stages."""
    CHILD = "child"                  # 0-12
    ADOLESCENT = "adolescent"        # 13-17
    YOUNG_ADULT = "young_adult"      # 18-30
    ADULT = "adult"                  # 31-55
    MATURE_ADULT = "mature_adult"    # 56-70
    ELDER = "elder"                  # 71+

    @property
    def event_impact_multiplier(self) -> float:
        return _IMPACT_MULTIPLIERS[self]


_IMPACT_MULTIPLIERS = {
    LifeStage.CHILD: 2.0,
    LifeStage.ADOLESCENT: 1.5,
    LifeStage.YOUNG_ADULT: 1.2,
    LifeStage.ADULT: 1.0,
    LifeStage.MATURE_ADULT: 0.9,
    LifeStage.ELDER: 0.8,
}

# (inclusive upper bound in human-equivalent years, stage)
_STAGE_BOUNDS = [
    (12, LifeStage.CHILD),
    (17, LifeStage.ADOLESCENT),
    (30, LifeStage.YOUNG_ADULT),
    (55, LifeStage.ADULT),
    (70, LifeStage.MATURE_ADULT),
]


class DevelopmentalCategory(Enum):
    """Eriksonian task an event speaks to."""
    ATTACHMENT = "attachment"
    AUTONOMY = "autonomy"
    INITIATIVE = "initiative"
    INDUSTRY = "industry"
    IDENTITY = "identity"
    INTIMACY = "intimacy"
    GENERATIVITY = "generativity"
    INTEGRITY = "integrity"
    NEUTRAL = "neutral"


@dataclass
class SensitivePeriod:
    """Amplified impact window for one category of event."""
    stage: LifeStage                     # When it's active
    category: DevelopmentalCategory      # What kind of event is amplified
    sensitivity: float = 1.0             # Multiplier on impact

    def is_active(self, stage: LifeStage, category: DevelopmentalCategory) -> bool:
        return stage == self.stage and category == self.category


@dataclass
class DevelopmentConfig:
    """Configuration for the lifespan developmental factor."""
    # Plasticity falls linearly with human-equivalent age
    max_plasticity: float = 2.0
    min_plasticity: float = 0.5
    plasticity_decay_per_year: float = 0.023

    # Turning points
    turning_point_max_boost: float = 0.5
    turning_point_half_life_days: float = 180.0
    turning_point_decay_constant: float = 0.693

    sensitive_periods: List[SensitivePeriod] = field(default_factory=lambda: [
        SensitivePeriod(LifeStage.CHILD, DevelopmentalCategory.ATTACHMENT, 2.0),
        SensitivePeriod(LifeStage.CHILD, DevelopmentalCategory.AUTONOMY, 2.0),
        SensitivePeriod(LifeStage.CHILD, DevelopmentalCategory.INITIATIVE, 1.5),
        SensitivePeriod(LifeStage.CHILD, DevelopmentalCategory.INDUSTRY, 1.5),
        SensitivePeriod(LifeStage.ADOLESCENT, DevelopmentalCategory.IDENTITY, 1.8),
        SensitivePeriod(LifeStage.YOUNG_ADULT, DevelopmentalCategory.INTIMACY, 1.3),
        SensitivePeriod(LifeStage.ADULT, DevelopmentalCategory.GENERATIVITY, 1.3),
        SensitivePeriod(LifeStage.MATURE_ADULT, DevelopmentalCategory.GENERATIVITY, 1.3),
        SensitivePeriod(LifeStage.ELDER, DevelopmentalCategory.INTEGRITY, 1.2),
    ])


def age_in_years(age: timedelta) -> float:
    return max(0.0, age.total_seconds() / 86400.0 / DAYS_PER_YEAR)


def human_equivalent_years(age_years: float, species: Species = HUMAN) -> float:
    """Scale an age by maturity so stages line up across species."""
    maturity = species.maturity_age_years
    if maturity <= 0:
        maturity = SUB_YEAR_MATURITY_YEARS
    return max(0.0, age_years) * HUMAN_MATURITY_YEARS / maturity


def life_stage_for(age_years: float, species: Species = HUMAN) -> LifeStage:
    """Life stage for an age in raw years of the given species."""
    equivalent = int(human_equivalent_years(age_years, species))
    for upper, stage in _STAGE_BOUNDS:
        if equivalent <= upper:
            return stage
    return LifeStage.ELDER


# ── Developmental factor ────────────────────────────────────────────────────


class DevelopmentalFactor(ABC):
    """Scales an event's impact by who it happened to, and when."""

    @abstractmethod
    def factor(
        self,
        entity: "Entity",
        event: "LifeEvent",
        age: timedelta,
        timestamp: datetime,
    ) -> float:
        """
        Multiplier applied to an interpreted event's deltas.

        Args:
            entity: The individual the event happened to.
            event: The event being applied or reversed.
            age: Entity's age when the event happened.
            timestamp: When the event happened.
        """
        ...


class ConstantDevelopment(DevelopmentalFactor):
    """Same factor for everyone. 1.0 leaves event deltas unscaled."""

    def __init__(self, value: float = 1.0) -> None:
        self.value = value

    def factor(self, entity, event, age, timestamp) -> float:
        return self.value


class LifespanDevelopment(DevelopmentalFactor):
    """
    Lifespan plasticity model.

    factor = (plasticity + turning_point_boost) * sensitive_multiplier

    - plasticity falls from 2.0 at birth to 0.5 around 65 human years
    - recent turning points add up to +0.5, fading with a 180-day half-life
    - sensitive periods amplify matching events (child attachment x2.0, ...)
    """

    def __init__(self, config: Optional[DevelopmentConfig] = None) -> None:
        self.config = config or DevelopmentConfig()

    # ── Public Methods ───────────────────────────────────────────────────────

    def factor(self, entity, event, age, timestamp) -> float:
        species = entity.species
        raw_years = age_in_years(age)
        stage = life_stage_for(raw_years, species)

        plasticity = self.plasticity(raw_years * species.time_scale)
        boost = self.turning_point_boost(entity.context.turning_points, timestamp)
        multiplier = self.sensitive_multiplier(stage, event.developmental_category)

        return (plasticity + boost) * multiplier

    def plasticity(self, human_age_years: float) -> float:
        """
        Plasticity at a human-equivalent age.

        Returns:
            Value in [min_plasticity, max_plasticity].
        """
        cfg = self.config
        age = max(0.0, human_age_years)
        return max(cfg.min_plasticity, cfg.max_plasticity - age * cfg.plasticity_decay_per_year)

    def turning_point_boost(
        self,
        turning_points: Sequence["TurningPoint"],
        timestamp: datetime,
    ) -> float:
        """Summed, capped boost from turning points at or before `timestamp`."""
        cfg = self.config
        total = 0.0
        for tp in turning_points:
            if tp.timestamp > timestamp:
                continue
            days_since = (timestamp - tp.timestamp).total_seconds() / 86400.0
            total += cfg.turning_point_max_boost * math.exp(
                -cfg.turning_point_decay_constant * days_since / cfg.turning_point_half_life_days
            )
        return min(total, cfg.turning_point_max_boost)

    def sensitive_multiplier(self, stage: LifeStage, category: DevelopmentalCategory) -> float:
        multiplier = 1.0
        for period in self.config.sensitive_periods:
            if period.is_active(stage, category):
                multiplier *= period.sensitivity
        return multiplier

    def get_state(self) -> dict:
        return {
            "max_plasticity": self.config.max_plasticity,
            "min_plasticity": self.config.min_plasticity,
            "sensitive_periods": [
                {"stage": p.stage.value, "category": p.category.value, "sensitivity": p.sensitivity}
                for p in self.config.sensitive_periods
            ],
        }
