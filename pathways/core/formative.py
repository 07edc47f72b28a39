# ═══════════════════════════════════════════════════════════════════════════════
# PART 7: FORMATIVE SHIFTS
# Design: P2 (Personality) + N7 (Developmental Neuro)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════


"""
P2: "Personality does change, just slowly and with resistance. Extraversion
barely moves; neuroticism moves most, especially in adolescence. Each new
push in the same direction counts for less than the last, and nobody becomes
a different person from one event."

N7: "Severe shifts overshoot. The raw impact relaxes over about six months to
something smaller but permanent."
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

import numpy as np

from pathways.core.species import Species
from pathways.core.state import HexacoTrait, IndividualState

logger = logging.getLogger(__name__)

SHIFT_EPSILON = 1e-9

STABILITY: Dict[HexacoTrait, float] = {
    HexacoTrait.EXTRAVERSION: 0.85,
    HexacoTrait.OPENNESS: 0.80,
    HexacoTrait.HONESTY_HUMILITY: 0.75,
    HexacoTrait.CONSCIENTIOUSNESS: 0.70,
    HexacoTrait.AGREEABLENESS: 0.65,
    HexacoTrait.NEUROTICISM: 0.60,
}

# (first age, last age, multiplier), inclusive
SENSITIVE_WINDOWS: Dict[HexacoTrait, Tuple[int, int, float]] = {
    HexacoTrait.NEUROTICISM: (12, 25, 1.4),
    HexacoTrait.CONSCIENTIOUSNESS: (18, 35, 1.2),
    HexacoTrait.AGREEABLENESS: (25, 40, 1.2),
    HexacoTrait.EXTRAVERSION: (13, 22, 1.2),
    HexacoTrait.OPENNESS: (15, 30, 1.2),
    HexacoTrait.HONESTY_HUMILITY: (18, 30, 1.2),
}


@dataclass
class FormativeConfig:
    """Caps and settling curve for permanent trait shifts."""
    max_single_event_shift: float = 0.30
    severe_shift_threshold: float = 0.20     # |shift| above this settles
    severe_shift_retention: float = 0.70     # Fraction kept once settled
    settling_days: int = 180
    saturation_constant: float = 0.50
    cumulative_cap: float = 1.0              # Per trait, per direction


# ── Modifiers ───────────────────────────────────────────────────────────────


def trait_modifier(trait: HexacoTrait) -> float:
    return 1.0 - STABILITY[trait]


def age_plasticity(age_years: int) -> float:
    if age_years <= 17:
        return 1.3
    if age_years <= 29:
        return 1.0
    if age_years <= 49:
        return 0.8
    if age_years <= 69:
        return 0.7
    return 0.6


def sensitive_period_modifier(trait: HexacoTrait, age_years: int) -> float:
    start, end, multiplier = SENSITIVE_WINDOWS[trait]
    if start <= age_years <= end:
        return multiplier
    return 1.0


def combined_plasticity(trait: HexacoTrait, age_years: int) -> float:
    """max() of the two, so they never stack."""
    return max(age_plasticity(age_years), sensitive_period_modifier(trait, age_years))


def species_plasticity(species: Species) -> float:
    if not species.builtin:
        return 0.8 + 0.4 * species.social_complexity
    if species.is_human:
        return 1.0
    return 1.2


def saturation_factor(existing_cumulative: float, constant: float = 0.50) -> float:
    return 1.0 / (1.0 + existing_cumulative / constant)


def enforce_cumulative_cap(shift: float, existing_cumulative: float, cap: float = 1.0) -> float:
    """Shrink `shift` to the headroom left under `cap`, keeping its sign."""
    if existing_cumulative + abs(shift) > cap:
        return math.copysign(max(0.0, cap - existing_cumulative), shift)
    return shift


def apply_formative_modifiers(
    requested: float,
    trait: HexacoTrait,
    age_years: int,
    existing_cumulative: float,
    species: Species,
    config: Optional[FormativeConfig] = None,
) -> float:
    """
    Turn a requested shift into the amount actually recorded.

    modified = requested * species * age/sensitive * (1 - stability) * saturation
    then clamped per event and against the cumulative cap.
    """
    cfg = config or FormativeConfig()
    modified = (
        requested
        * species_plasticity(species)
        * combined_plasticity(trait, age_years)
        * trait_modifier(trait)
        * saturation_factor(existing_cumulative, cfg.saturation_constant)
    )
    capped = float(np.clip(modified, -cfg.max_single_event_shift, cfg.max_single_event_shift))
    if capped != modified:
        logger.warning(
            "Shift on %s clamped from %.3f to %.3f", trait.value, modified, capped,
        )
    return enforce_cumulative_cap(capped, existing_cumulative, cfg.cumulative_cap)


# ── Records ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FormativeShiftRecord:
    """One permanent shift to one trait. Never mutated."""
    timestamp: datetime
    trait: HexacoTrait
    immediate_magnitude: float
    settled_magnitude: float
    settling_period_days: int

    @classmethod
    def create(
        cls,
        timestamp: datetime,
        trait: HexacoTrait,
        shift: float,
        config: Optional[FormativeConfig] = None,
    ) -> "FormativeShiftRecord":
        """Build a record; severe shifts get a settling period."""
        cfg = config or FormativeConfig()
        if abs(shift) > cfg.severe_shift_threshold:
            return cls(
                timestamp, trait, shift,
                shift * cfg.severe_shift_retention, cfg.settling_days,
            )
        return cls(timestamp, trait, shift, shift, 0)

    @property
    def is_severe(self) -> bool:
        return self.settling_period_days > 0

    def contribution_at(self, at: datetime) -> float:
        """
        Contribution to the trait at `at`.

        0 before the shift, immediate at the shift, linear towards settled
        across the settling period, settled afterwards.
        """
        if at < self.timestamp:
            return 0.0
        if not self.is_severe:
            return self.immediate_magnitude

        settling = timedelta(days=self.settling_period_days)
        elapsed = at - self.timestamp
        if elapsed >= settling:
            return self.settled_magnitude

        progress = elapsed / settling
        change = self.immediate_magnitude - self.settled_magnitude
        return self.immediate_magnitude - change * progress

    def get_state(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "trait": self.trait.value,
            "immediate_magnitude": self.immediate_magnitude,
            "settled_magnitude": self.settled_magnitude,
            "settling_period_days": self.settling_period_days,
        }


class FormativeShiftLedger:
    """
    Append-only collection of formative shift records.

    Tracks cumulative magnitude per trait and direction so saturation and the
    cumulative cap can be applied to each new request.
    """

    def __init__(self, config: Optional[FormativeConfig] = None) -> None:
        self.config = config or FormativeConfig()
        self._records: List[FormativeShiftRecord] = []
        self._cumulative: Dict[Tuple[HexacoTrait, bool], float] = {}

    def __len__(self) -> int:
        return len(self._records)

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def records(self) -> List[FormativeShiftRecord]:
        return list(self._records)

    # ── Public Methods ───────────────────────────────────────────────────────

    def cumulative(self, trait: HexacoTrait, positive: bool) -> float:
        """Total |shift| recorded on `trait` in one direction."""
        return self._cumulative.get((trait, positive), 0.0)

    def record(
        self,
        trait: HexacoTrait,
        requested: float,
        timestamp: datetime,
        age_years: int,
        species: Species,
    ) -> Optional[FormativeShiftRecord]:
        """
        Run a shift request through the modifier pipeline and record it.

        Returns:
            The new record, or None if nothing was left after the modifiers.
        """
        positive = requested > 0
        existing = self.cumulative(trait, positive)
        modified = apply_formative_modifiers(
            requested, trait, age_years, existing, species, self.config,
        )
        if abs(modified) < SHIFT_EPSILON:
            logger.debug("Shift on %s absorbed (requested %.3f)", trait.value, requested)
            return None

        record = FormativeShiftRecord.create(timestamp, trait, modified, self.config)
        self._records.append(record)
        self._cumulative[(trait, positive)] = existing + abs(modified)
        logger.debug(
            "Recorded shift on %s: requested %.3f, immediate %.3f, settled %.3f",
            trait.value, requested, record.immediate_magnitude, record.settled_magnitude,
        )
        return record

    def records_for(self, trait: HexacoTrait) -> List[FormativeShiftRecord]:
        return [r for r in self._records if r.trait == trait]

    def total_contribution(self, trait: HexacoTrait, at: datetime) -> float:
        contributions = [r.contribution_at(at) for r in self._records if r.trait == trait]
        return float(np.sum(contributions)) if contributions else 0.0

    def effective_base(self, trait: HexacoTrait, anchor_value: float, at: datetime) -> float:
        """Anchor value plus every contribution at `at`, clamped to [-1, 1]."""
        return float(np.clip(anchor_value + self.total_contribution(trait, at), -1.0, 1.0))

    def apply_to(
        self,
        state: IndividualState,
        anchor_traits: Dict[HexacoTrait, float],
        at: datetime,
    ) -> None:
        """Overwrite each trait in `state` with its effective base at `at`."""
        for trait in HexacoTrait:
            state.set_trait(trait, self.effective_base(trait, anchor_traits[trait], at))

    def get_state(self) -> dict:
        return {
            "records": [r.get_state() for r in self._records],
            "cumulative": {
                f"{trait.value}.{'positive' if positive else 'negative'}": value
                for (trait, positive), value in self._cumulative.items()
            },
        }
