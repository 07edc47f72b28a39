# ═══════════════════════════════════════════════════════════════════════════════
# PART 3: INDIVIDUAL STATE
# Design: P1 (Clinical Psychology) + P2 (Personality)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════


"""
P1: "Mood moves in hours and disposition in months. Give each
dimension its own clock. Capability for self-harm has no clock at all."

P2: "Traits are not moods. They don't decay; they only move when something
formative moves them."
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple

import numpy as np

from pathways.core.state_value import BIPOLAR_BOUNDS, UNIT_BOUNDS, DecayableValue


class StateDimension(Enum):
    """Every decaying dimension of an individual's state."""
    # Mood (PAD)
    VALENCE = "mood.valence"
    AROUSAL = "mood.arousal"
    DOMINANCE = "mood.dominance"
    # Needs
    FATIGUE = "needs.fatigue"
    STRESS = "needs.stress"
    PURPOSE = "needs.purpose"
    # Social cognition
    LONELINESS = "social_cognition.loneliness"
    PERCEIVED_RECIPROCAL_CARING = "social_cognition.perceived_reciprocal_caring"
    PERCEIVED_LIABILITY = "social_cognition.perceived_liability"
    SELF_HATE = "social_cognition.self_hate"
    PERCEIVED_COMPETENCE = "social_cognition.perceived_competence"
    # Mental health
    DEPRESSION = "mental_health.depression"
    SELF_WORTH = "mental_health.self_worth"
    HOPELESSNESS = "mental_health.hopelessness"
    INTERPERSONAL_HOPELESSNESS = "mental_health.interpersonal_hopelessness"
    ACQUIRED_CAPABILITY = "mental_health.acquired_capability"
    # Disposition
    IMPULSE_CONTROL = "disposition.impulse_control"
    EMPATHY = "disposition.empathy"
    AGGRESSION = "disposition.aggression"
    GRIEVANCE = "disposition.grievance"
    REACTANCE = "disposition.reactance"
    TRUST_PROPENSITY = "disposition.trust_propensity"

    @property
    def section(self) -> str:
        return self.value.split(".", 1)[0]


class HexacoTrait(Enum):
    """HEXACO personality dimensions."""
    HONESTY_HUMILITY = "honesty_humility"
    NEUROTICISM = "neuroticism"
    EXTRAVERSION = "extraversion"
    AGREEABLENESS = "agreeableness"
    CONSCIENTIOUSNESS = "conscientiousness"
    OPENNESS = "openness"


_HOURS = timedelta(hours=1)
_DAYS = timedelta(days=1)

# (base, bounds, half-life)
DIMENSION_DEFAULTS: Dict[StateDimension, Tuple[float, Tuple[float, float], Optional[timedelta]]] = {
    StateDimension.VALENCE: (0.0, BIPOLAR_BOUNDS, 6 * _HOURS),
    StateDimension.AROUSAL: (0.0, BIPOLAR_BOUNDS, 6 * _HOURS),
    StateDimension.DOMINANCE: (0.0, BIPOLAR_BOUNDS, 12 * _HOURS),
    StateDimension.FATIGUE: (0.2, UNIT_BOUNDS, 8 * _HOURS),
    StateDimension.STRESS: (0.2, UNIT_BOUNDS, 12 * _HOURS),
    StateDimension.PURPOSE: (0.7, UNIT_BOUNDS, 3 * _DAYS),
    StateDimension.LONELINESS: (0.2, UNIT_BOUNDS, 1 * _DAYS),
    StateDimension.PERCEIVED_RECIPROCAL_CARING: (0.6, UNIT_BOUNDS, 2 * _DAYS),
    StateDimension.PERCEIVED_LIABILITY: (0.0, UNIT_BOUNDS, 3 * _DAYS),
    StateDimension.SELF_HATE: (0.1, UNIT_BOUNDS, 3 * _DAYS),
    StateDimension.PERCEIVED_COMPETENCE: (0.5, UNIT_BOUNDS, 7 * _DAYS),
    StateDimension.DEPRESSION: (0.1, UNIT_BOUNDS, 7 * _DAYS),
    StateDimension.SELF_WORTH: (0.6, UNIT_BOUNDS, 3 * _DAYS),
    StateDimension.HOPELESSNESS: (0.1, UNIT_BOUNDS, 3 * _DAYS),
    StateDimension.INTERPERSONAL_HOPELESSNESS: (0.1, UNIT_BOUNDS, 2 * _DAYS),
    StateDimension.ACQUIRED_CAPABILITY: (0.0, UNIT_BOUNDS, None),
    StateDimension.IMPULSE_CONTROL: (0.6, UNIT_BOUNDS, 30 * _DAYS),
    StateDimension.EMPATHY: (0.7, UNIT_BOUNDS, 30 * _DAYS),
    StateDimension.AGGRESSION: (0.2, UNIT_BOUNDS, 30 * _DAYS),
    StateDimension.GRIEVANCE: (0.0, UNIT_BOUNDS, 7 * _DAYS),
    StateDimension.REACTANCE: (0.0, UNIT_BOUNDS, 7 * _DAYS),
    StateDimension.TRUST_PROPENSITY: (0.5, UNIT_BOUNDS, 365 * _DAYS),
}

# Each of TB, PB and interpersonal hopelessness must reach this for desire
ITS_DESIRE_THRESHOLD = 0.5


def _default_value(dimension: StateDimension) -> DecayableValue:
    base, bounds, half_life = DIMENSION_DEFAULTS[dimension]
    return DecayableValue(base=base, decay_half_life=half_life, bounds=bounds)


class IndividualState:
    """
    Full psychological state of one individual at one moment.

    Decaying dimensions are DecayableValues keyed by StateDimension.
    Personality traits are plain floats in [-1, 1].
    """

    def __init__(
        self,
        values: Optional[Dict[StateDimension, DecayableValue]] = None,
        traits: Optional[Dict[HexacoTrait, float]] = None,
    ) -> None:
        self.values: Dict[StateDimension, DecayableValue] = {
            dim: _default_value(dim) for dim in StateDimension
        }
        if values:
            self.values.update(values)

        self.traits: Dict[HexacoTrait, float] = {trait: 0.0 for trait in HexacoTrait}
        for trait, value in (traits or {}).items():
            self.set_trait(trait, value)

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def thwarted_belongingness(self) -> float:
        loneliness = self.effective(StateDimension.LONELINESS)
        caring = self.effective(StateDimension.PERCEIVED_RECIPROCAL_CARING)
        return float(np.clip((loneliness + (1.0 - caring)) / 2.0, 0.0, 1.0))

    @property
    def perceived_burdensomeness(self) -> float:
        liability = self.effective(StateDimension.PERCEIVED_LIABILITY)
        self_hate = self.effective(StateDimension.SELF_HATE)
        return float(np.clip(liability * self_hate, 0.0, 1.0))

    @property
    def suicidal_desire(self) -> float:
        """TB x PB, but only once both and interpersonal hopelessness are high."""
        tb = self.thwarted_belongingness
        pb = self.perceived_burdensomeness
        hopeless = self.effective(StateDimension.INTERPERSONAL_HOPELESSNESS)
        if min(tb, pb, hopeless) < ITS_DESIRE_THRESHOLD:
            return 0.0
        return tb * pb

    @property
    def attempt_risk(self) -> float:
        return self.suicidal_desire * self.effective(StateDimension.ACQUIRED_CAPABILITY)

    # ── Public Methods ───────────────────────────────────────────────────────

    def get(self, dimension: StateDimension) -> DecayableValue:
        return self.values[dimension]

    def effective(self, dimension: StateDimension) -> float:
        return self.values[dimension].effective

    def trait(self, trait: HexacoTrait) -> float:
        return self.traits[trait]

    def set_trait(self, trait: HexacoTrait, value: float) -> None:
        self.traits[trait] = float(np.clip(value, -1.0, 1.0))

    def iter_values(self) -> Iterator[DecayableValue]:
        return iter(self.values.values())

    def copy(self) -> "IndividualState":
        clone = IndividualState.__new__(IndividualState)
        clone.values = {dim: value.copy() for dim, value in self.values.items()}
        clone.traits = dict(self.traits)
        return clone

    def get_state(self) -> dict:
        """Serialize current state."""
        sections: Dict[str, dict] = {}
        for dim, value in self.values.items():
            section, name = dim.value.split(".", 1)
            sections.setdefault(section, {})[name] = value.get_state()
        return {
            **sections,
            "personality": {trait.value: v for trait, v in self.traits.items()},
            "derived": {
                "thwarted_belongingness": self.thwarted_belongingness,
                "perceived_burdensomeness": self.perceived_burdensomeness,
                "suicidal_desire": self.suicidal_desire,
                "attempt_risk": self.attempt_risk,
            },
        }
