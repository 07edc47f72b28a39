# ═══════════════════════════════════════════════════════════════════════════════
# PART 6: FEEDBACK SPIRALS
# Design: P1 (Clinical Psychology)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════


"""
P1: "Stress that stays high doesn't just fade. It wears you down, the
exhaustion erodes self-control, and eventually it turns into depression.
Depression isolates, and isolation feeds depression. Once a dimension has been
through that loop you can't just run the clock backwards on it."
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from pathways.core.species import Species
from pathways.core.state import IndividualState, StateDimension

logger = logging.getLogger(__name__)


@dataclass
class FeedbackConfig:
    """Thresholds and per-day rates for the two spirals."""
    # Stress spiral
    stress_threshold: float = 0.6            # Spiral starts above this
    stress_fatigue_rate: float = 0.02        # fatigue += stress * rate * days
    fatigue_impulse_threshold: float = 0.5
    fatigue_impulse_rate: float = 0.01       # impulse_control -= rate * days
    chronic_stress_threshold: float = 0.7    # Human only
    chronic_stress_depression_rate: float = 0.005

    # Depression spiral (human only)
    depression_threshold: float = 0.4
    depression_loneliness_rate: float = 0.01
    loneliness_feedback_threshold: float = 0.5
    loneliness_depression_rate: float = 0.005


@dataclass
class SpiralResult:
    """What one spiral did during one time advance."""
    triggered: bool = False
    fatigue_change: float = 0.0
    impulse_control_change: float = 0.0
    depression_change: float = 0.0
    loneliness_change: float = 0.0

    @property
    def has_changes(self) -> bool:
        return any((
            self.fatigue_change,
            self.impulse_control_change,
            self.depression_change,
            self.loneliness_change,
        ))

    def get_state(self) -> dict:
        return {
            "triggered": self.triggered,
            "fatigue_change": self.fatigue_change,
            "impulse_control_change": self.impulse_control_change,
            "depression_change": self.depression_change,
            "loneliness_change": self.loneliness_change,
        }


@dataclass
class FeedbackResult:
    stress: SpiralResult
    depression: SpiralResult

    @property
    def any_triggered(self) -> bool:
        return self.stress.triggered or self.depression.triggered


def _days(duration: timedelta) -> float:
    return max(0.0, duration.total_seconds() / 86400.0)


class FeedbackLoopProcessor:
    """
    Applies the stress and depression spirals.

    Rates are per day and scale linearly with the duration passed in. Every
    dimension a spiral touches is marked irreversible. Neither spiral limits
    itself beyond the clamping of effective values.
    """

    def __init__(self, config: Optional[FeedbackConfig] = None) -> None:
        self.config = config or FeedbackConfig()

    # ── Public Methods ───────────────────────────────────────────────────────

    def stress_spiral(
        self,
        state: IndividualState,
        species: Species,
        duration: timedelta,
    ) -> SpiralResult:
        """
        Stress above threshold raises fatigue; high fatigue erodes impulse
        control; for humans, chronic stress also feeds depression.
        """
        cfg = self.config
        result = SpiralResult()
        stress = state.effective(StateDimension.STRESS)
        if stress <= cfg.stress_threshold:
            return result

        result.triggered = True
        days = _days(duration)

        fatigue = state.get(StateDimension.FATIGUE)
        increase = stress * cfg.stress_fatigue_rate * days
        fatigue.add_delta(increase)
        fatigue.mark_irreversible()
        result.fatigue_change = increase

        if fatigue.effective > cfg.fatigue_impulse_threshold:
            impulse = state.get(StateDimension.IMPULSE_CONTROL)
            decrease = cfg.fatigue_impulse_rate * days
            impulse.add_delta(-decrease)
            impulse.mark_irreversible()
            result.impulse_control_change = -decrease

        if species.is_human and stress > cfg.chronic_stress_threshold:
            depression = state.get(StateDimension.DEPRESSION)
            increase = cfg.chronic_stress_depression_rate * days
            depression.add_delta(increase)
            depression.mark_irreversible()
            result.depression_change = increase

        logger.debug("Stress spiral at %.3f: %s", stress, result.get_state())
        return result

    def depression_spiral(
        self,
        state: IndividualState,
        species: Species,
        duration: timedelta,
    ) -> SpiralResult:
        """Depression raises loneliness; high loneliness feeds depression. Human only."""
        cfg = self.config
        result = SpiralResult()
        if not species.is_human:
            return result

        depression_value = state.effective(StateDimension.DEPRESSION)
        if depression_value <= cfg.depression_threshold:
            return result

        result.triggered = True
        days = _days(duration)

        loneliness = state.get(StateDimension.LONELINESS)
        increase = depression_value * cfg.depression_loneliness_rate * days
        loneliness.add_delta(increase)
        loneliness.mark_irreversible()
        result.loneliness_change = increase

        if loneliness.effective > cfg.loneliness_feedback_threshold:
            depression = state.get(StateDimension.DEPRESSION)
            feed = loneliness.effective * cfg.loneliness_depression_rate * days
            depression.add_delta(feed)
            depression.mark_irreversible()
            result.depression_change = feed

        logger.debug("Depression spiral at %.3f: %s", depression_value, result.get_state())
        return result

    def process(
        self,
        state: IndividualState,
        species: Species,
        duration: timedelta,
    ) -> FeedbackResult:
        """Run the stress spiral, then the depression spiral."""
        stress = self.stress_spiral(state, species, duration)
        depression = self.depression_spiral(state, species, duration)
        return FeedbackResult(stress=stress, depression=depression)
