# ═══════════════════════════════════════════════════════════════════════════════
# PART 13: TEMPORAL QUERIES
# Design: D1 (Temporal Dynamics) + S2 (Simulation API)
# Implementation: I1 (Systems Architect)
# ═══════════════════════════════════════════════════════════════════════════════


"""
D1: "Never decay the whole interval in one go. Decay is multiplicative and
events land in between, so walk a cursor: decay up to the event, apply it,
move on. Backwards is the same walk in reverse: regress up to the event, take
it back, move on."

S2: "One observed anchor, one event log, any timestamp. Every query starts
fresh from the anchor and throws its working state away."
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Sequence

from pathways.core.alerts import Alert, check_alerts
from pathways.core.context import ContextEffects, ProximalContextEffects
from pathways.core.decay import (
    DEFAULT_MAX_REVERSAL_EXPONENT,
    DecayEngine,
    DecayMode,
    RegressionEngine,
)
from pathways.core.development import DevelopmentalFactor, LifeStage, LifespanDevelopment
from pathways.core.entity import Entity
from pathways.core.events import (
    DeclaredDeltaInterpreter,
    EventInterpreter,
    InterpretedEvent,
    TimestampedEvent,
)
from pathways.core.feedback import FeedbackConfig, FeedbackLoopProcessor, FeedbackResult
from pathways.core.formative import FormativeConfig, FormativeShiftLedger, FormativeShiftRecord
from pathways.core.memory import (
    MemoryConsolidation,
    MoodCongruentConsolidation,
    memories_formed_by,
)
from pathways.core.species import Species
from pathways.core.state import HexacoTrait, IndividualState, StateDimension

logger = logging.getLogger(__name__)


class RegressionQuality(Enum):
    """How far a backward reconstruction can be trusted."""
    EXACT = "exact"
    APPROXIMATE = "approximate"  # Interval holds a permanent change


class QueryDirection(Enum):
    AT_ANCHOR = "at_anchor"
    FORWARD = "forward"
    BACKWARD = "backward"


@dataclass
class EngineConfig:
    """Configuration for the temporal query engine."""
    decay_mode: DecayMode = DecayMode.EXPONENTIAL

    # Run stress/depression spirals on every forward time advance
    enable_feedback_loops: bool = False

    # Overflow guard on ln(2) * t / half_life during regression
    max_reversal_exponent: float = DEFAULT_MAX_REVERSAL_EXPONENT

    feedback_config: Optional[FeedbackConfig] = None
    formative_config: Optional[FormativeConfig] = None


@dataclass
class ComputedState:
    """
    State of one entity at one timestamp.

    Derived on every query and never persisted. Alerts are computed on first
    access and cached on this instance only.
    """
    state: IndividualState
    timestamp: datetime
    species: Species
    age_at_timestamp: timedelta
    life_stage: LifeStage
    regression_quality: RegressionQuality
    direction: QueryDirection
    events_applied: int = 0
    formative_shifts: List[FormativeShiftRecord] = field(default_factory=list)
    feedback: List[FeedbackResult] = field(default_factory=list)
    _alerts: Optional[List[Alert]] = field(default=None, init=False, repr=False, compare=False)

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def is_exact(self) -> bool:
        return self.regression_quality is RegressionQuality.EXACT

    @property
    def alerts(self) -> List[Alert]:
        if self._alerts is None:
            self._alerts = check_alerts(self.state, self.species, self.timestamp)
        return self._alerts

    # ── Public Methods ───────────────────────────────────────────────────────

    def effective(self, dimension: StateDimension) -> float:
        return self.state.effective(dimension)

    def trait(self, trait: HexacoTrait) -> float:
        return self.state.trait(trait)

    def get_state(self) -> dict:
        """Serialize current state."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "species": self.species.name,
            "age_days": self.age_at_timestamp.total_seconds() / 86400.0,
            "life_stage": self.life_stage.value,
            "regression_quality": self.regression_quality.value,
            "direction": self.direction.value,
            "events_applied": self.events_applied,
            "formative_shifts": [r.get_state() for r in self.formative_shifts],
            "alerts": [a.get_state() for a in self.alerts],
            "state": self.state.get_state(),
        }


class TemporalQueryEngine:
    """
    Reconstructs an entity's state at any timestamp from its anchor.

    Composition order:
    1. Decay/regression walk with events (cursor discipline)
    2. Context effects
    3. Memory consolidation
    4. Formative shifts on personality (forward only)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        interpreter: Optional[EventInterpreter] = None,
        development: Optional[DevelopmentalFactor] = None,
        context_effects: Optional[ContextEffects] = None,
        consolidation: Optional[MemoryConsolidation] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.interpreter = interpreter or DeclaredDeltaInterpreter()
        self.development = development or LifespanDevelopment()
        self.context_effects = context_effects or ProximalContextEffects()
        self.consolidation = consolidation or MoodCongruentConsolidation()

        self.decay = DecayEngine(self.config.decay_mode)
        self.regression = RegressionEngine(
            self.config.decay_mode, self.config.max_reversal_exponent,
        )
        self.feedback = FeedbackLoopProcessor(self.config.feedback_config)

    # ── Public Methods ───────────────────────────────────────────────────────

    def state_at(
        self,
        entity: Entity,
        anchor_timestamp: datetime,
        events: Sequence[TimestampedEvent],
        timestamp: datetime,
    ) -> ComputedState:
        """
        Compute the entity's state at `timestamp`.

        Args:
            entity: The entity, with its anchor state.
            anchor_timestamp: When the anchor state was observed.
            events: Every event for this entity; the window is selected here.
            timestamp: Query time, before or after the anchor.
        """
        species = entity.species
        age = entity.age_at(timestamp)
        life_stage = entity.life_stage_at(timestamp)

        if timestamp == anchor_timestamp:
            return ComputedState(
                state=entity.state.copy(),
                timestamp=timestamp,
                species=species,
                age_at_timestamp=age,
                life_stage=life_stage,
                regression_quality=RegressionQuality.EXACT,
                direction=QueryDirection.AT_ANCHOR,
            )

        forward = timestamp > anchor_timestamp
        window = self.select_window(events, anchor_timestamp, timestamp)
        state = entity.state.copy()
        interpreted = [self.interpreter.interpret(te.event, entity) for te in window]
        feedback: List[FeedbackResult] = []

        if forward:
            quality = RegressionQuality.EXACT
            direction = QueryDirection.FORWARD
            logger.debug(
                "Forward query for %s: %d events in (%s, %s]",
                entity.id, len(window), anchor_timestamp, timestamp,
            )
            cursor = anchor_timestamp
            for te, event in zip(window, interpreted):
                feedback.extend(self._advance(state, species, te.timestamp - cursor))
                self._scaled(entity, te, event).apply_to(state)
                cursor = te.timestamp
            feedback.extend(self._advance(state, species, timestamp - cursor))
            total = timestamp - anchor_timestamp
        else:
            quality = self.regression_quality(window)
            direction = QueryDirection.BACKWARD
            logger.debug(
                "Backward query for %s: %d events in (%s, %s]",
                entity.id, len(window), timestamp, anchor_timestamp,
            )
            if quality is RegressionQuality.APPROXIMATE:
                logger.warning(
                    "Backward query for %s crosses a permanent change; result is approximate",
                    entity.id,
                )
            cursor = anchor_timestamp
            for te, event in zip(reversed(window), reversed(interpreted)):
                self._regress(state, species, cursor - te.timestamp)
                self._scaled(entity, te, event).reverse_from(state)
                cursor = te.timestamp
            self._regress(state, species, cursor - timestamp)
            total = anchor_timestamp - timestamp

        state = self.context_effects.apply(
            state, entity.context, entity.relationship_quality, total, life_stage, timestamp,
        )
        state = self.consolidation.apply(
            state, memories_formed_by(entity.memories, timestamp), total,
        )

        shifts: List[FormativeShiftRecord] = []
        if forward:
            ledger = self.collect_formative_shifts(entity, window, timestamp)
            ledger.apply_to(state, entity.state.traits, timestamp)
            shifts = ledger.records

        return ComputedState(
            state=state,
            timestamp=timestamp,
            species=species,
            age_at_timestamp=age,
            life_stage=life_stage,
            regression_quality=quality,
            direction=direction,
            events_applied=len(window),
            formative_shifts=shifts,
            feedback=feedback,
        )

    def select_window(
        self,
        events: Sequence[TimestampedEvent],
        anchor_timestamp: datetime,
        timestamp: datetime,
    ) -> List[TimestampedEvent]:
        """
        Events the walk must cross, oldest first.

        Forward: anchor < t <= target. Backward: target < t <= anchor.
        Ties on timestamp keep insertion order.
        """
        lo, hi = sorted((anchor_timestamp, timestamp))
        window = sorted(
            (te for te in events if lo < te.timestamp <= hi),
            key=lambda te: te.sort_key,
        )
        for prev, nxt in zip(window, window[1:]):
            if prev.timestamp == nxt.timestamp:
                logger.debug(
                    "Events %s and %s share timestamp %s; ordering by insertion",
                    prev.event.id, nxt.event.id, nxt.timestamp,
                )
        return window

    @staticmethod
    def regression_quality(window: Sequence[TimestampedEvent]) -> RegressionQuality:
        for te in window:
            if te.event.category.causes_permanent_change:
                return RegressionQuality.APPROXIMATE
        return RegressionQuality.EXACT

    def collect_formative_shifts(
        self,
        entity: Entity,
        window: Sequence[TimestampedEvent],
        timestamp: datetime,
    ) -> FormativeShiftLedger:
        """Run every base-shift request at or before `timestamp` through the ledger."""
        ledger = FormativeShiftLedger(self.config.formative_config)
        for te in window:
            if not te.event.is_formative or te.timestamp > timestamp:
                continue
            age_years = entity.whole_years_at(te.timestamp)
            for trait, requested in te.event.base_shifts.items():
                ledger.record(trait, requested, te.timestamp, age_years, entity.species)
        return ledger

    # ── Internal ─────────────────────────────────────────────────────────────

    def _scaled(
        self,
        entity: Entity,
        te: TimestampedEvent,
        event: InterpretedEvent,
    ) -> InterpretedEvent:
        factor = self.development.factor(entity, te.event, entity.age_at(te.timestamp), te.timestamp)
        return event.scaled_by(factor)

    def _advance(
        self,
        state: IndividualState,
        species: Species,
        elapsed: timedelta,
    ) -> List[FeedbackResult]:
        if elapsed <= timedelta(0):
            return []
        self.decay.apply_all(state.iter_values(), elapsed, species.time_scale)
        if not self.config.enable_feedback_loops:
            return []
        result = self.feedback.process(state, species, elapsed)
        return [result] if result.any_triggered else []

    def _regress(self, state: IndividualState, species: Species, elapsed: timedelta) -> None:
        if elapsed <= timedelta(0):
            return
        self.regression.regress_all_in_place(state.iter_values(), elapsed, species.time_scale)
