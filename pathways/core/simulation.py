# ═══════════════════════════════════════════════════════════════════════════════
# PART 14: SIMULATION
# Design: S2 (Simulation API)
# Implementation: I1 (Systems Architect)
# ═══════════════════════════════════════════════════════════════════════════════


"""
S2: "The simulation owns entities, their anchors and one shared event log.
It answers one question, state_at, and refuses politely when it doesn't know
who you mean."
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from pathways.core.entity import Entity
from pathways.core.errors import DuplicateEntityError, UnknownEntityError
from pathways.core.events import EventLog, IdFactory, LifeEvent, TimestampedEvent
from pathways.core.memory import MemoryEntry, memories_formed_by
from pathways.core.temporal_query import ComputedState, TemporalQueryEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnchorObservation:
    """Ground truth: the entity as observed at `anchor_timestamp`."""
    entity: Entity
    anchor_timestamp: datetime


class Simulation:
    """
    Container of anchored entities and their events.

    Every query is recomputed from the anchor and the log; nothing is cached
    across queries.
    """

    def __init__(
        self,
        reference_date: datetime,
        engine: Optional[TemporalQueryEngine] = None,
        id_factory: Optional[IdFactory] = None,
    ) -> None:
        self.reference_date = reference_date
        self.engine = engine or TemporalQueryEngine()
        self.events = EventLog(id_factory)
        self._anchors: Dict[str, AnchorObservation] = {}

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def entity_ids(self) -> List[str]:
        return list(self._anchors)

    # ── Public Methods ───────────────────────────────────────────────────────

    def add_entity(self, entity: Entity, anchor_timestamp: Optional[datetime] = None) -> None:
        """
        Register a snapshot of `entity` as observed at `anchor_timestamp`
        (default: reference date). Later edits to `entity` are not seen.
        """
        if entity.id in self._anchors:
            raise DuplicateEntityError(f"Entity already registered: {entity.id}")
        anchor = anchor_timestamp or self.reference_date
        self._anchors[entity.id] = AnchorObservation(entity.snapshot(), anchor)
        logger.debug("Anchored %s at %s", entity.id, anchor)

    def has_entity(self, entity_id: str) -> bool:
        return entity_id in self._anchors

    def entity(self, entity_id: str) -> "EntityQueryHandle":
        return EntityQueryHandle(self, self._anchor(entity_id))

    def add_event(self, event: LifeEvent, timestamp: datetime) -> TimestampedEvent:
        """Append an event. Its target need not be registered yet."""
        return self.events.append(event, timestamp)

    def events_for(self, entity_id: str) -> List[TimestampedEvent]:
        return self.events.for_entity(entity_id)

    def events_between(self, start: datetime, end: datetime) -> List[TimestampedEvent]:
        return self.events.between(start, end)

    def state_at(self, entity_id: str, timestamp: datetime) -> ComputedState:
        """
        State of `entity_id` at `timestamp`.

        Raises:
            UnknownEntityError: entity_id was never added.
        """
        return self.entity(entity_id).state_at(timestamp)

    def get_state(self) -> dict:
        return {
            "reference_date": self.reference_date.isoformat(),
            "entities": {
                eid: {"anchor_timestamp": obs.anchor_timestamp.isoformat()}
                for eid, obs in self._anchors.items()
            },
            "event_count": len(self.events),
        }

    # ── Internal ─────────────────────────────────────────────────────────────

    def _anchor(self, entity_id: str) -> AnchorObservation:
        try:
            return self._anchors[entity_id]
        except KeyError:
            raise UnknownEntityError(entity_id) from None


class EntityQueryHandle:
    """Query surface for one registered entity."""

    def __init__(self, simulation: Simulation, observation: AnchorObservation) -> None:
        self._simulation = simulation
        self._observation = observation

    @property
    def entity(self) -> Entity:
        return self._observation.entity

    @property
    def anchor_timestamp(self) -> datetime:
        return self._observation.anchor_timestamp

    def state_at(self, timestamp: datetime) -> ComputedState:
        sim = self._simulation
        return sim.engine.state_at(
            self.entity,
            self.anchor_timestamp,
            sim.events_for(self.entity.id),
            timestamp,
        )

    def memories_at(self, timestamp: datetime) -> List[MemoryEntry]:
        """Memories already formed at `timestamp`."""
        return memories_formed_by(self.entity.memories, timestamp)
