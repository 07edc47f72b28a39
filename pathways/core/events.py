# ═══════════════════════════════════════════════════════════════════════════════
# PART 8: LIFE EVENTS
# Design: S2 (Simulation API) + P1 (Clinical Psychology)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════


"""
S2: "The engine doesn't care what an event means. It needs a time, a set of
signed deltas, and maybe a request to move a trait. Meaning lives in the
interpreter, which is swappable."

P1: "Trauma is the one category you can't take back. Capability for self-harm,
once acquired, stays."
"""

from __future__ import annotations

import itertools
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterator, List, Optional

from pathways.core.development import DevelopmentalCategory
from pathways.core.state import HexacoTrait, IndividualState, StateDimension

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]

# Dimensions whose increases are never un-added when walking backwards
NON_REVERSIBLE_DIMENSIONS: FrozenSet[StateDimension] = frozenset({
    StateDimension.ACQUIRED_CAPABILITY,
})


class EventCategory(Enum):
    """Broad category of an event's psychological effect."""
    SOCIAL_BELONGING = "social_belonging"    # Thwarted belongingness
    BURDEN_PERCEPTION = "burden_perception"  # Perceived burdensomeness
    TRAUMA = "trauma"                        # Acquired capability
    CONTROL = "control"                      # Dominance
    ACHIEVEMENT = "achievement"              # Self-worth
    SOCIAL = "social"                        # General interpersonal
    CONTEXTUAL = "contextual"                # Environmental

    @property
    def causes_permanent_change(self) -> bool:
        return self is EventCategory.TRAUMA


def uuid_ids() -> str:
    return str(uuid.uuid4())


class SequentialIds:
    """Deterministic ids: prefix-1, prefix-2, ..."""

    def __init__(self, prefix: str = "event", start: int = 1) -> None:
        self.prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"


@dataclass(frozen=True)
class LifeEvent:
    """Opaque payload: who, what kind, and which deltas."""
    target: str                                   # Entity id
    event_type: str = "generic"
    category: EventCategory = EventCategory.SOCIAL
    developmental_category: DevelopmentalCategory = DevelopmentalCategory.NEUTRAL
    severity: float = 1.0
    state_deltas: Dict[StateDimension, float] = field(default_factory=dict)
    chronic: bool = False                         # Deltas go to chronic_delta
    base_shifts: Dict[HexacoTrait, float] = field(default_factory=dict)
    tags: FrozenSet[str] = frozenset()
    id: Optional[str] = None

    @property
    def is_formative(self) -> bool:
        return bool(self.base_shifts)

    def get_state(self) -> dict:
        return {
            "id": self.id,
            "target": self.target,
            "event_type": self.event_type,
            "category": self.category.value,
            "developmental_category": self.developmental_category.value,
            "severity": self.severity,
            "state_deltas": {d.value: v for d, v in self.state_deltas.items()},
            "chronic": self.chronic,
            "base_shifts": {t.value: v for t, v in self.base_shifts.items()},
            "tags": sorted(self.tags),
        }


@dataclass(frozen=True)
class TimestampedEvent:
    """An event placed on the timeline. `sequence` breaks timestamp ties."""
    event: LifeEvent
    timestamp: datetime
    sequence: int

    @property
    def sort_key(self):
        return (self.timestamp, self.sequence)


class EventLog:
    """
    Insertion-ordered log of timestamped events.

    Events without an id get one from `id_factory` (uuid4 by default).
    """

    def __init__(self, id_factory: Optional[IdFactory] = None) -> None:
        self.id_factory: IdFactory = id_factory or uuid_ids
        self._events: List[TimestampedEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[TimestampedEvent]:
        return iter(self._events)

    # ── Public Methods ───────────────────────────────────────────────────────

    def append(self, event: LifeEvent, timestamp: datetime) -> TimestampedEvent:
        if event.id is None:
            event = replace(event, id=self.id_factory())
        entry = TimestampedEvent(event, timestamp, len(self._events))
        self._events.append(entry)
        logger.debug("Logged %s for %s at %s", event.event_type, event.target, timestamp)
        return entry

    def for_entity(self, entity_id: str) -> List[TimestampedEvent]:
        return [e for e in self._events if e.event.target == entity_id]

    def between(self, start: datetime, end: datetime) -> List[TimestampedEvent]:
        """Events with start <= timestamp <= end, in insertion order."""
        return [e for e in self._events if start <= e.timestamp <= end]


# ── Interpretation ──────────────────────────────────────────────────────────


@dataclass
class InterpretedEvent:
    """Signed per-dimension deltas an event produces."""
    event: LifeEvent
    deltas: Dict[StateDimension, float] = field(default_factory=dict)
    chronic: bool = False

    def scaled_by(self, factor: float) -> "InterpretedEvent":
        return InterpretedEvent(
            event=self.event,
            deltas={dim: value * factor for dim, value in self.deltas.items()},
            chronic=self.chronic,
        )

    def apply_to(self, state: IndividualState) -> None:
        for dim, amount in self.deltas.items():
            value = state.get(dim)
            if self.chronic:
                value.add_chronic(amount)
            else:
                value.add_delta(amount)

    def reverse_from(self, state: IndividualState) -> None:
        """Subtract what apply_to added. Acquired capability stays."""
        for dim, amount in self.deltas.items():
            if dim in NON_REVERSIBLE_DIMENSIONS:
                continue
            value = state.get(dim)
            if self.chronic:
                value.add_chronic(-amount)
            else:
                value.add_delta(-amount)


class EventInterpreter(ABC):
    """Turns an event into state deltas for a specific entity."""

    @abstractmethod
    def interpret(self, event: LifeEvent, entity) -> InterpretedEvent:
        ...


class DeclaredDeltaInterpreter(EventInterpreter):
    """Uses the event's declared deltas, multiplied by severity."""

    def interpret(self, event: LifeEvent, entity) -> InterpretedEvent:
        deltas = {dim: value * event.severity for dim, value in event.state_deltas.items()}
        return InterpretedEvent(event=event, deltas=deltas, chronic=event.chronic)
