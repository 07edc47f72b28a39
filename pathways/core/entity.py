# ═══════════════════════════════════════════════════════════════════════════════
# PART 12: ENTITY (putting the individual together)
# Design: Full team
# Implementation: I1 (Systems Architect)
# ═══════════════════════════════════════════════════════════════════════════════


"""
I1: "An entity is who someone is at the moment we observed them: species,
age, state, surroundings, memories. Everything else is computed from this
plus what happened to them."
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from pathways.core.context import EcologicalContext, relationship_quality
from pathways.core.development import DAYS_PER_YEAR, LifeStage, age_in_years, life_stage_for
from pathways.core.memory import MemoryEntry
from pathways.core.species import HUMAN, Species
from pathways.core.state import HexacoTrait, IndividualState


@dataclass
class EntityConfig:
    """Identity and demographics of one individual."""
    entity_id: str = "entity"
    name: Optional[str] = None
    species: Species = HUMAN

    # Age at the anchor. Ignored for age_at() once birth_date is known.
    age: timedelta = timedelta(days=30 * DAYS_PER_YEAR)
    birth_date: Optional[datetime] = None

    attached_relationships: int = 0


class Entity:
    """
    A simulated individual as observed at its anchor.

    Holds the anchor IndividualState plus the collaborators' inputs: the
    ecological context and the memories the individual carries.
    """

    def __init__(
        self,
        config: Optional[EntityConfig] = None,
        state: Optional[IndividualState] = None,
        context: Optional[EcologicalContext] = None,
        memories: Optional[List[MemoryEntry]] = None,
    ) -> None:
        self.config = config or EntityConfig()
        if not self.config.entity_id:
            raise ValueError("Entity id must be non-empty")
        if self.config.age < timedelta(0):
            raise ValueError(f"Age must be non-negative, got {self.config.age}")

        self.state = state or IndividualState()
        self.context = context or EcologicalContext()
        self.memories: List[MemoryEntry] = list(memories or [])

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def id(self) -> str:
        return self.config.entity_id

    @property
    def name(self) -> str:
        return self.config.name or self.config.entity_id

    @property
    def species(self) -> Species:
        return self.config.species

    @property
    def age(self) -> timedelta:
        return self.config.age

    @property
    def birth_date(self) -> Optional[datetime]:
        return self.config.birth_date

    @property
    def relationship_quality(self) -> float:
        return relationship_quality(self.config.attached_relationships)

    # ── Public Methods ───────────────────────────────────────────────────────

    def age_at(self, timestamp: datetime) -> timedelta:
        """Age at `timestamp`. Constant when no birth date is known."""
        if self.birth_date is None:
            return self.age
        return max(timedelta(0), timestamp - self.birth_date)

    def whole_years_at(self, timestamp: datetime) -> int:
        return int(age_in_years(self.age_at(timestamp)))

    def life_stage_at(self, timestamp: datetime) -> LifeStage:
        return life_stage_for(age_in_years(self.age_at(timestamp)), self.species)

    def add_memory(self, memory: MemoryEntry) -> None:
        self.memories.append(memory)

    def snapshot(self) -> "Entity":
        """Detached copy; later edits to this entity do not reach it."""
        return Entity(
            replace(self.config),
            state=self.state.copy(),
            context=copy.deepcopy(self.context),
            memories=self.memories,
        )

    def get_state(self) -> dict:
        """Full state serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "species": self.species.get_state(),
            "age_days": self.age.total_seconds() / 86400.0,
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
            "attached_relationships": self.config.attached_relationships,
            "state": self.state.get_state(),
            "context": self.context.get_state(),
            "memories": [m.get_state() for m in self.memories],
        }

    def witness(self) -> str:
        """Generate human-readable status display."""
        state = self.state
        traits = ", ".join(
            f"{t.value}={state.trait(t):+.2f}" for t in HexacoTrait
        )
        return f"""
═══════════════════════════════════════════════════════════════════
ENTITY: {self.name} ({self.species.name})
═══════════════════════════════════════════════════════════════════

  Age: {age_in_years(self.age):.1f} years | Memories: {len(self.memories)}
  Relationship quality: {self.relationship_quality:.2f}

DERIVED
  Thwarted belongingness: {state.thwarted_belongingness:.3f}
  Perceived burdensomeness: {state.perceived_burdensomeness:.3f}
  Suicidal desire: {state.suicidal_desire:.3f}
  Attempt risk: {state.attempt_risk:.3f}

PERSONALITY
  {traits}

═══════════════════════════════════════════════════════════════════
"""


def create_entity(
    entity_id: str,
    species: Species = HUMAN,
    age_years: float = 30.0,
    birth_date: Optional[datetime] = None,
    traits: Optional[Dict[HexacoTrait, float]] = None,
    context: Optional[EcologicalContext] = None,
) -> Entity:
    """
    Create an entity with default state.

    Personality traits start at 0.0 unless given.
    """
    config = EntityConfig(
        entity_id=entity_id,
        species=species,
        age=timedelta(days=age_years * DAYS_PER_YEAR),
        birth_date=birth_date,
    )
    return Entity(config, state=IndividualState(traits=traits), context=context)
