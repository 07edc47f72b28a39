# ═══════════════════════════════════════════════════════════════════════════════
# PART 4: SPECIES
# Design: E1 (Comparative Ethology)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════


"""
E1: "A dog's year is not a human's year. Scale psychological time by lifespan
so a day of stress means the same fraction of a life."
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

import numpy as np

# Lifespan against which all time scales are measured
REFERENCE_LIFESPAN_YEARS = 80.0


@dataclass(frozen=True)
class Species:
    """Lifespan, maturity and sociality of a kind of individual."""
    name: str
    lifespan_years: float
    maturity_age_years: float
    social_complexity: float        # 0 = solitary, 1 = human-level
    builtin: bool = True

    def __post_init__(self) -> None:
        if self.lifespan_years <= 0:
            raise ValueError(f"Lifespan must be positive, got {self.lifespan_years}")
        if self.maturity_age_years < 0:
            raise ValueError(f"Maturity age must be non-negative, got {self.maturity_age_years}")

    @classmethod
    def custom(
        cls,
        name: str,
        lifespan_years: float,
        maturity_age_years: float,
        social_complexity: float,
    ) -> "Species":
        return cls(
            name=name,
            lifespan_years=lifespan_years,
            maturity_age_years=maturity_age_years,
            social_complexity=float(np.clip(social_complexity, 0.0, 1.0)),
            builtin=False,
        )

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def time_scale(self) -> float:
        """How much faster psychological time runs than for a human."""
        return REFERENCE_LIFESPAN_YEARS / self.lifespan_years

    @property
    def is_human(self) -> bool:
        return self.builtin and self.name == "human"

    def get_state(self) -> dict:
        return {
            "name": self.name,
            "lifespan_years": self.lifespan_years,
            "maturity_age_years": self.maturity_age_years,
            "social_complexity": self.social_complexity,
            "builtin": self.builtin,
            "time_scale": self.time_scale,
        }


HUMAN = Species("human", 80.0, 25.0, 1.0)
DOG = Species("dog", 12.0, 2.0, 0.7)
CAT = Species("cat", 15.0, 1.0, 0.3)
DOLPHIN = Species("dolphin", 50.0, 8.0, 0.9)
HORSE = Species("horse", 30.0, 4.0, 0.5)
ELEPHANT = Species("elephant", 70.0, 15.0, 0.9)
CHIMPANZEE = Species("chimpanzee", 50.0, 13.0, 0.9)
CROW = Species("crow", 15.0, 2.0, 0.7)
MOUSE = Species("mouse", 2.0, 0.0, 0.1)

BUILTIN_SPECIES: Dict[str, Species] = {
    s.name: s
    for s in (HUMAN, DOG, CAT, DOLPHIN, HORSE, ELEPHANT, CHIMPANZEE, CROW, MOUSE)
}


def get_species(name: str) -> Species:
    """Look up a built-in species by name."""
    try:
        return BUILTIN_SPECIES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown species: {name}") from None
