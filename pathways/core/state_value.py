# ═══════════════════════════════════════════════════════════════════════════════
# PART 1: DECAYABLE VALUES
# Design: D1 (Temporal Dynamics)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════


"""
D1: "Every feeling has a resting point and a distance from it. The distance
fades. The chronic part lingers; a few deviations never fade at all."
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Optional, Tuple

import numpy as np

UNIT_BOUNDS: Tuple[float, float] = (0.0, 1.0)
BIPOLAR_BOUNDS: Tuple[float, float] = (-1.0, 1.0)

# Chronic deviations persist this many times longer than acute ones
CHRONIC_HALF_LIFE_MULTIPLIER = 4.0


@dataclass
class DecayableValue:
    """
    A scalar state dimension.

    effective = clamp(base + delta + chronic_delta, bounds)

    base is the stable resting point, delta the acute deviation and
    chronic_delta the slow one. A half-life of None means the value never
    decays. Once `irreversible` is set by a feedback spiral it stays set.
    """
    base: float = 0.0
    delta: float = 0.0
    chronic_delta: float = 0.0
    decay_half_life: Optional[timedelta] = None
    bounds: Tuple[float, float] = UNIT_BOUNDS
    irreversible: bool = False

    def __post_init__(self) -> None:
        lo, hi = self.bounds
        if lo > hi:
            raise ValueError(f"Inverted bounds: {self.bounds}")
        if self.decay_half_life is not None and self.decay_half_life < timedelta(0):
            raise ValueError(f"Negative half-life: {self.decay_half_life}")
        self.bounds = (float(lo), float(hi))

    @classmethod
    def with_half_life(
        cls,
        base: float,
        half_life: timedelta,
        bounds: Tuple[float, float] = UNIT_BOUNDS,
    ) -> "DecayableValue":
        return cls(base=base, decay_half_life=half_life, bounds=bounds)

    @classmethod
    def permanent(
        cls,
        base: float,
        bounds: Tuple[float, float] = UNIT_BOUNDS,
    ) -> "DecayableValue":
        """A value that accumulates and never decays."""
        return cls(base=base, decay_half_life=None, bounds=bounds)

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def effective_raw(self) -> float:
        """Unclamped sum, for detecting bounds violations."""
        return self.base + self.delta + self.chronic_delta

    @property
    def effective(self) -> float:
        lo, hi = self.bounds
        return float(np.clip(self.effective_raw, lo, hi))

    @property
    def out_of_bounds(self) -> bool:
        lo, hi = self.bounds
        raw = self.effective_raw
        return raw < lo or raw > hi

    @property
    def decays(self) -> bool:
        return self.decay_half_life is not None and self.decay_half_life > timedelta(0)

    @property
    def chronic_half_life(self) -> Optional[timedelta]:
        if self.decay_half_life is None:
            return None
        return self.decay_half_life * CHRONIC_HALF_LIFE_MULTIPLIER

    # ── Public Methods ───────────────────────────────────────────────────────

    def add_delta(self, amount: float) -> None:
        self.delta += amount

    def add_chronic(self, amount: float) -> None:
        self.chronic_delta += amount

    def mark_irreversible(self) -> None:
        self.irreversible = True

    def copy(self) -> "DecayableValue":
        return replace(self)

    def get_state(self) -> dict:
        """Serialize current state."""
        half_life = self.decay_half_life
        return {
            "base": self.base,
            "delta": self.delta,
            "chronic_delta": self.chronic_delta,
            "effective": self.effective,
            "decay_half_life_seconds": (
                half_life.total_seconds() if half_life is not None else None
            ),
            "bounds": list(self.bounds),
            "irreversible": self.irreversible,
        }
