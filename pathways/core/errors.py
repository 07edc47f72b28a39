# ═══════════════════════════════════════════════════════════════════════════════
# PART 0: ERRORS
# Design: D1 (Temporal Dynamics) + S2 (Simulation API)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════


"""
D1: "Regression fails for different reasons, and a never-decaying value is not
the same problem as a runaway exponent. Each gets its own type so callers
can tell them apart."

S2: "Asking about an entity that isn't there is the caller's mistake, not a
crash. Raise something they can catch."
"""

from __future__ import annotations


class PathwaysError(Exception):
    """Base class for all engine errors."""
    pass


# ── Reversal ─────────────────────────────────────────────────────────────────


class ReversalError(PathwaysError):
    """Base class for failures while inverting decay."""
    pass


class NonReversibleDimensionError(ReversalError):
    """Raised when regressing a value that never decays."""
    pass


class FeedbackLoopEffectError(ReversalError):
    """Raised when regressing a value tainted by a feedback spiral."""
    pass


class InvalidReversalError(ReversalError):
    """Raised when the inverse computation is undefined or overflows."""
    pass


# ── Simulation ───────────────────────────────────────────────────────────────


class UnknownEntityError(PathwaysError, KeyError):
    """Raised when querying an entity that is not in the simulation."""

    def __init__(self, entity_id: str) -> None:
        super().__init__(entity_id)
        self.entity_id = entity_id

    def __str__(self) -> str:
        return f"Unknown entity: {self.entity_id}"


class DuplicateEntityError(PathwaysError, ValueError):
    """Raised when an entity id is registered twice."""
    pass
