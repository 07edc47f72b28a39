# ═══════════════════════════════════════════════════════════════════════════════
# PART 2: DECAY AND REGRESSION
# Design: D1 (Temporal Dynamics) + M2 (Numerical Methods)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════


"""
D1: "Forward is easy: deviations halve every half-life. Backward is the same
formula with the sign flipped, as long as nothing non-linear happened in
between. When something did, say so instead of guessing."

M2: "2^(t/h) blows up fast. Guard the exponent, check the result."
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from enum import Enum
from typing import Iterable, Optional

import numpy as np

from pathways.core.errors import (
    FeedbackLoopEffectError,
    InvalidReversalError,
    NonReversibleDimensionError,
)
from pathways.core.state_value import CHRONIC_HALF_LIFE_MULTIPLIER, DecayableValue

logger = logging.getLogger(__name__)

# Deltas smaller than this regress to exactly zero
REGRESSION_EPSILON = 1e-12

# exp(700) is close to the largest finite double
DEFAULT_MAX_REVERSAL_EXPONENT = 700.0

# Bound on deltas reconstructed during a backward walk
MAX_REGRESSED_DELTA = 100.0


class DecayMode(Enum):
    """How deviations fade with time."""
    EXPONENTIAL = "exponential"  # Half-life decay
    NONE = "none"                # Deviations are frozen


def _scaled_seconds(elapsed: timedelta, time_scale: float) -> float:
    seconds = elapsed.total_seconds()
    if seconds < 0:
        raise ValueError(f"Elapsed time must be non-negative, got {elapsed}")
    if time_scale < 0:
        raise ValueError(f"Time scale must be non-negative, got {time_scale}")
    return seconds * time_scale


class DecayEngine:
    """
    Applies forward exponential decay.

    delta(t) = delta(0) * 2^(-t_scaled / half_life)

    chronic_delta follows the same curve with four times the half-life.
    """

    def __init__(self, mode: DecayMode = DecayMode.EXPONENTIAL) -> None:
        self.mode = mode

    # ── Public Methods ───────────────────────────────────────────────────────

    @staticmethod
    def factor(elapsed: timedelta, half_life: Optional[timedelta], time_scale: float = 1.0) -> float:
        """Multiplier a deviation is scaled by after `elapsed`."""
        if half_life is None or half_life <= timedelta(0):
            return 1.0
        t_scaled = _scaled_seconds(elapsed, time_scale)
        if t_scaled == 0.0:
            return 1.0
        return float(np.exp2(-t_scaled / half_life.total_seconds()))

    def apply(
        self,
        value: DecayableValue,
        elapsed: timedelta,
        time_scale: float = 1.0,
    ) -> DecayableValue:
        """Decay `value` in place and return it."""
        if self.mode is DecayMode.NONE or not value.decays:
            return value
        if elapsed == timedelta(0):
            return value

        value.delta *= self.factor(elapsed, value.decay_half_life, time_scale)
        value.chronic_delta *= self.factor(elapsed, value.chronic_half_life, time_scale)
        return value

    def apply_all(
        self,
        values: Iterable[DecayableValue],
        elapsed: timedelta,
        time_scale: float = 1.0,
    ) -> None:
        for value in values:
            self.apply(value, elapsed, time_scale)

    def get_state(self) -> dict:
        return {"mode": self.mode.value}


class RegressionEngine:
    """
    Inverts decay: original = current * 2^(+t_scaled / half_life).

    Checks run in a fixed order. A tainted value fails first, then a
    never-decaying one, then anything numerically undefined.
    """

    def __init__(
        self,
        mode: DecayMode = DecayMode.EXPONENTIAL,
        max_exponent: float = DEFAULT_MAX_REVERSAL_EXPONENT,
    ) -> None:
        self.mode = mode
        self.max_exponent = max_exponent

    # ── Public Methods ───────────────────────────────────────────────────────

    def regress_amount(
        self,
        current: float,
        half_life: Optional[timedelta],
        elapsed: timedelta,
        time_scale: float = 1.0,
    ) -> float:
        """
        Reconstruct a deviation from before `elapsed` of decay.

        Raises:
            NonReversibleDimensionError: half_life is None.
            InvalidReversalError: non-positive half-life, exponent over the
                guard, or a non-finite result.
        """
        if half_life is None:
            raise NonReversibleDimensionError("Value has no decay half-life")
        if half_life <= timedelta(0):
            raise InvalidReversalError(f"Non-positive half-life: {half_life}")

        t_scaled = _scaled_seconds(elapsed, time_scale)
        if self.mode is DecayMode.NONE or t_scaled == 0.0:
            return current
        if abs(current) < REGRESSION_EPSILON:
            return 0.0

        ratio = t_scaled / half_life.total_seconds()
        exponent = math.log(2.0) * ratio
        if exponent > self.max_exponent:
            raise InvalidReversalError(
                f"Reversal exponent {exponent:.1f} exceeds {self.max_exponent:.1f}"
            )

        original = current * float(np.exp2(ratio))
        if not np.isfinite(original):
            raise InvalidReversalError(f"Non-finite reversal result: {original}")
        return original

    def regress(
        self,
        value: DecayableValue,
        elapsed: timedelta,
        time_scale: float = 1.0,
    ) -> DecayableValue:
        """
        Return a copy of `value` with both deviations regressed.

        Base, bounds and half-life are preserved.

        Raises:
            FeedbackLoopEffectError: value was touched by a feedback spiral.
            NonReversibleDimensionError: value never decays.
            InvalidReversalError: see regress_amount.
        """
        if value.irreversible:
            raise FeedbackLoopEffectError("Value was altered by a feedback spiral")

        delta = self.regress_amount(value.delta, value.decay_half_life, elapsed, time_scale)
        chronic_half_life = value.decay_half_life * CHRONIC_HALF_LIFE_MULTIPLIER
        chronic = self.regress_amount(
            value.chronic_delta, chronic_half_life, elapsed, time_scale,
        )

        regressed = value.copy()
        regressed.delta = delta
        regressed.chronic_delta = chronic
        return regressed

    def can_regress(self, value: DecayableValue) -> bool:
        return not value.irreversible and value.decays

    def regress_all_in_place(
        self,
        values: Iterable[DecayableValue],
        elapsed: timedelta,
        time_scale: float = 1.0,
    ) -> int:
        """
        Regress every reversible value in place.

        Tainted and never-decaying values are skipped. A component whose
        reversal trips the overflow guard is left as it is, and reconstructed
        deltas are clamped to +-MAX_REGRESSED_DELTA.

        Returns the number of values or components left untouched.
        """
        skipped = 0
        for value in values:
            if not self.can_regress(value):
                skipped += 1
                continue
            for attr, half_life in (
                ("delta", value.decay_half_life),
                ("chronic_delta", value.chronic_half_life),
            ):
                try:
                    original = self.regress_amount(
                        getattr(value, attr), half_life, elapsed, time_scale,
                    )
                except InvalidReversalError as exc:
                    logger.warning("Left %s unregressed: %s", attr, exc)
                    skipped += 1
                    continue
                setattr(value, attr, float(np.clip(original, -MAX_REGRESSED_DELTA, MAX_REGRESSED_DELTA)))
        if skipped:
            logger.debug("Left %d values or components unregressed", skipped)
        return skipped

    def get_state(self) -> dict:
        return {"mode": self.mode.value, "max_exponent": self.max_exponent}
