# ═══════════════════════════════════════════════════════════════════════════════
# PART 11: ALERTS
# Design: P1 (Clinical Psychology)
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════


"""
P1: "Flag what a clinician would want to see: desire and risk past their
thresholds, and spirals that are running."
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pathways.core.species import Species
from pathways.core.state import IndividualState, StateDimension

DESIRE_WARNING_THRESHOLD = 0.5
DESIRE_CRITICAL_THRESHOLD = 0.7
RISK_WARNING_THRESHOLD = 0.4
RISK_CRITICAL_THRESHOLD = 0.6
STRESS_SPIRAL_ALERT_THRESHOLD = 0.6
DEPRESSION_SPIRAL_ALERT_THRESHOLD = 0.4


class AlertSeverity(Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class AlertTrigger(Enum):
    SUICIDAL_DESIRE = "suicidal_desire"
    ATTEMPT_RISK = "attempt_risk"
    STRESS_SPIRAL = "stress_spiral"
    DEPRESSION_SPIRAL = "depression_spiral"


@dataclass(frozen=True)
class Alert:
    severity: AlertSeverity
    trigger: AlertTrigger
    value: float
    timestamp: datetime
    message: str

    def get_state(self) -> dict:
        return {
            "severity": self.severity.value,
            "trigger": self.trigger.value,
            "value": self.value,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
        }


def _threshold_alert(
    trigger: AlertTrigger,
    value: float,
    warning: float,
    critical: float,
    label: str,
    timestamp: datetime,
) -> Optional[Alert]:
    if value >= critical:
        return Alert(AlertSeverity.CRITICAL, trigger, value, timestamp,
                     f"Critical {label} level: {value:.2f}")
    if value >= warning:
        return Alert(AlertSeverity.WARNING, trigger, value, timestamp,
                     f"Elevated {label} level: {value:.2f}")
    return None


def check_its_thresholds(state: IndividualState, timestamp: datetime) -> List[Alert]:
    alerts = [
        _threshold_alert(
            AlertTrigger.SUICIDAL_DESIRE, state.suicidal_desire,
            DESIRE_WARNING_THRESHOLD, DESIRE_CRITICAL_THRESHOLD,
            "suicidal desire", timestamp,
        ),
        _threshold_alert(
            AlertTrigger.ATTEMPT_RISK, state.attempt_risk,
            RISK_WARNING_THRESHOLD, RISK_CRITICAL_THRESHOLD,
            "attempt risk", timestamp,
        ),
    ]
    return [a for a in alerts if a is not None]


def check_spiral_alerts(
    state: IndividualState,
    species: Species,
    timestamp: datetime,
) -> List[Alert]:
    alerts = []

    stress = state.effective(StateDimension.STRESS)
    if stress > STRESS_SPIRAL_ALERT_THRESHOLD:
        alerts.append(Alert(
            AlertSeverity.WARNING, AlertTrigger.STRESS_SPIRAL, stress, timestamp,
            f"Stress spiral active (stress: {stress:.2f})",
        ))

    # Depression spiral only runs for humans
    if species.is_human:
        depression = state.effective(StateDimension.DEPRESSION)
        if depression > DEPRESSION_SPIRAL_ALERT_THRESHOLD:
            alerts.append(Alert(
                AlertSeverity.WARNING, AlertTrigger.DEPRESSION_SPIRAL, depression, timestamp,
                f"Depression spiral active (depression: {depression:.2f})",
            ))

    return alerts


def check_alerts(state: IndividualState, species: Species, timestamp: datetime) -> List[Alert]:
    return check_its_thresholds(state, timestamp) + check_spiral_alerts(state, species, timestamp)
