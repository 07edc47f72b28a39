"""Tests for memory consolidation, context effects and alerts."""

from datetime import datetime, timedelta

import pytest

from pathways.core.alerts import AlertSeverity, AlertTrigger, check_alerts
from pathways.core.context import (
    EcologicalContext,
    NoContextEffects,
    ProximalContextEffects,
    TurningPoint,
    relationship_quality,
)
from pathways.core.development import LifeStage
from pathways.core.memory import (
    MemoryEntry,
    MemoryTag,
    MoodCongruentConsolidation,
    NoConsolidation,
    memories_formed_by,
    mood_congruence,
    tag_polarity,
)
from pathways.core.species import DOG, HUMAN
from pathways.core.state import IndividualState, StateDimension

T0 = datetime(2024, 1, 1)
DAY = timedelta(days=1)


# ── Memory ──────────────────────────────────────────────────────────────────


def test_tag_polarity():
    assert tag_polarity(frozenset()) == (0.0, False)
    assert tag_polarity(frozenset({MemoryTag.LOSS, MemoryTag.DEATH})) == (-1.0, True)
    assert tag_polarity(frozenset({MemoryTag.LOSS, MemoryTag.SUPPORT})) == (0.0, True)
    assert tag_polarity(frozenset({MemoryTag.MISSION})) == (0.0, False)


def test_mood_congruence():
    assert mood_congruence(-0.5, -1.0, True) == pytest.approx(1.25)
    assert mood_congruence(-0.5, 1.0, True) == pytest.approx(0.85)
    assert mood_congruence(0.05, 1.0, True) == 1.0
    assert mood_congruence(0.5, 0.0, True) == 1.0
    assert mood_congruence(0.5, 1.0, False) == 1.0


def test_priming_single_memory():
    """Untagged memory: valence * salience * 0.1, arousal from salience."""
    memory = MemoryEntry(T0, valence=0.5, salience=0.8)
    deltas = MoodCongruentConsolidation().priming([memory], 0.0)

    assert deltas.valence_delta == pytest.approx(0.04)
    assert deltas.arousal_delta == pytest.approx(0.016)


def test_negative_mood_primes_negative_memories():
    memories = [
        MemoryEntry(T0, valence=-0.7, salience=0.7, tags=frozenset({MemoryTag.LOSS})),
        MemoryEntry(T0, valence=0.7, salience=0.7, tags=frozenset({MemoryTag.ACHIEVEMENT})),
    ]
    consolidation = MoodCongruentConsolidation()

    low = consolidation.priming(memories, -0.5)
    neutral = consolidation.priming(memories, 0.0)

    assert low.valence_delta < neutral.valence_delta


def test_consolidation_scales_with_days():
    state = IndividualState()
    memory = MemoryEntry(T0, valence=0.5, salience=0.8)

    MoodCongruentConsolidation().apply(state, [memory], 10 * DAY)

    assert state.get(StateDimension.VALENCE).delta == pytest.approx(0.004)
    assert state.get(StateDimension.AROUSAL).delta == pytest.approx(0.0016)


def test_consolidation_noop_cases():
    state = IndividualState()
    memory = MemoryEntry(T0, valence=0.5, salience=0.8)

    MoodCongruentConsolidation().apply(state, [memory], timedelta(0))
    MoodCongruentConsolidation().apply(state, [], 10 * DAY)
    NoConsolidation().apply(state, [memory], 10 * DAY)

    assert state.get(StateDimension.VALENCE).delta == 0.0


def test_memories_formed_by():
    memories = [MemoryEntry(T0), MemoryEntry(T0 + DAY)]

    assert len(memories_formed_by(memories, T0)) == 1
    assert len(memories_formed_by(memories, T0 + DAY)) == 2


# ── Context ─────────────────────────────────────────────────────────────────


def test_relationship_quality():
    assert relationship_quality(0) == pytest.approx(0.3)
    assert relationship_quality(1) == pytest.approx(0.6)
    assert relationship_quality(10) == pytest.approx(1.0)


def test_proximal_effects_over_a_month():
    state = IndividualState()
    context = EcologicalContext(
        stress=0.5, social_warmth=0.2, hostility=0.4,
        interaction_frequency=0.5, interaction_complexity=0.5,
    )

    ProximalContextEffects().apply(state, context, 0.3, 30 * DAY, LifeStage.ADULT, T0)

    assert state.get(StateDimension.STRESS).delta == pytest.approx(0.064)
    assert state.get(StateDimension.LONELINESS).delta == pytest.approx(0.056)


def test_good_relationships_buffer():
    state = IndividualState()
    context = EcologicalContext(
        hostility=1.0, social_warmth=0.0,
        interaction_frequency=0.5, interaction_complexity=0.5,
    )

    ProximalContextEffects().apply(state, context, 1.0, 30 * DAY, LifeStage.ADULT, T0)

    assert state.get(StateDimension.STRESS).delta == pytest.approx(0.0)
    assert state.get(StateDimension.LONELINESS).delta == pytest.approx(0.0)


def test_context_noop_cases():
    state = IndividualState()
    context = EcologicalContext(stress=1.0, interaction_frequency=1.0, interaction_complexity=1.0)

    ProximalContextEffects().apply(state, context, 0.3, timedelta(0), LifeStage.ADULT, T0)
    NoContextEffects().apply(state, context, 0.3, 30 * DAY, LifeStage.ADULT, T0)

    assert state.get(StateDimension.STRESS).delta == 0.0


def test_closed_gate_leaves_state_alone():
    """Without regular, complex interaction the environment has no pull."""
    state = IndividualState()
    rare = EcologicalContext(stress=1.0, social_warmth=0.0, interaction_frequency=0.1, interaction_complexity=0.9)
    shallow = EcologicalContext(stress=1.0, social_warmth=0.0, interaction_frequency=0.9, interaction_complexity=0.1)

    assert not EcologicalContext().proximal_gate_open
    assert not rare.proximal_gate_open
    assert not shallow.proximal_gate_open

    ProximalContextEffects().apply(state, rare, 0.3, 365 * DAY, LifeStage.ADULT, T0)
    ProximalContextEffects().apply(state, shallow, 0.3, 365 * DAY, LifeStage.ADULT, T0)

    assert state.get(StateDimension.STRESS).delta == 0.0
    assert state.get(StateDimension.LONELINESS).delta == 0.0


def test_gate_opens_at_thresholds():
    context = EcologicalContext(interaction_frequency=0.3, interaction_complexity=0.3)
    assert context.proximal_gate_open


def test_turning_points_stay_sorted():
    context = EcologicalContext()
    context.add_turning_point(TurningPoint(T0 + DAY))
    context.add_turning_point(TurningPoint(T0))

    assert [tp.timestamp for tp in context.turning_points] == [T0, T0 + DAY]


# ── Alerts ──────────────────────────────────────────────────────────────────


def _at_risk(capability: float) -> IndividualState:
    state = IndividualState()
    state.get(StateDimension.LONELINESS).add_delta(0.8)
    state.get(StateDimension.PERCEIVED_RECIPROCAL_CARING).add_delta(-0.6)
    state.get(StateDimension.PERCEIVED_LIABILITY).add_delta(1.0)
    state.get(StateDimension.SELF_HATE).add_delta(0.9)
    state.get(StateDimension.INTERPERSONAL_HOPELESSNESS).add_delta(0.5)
    state.get(StateDimension.ACQUIRED_CAPABILITY).add_delta(capability)
    return state


def test_default_state_has_no_alerts():
    assert check_alerts(IndividualState(), HUMAN, T0) == []


def test_desire_and_risk_alerts():
    alerts = {a.trigger: a for a in check_alerts(_at_risk(0.5), HUMAN, T0)}

    assert alerts[AlertTrigger.SUICIDAL_DESIRE].severity is AlertSeverity.CRITICAL
    assert alerts[AlertTrigger.ATTEMPT_RISK].severity is AlertSeverity.WARNING

    alerts = {a.trigger: a for a in check_alerts(_at_risk(0.7), HUMAN, T0)}
    assert alerts[AlertTrigger.ATTEMPT_RISK].severity is AlertSeverity.CRITICAL


def test_spiral_alerts():
    state = IndividualState()
    state.get(StateDimension.STRESS).add_delta(0.5)       # 0.7
    state.get(StateDimension.DEPRESSION).add_delta(0.4)   # 0.5

    human = {a.trigger for a in check_alerts(state, HUMAN, T0)}
    dog = {a.trigger for a in check_alerts(state, DOG, T0)}

    assert human == {AlertTrigger.STRESS_SPIRAL, AlertTrigger.DEPRESSION_SPIRAL}
    assert dog == {AlertTrigger.STRESS_SPIRAL}


def test_alert_serialises():
    alert = check_alerts(_at_risk(0.0), HUMAN, T0)[0]
    data = alert.get_state()

    assert data["trigger"] == "suicidal_desire"
    assert data["timestamp"] == T0.isoformat()
    assert "Critical" in data["message"]
