"""Tests for TemporalQueryEngine: forward walks, backward walks and hooks."""

import logging
from datetime import datetime, timedelta

import pytest

from pathways.core.context import EcologicalContext, NoContextEffects, ProximalContextEffects
from pathways.core.decay import MAX_REGRESSED_DELTA, DecayMode
from pathways.core.development import ConstantDevelopment, LifespanDevelopment
from pathways.core.entity import Entity, create_entity
from pathways.core.events import EventCategory, EventLog, LifeEvent
from pathways.core.memory import MemoryEntry, NoConsolidation
from pathways.core.species import DOG
from pathways.core.state import HexacoTrait, StateDimension
from pathways.core.temporal_query import (
    EngineConfig,
    QueryDirection,
    RegressionQuality,
    TemporalQueryEngine,
)

T0 = datetime(2024, 1, 1)
HOUR = timedelta(hours=1)
DAY = timedelta(days=1)

V = StateDimension.VALENCE
STRESS = StateDimension.STRESS


def _engine(config=None, **collaborators) -> TemporalQueryEngine:
    """Engine with unscaled deltas and no context or memory pull."""
    collaborators.setdefault("development", ConstantDevelopment())
    collaborators.setdefault("context_effects", NoContextEffects())
    collaborators.setdefault("consolidation", NoConsolidation())
    return TemporalQueryEngine(config, **collaborators)


def _entity(valence: float = 0.0, stress: float = 0.0, **kwargs) -> Entity:
    entity = create_entity("a", **kwargs)
    entity.state.get(V).add_delta(valence)
    entity.state.get(STRESS).add_delta(stress)
    return entity


def _log(*entries) -> EventLog:
    log = EventLog()
    for timestamp, event in entries:
        log.append(event, timestamp)
    return log


def _mood_event(valence: float, **kwargs) -> LifeEvent:
    return LifeEvent(target="a", state_deltas={V: valence}, **kwargs)


def _query(engine, entity, log, timestamp, anchor=T0):
    return engine.state_at(entity, anchor, list(log), timestamp)


# ── Specified test cases from briefing ──────────────────────────────────────


def test_query_at_anchor_returns_copy():
    entity = _entity(valence=0.8)
    result = _query(_engine(), entity, EventLog(), T0)

    assert result.direction is QueryDirection.AT_ANCHOR
    assert result.is_exact
    assert result.effective(V) == pytest.approx(0.8)
    assert result.state is not entity.state

    result.state.get(V).add_delta(-0.5)
    assert entity.state.effective(V) == pytest.approx(0.8)


def test_forward_decay_one_half_life():
    """Valence 0.8 halves to 0.4 after its 6h half-life."""
    entity = _entity(valence=0.8)
    result = _query(_engine(), entity, EventLog(), T0 + 6 * HOUR)

    assert result.direction is QueryDirection.FORWARD
    assert result.effective(V) == pytest.approx(0.4)
    assert entity.state.effective(V) == pytest.approx(0.8)


def test_cursor_decays_between_events():
    """0.8 decays to 0.4 by the event, which cancels it; nothing left to decay."""
    entity = _entity(valence=0.8)
    log = _log((T0 + 6 * HOUR, _mood_event(-0.4)))

    result = _query(_engine(), entity, log, T0 + 12 * HOUR)

    assert abs(result.effective(V)) < 1e-9
    assert result.events_applied == 1


def test_forward_then_backward_recovers_anchor():
    entity = _entity(valence=0.6, stress=0.3)
    log = _log(
        (T0 + 2 * HOUR, _mood_event(-0.3)),
        (T0 + 5 * HOUR, LifeEvent(target="a", state_deltas={STRESS: 0.2}, chronic=True)),
        (T0 + 8 * HOUR, LifeEvent(target="a", state_deltas={
            StateDimension.LONELINESS: 0.25, StateDimension.SELF_WORTH: -0.1,
        })),
    )
    target = T0 + 10 * HOUR
    engine = _engine()

    forward = _query(engine, entity, log, target)
    reanchored = Entity(entity.config, state=forward.state.copy())
    back = _query(engine, reanchored, log, T0, anchor=target)

    assert back.direction is QueryDirection.BACKWARD
    assert back.is_exact
    for dim in StateDimension:
        original = entity.state.get(dim)
        recovered = back.state.get(dim)
        assert abs(recovered.delta - original.delta) < 1e-4, dim
        assert abs(recovered.chronic_delta - original.chronic_delta) < 1e-4, dim


def test_round_trip_with_developmental_scaling():
    entity = _entity(stress=0.2, age_years=8.0)
    log = _log((T0 + 3 * DAY, LifeEvent(target="a", state_deltas={STRESS: 0.1})))
    target = T0 + 7 * DAY
    engine = _engine(development=LifespanDevelopment())

    forward = _query(engine, entity, log, target)
    reanchored = Entity(entity.config, state=forward.state.copy())
    back = _query(engine, reanchored, log, T0, anchor=target)

    assert abs(back.state.get(STRESS).delta - 0.2) < 1e-4


# ── Window boundaries ───────────────────────────────────────────────────────


def test_select_window_is_exclusive_then_inclusive():
    """anchor < t <= target, whichever side the target is on."""
    log = _log(
        (T0, _mood_event(0.0, event_type="at_anchor")),
        (T0 + HOUR, _mood_event(0.0, event_type="middle")),
        (T0 + 2 * HOUR, _mood_event(0.0, event_type="at_target")),
        (T0 + 3 * HOUR, _mood_event(0.0, event_type="later")),
    )
    engine = _engine()

    forward = engine.select_window(list(log), T0, T0 + 2 * HOUR)
    backward = engine.select_window(list(log), T0 + 2 * HOUR, T0)

    assert [te.event.event_type for te in forward] == ["middle", "at_target"]
    assert [te.event.event_type for te in backward] == ["middle", "at_target"]


def test_select_window_sorts_by_time_then_insertion():
    log = _log(
        (T0 + 2 * HOUR, _mood_event(0.0, event_type="late")),
        (T0 + HOUR, _mood_event(0.0, event_type="tie_first")),
        (T0 + HOUR, _mood_event(0.0, event_type="tie_second")),
    )

    window = _engine().select_window(list(log), T0, T0 + 3 * HOUR)

    assert [te.event.event_type for te in window] == ["tie_first", "tie_second", "late"]


def test_event_at_anchor_is_not_replayed_forward():
    entity = _entity()
    log = _log((T0, LifeEvent(target="a", state_deltas={STRESS: 0.3})))

    result = _query(_engine(), entity, log, T0 + 2 * HOUR)

    assert result.events_applied == 0
    assert result.state.get(STRESS).delta == 0.0


def test_event_at_anchor_is_reversed_backward():
    entity = _entity()
    log = _log((T0, LifeEvent(target="a", state_deltas={STRESS: 0.3})))

    result = _query(_engine(), entity, log, T0 - HOUR)

    assert result.events_applied == 1
    assert result.state.get(STRESS).delta == pytest.approx(-0.3 * 2 ** (1 / 12))


def test_event_at_target_is_applied_forward():
    entity = _entity()
    log = _log((T0 + 2 * HOUR, LifeEvent(target="a", state_deltas={STRESS: 0.3})))

    result = _query(_engine(), entity, log, T0 + 2 * HOUR)

    assert result.events_applied == 1
    assert result.state.get(STRESS).delta == pytest.approx(0.3)


def test_event_at_target_is_kept_backward():
    entity = _entity()
    log = _log((T0 - 2 * HOUR, LifeEvent(target="a", state_deltas={STRESS: 0.3})))

    result = _query(_engine(), entity, log, T0 - 2 * HOUR)

    assert result.events_applied == 0
    assert result.state.get(STRESS).delta == 0.0


def test_events_for_other_entities_ignored_by_simulation_window():
    entity = _entity()
    log = _log(
        (T0 + HOUR, LifeEvent(target="a", state_deltas={STRESS: 0.1})),
        (T0 + HOUR, LifeEvent(target="b", state_deltas={STRESS: 0.5})),
    )

    result = _query(_engine(), entity, log.for_entity("a"), T0 + HOUR)
    assert result.state.get(STRESS).delta == pytest.approx(0.1)


def test_tied_timestamps_logged_at_debug(caplog):
    entity = _entity()
    log = _log(
        (T0 + HOUR, _mood_event(0.1)),
        (T0 + HOUR, _mood_event(0.2)),
    )

    with caplog.at_level(logging.DEBUG, logger="pathways.core.temporal_query"):
        result = _query(_engine(), entity, log, T0 + HOUR)

    assert result.effective(V) == pytest.approx(0.3)
    ties = [r for r in caplog.records if "share timestamp" in r.getMessage()]
    assert ties
    assert all(r.levelno == logging.DEBUG for r in ties)


# ── Regression quality ──────────────────────────────────────────────────────


def _trauma(**kwargs) -> LifeEvent:
    return LifeEvent(
        target="a",
        category=EventCategory.TRAUMA,
        state_deltas={StateDimension.ACQUIRED_CAPABILITY: 0.3, STRESS: 0.2},
        **kwargs,
    )


def test_trauma_makes_backward_query_approximate(caplog):
    entity = _entity()
    entity.state.get(StateDimension.ACQUIRED_CAPABILITY).add_delta(0.3)
    log = _log((T0 - DAY, _trauma()))

    with caplog.at_level(logging.WARNING, logger="pathways.core.temporal_query"):
        result = _query(_engine(), entity, log, T0 - 2 * DAY)

    assert result.regression_quality is RegressionQuality.APPROXIMATE
    assert not result.is_exact
    assert result.state.get(StateDimension.ACQUIRED_CAPABILITY).delta == pytest.approx(0.3)
    assert "approximate" in caplog.text


def test_trauma_forward_stays_exact():
    entity = _entity()
    log = _log((T0 + DAY, _trauma()))

    result = _query(_engine(), entity, log, T0 + 2 * DAY)

    assert result.is_exact
    assert result.effective(StateDimension.ACQUIRED_CAPABILITY) == pytest.approx(0.3)


def test_backward_without_trauma_is_exact():
    entity = _entity()
    log = _log((T0 - DAY, _mood_event(0.2)))

    assert _query(_engine(), entity, log, T0 - 2 * DAY).is_exact


# ── Regression guards ───────────────────────────────────────────────────────


def test_overflowing_reversal_is_left_untouched(caplog):
    """A year of 6h half-lives is far past the exponent guard."""
    entity = _entity(valence=0.5)

    with caplog.at_level(logging.WARNING, logger="pathways.core.decay"):
        result = _query(_engine(), entity, EventLog(), T0 - 365 * DAY)

    assert result.state.get(V).delta == pytest.approx(0.5)
    assert "unregressed" in caplog.text


def test_large_reversal_is_clamped():
    entity = _entity(stress=0.5)
    result = _query(_engine(), entity, EventLog(), T0 - 10 * DAY)

    assert result.state.get(STRESS).delta == MAX_REGRESSED_DELTA
    assert result.effective(STRESS) == 1.0


# ── Formative shifts ────────────────────────────────────────────────────────


def _formative(request: float) -> LifeEvent:
    return LifeEvent(target="a", base_shifts={HexacoTrait.NEUROTICISM: request})


def test_formative_shift_moves_trait_forward():
    """0.5 on neuroticism at 30: 0.5 * 0.8 * 0.4."""
    entity = _entity(age_years=30.0)
    log = _log((T0 + HOUR, _formative(0.5)))
    engine = _engine()

    after = _query(engine, entity, log, T0 + DAY)
    assert after.trait(HexacoTrait.NEUROTICISM) == pytest.approx(0.16)
    assert len(after.formative_shifts) == 1

    before = _query(engine, entity, log, T0 + HOUR / 2)
    assert before.trait(HexacoTrait.NEUROTICISM) == 0.0
    assert before.formative_shifts == []


def test_formative_shifts_do_not_run_backward():
    entity = _entity(age_years=30.0)
    log = _log((T0 - HOUR, _formative(0.5)))

    result = _query(_engine(), entity, log, T0 - DAY)

    assert result.trait(HexacoTrait.NEUROTICISM) == 0.0
    assert result.formative_shifts == []


def test_severe_formative_shift_settles():
    """Capped at 0.30 at age 20, settling to 0.21 over 180 days."""
    entity = _entity(birth_date=datetime(2004, 1, 1))
    event_time = T0 + DAY
    log = _log((event_time, _formative(1.0)))
    engine = _engine()

    def neuroticism(at):
        return _query(engine, entity, log, at).trait(HexacoTrait.NEUROTICISM)

    assert neuroticism(event_time) == pytest.approx(0.30)
    assert neuroticism(event_time + 90 * DAY) == pytest.approx(0.255)
    assert neuroticism(event_time + 180 * DAY) == pytest.approx(0.21)
    assert neuroticism(event_time + 400 * DAY) == pytest.approx(0.21)


# ── Feedback loops ──────────────────────────────────────────────────────────


def test_feedback_loops_taint_forward_state():
    config = EngineConfig(decay_mode=DecayMode.NONE, enable_feedback_loops=True)
    entity = _entity(stress=0.6)

    result = _query(_engine(config), entity, EventLog(), T0 + DAY)

    fatigue = result.state.get(StateDimension.FATIGUE)
    assert fatigue.delta == pytest.approx(0.016)
    assert fatigue.irreversible
    assert len(result.feedback) == 1
    assert not entity.state.get(StateDimension.FATIGUE).irreversible


def test_feedback_loops_off_by_default():
    config = EngineConfig(decay_mode=DecayMode.NONE)
    entity = _entity(stress=0.6)

    result = _query(_engine(config), entity, EventLog(), T0 + DAY)

    assert result.state.get(StateDimension.FATIGUE).delta == 0.0
    assert result.feedback == []


# ── Species time scale ──────────────────────────────────────────────────────


def test_dog_decays_faster():
    entity = _entity(valence=0.8, species=DOG, age_years=3.0)
    half_life = timedelta(hours=6) / DOG.time_scale

    result = _query(_engine(), entity, EventLog(), T0 + half_life)

    assert result.effective(V) == pytest.approx(0.4, abs=1e-6)
    assert result.species is DOG


# ── Context and memory ──────────────────────────────────────────────────────


def test_context_effects_after_walk():
    context = EcologicalContext(
        stress=0.5, social_warmth=0.2, hostility=0.4,
        interaction_frequency=0.5, interaction_complexity=0.5,
    )
    entity = create_entity("a", context=context)
    engine = _engine(context_effects=ProximalContextEffects())

    forward = _query(engine, entity, EventLog(), T0 + 30 * DAY)
    backward = _query(engine, entity, EventLog(), T0 - 30 * DAY)

    assert forward.state.get(STRESS).delta == pytest.approx(0.064)
    assert backward.state.get(STRESS).delta == pytest.approx(0.064)
    assert forward.state.get(StateDimension.LONELINESS).delta == pytest.approx(0.056)


def test_memories_only_count_once_formed():
    entity = create_entity("a")
    entity.add_memory(MemoryEntry(T0 + 10 * DAY, "promotion", valence=0.5, salience=0.8))
    engine = TemporalQueryEngine(
        development=ConstantDevelopment(), context_effects=NoContextEffects(),
    )

    early = _query(engine, entity, EventLog(), T0 + 5 * DAY)
    late = _query(engine, entity, EventLog(), T0 + 20 * DAY)

    assert early.state.get(V).delta == 0.0
    assert late.state.get(V).delta == pytest.approx(0.008)


# ── ComputedState ───────────────────────────────────────────────────────────


def test_alerts_are_memoised():
    entity = _entity(stress=0.7)
    result = _query(_engine(config=EngineConfig(decay_mode=DecayMode.NONE)), entity, EventLog(), T0 + HOUR)

    first = result.alerts
    assert first
    assert result.alerts is first


def test_computed_state_serialises():
    entity = _entity(valence=0.5)
    data = _query(_engine(), entity, EventLog(), T0 - HOUR).get_state()

    assert data["direction"] == "backward"
    assert data["regression_quality"] == "exact"
    assert data["species"] == "human"
    assert data["life_stage"] == "young_adult"
    assert "mood" in data["state"]
