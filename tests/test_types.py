"""Tests for fsmruntime.types."""

import dataclasses

import pytest

from fsmruntime.exceptions import ConfigurationError
from fsmruntime.types import (
    MachineConfig,
    MachineState,
    StateDefinition,
    Transition,
    TransitionRecord,
)


# ── Transition ─────────────────────────────────────────────────────────────────

class TestTransition:
    def test_no_guard_always_allows(self):
        assert Transition("b").allows("a", "GO") is True

    def test_guard_receives_value_and_event(self):
        seen = []

        def guard(value, event):
            seen.append((value, event))
            return True

        Transition("b", guard=guard).allows("a", "GO")
        assert seen == [("a", "GO")]

    def test_false_guard_blocks(self):
        assert Transition("b", guard=lambda v, e: False).allows("a", "GO") is False

    def test_truthy_guard_result_coerced_to_bool(self):
        assert Transition("b", guard=lambda v, e: 1).allows("a", "GO") is True

    def test_raising_guard_propagates(self):
        def bad(value, event):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            Transition("b", guard=bad).allows("a", "GO")

    def test_non_callable_guard_raises(self):
        with pytest.raises(ConfigurationError, match="not callable"):
            Transition("b", guard="nope")

    def test_coerce_bare_name(self):
        assert Transition.coerce("b") == Transition("b")

    def test_coerce_mapping(self):
        guard = lambda v, e: True  # noqa: E731
        t = Transition.coerce({"target": "b", "guard": guard})
        assert t.target == "b"
        assert t.guard is guard

    def test_coerce_mapping_without_target_raises(self):
        with pytest.raises(ConfigurationError, match="target"):
            Transition.coerce({"guard": lambda v, e: True})

    def test_coerce_unsupported_raises(self):
        with pytest.raises(ConfigurationError, match="Unsupported"):
            Transition.coerce(42)


# ── StateDefinition ────────────────────────────────────────────────────────────

class TestStateDefinition:
    def test_on_values_normalised(self):
        d = StateDefinition(on={"GO": "b", "BACK": {"target": "a"}})
        assert d.on == {"GO": Transition("b"), "BACK": Transition("a")}

    def test_events_in_declaration_order(self):
        d = StateDefinition(on={"Z": "a", "A": "a", "M": "a"})
        assert d.events == ("Z", "A", "M")

    def test_empty_by_default(self):
        d = StateDefinition()
        assert d.events == ()
        assert d.effect is None

    def test_non_callable_effect_raises(self):
        with pytest.raises(ConfigurationError, match="effect"):
            StateDefinition(effect=3)

    def test_coerce_none_is_final_state(self):
        assert StateDefinition.coerce(None).events == ()

    def test_coerce_unknown_key_raises(self):
        with pytest.raises(ConfigurationError, match="after"):
            StateDefinition.coerce({"after": {1000: "b"}})


# ── MachineConfig ──────────────────────────────────────────────────────────────

class TestMachineConfig:
    def test_from_dict(self):
        config = MachineConfig.from_dict(
            {"initial": "a", "states": {"a": {"on": {"GO": "b"}}, "b": {}}}
        )
        assert config.initial == "a"
        assert isinstance(config.states["b"], StateDefinition)

    def test_missing_initial_key_raises(self):
        with pytest.raises(ConfigurationError, match="initial"):
            MachineConfig.from_dict({"states": {"a": {}}})

    def test_initial_not_in_states_raises(self):
        with pytest.raises(ConfigurationError, match="Initial state 'x'"):
            MachineConfig(initial="x", states={"a": {}})

    def test_unknown_target_raises(self):
        with pytest.raises(ConfigurationError, match="unknown state 'c'"):
            MachineConfig(initial="a", states={"a": {"on": {"GO": "c"}}})

    def test_next_events(self):
        config = MachineConfig(initial="a", states={"a": {"on": {"GO": "b", "STAY": "a"}}, "b": {}})
        assert config.next_events("a") == ("GO", "STAY")
        assert config.next_events("b") == ()

    def test_next_events_for_unknown_state_is_empty(self):
        config = MachineConfig(initial="a", states={"a": {}})
        assert config.next_events("nowhere") == ()


# ── MachineState ───────────────────────────────────────────────────────────────

class TestMachineState:
    def test_initial_snapshot(self):
        config = MachineConfig(initial="a", states={"a": {"on": {"GO": "a"}}})
        state = MachineState.initial(config, {"n": 1})
        assert state == MachineState("a", {"n": 1}, ("GO",))

    def test_initial_context_defaults_to_empty_dict(self):
        config = MachineConfig(initial="a", states={"a": {}})
        assert MachineState.initial(config).context == {}

    def test_snapshot_is_frozen(self):
        state = MachineState("a", {}, ())
        with pytest.raises(dataclasses.FrozenInstanceError):
            state.value = "b"

    def test_with_value_returns_new_snapshot(self):
        state = MachineState("a", {"n": 1}, ("GO",))
        moved = state.with_value("b", ["BACK"])
        assert moved == MachineState("b", {"n": 1}, ("BACK",))
        assert state.value == "a"

    def test_with_context_keeps_value_and_events(self):
        state = MachineState("a", {"n": 1}, ("GO",))
        changed = state.with_context({"n": 2})
        assert changed.value == "a"
        assert changed.next_events == ("GO",)
        assert state.context == {"n": 1}

    def test_to_dict(self):
        d = MachineState("a", {"n": 1}, ("GO",)).to_dict()
        assert d == {"value": "a", "context": {"n": 1}, "next_events": ["GO"]}


# ── TransitionRecord ───────────────────────────────────────────────────────────

class TestTransitionRecord:
    def test_to_dict_keys(self):
        d = TransitionRecord(event="GO", source="a", target="b", timestamp=1.5).to_dict()
        assert d == {"event": "GO", "source": "a", "target": "b", "timestamp": 1.5}
