"""
Tests for the mode state machine and its command table.
"""

import pytest

from safewalk.common import Mode
from safewalk.logic.state_machine import MODE_CONFIGS, ModeStateMachine


class TestPriorityGate:
    def test_lower_priority_rejected_from_safe_walk(self, modes):
        modes.set_mode(Mode.SAFE_WALK)
        config = modes.set_mode(Mode.READING)
        assert modes.mode is Mode.SAFE_WALK
        assert config is MODE_CONFIGS[Mode.SAFE_WALK]

    def test_higher_priority_accepted(self, modes):
        modes.set_mode(Mode.SAFE_WALK)
        config = modes.set_mode(Mode.EMERGENCY)
        assert modes.mode is Mode.EMERGENCY
        assert config.name == "Emergency"

    def test_equal_priority_accepted(self, modes):
        modes.set_mode(Mode.DETECTING)
        modes.set_mode(Mode.READING)
        assert modes.mode is Mode.READING

    def test_anything_leaves_idle(self, modes):
        modes.set_mode("medicine")
        assert modes.mode is Mode.MEDICINE

    @pytest.mark.parametrize("target", [m for m in Mode if m not in (Mode.EMERGENCY, Mode.IDLE)])
    def test_emergency_only_exits_to_idle(self, modes, target):
        modes.set_mode(Mode.EMERGENCY)
        assert not modes.can_transition_to(target)
        modes.set_mode(target)
        assert modes.mode is Mode.EMERGENCY

    def test_emergency_cancels_to_idle(self, modes):
        modes.set_mode(Mode.EMERGENCY)
        assert modes.can_transition_to(Mode.IDLE)
        modes.set_mode(Mode.IDLE)
        assert modes.mode is Mode.IDLE

    def test_idle_always_reachable(self, modes):
        modes.set_mode(Mode.NAVIGATION)
        modes.set_mode(Mode.IDLE)
        assert modes.mode is Mode.IDLE

    def test_same_mode_is_noop(self, modes):
        calls = []
        modes.subscribe(lambda mode, config: calls.append(mode))
        modes.set_mode(Mode.DETECTING)
        modes.set_mode(Mode.DETECTING)
        assert calls == [Mode.DETECTING]
        assert len(modes.history) == 1


class TestHistory:
    def test_transition_recorded(self, modes, clock):
        modes.set_mode(Mode.DETECTING)
        entry = modes.history[-1]
        assert entry.from_mode is Mode.IDLE
        assert entry.to_mode is Mode.DETECTING
        assert entry.timestamp == clock.now

    def test_rejected_transition_not_recorded(self, modes):
        modes.set_mode(Mode.SAFE_WALK)
        modes.set_mode(Mode.READING)
        assert [t.to_mode for t in modes.history] == [Mode.SAFE_WALK]

    def test_history_is_bounded(self, clock):
        modes = ModeStateMachine(history_limit=3, clock=clock)
        for target in (Mode.DETECTING, Mode.READING, Mode.DETECTING, Mode.READING):
            modes.set_mode(target)
        assert len(modes.history) == 3
        assert modes.history[0].from_mode is Mode.DETECTING


class TestGoBack:
    def test_round_trip(self, modes):
        modes.set_mode(Mode.DETECTING)
        modes.set_mode(Mode.READING)
        assert modes.go_back() is Mode.DETECTING
        assert modes.go_back() is Mode.IDLE

    def test_go_back_from_first_mode_lands_in_idle(self, modes):
        modes.set_mode(Mode.DETECTING)
        assert modes.go_back() is Mode.IDLE

    def test_go_back_in_idle_stays_idle(self, modes):
        assert modes.go_back() is Mode.IDLE
        assert modes.history == ()

    def test_go_back_is_still_priority_gated(self, modes):
        modes.set_mode(Mode.DETECTING)
        modes.set_mode(Mode.SAFE_WALK)
        assert modes.go_back() is Mode.SAFE_WALK


class TestListeners:
    def test_notified_in_registration_order_before_return(self, modes):
        calls = []
        modes.subscribe(lambda mode, config: calls.append(("first", mode)))
        modes.subscribe(lambda mode, config: calls.append(("second", config.name)))
        modes.set_mode(Mode.READING)
        assert calls == [("first", Mode.READING), ("second", "Text Reading")]

    def test_listener_sees_new_mode(self, modes):
        seen = []
        modes.subscribe(lambda mode, config: seen.append(modes.mode))
        modes.set_mode(Mode.SHOPPING)
        assert seen == [Mode.SHOPPING]

    def test_unsubscribe(self, modes):
        calls = []
        unsubscribe = modes.subscribe(lambda mode, config: calls.append(mode))
        unsubscribe()
        unsubscribe()
        modes.set_mode(Mode.READING)
        assert calls == []

    def test_failing_listener_does_not_block_others(self, modes):
        calls = []

        def broken(mode, config):
            raise ValueError("boom")

        modes.subscribe(broken)
        modes.subscribe(lambda mode, config: calls.append(mode))
        modes.set_mode(Mode.READING)
        assert modes.mode is Mode.READING
        assert calls == [Mode.READING]

    def test_rejected_transition_not_notified(self, modes):
        modes.set_mode(Mode.EMERGENCY)
        calls = []
        modes.subscribe(lambda mode, config: calls.append(mode))
        modes.set_mode(Mode.DETECTING)
        assert calls == []


class TestModeConfigs:
    def test_every_mode_configured(self):
        assert set(MODE_CONFIGS) == set(Mode)

    @pytest.mark.parametrize(
        "mode,priority",
        [
            (Mode.IDLE, 0),
            (Mode.DETECTING, 2),
            (Mode.READING, 2),
            (Mode.FIND_OBJECT, 2),
            (Mode.MEDICINE, 2),
            (Mode.SHOPPING, 2),
            (Mode.SAFE_WALK, 3),
            (Mode.NAVIGATION, 3),
            (Mode.EMERGENCY, 10),
        ],
    )
    def test_static_priorities(self, mode, priority):
        assert MODE_CONFIGS[mode].priority == priority


class TestCommandTable:
    @pytest.mark.parametrize(
        "command,expected",
        [
            ("Hey Assist", Mode.IDLE),
            ("start safe walk", Mode.SAFE_WALK),
            ("find what is here", Mode.FIND_OBJECT),
            ("what's the price", Mode.SHOPPING),
            ("read my pills", Mode.MEDICINE),
            ("take me home", Mode.NAVIGATION),
            ("what do you see", Mode.DETECTING),
            ("read this", Mode.READING),
            ("SOS", Mode.EMERGENCY),
            ("help me please", Mode.EMERGENCY),
            ("cancel", Mode.IDLE),
            ("go back", Mode.IDLE),
            ("good morning", None),
            ("   ", None),
        ],
    )
    def test_first_matching_rule_wins(self, modes, command, expected):
        assert modes.mode_for_command(command) == expected
