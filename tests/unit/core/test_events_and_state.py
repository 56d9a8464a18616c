"""Tests for event payload coercion and MonitorState."""

import pytest

from diskmon.core.events import coerce_flag, coerce_usage
from diskmon.core.monitor_state import ActivityMode, MonitorState


class TestCoerceFlag:

    @pytest.mark.parametrize("value, expected", [
        (True, True),
        (False, False),
        (1, True),
        (0, False),
        (2, True),
        ("1", True),
        ("false", False),
        (" TRUE ", True),
    ])
    def test_accepted_values(self, value, expected):
        assert coerce_flag(value) is expected

    @pytest.mark.parametrize("value", [None, 1.0, "maybe", [], {}])
    def test_rejected_values(self, value):
        with pytest.raises(ValueError):
            coerce_flag(value)


class TestCoerceUsage:

    def test_valid(self):
        assert coerce_usage("/", 0) == ("/", 0)
        assert coerce_usage("/home", 100) == ("/home", 100)

    @pytest.mark.parametrize("path, percent", [
        ("", 10),
        (None, 10),
        ("/", -1),
        ("/", 101),
        ("/", 50.5),
        ("/", True),
    ])
    def test_invalid(self, path, percent):
        with pytest.raises(ValueError):
            coerce_usage(path, percent)


class TestMonitorState:

    def test_initial_state(self):
        state = MonitorState()

        assert state.ready_to_check is False
        assert state.device_active is False
        assert state.last_check_time == 0.0
        assert state.mode == ActivityMode.IDLE

    def test_mark_ready_is_sticky(self):
        state = MonitorState()
        state.mark_ready()
        state.mark_ready()
        assert state.ready_to_check is True

    def test_record_check_is_monotonic(self):
        state = MonitorState()
        state.record_check(100.0)
        state.record_check(50.0)
        assert state.last_check_time == 100.0

    def test_to_dict_includes_mode(self):
        state = MonitorState(device_active=True)
        assert state.to_dict()["mode"] == "active"
