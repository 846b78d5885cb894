"""Tests for per-call state."""

from __future__ import annotations

import threading

from voxmenu.core.call_state import CallState


class TestLifecycle:
    """Tests for the active flag."""

    def test_new_call_is_active(self) -> None:
        assert CallState("c1").is_active is True

    def test_first_deactivation_wins(self) -> None:
        state = CallState("c1")

        assert state.deactivate("hangup") is True
        assert state.deactivate("watchdog") is False
        assert state.is_active is False
        assert state.end_reason == "hangup"

    def test_deactivation_visible_across_threads(self) -> None:
        state = CallState("c1")
        thread = threading.Thread(target=state.deactivate, args=("hangup",))
        thread.start()
        thread.join()

        assert state.is_active is False


class TestDigitMailbox:
    """Tests for the bounded digit queue."""

    def test_take_reads_and_clears(self) -> None:
        state = CallState("c1")
        state.push_digit("3")

        assert state.has_pending_digit
        assert state.take_digit() == "3"
        assert state.take_digit() is None
        assert state.last_digit == "3"

    def test_digits_delivered_in_order(self) -> None:
        state = CallState("c1")
        for digit in "123":
            state.push_digit(digit)

        assert [state.take_digit() for _ in range(3)] == ["1", "2", "3"]

    def test_overflow_drops_oldest(self) -> None:
        state = CallState("c1", digit_queue_size=4)
        for digit in "123456":
            state.push_digit(digit)

        assert state.dropped_digits == 2
        assert [state.take_digit() for _ in range(4)] == ["3", "4", "5", "6"]

    def test_clear(self) -> None:
        state = CallState("c1")
        state.push_digit("1")
        state.clear_digits()

        assert not state.has_pending_digit


class TestRecordingModes:
    def test_open_and_close(self) -> None:
        state = CallState("c1")
        state.open_recording_mode(assistant=True)

        assert state.is_recording
        assert state.is_recording_assistant_input
        assert state.close_recording_modes() is True
        assert not state.is_recording
        assert state.close_recording_modes() is False
