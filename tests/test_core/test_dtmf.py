"""Tests for dual-source DTMF detection and debouncing."""

from __future__ import annotations

import pytest

from voxmenu.core.call_state import CallState
from voxmenu.core.dtmf import (
    DtmfDebouncer,
    DtmfInput,
    DtmfSource,
    event_code_to_symbol,
    normalize_tone,
    parse_tone_event,
)
from voxmenu.core.status import StatusPublisher

from conftest import CollectingSink


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


def tone_event(code: int, *, end: bool = True) -> bytes:
    """telephone-event payload: event, E|volume, duration (2 bytes)."""
    return bytes([code, (0x80 if end else 0x00) | 10, 0x03, 0x20])


class TestNormalizeTone:
    """Tests for signaling tone names."""

    @pytest.mark.parametrize(
        ("tone", "expected"),
        [
            ("5", "5"),
            ("Tone5", "5"),
            ("0", "0"),
            ("Star", "*"),
            ("ToneStar", "*"),
            ("10", "*"),
            ("*", "*"),
            ("Pound", "#"),
            ("Hash", "#"),
            ("11", "#"),
            ("#", "#"),
        ],
    )
    def test_known_names(self, tone: str, expected: str) -> None:
        assert normalize_tone(tone) == expected

    @pytest.mark.parametrize("tone", ["", "A", "Tone", "12", "flash", "55"])
    def test_rejects_unknown(self, tone: str) -> None:
        assert normalize_tone(tone) is None


class TestToneEventPayload:
    """Tests for RFC 4733 payload parsing."""

    def test_event_codes(self) -> None:
        assert event_code_to_symbol(0) == "0"
        assert event_code_to_symbol(9) == "9"
        assert event_code_to_symbol(10) == "*"
        assert event_code_to_symbol(11) == "#"
        assert event_code_to_symbol(12) is None

    def test_only_end_of_event_reports(self) -> None:
        assert parse_tone_event(tone_event(7, end=False)) is None
        assert parse_tone_event(tone_event(7)) == "7"

    def test_short_payload_ignored(self) -> None:
        assert parse_tone_event(b"\x07\x80\x00") is None


class TestDtmfDebouncer:
    """Tests for the shared debounce rule."""

    def test_same_digit_within_threshold_suppressed(self) -> None:
        """Two reports of the same digit 150 ms apart produce one digit."""
        clock = FakeClock()
        debouncer = DtmfDebouncer(200, clock=clock)

        assert debouncer.accept("5", DtmfSource.SIGNALING) is True
        clock.advance_ms(150)
        assert debouncer.accept("5", DtmfSource.MEDIA) is False

    def test_same_digit_after_threshold_accepted(self) -> None:
        """Two reports 250 ms apart produce two digits."""
        clock = FakeClock()
        debouncer = DtmfDebouncer(200, clock=clock)

        assert debouncer.accept("5", DtmfSource.SIGNALING) is True
        clock.advance_ms(250)
        assert debouncer.accept("5", DtmfSource.SIGNALING) is True

    def test_different_digit_accepted_immediately(self) -> None:
        clock = FakeClock()
        debouncer = DtmfDebouncer(200, clock=clock)

        assert debouncer.accept("1", DtmfSource.MEDIA) is True
        clock.advance_ms(10)
        assert debouncer.accept("2", DtmfSource.MEDIA) is True

    def test_window_measured_from_last_accepted(self) -> None:
        """A suppressed duplicate does not extend the window."""
        clock = FakeClock()
        debouncer = DtmfDebouncer(200, clock=clock)

        debouncer.accept("5", DtmfSource.SIGNALING)
        clock.advance_ms(150)
        assert debouncer.accept("5", DtmfSource.MEDIA) is False
        clock.advance_ms(60)
        assert debouncer.accept("5", DtmfSource.MEDIA) is True


class TestDtmfInput:
    """Tests for routing digits into call state."""

    def _make(self) -> tuple[CallState, DtmfInput, CollectingSink, FakeClock]:
        clock = FakeClock()
        sink = CollectingSink()
        state = CallState("call-1")
        dtmf = DtmfInput(
            state,
            StatusPublisher([sink]),
            debouncer=DtmfDebouncer(200, clock=clock),
            payload_type=101,
        )
        return state, dtmf, sink, clock

    def test_both_sources_collapse_to_one_digit(self) -> None:
        state, dtmf, sink, clock = self._make()

        dtmf.on_tone("Tone5", 120)
        clock.advance_ms(30)
        dtmf.on_media_packet(101, tone_event(5))

        assert state.take_digit() == "5"
        assert state.take_digit() is None
        assert sink.statuses() == ["INPUT"]
        assert sink.events[0].last_input == "5"

    def test_other_payload_types_ignored(self) -> None:
        state, dtmf, _, _ = self._make()

        assert dtmf.on_media_packet(0, tone_event(5)) is None
        assert not state.has_pending_digit

    def test_inactive_call_ignores_digits(self) -> None:
        state, dtmf, sink, _ = self._make()
        state.deactivate("hangup")

        dtmf.on_tone("1")

        assert not state.has_pending_digit
        assert sink.events == []

    def test_pound_closes_recording_without_reaching_menu(self) -> None:
        state, dtmf, sink, _ = self._make()
        state.open_recording_mode(voicemail=True)

        dtmf.on_tone("Pound")

        assert state.is_recording_voicemail is False
        assert not state.has_pending_digit
        assert state.last_digit == "#"
        assert sink.statuses() == ["INPUT"]

    def test_pound_outside_recording_is_menu_input(self) -> None:
        state, dtmf, _, _ = self._make()

        dtmf.on_tone("#")

        assert state.take_digit() == "#"
