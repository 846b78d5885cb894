"""Dual-source DTMF detection with debouncing.

Keypad digits arrive from two independent sources:
- the signaling stack's tone callback (named tone + duration)
- telephone-event media packets (RFC 4733 payload)

Phones frequently report the same keypress through both, and media packets
for one tone are retransmitted, so both sources feed one debouncer that
collapses duplicates into a single digit stream.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from voxmenu.core.call_state import CallState
from voxmenu.core.status import CallStatus, StatusPublisher
from voxmenu.logging_config import get_logger
from voxmenu.observability.metrics import DTMF_ACCEPTED, DTMF_SUPPRESSED

logger: Any = get_logger(__name__)

DEFAULT_DEBOUNCE_MS = 200.0

# telephone-event payload: event(1) | E,R,volume(1) | duration(2)
TONE_EVENT_MIN_LENGTH = 4
TONE_EVENT_END_FLAG = 0x80

_STAR_NAMES = {"*", "10", "star", "asterisk"}
_POUND_NAMES = {"#", "11", "pound", "hash", "sharp"}


class DtmfSource(str, Enum):
    """Where a digit report came from."""

    SIGNALING = "signaling"
    MEDIA = "media"


def normalize_tone(tone: str | int) -> str | None:
    """Map a tone report to one of 0-9, *, #.

    Accepts bare digits, event codes (10/11), and named tones with or
    without a "Tone" prefix ("Tone5", "Star", "ToneStar", "Pound").

    Returns:
        Normalized symbol, or None for anything that is not a keypad tone.
    """
    name = str(tone).strip()
    if name.lower().startswith("tone"):
        name = name[4:]
    name = name.strip().lower()

    if name in _STAR_NAMES:
        return "*"
    if name in _POUND_NAMES:
        return "#"
    if len(name) == 1 and name.isdigit():
        return name
    return None


def event_code_to_symbol(code: int) -> str | None:
    """Translate a telephone-event code (0-9 digits, 10 *, 11 #)."""
    if 0 <= code <= 9:
        return str(code)
    if code == 10:
        return "*"
    if code == 11:
        return "#"
    return None


def parse_tone_event(payload: bytes) -> str | None:
    """Extract the digit from a telephone-event payload.

    Only the end-of-event packet yields a digit, so a held key produces one
    report per press rather than one per packet.
    """
    if len(payload) < TONE_EVENT_MIN_LENGTH:
        return None
    if not payload[1] & TONE_EVENT_END_FLAG:
        return None
    return event_code_to_symbol(payload[0])


class DtmfDebouncer:
    """Collapses duplicate reports of one keypress across both sources.

    A symbol is accepted if it differs from the last accepted symbol, or if
    at least `threshold_ms` elapsed since that symbol was last accepted.
    """

    def __init__(
        self,
        threshold_ms: float = DEFAULT_DEBOUNCE_MS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._threshold = threshold_ms / 1000
        self._clock = clock
        self._last_symbol: str | None = None
        self._last_time: float = 0.0
        self._lock = threading.Lock()

    @property
    def threshold_ms(self) -> float:
        return self._threshold * 1000

    def accept(self, symbol: str, source: DtmfSource) -> bool:
        """Decide whether a normalized symbol is a new keypress."""
        with self._lock:
            now = self._clock()
            if symbol == self._last_symbol and now - self._last_time < self._threshold:
                DTMF_SUPPRESSED.labels(source=source.value).inc()
                return False

            self._last_symbol = symbol
            self._last_time = now
        DTMF_ACCEPTED.labels(source=source.value).inc()
        return True


class DtmfInput:
    """Routes both DTMF sources of one call into its CallState.

    Accepted digits are pushed to the menu mailbox and published as INPUT
    status events. A "#" while a recording mode is open closes the mode and
    is consumed there instead of reaching the menu.
    """

    def __init__(
        self,
        state: CallState,
        publisher: StatusPublisher,
        *,
        debouncer: DtmfDebouncer | None = None,
        payload_type: int = 101,
    ) -> None:
        self._state = state
        self._publisher = publisher
        self._debouncer = debouncer or DtmfDebouncer()
        self._payload_type = payload_type

    def on_tone(self, tone: str, duration: int = 0) -> str | None:
        """Signaling-stack tone callback."""
        symbol = normalize_tone(tone)
        if symbol is None:
            logger.debug(f"Call {self._state.call_id}: ignoring tone {tone!r}")
            return None
        return self._deliver(symbol, DtmfSource.SIGNALING)

    def on_media_packet(self, payload_type: int, payload: bytes) -> str | None:
        """Media packet callback; ignores anything that is not a tone event."""
        if payload_type != self._payload_type or not payload:
            return None
        symbol = parse_tone_event(payload)
        if symbol is None:
            return None
        return self._deliver(symbol, DtmfSource.MEDIA)

    def _deliver(self, symbol: str, source: DtmfSource) -> str | None:
        if not self._state.is_active:
            return None
        if not self._debouncer.accept(symbol, source):
            return None

        logger.info(f"Call {self._state.call_id}: key {symbol} ({source.value})")
        self._publisher.publish(self._state.call_id, CallStatus.INPUT, last_input=symbol)

        if symbol == "#" and self._state.close_recording_modes():
            self._state.last_digit = symbol
            return symbol

        self._state.push_digit(symbol)
        return symbol
