"""Per-call mutable state shared between callbacks and the session task.

Signaling callbacks (hangup, tone), the media packet callback and the
watchdog may run on another thread than the session loop, so every field
written from a callback sits behind a thread-safe primitive.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime

DEFAULT_DIGIT_QUEUE_SIZE = 4


@dataclass
class CallState:
    """Lifecycle flag, pending keypad input and recording modes of one call.

    Created when a call is accepted; dropped when the session finishes cleanup.
    Pending digits form a small bounded mailbox: when the caller dials faster
    than the menu consumes, the oldest undelivered digit is dropped.
    """

    call_id: str
    digit_queue_size: int = DEFAULT_DIGIT_QUEUE_SIZE
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    # Recording modes, toggled by the menu loop, cleared by "#" or timeout
    is_recording_assistant_input: bool = False
    is_recording_voicemail: bool = False

    # Most recently accepted symbol (for status reporting), not consumed by reads
    last_digit: str | None = None
    end_reason: str | None = None

    _ended: threading.Event = field(default_factory=threading.Event, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _digits: deque[str] = field(init=False, repr=False)
    dropped_digits: int = 0

    def __post_init__(self) -> None:
        self._digits = deque(maxlen=max(1, self.digit_queue_size))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        """True until the call is deactivated by hangup, watchdog or shutdown."""
        return not self._ended.is_set()

    def deactivate(self, reason: str) -> bool:
        """Mark the call as ended.

        Returns:
            True for the first caller; later calls keep the original reason.
        """
        with self._lock:
            if self._ended.is_set():
                return False
            self.end_reason = reason
            self._ended.set()
            return True

    # -------------------------------------------------------------------------
    # Digit mailbox
    # -------------------------------------------------------------------------

    def push_digit(self, digit: str) -> None:
        """Deliver an accepted digit to the menu loop."""
        with self._lock:
            if len(self._digits) == self._digits.maxlen:
                self.dropped_digits += 1
            self._digits.append(digit)
            self.last_digit = digit

    def take_digit(self) -> str | None:
        """Read-and-clear the oldest pending digit."""
        with self._lock:
            if not self._digits:
                return None
            return self._digits.popleft()

    @property
    def has_pending_digit(self) -> bool:
        return bool(self._digits)

    def clear_digits(self) -> None:
        with self._lock:
            self._digits.clear()

    # -------------------------------------------------------------------------
    # Recording modes
    # -------------------------------------------------------------------------

    @property
    def is_recording(self) -> bool:
        return self.is_recording_assistant_input or self.is_recording_voicemail

    def open_recording_mode(self, *, assistant: bool = False, voicemail: bool = False) -> None:
        with self._lock:
            self.is_recording_assistant_input = assistant
            self.is_recording_voicemail = voicemail

    def close_recording_modes(self) -> bool:
        """Close any open recording mode.

        Returns:
            True if a mode was open.
        """
        with self._lock:
            was_open = self.is_recording_assistant_input or self.is_recording_voicemail
            self.is_recording_assistant_input = False
            self.is_recording_voicemail = False
            return was_open

    @property
    def duration_seconds(self) -> float:
        return (datetime.now(UTC) - self.started_at).total_seconds()
