"""Call status notifications.

The core emits a sequence of status events per call. Consumers (the HTTP
call board, logs, a desktop UI) own display and deduplication; the
publisher only guarantees that at most one terminal event is emitted per
call; a RINGING event starts a new call and may reuse an ended id.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Protocol

from voxmenu.logging_config import get_logger

logger: Any = get_logger(__name__)

# How many ended call ids the publisher remembers for terminal deduplication
ENDED_MEMORY = 1024


class CallStatus(str, Enum):
    """Externally visible call status."""

    RINGING = "RINGING"
    CONNECTED = "CONNECTED"
    INPUT = "INPUT"
    ENDED = "ENDED"


@dataclass(frozen=True, slots=True)
class CallStatusEvent:
    """One status notification."""

    call_id: str
    status: CallStatus
    last_input: str = ""
    is_active: bool = True
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "call_id": self.call_id,
            "status": self.status.value,
            "last_input": self.last_input,
            "is_active": self.is_active,
            "timestamp": self.timestamp.isoformat(),
        }


class StatusSink(Protocol):
    """Receiver of call status events."""

    def publish(self, event: CallStatusEvent) -> None:
        """Handle one event. Must not block."""
        ...


class StatusPublisher:
    """Fans status events out to sinks.

    Thread-safe; a failing sink is logged and never affects the call.
    """

    def __init__(self, sinks: list[StatusSink] | None = None) -> None:
        self._sinks: list[StatusSink] = list(sinks or [])
        self._ended: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.Lock()

    def add_sink(self, sink: StatusSink) -> None:
        self._sinks.append(sink)

    def publish(
        self,
        call_id: str,
        status: CallStatus,
        *,
        last_input: str = "",
    ) -> bool:
        """Publish a status event.

        Returns:
            False if the event was dropped (the call already ended).
        """
        with self._lock:
            if status is CallStatus.RINGING:
                # A newly admitted call may reuse the id of an ended one
                self._ended.pop(call_id, None)
            elif call_id in self._ended:
                return False
            if status is CallStatus.ENDED:
                self._ended[call_id] = None
                while len(self._ended) > ENDED_MEMORY:
                    self._ended.popitem(last=False)

        event = CallStatusEvent(
            call_id=call_id,
            status=status,
            last_input=last_input,
            is_active=status is not CallStatus.ENDED,
        )
        logger.debug(f"Call {call_id} status: {status.value} {last_input}".rstrip())

        for sink in list(self._sinks):
            try:
                sink.publish(event)
            except Exception as e:
                logger.error(f"Status sink {type(sink).__name__} failed: {e}")
        return True


@dataclass
class CallBoardEntry:
    """A call as displayed by the management UI."""

    call_id: str
    status: str
    last_input: str = ""
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "call_id": self.call_id,
            "status": self.status,
            "last_input": self.last_input,
            "started_at": self.started_at.isoformat(),
            "duration_seconds": round(
                (datetime.now(UTC) - self.started_at).total_seconds(), 1
            ),
        }


class CallBoard:
    """Live view of active calls for the management API.

    Keeps a short "recently ended" deny-list so late or duplicate events for
    a call that was already torn down do not resurrect it on the board.
    """

    def __init__(
        self,
        *,
        suppress_window: timedelta = timedelta(seconds=5),
        prune_after: timedelta = timedelta(seconds=10),
    ) -> None:
        self._calls: dict[str, CallBoardEntry] = {}
        self._recently_ended: dict[str, datetime] = {}
        self._suppress_window = suppress_window
        self._prune_after = prune_after
        self._lock = threading.Lock()

    def publish(self, event: CallStatusEvent) -> None:
        with self._lock:
            now = event.timestamp
            if not event.is_active:
                self._calls.pop(event.call_id, None)
                self._recently_ended[event.call_id] = now
            elif event.status is CallStatus.RINGING:
                self._recently_ended.pop(event.call_id, None)
                self._calls[event.call_id] = CallBoardEntry(
                    call_id=event.call_id,
                    status=event.status.value,
                    started_at=now,
                )
            else:
                ended_at = self._recently_ended.get(event.call_id)
                if ended_at is not None and now - ended_at < self._suppress_window:
                    return
                entry = self._calls.get(event.call_id)
                if entry is None:
                    self._calls[event.call_id] = CallBoardEntry(
                        call_id=event.call_id,
                        status=event.status.value,
                        last_input=event.last_input,
                        started_at=now,
                    )
                else:
                    entry.status = event.status.value
                    if event.last_input:
                        entry.last_input = event.last_input

            stale = [
                call_id
                for call_id, ended_at in self._recently_ended.items()
                if now - ended_at > self._prune_after
            ]
            for call_id in stale:
                del self._recently_ended[call_id]

    def snapshot(self) -> list[dict[str, Any]]:
        with self._lock:
            return [entry.to_dict() for entry in self._calls.values()]

    def __contains__(self, call_id: object) -> bool:
        return call_id in self._calls
