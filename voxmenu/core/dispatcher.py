"""Incoming-call admission and the active-call registry.

The registry maps call id -> session. Its only admission primitive is
insert-if-absent under a lock, so a retransmitted incoming-call notification
for a call that is already being handled can never start a second session.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any

from voxmenu.config import Settings, get_settings
from voxmenu.core.session import CallServices, CallSession
from voxmenu.core.status import CallStatus
from voxmenu.logging_config import get_logger, mask_caller
from voxmenu.observability.metrics import ACTIVE_CALLS, CALL_REJECTED
from voxmenu.services.telephony.protocol import IncomingCall, TelephonyStack

logger: Any = get_logger(__name__)


class CallCapacityError(Exception):
    """Raised when a call arrives while `max_concurrent_calls` are active."""

    def __init__(self, call_id: str, limit: int) -> None:
        super().__init__(f"Call {call_id} rejected: {limit} calls already active")
        self.call_id = call_id
        self.limit = limit


class CallDispatcher:
    """Admits incoming calls and runs one session task per call."""

    def __init__(self, services: CallServices, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._services = services
        self._sessions: dict[str, CallSession] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._lock = threading.Lock()
        self.shutdown_event = asyncio.Event()

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, call_id: object) -> bool:
        with self._lock:
            return call_id in self._sessions

    def get(self, call_id: str) -> CallSession | None:
        with self._lock:
            return self._sessions.get(call_id)

    def _try_register(self, session: CallSession) -> bool:
        """Insert-if-absent.

        Raises:
            CallCapacityError: If the registry is full.
        """
        with self._lock:
            if session.call_id in self._sessions:
                return False
            if len(self._sessions) >= self._settings.max_concurrent_calls:
                raise CallCapacityError(session.call_id, self._settings.max_concurrent_calls)
            self._sessions[session.call_id] = session
        ACTIVE_CALLS.inc()
        return True

    def unregister(self, call_id: str) -> None:
        with self._lock:
            removed = self._sessions.pop(call_id, None)
        if removed is not None:
            ACTIVE_CALLS.dec()

    def handle_incoming(
        self,
        invite: IncomingCall,
        telephony: TelephonyStack,
    ) -> asyncio.Task[None] | None:
        """Admit an incoming call and start its session task.

        Returns:
            The session task, or None if the notification was a duplicate.

        Raises:
            CallCapacityError: If the call cannot be admitted.
        """
        if self.shutdown_event.is_set():
            CALL_REJECTED.labels(reason="shutdown").inc()
            logger.warning(f"Call {invite.call_id}: rejected, shutting down")
            return None

        session = CallSession(
            invite,
            telephony,
            self._services,
            self.shutdown_event,
            settings=self._settings,
            active_calls=lambda: self.active_count,
            on_finished=self.unregister,
        )
        try:
            admitted = self._try_register(session)
        except CallCapacityError:
            CALL_REJECTED.labels(reason="capacity").inc()
            logger.warning(
                f"Call {invite.call_id} from {mask_caller(invite.from_uri)}: "
                f"rejected, {self._settings.max_concurrent_calls} calls active"
            )
            raise

        if not admitted:
            CALL_REJECTED.labels(reason="duplicate").inc()
            logger.debug(f"Call {invite.call_id}: duplicate notification ignored")
            return None

        self._services.publisher.publish(invite.call_id, CallStatus.RINGING)
        task = asyncio.create_task(session.run(), name=f"call-{invite.call_id}")
        with self._lock:
            self._tasks[invite.call_id] = task
        task.add_done_callback(lambda t, call_id=invite.call_id: self._forget_task(call_id, t))
        logger.info(f"Call {invite.call_id}: admitted ({self.active_count} active)")
        return task

    def _forget_task(self, call_id: str, task: asyncio.Task[None]) -> None:
        with self._lock:
            if self._tasks.get(call_id) is task:
                del self._tasks[call_id]

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Signal every call to end and wait for their cleanup."""
        self.shutdown_event.set()
        with self._lock:
            tasks = list(self._tasks.values())
        if not tasks:
            return

        logger.info(f"Shutting down {len(tasks)} active call(s)")
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"{len(pending)} call(s) did not finish in {timeout}s, cancelled")
            await asyncio.gather(*pending, return_exceptions=True)
