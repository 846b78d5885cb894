"""Hangup watchdog.

The signaling stack's hangup callback is the primary termination signal,
but it does not fire on every abrupt network loss. The watchdog polls the
stack's liveness query (when the stack offers one) and the global shutdown
signal once per pacing window, and deactivates the call state the moment
either says the call is over. The session loop only has to watch
`CallState.is_active`.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any

from voxmenu.core.call_state import CallState
from voxmenu.logging_config import get_logger
from voxmenu.services.telephony.protocol import SignalingSession, TelephonyStack

logger: Any = get_logger(__name__)

REASON_SHUTDOWN = "shutdown"
REASON_WATCHDOG = "watchdog"
REASON_LIVENESS_ERRORS = "liveness_errors"


class CallWatchdog:
    """Polls call liveness for one call until it ends."""

    def __init__(
        self,
        state: CallState,
        telephony: TelephonyStack,
        session: SignalingSession,
        shutdown: asyncio.Event,
        *,
        interval_ms: float = 20.0,
        max_errors: int = 5,
    ) -> None:
        self._state = state
        self._session = session
        self._shutdown = shutdown
        self._interval = interval_ms / 1000
        self._max_errors = max_errors
        self._errors = 0
        self._liveness = getattr(telephony, "is_call_active", None)
        if not callable(self._liveness):
            self._liveness = None
            logger.debug(f"Call {state.call_id}: stack has no liveness query, hangup callback only")

    @property
    def supports_liveness(self) -> bool:
        return self._liveness is not None

    async def check(self) -> bool:
        """Run one watchdog step.

        Returns:
            True while the call is still considered alive.
        """
        if not self._state.is_active:
            return False

        if self._shutdown.is_set():
            self._state.deactivate(REASON_SHUTDOWN)
            return False

        if self._liveness is None:
            return True

        try:
            alive = self._liveness(self._session)
            if inspect.isawaitable(alive):
                alive = await alive
        except Exception as e:
            self._errors += 1
            logger.warning(
                f"Call {self._state.call_id}: liveness query failed "
                f"({self._errors}/{self._max_errors}): {e}"
            )
            if self._errors >= self._max_errors:
                if self._state.deactivate(REASON_LIVENESS_ERRORS):
                    logger.warning(f"Call {self._state.call_id}: giving up on liveness query")
                return False
            return True

        self._errors = 0
        if alive is False:
            if self._state.deactivate(REASON_WATCHDOG):
                logger.info(f"Call {self._state.call_id}: watchdog detected dead call")
            return False
        return True

    async def run(self) -> None:
        """Poll until the call ends. Intended to run as a background task."""
        while await self.check():
            await asyncio.sleep(self._interval)
