"""Call-handling core.

- CallDispatcher: admission, active-call registry, shutdown
- CallSession: per-call state machine (menu loop, actions, cleanup)
- AudioPacer: real-time 20 ms playback
- DtmfInput / DtmfDebouncer: dual-source keypad input
- CallWatchdog: liveness polling
- DuplexRecorder: call recording and mixing
"""

from voxmenu.core.call_state import CallState
from voxmenu.core.dispatcher import CallCapacityError, CallDispatcher
from voxmenu.core.dtmf import DtmfDebouncer, DtmfInput, DtmfSource
from voxmenu.core.menu import ActionKind, Menu, MenuAction, parse_action
from voxmenu.core.pacing import AudioPacer, PlaybackResult
from voxmenu.core.recorder import CaptureKind, DuplexRecorder, mix_mulaw, mulaw_to_wav
from voxmenu.core.session import CallPhase, CallServices, CallSession
from voxmenu.core.status import (
    CallBoard,
    CallStatus,
    CallStatusEvent,
    StatusPublisher,
    StatusSink,
)
from voxmenu.core.watchdog import CallWatchdog

__all__ = [
    # Session management
    "CallDispatcher",
    "CallCapacityError",
    "CallSession",
    "CallServices",
    "CallPhase",
    "CallState",
    # Menu
    "Menu",
    "MenuAction",
    "ActionKind",
    "parse_action",
    # Audio
    "AudioPacer",
    "PlaybackResult",
    "DuplexRecorder",
    "CaptureKind",
    "mix_mulaw",
    "mulaw_to_wav",
    # Input and liveness
    "DtmfInput",
    "DtmfDebouncer",
    "DtmfSource",
    "CallWatchdog",
    # Status
    "CallStatus",
    "CallStatusEvent",
    "StatusPublisher",
    "StatusSink",
    "CallBoard",
]
