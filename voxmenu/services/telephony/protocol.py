"""Telephony stack protocol and data types.

The signaling/transport stack is an external collaborator. The call-handling
core only depends on these protocols; any concrete stack (SIP user agent,
WebSocket media stream, test fake) can be plugged in.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

# RTP payload types the core cares about
PAYLOAD_TYPE_PCMU = 0
PAYLOAD_TYPE_PCMA = 8

HangupHandler = Callable[[], None]
ToneHandler = Callable[[str, int], None]
PacketHandler = Callable[[int, bytes], None]


@dataclass(frozen=True, slots=True)
class IncomingCall:
    """An incoming-call notification delivered by the signaling stack."""

    call_id: str
    from_uri: str = ""
    to_uri: str = ""
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    raw: Any = None  # Stack-specific request object


class MediaSink(Protocol):
    """Media session the core streams audio into and receives packets from."""

    async def send_audio(self, sample_count: int, payload: bytes) -> None:
        """Transmit one window of μ-law audio."""
        ...

    def set_packet_handler(self, handler: PacketHandler) -> None:
        """Register callback for every received media packet (payload type, payload)."""
        ...


class SignalingSession(Protocol):
    """Control channel of one accepted call."""

    def set_hangup_handler(self, handler: HangupHandler) -> None:
        """Register callback fired when the far end hangs up."""
        ...

    def set_tone_handler(self, handler: ToneHandler) -> None:
        """Register callback for signaled DTMF tones (tone name, duration ms)."""
        ...


class TelephonyStack(Protocol):
    """Signaling stack operations used by the call session.

    `is_call_active` is an optional capability; stacks without a direct
    liveness query may omit it and rely on the hangup callback alone.
    """

    def accept_call(self, invite: IncomingCall) -> SignalingSession:
        """Accept an incoming call and return its signaling session."""
        ...

    def create_media_sink(self, session: SignalingSession) -> MediaSink:
        """Create the media session used to answer the call."""
        ...

    async def answer(self, session: SignalingSession, sink: MediaSink) -> None:
        """Complete the media answer."""
        ...

    async def hangup(self, session: SignalingSession) -> None:
        """Terminate the call from our side."""
        ...
