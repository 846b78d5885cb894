"""WebSocket media-stream transport.

One WebSocket connection carries one call. The far end (a media gateway or
SIP bridge) sends JSON events:

- start: `{"event": "start", "start": {"streamId", "from", "to"}}`
- media: `{"event": "media", "media": {"payload": <base64>, "payloadType": 0}}`
  (payloadType 0 = μ-law, 8 = A-law, the DTMF payload type = telephone-event)
- dtmf:  `{"event": "dtmf", "dtmf": {"digit": "5", "duration": 120}}`
- stop:  `{"event": "stop"}`

We send `media` events with base64 μ-law, one per 20 ms window.
`WebSocketTelephony` adapts the connection to the `TelephonyStack` protocol
so the call-handling core never sees the wire format.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import threading
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from voxmenu.core.dispatcher import CallCapacityError, CallDispatcher
from voxmenu.logging_config import get_logger, mask_caller
from voxmenu.services.telephony.protocol import (
    PAYLOAD_TYPE_PCMU,
    HangupHandler,
    IncomingCall,
    PacketHandler,
    ToneHandler,
)

logger: Any = get_logger(__name__)

# Close code for "try again later" when at capacity
WS_CLOSE_TRY_AGAIN = 1013


class WebSocketMediaStream:
    """Signaling session and media sink of one WebSocket call."""

    def __init__(self, websocket: WebSocket, call_id: str) -> None:
        self._websocket = websocket
        self.call_id = call_id
        self.stream_id = call_id
        self._on_hangup: HangupHandler | None = None
        self._on_tone: ToneHandler | None = None
        self._on_packet: PacketHandler | None = None
        self._closed = threading.Event()
        self._sequence = 0

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    # SignalingSession
    def set_hangup_handler(self, handler: HangupHandler) -> None:
        self._on_hangup = handler

    def set_tone_handler(self, handler: ToneHandler) -> None:
        self._on_tone = handler

    # MediaSink
    def set_packet_handler(self, handler: PacketHandler) -> None:
        self._on_packet = handler

    async def send_audio(self, sample_count: int, payload: bytes) -> None:
        """Send one μ-law window to the far end."""
        if self.closed:
            return
        message = {
            "event": "media",
            "streamId": self.stream_id,
            "media": {
                "payload": base64.b64encode(payload).decode("ascii"),
                "timestamp": str(self._sequence * sample_count // 8),  # ms at 8 kHz
            },
        }
        try:
            await self._websocket.send_json(message)
            self._sequence += 1
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug(f"Call {self.call_id}: send failed, treating as hangup: {e}")
            self.mark_closed()

    # Inbound events
    def receive_media(self, payload_b64: str, payload_type: int = PAYLOAD_TYPE_PCMU) -> None:
        if self._on_packet is None or not payload_b64:
            return
        try:
            payload = base64.b64decode(payload_b64, validate=True)
        except (binascii.Error, ValueError):
            logger.warning(f"Call {self.call_id}: invalid media payload")
            return
        self._on_packet(payload_type, payload)

    def receive_dtmf(self, digit: str, duration: int = 0) -> None:
        if self._on_tone is not None and digit:
            self._on_tone(digit, duration)

    def mark_closed(self) -> None:
        """The connection is gone; fire the hangup callback once."""
        if self._closed.is_set():
            return
        self._closed.set()
        if self._on_hangup is not None:
            self._on_hangup()

    async def close(self) -> None:
        self._closed.set()
        if self._websocket.client_state == WebSocketState.CONNECTED:
            await self._websocket.close()


class WebSocketTelephony:
    """`TelephonyStack` over a single WebSocket media stream."""

    def __init__(self, stream: WebSocketMediaStream) -> None:
        self.stream = stream

    def accept_call(self, invite: IncomingCall) -> WebSocketMediaStream:
        return self.stream

    def create_media_sink(self, session: WebSocketMediaStream) -> WebSocketMediaStream:
        return session

    async def answer(self, session: WebSocketMediaStream, sink: WebSocketMediaStream) -> None:
        logger.debug(f"Call {session.call_id}: media stream answered")

    async def hangup(self, session: WebSocketMediaStream) -> None:
        await session.close()

    def is_call_active(self, session: WebSocketMediaStream) -> bool:
        return not session.closed


def _parse_payload_type(media: dict[str, Any]) -> int:
    try:
        return int(media.get("payloadType", PAYLOAD_TYPE_PCMU))
    except (TypeError, ValueError):
        return PAYLOAD_TYPE_PCMU


async def media_stream_endpoint(
    websocket: WebSocket,
    call_id: str,
    dispatcher: CallDispatcher,
) -> None:
    """Handle one media-stream WebSocket connection.

    The call is admitted on `start`; inbound events are handed to the
    session's callbacks until `stop` or disconnect, then we wait for the
    session to finish its cleanup.
    """
    await websocket.accept()
    logger.info(f"WebSocket connected for call {call_id}")

    stream = WebSocketMediaStream(websocket, call_id)
    telephony = WebSocketTelephony(stream)
    task = None

    try:
        while True:
            try:
                message = json.loads(await websocket.receive_text())
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON received for call {call_id}")
                continue
            if not isinstance(message, dict):
                continue

            event = message.get("event", "")

            if event == "start":
                if task is not None:
                    continue
                start = message.get("start", {}) or {}
                stream.stream_id = start.get("streamId", call_id)
                invite = IncomingCall(
                    call_id=call_id,
                    from_uri=start.get("from", ""),
                    to_uri=start.get("to", ""),
                    raw=start,
                )
                logger.info(
                    f"Stream started: {stream.stream_id} from {mask_caller(invite.from_uri)}"
                )
                try:
                    task = dispatcher.handle_incoming(invite, telephony)
                except CallCapacityError:
                    await websocket.close(code=WS_CLOSE_TRY_AGAIN)
                    return
                if task is None:
                    await websocket.close()
                    return

            elif event == "media":
                media = message.get("media", {}) or {}
                stream.receive_media(media.get("payload", ""), _parse_payload_type(media))

            elif event == "dtmf":
                dtmf = message.get("dtmf", {}) or {}
                try:
                    duration = int(dtmf.get("duration", 0))
                except (TypeError, ValueError):
                    duration = 0
                stream.receive_dtmf(str(dtmf.get("digit", "")), duration)

            elif event == "stop":
                logger.info(f"Stream stopped for call {call_id}")
                break

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for call {call_id}")

    except RuntimeError as e:
        # Socket already closed from our side (hangup) while receiving
        logger.debug(f"WebSocket for call {call_id} closed: {e}")

    finally:
        stream.mark_closed()
        if task is not None:
            await asyncio.wait({task})
