"""WebSocket media-stream transport.

- media_stream_endpoint: per-call WebSocket handler
- WebSocketTelephony: TelephonyStack adapter for one connection
"""

from voxmenu.api.websocket.media_stream import (
    WebSocketMediaStream,
    WebSocketTelephony,
    media_stream_endpoint,
)

__all__ = [
    "media_stream_endpoint",
    "WebSocketTelephony",
    "WebSocketMediaStream",
]
