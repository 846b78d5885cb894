"""Telephony boundary: stack protocol, μ-law codec and WebSocket media stream."""

from voxmenu.services.telephony.codec import (
    SILENCE_BYTE,
    TELEPHONY_SAMPLE_RATE,
    alaw_to_mulaw,
    decode_sample,
    encode_sample,
    mulaw_to_pcm16,
    pcm16_to_mulaw,
)
from voxmenu.services.telephony.protocol import (
    PAYLOAD_TYPE_PCMA,
    PAYLOAD_TYPE_PCMU,
    IncomingCall,
    MediaSink,
    SignalingSession,
    TelephonyStack,
)

__all__ = [
    # Protocol
    "TelephonyStack",
    "SignalingSession",
    "MediaSink",
    "IncomingCall",
    "PAYLOAD_TYPE_PCMU",
    "PAYLOAD_TYPE_PCMA",
    # Codec
    "SILENCE_BYTE",
    "TELEPHONY_SAMPLE_RATE",
    "encode_sample",
    "decode_sample",
    "mulaw_to_pcm16",
    "pcm16_to_mulaw",
    "alaw_to_mulaw",
]
