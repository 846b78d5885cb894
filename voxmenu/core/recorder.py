"""Duplex call recording and mixing.

Inbound voice payloads (from the media packet callback) and outbound
windows (from the pacer) are appended to per-call buffers from different
threads; every append takes the recorder lock. At call end both sides are
mixed window by window into one mono track and serialized as a WAV file.
"""

from __future__ import annotations

import io
import threading
import wave
from enum import Enum
from typing import Any

import numpy as np

from voxmenu.logging_config import get_logger
from voxmenu.services.telephony.codec import (
    INT16_MAX,
    INT16_MIN,
    PCM16_SAMPLE_WIDTH,
    SILENCE_BYTE,
    TELEPHONY_SAMPLE_RATE,
    mulaw_to_pcm16,
    pcm16_to_mulaw,
)

logger: Any = get_logger(__name__)

# One 20 ms packet at 8 kHz; silence is decided per window
MIX_WINDOW_SAMPLES = 160


class CaptureKind(str, Enum):
    """Caller audio captured for a menu action."""

    ASSISTANT = "assistant"
    VOICEMAIL = "voicemail"


def _windows(mulaw: bytes, window_count: int) -> tuple[np.ndarray, np.ndarray]:
    """Split a track into 20 ms windows padded with silence.

    Returns:
        Tuple of (int32 samples shaped (windows, samples), per-window silent flags)
    """
    size = window_count * MIX_WINDOW_SAMPLES
    padded = mulaw + bytes((SILENCE_BYTE,)) * (size - len(mulaw))
    raw = np.frombuffer(padded, dtype=np.uint8).reshape(window_count, MIX_WINDOW_SAMPLES)
    samples = np.frombuffer(mulaw_to_pcm16(padded), dtype=np.int16).astype(np.int32)
    return samples.reshape(window_count, MIX_WINDOW_SAMPLES), (raw == SILENCE_BYTE).all(axis=1)


def mix_mulaw(first: bytes, second: bytes) -> bytes:
    """Mix two μ-law tracks into one.

    Both tracks are cut into 20 ms windows (the shorter one is extended with
    silence). Where both sides carry audio in a window, the window is their
    linear average, clamped to 16 bits; a window that is silent on one side
    passes the other side through, so mixing against silence reproduces the
    other track.
    """
    length = max(len(first), len(second))
    if length == 0:
        return b""

    window_count = -(-length // MIX_WINDOW_SAMPLES)
    a, a_silent = _windows(first, window_count)
    b, b_silent = _windows(second, window_count)

    # astype truncates toward zero, matching integer division of the sum
    averaged = ((a + b) / 2).astype(np.int32)
    mixed = np.where(a_silent[:, None], b, np.where(b_silent[:, None], a, averaged))
    mixed = np.clip(mixed.reshape(-1)[:length], INT16_MIN, INT16_MAX).astype(np.int16)
    return pcm16_to_mulaw(mixed.tobytes())


def mulaw_to_wav(mulaw: bytes, *, sample_rate: int = TELEPHONY_SAMPLE_RATE) -> bytes:
    """Serialize μ-law audio as a canonical 16-bit mono PCM WAV file."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(PCM16_SAMPLE_WIDTH)
        wf.setframerate(sample_rate)
        wf.writeframes(mulaw_to_pcm16(mulaw) if mulaw else b"")
    return buffer.getvalue()


class DuplexRecorder:
    """Per-call audio buffers.

    The full-call inbound/outbound buffers are only filled when recording is
    enabled; capture buffers for assistant input and voicemail are always
    available and are consumed by the action that opened them.
    """

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = enabled
        self._inbound = bytearray()
        self._outbound = bytearray()
        self._captures: dict[CaptureKind, bytearray] = {
            kind: bytearray() for kind in CaptureKind
        }
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def inbound_size(self) -> int:
        return len(self._inbound)

    @property
    def outbound_size(self) -> int:
        return len(self._outbound)

    def append_inbound(self, payload: bytes) -> None:
        """Append caller audio (μ-law) to the full-call recording."""
        if not self._enabled or not payload:
            return
        with self._lock:
            self._inbound.extend(payload)

    def append_outbound(self, window: bytes) -> None:
        """Append one outgoing window (μ-law) to the full-call recording."""
        if not self._enabled or not window:
            return
        with self._lock:
            self._outbound.extend(window)

    def start_capture(self, kind: CaptureKind) -> None:
        with self._lock:
            self._captures[kind].clear()

    def append_capture(self, kind: CaptureKind, payload: bytes) -> None:
        with self._lock:
            self._captures[kind].extend(payload)

    def take_capture(self, kind: CaptureKind) -> bytes:
        """Return and clear captured caller audio."""
        with self._lock:
            data = bytes(self._captures[kind])
            self._captures[kind].clear()
        return data

    def take_mix(self) -> bytes:
        """Mix and clear the full-call buffers.

        Returns:
            Mixed μ-law track, empty if nothing was recorded.
        """
        with self._lock:
            inbound = bytes(self._inbound)
            outbound = bytes(self._outbound)
            self._inbound.clear()
            self._outbound.clear()

        if not inbound and not outbound:
            return b""
        logger.debug(f"Mixing recording: {len(inbound)} inbound, {len(outbound)} outbound bytes")
        return mix_mulaw(inbound, outbound)
