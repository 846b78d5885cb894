"""Real-time audio pacing.

Strict endpoints (hardware ATAs, legacy PBXs) expect exactly one 20 ms
packet every 20 ms; delivering a clip in bursts corrupts the audio on the
far end. The pacer therefore schedules every window against a fixed
timeline taken once per playback, so local jitter never accumulates into
drift, and keeps its waits short so a new digit or a hangup interrupts
playback within a few milliseconds.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from voxmenu.logging_config import get_logger
from voxmenu.observability.metrics import AUDIO_WINDOWS_SENT
from voxmenu.services.telephony.codec import pcm16_to_mulaw, silence
from voxmenu.services.telephony.protocol import MediaSink

logger: Any = get_logger(__name__)

# 20 ms of 8 kHz mono audio
WINDOW_SAMPLES = 160
WINDOW_BYTES = WINDOW_SAMPLES * 2  # 16-bit PCM input
WINDOW_MS = 20.0

# Longest single sleep before the interrupt predicate is re-checked
MAX_WAIT_SLICE_MS = 5.0

RIFF_MAGIC = b"RIFF"
WAV_HEADER_SIZE = 44

InterruptCheck = Callable[[], bool]
RecordHook = Callable[[bytes], None]


def _never() -> bool:
    return False


def pcm_payload_offset(pcm: bytes) -> int:
    """Offset of the first sample, skipping a canonical WAV header if present."""
    if len(pcm) > WAV_HEADER_SIZE and pcm[:4] == RIFF_MAGIC:
        return WAV_HEADER_SIZE
    return 0


@dataclass
class PlaybackResult:
    """Outcome of one playback call."""

    windows_sent: int = 0
    interrupted: bool = False
    elapsed_ms: float = 0.0


class AudioPacer:
    """Streams 8 kHz PCM to a media sink at real-time cadence.

    Every outgoing window is μ-law encoded, optionally handed to a record
    hook (the duplex recorder's outbound side), then sent. Silence uses the
    same cadence through a free-running ticker that also drives the menu
    loop's liveness checks.
    """

    def __init__(
        self,
        sink: MediaSink,
        *,
        record: RecordHook | None = None,
        window_ms: float = WINDOW_MS,
        clock: Callable[[], float] = time.perf_counter,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._sink = sink
        self._record = record
        self._window = window_ms / 1000
        self._slice = min(MAX_WAIT_SLICE_MS / 1000, self._window)
        self._clock = clock
        self._sleep = sleep
        self._next_silence_tick: float | None = None
        self._silence_window = silence(WINDOW_SAMPLES)

    @property
    def window_seconds(self) -> float:
        return self._window

    async def play_pcm(
        self,
        pcm: bytes,
        interrupt: InterruptCheck = _never,
        *,
        label: str = "clip",
    ) -> PlaybackResult:
        """Stream linear 16-bit PCM, one 20 ms window per tick.

        Returns as soon as `interrupt()` is true, checked before every window
        and after every wait slice. A trailing partial window is dropped.
        """
        result = PlaybackResult()
        if not pcm:
            return result

        offset = pcm_payload_offset(pcm)
        total_windows = (len(pcm) - offset) // WINDOW_BYTES
        if total_windows == 0:
            return result

        start = self._clock()
        for index in range(total_windows):
            if interrupt():
                result.interrupted = True
                break

            begin = offset + index * WINDOW_BYTES
            encoded = pcm16_to_mulaw(pcm[begin : begin + WINDOW_BYTES])
            if self._record is not None:
                self._record(encoded)
            await self._sink.send_audio(WINDOW_SAMPLES, encoded)
            result.windows_sent += 1

            # Deadline from the playback timeline, not from the last send
            if await self._wait_until(start + (index + 1) * self._window, interrupt):
                result.interrupted = True
                break

        result.elapsed_ms = (self._clock() - start) * 1000
        # Resync the silence ticker after playback
        self._next_silence_tick = None

        AUDIO_WINDOWS_SENT.labels(kind="clip").inc(result.windows_sent)
        if result.interrupted:
            logger.debug(
                f"Playback of {label} interrupted after "
                f"{result.windows_sent}/{total_windows} windows"
            )
        else:
            logger.debug(
                f"Playback of {label} complete: {result.windows_sent} windows "
                f"in {result.elapsed_ms:.0f}ms"
            )
        return result

    async def send_silence(self, interrupt: InterruptCheck = _never) -> bool:
        """Send one silence window and wait for the next tick.

        Returns:
            True if the wait was cut short by `interrupt()`.
        """
        now = self._clock()
        if self._next_silence_tick is None or now - self._next_silence_tick > self._window:
            # First tick, or we fell more than a window behind: restart the timeline
            self._next_silence_tick = now

        if self._record is not None:
            self._record(self._silence_window)
        await self._sink.send_audio(WINDOW_SAMPLES, self._silence_window)
        AUDIO_WINDOWS_SENT.labels(kind="silence").inc()

        self._next_silence_tick += self._window
        return await self._wait_until(self._next_silence_tick, interrupt)

    async def _wait_until(self, deadline: float, interrupt: InterruptCheck) -> bool:
        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                return False
            await self._sleep(min(remaining, self._slice))
            if interrupt():
                return True
