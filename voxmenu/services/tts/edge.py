"""Edge TTS service implementation using Microsoft's unofficial API."""

from __future__ import annotations

import io
import time
from typing import Any

import edge_tts

from voxmenu.config import Settings, get_settings
from voxmenu.logging_config import get_logger
from voxmenu.observability.metrics import record_external_call
from voxmenu.services.tts.decoding import mp3_to_pcm
from voxmenu.services.tts.exceptions import (
    TTSConnectionError,
    TTSServiceError,
    TTSSynthesisError,
)
from voxmenu.services.tts.protocol import SynthesisMetadata

logger: Any = get_logger(__name__)


class EdgeTTSService:
    """Edge TTS service.

    WARNING: This uses an unofficial API that may change without notice.
    Edge streams MP3 chunks; the whole stream is collected, decoded and
    resampled to the telephony rate.
    """

    def __init__(self, settings: Settings | None = None, voice: str | None = None) -> None:
        self._settings = settings or get_settings()
        self._voice = voice or self._settings.edge_tts_voice
        self.last_metadata = SynthesisMetadata(provider="edge", voice=self._voice)

    async def _fetch_mp3(self, text: str) -> bytes:
        communicate = edge_tts.Communicate(text, self._voice)
        # Can't decode partial MP3, accumulate everything
        buffer = io.BytesIO()
        async for message in communicate.stream():
            if message["type"] == "audio":
                buffer.write(message["data"])
        return buffer.getvalue()

    async def synthesize(self, text: str) -> bytes:
        """Synthesize text to 8 kHz mono PCM."""
        if not text.strip():
            raise TTSSynthesisError("Nothing to synthesize")

        start = time.perf_counter()
        metadata = SynthesisMetadata(provider="edge", voice=self._voice, input_chars=len(text))
        try:
            mp3 = await self._fetch_mp3(text)
            if not mp3:
                raise TTSSynthesisError("No audio received from Edge TTS")
            pcm, metadata.source_sample_rate = await mp3_to_pcm(
                mp3, self._settings.tts_target_sample_rate
            )
        except edge_tts.exceptions.NoAudioReceived as e:
            record_external_call("tts", (time.perf_counter() - start) * 1000, ok=False)
            logger.error(f"Edge TTS no audio received: {e}")
            raise TTSSynthesisError("No audio received from Edge TTS") from e
        except TTSServiceError:
            record_external_call("tts", (time.perf_counter() - start) * 1000, ok=False)
            raise
        except Exception as e:
            record_external_call("tts", (time.perf_counter() - start) * 1000, ok=False)
            logger.error(f"Edge TTS synthesis error: {e}")
            raise TTSConnectionError(f"Edge TTS connection failed: {e}") from e

        metadata.total_synthesis_ms = (time.perf_counter() - start) * 1000
        metadata.output_duration_ms = len(pcm) / 2 / self._settings.tts_target_sample_rate * 1000
        self.last_metadata = metadata
        record_external_call("tts", metadata.total_synthesis_ms)
        logger.debug(
            f"Edge TTS synthesis: {metadata.input_chars} chars -> "
            f"{metadata.output_duration_ms:.0f}ms audio in {metadata.total_synthesis_ms:.0f}ms"
        )
        return pcm

    async def close(self) -> None:
        pass
