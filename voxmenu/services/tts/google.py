"""Google Translate TTS via gTTS.

gTTS returns MP3 at 24 kHz; the audio is decoded with pydub and resampled
to the telephony rate before playback.
"""

from __future__ import annotations

import asyncio
import io
import time
from typing import Any

from gtts import gTTS, gTTSError

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


class GoogleTTSService:
    """gTTS-backed speech synthesizer."""

    def __init__(self, settings: Settings | None = None, language: str | None = None) -> None:
        self._settings = settings or get_settings()
        self._language = language or self._settings.tts_language
        self.last_metadata = SynthesisMetadata(provider="gtts", voice=self._language)

    def _fetch_mp3(self, text: str) -> bytes:
        buffer = io.BytesIO()
        gTTS(text=text, lang=self._language).write_to_fp(buffer)
        return buffer.getvalue()

    async def synthesize(self, text: str) -> bytes:
        """Synthesize text to 8 kHz mono PCM."""
        if not text.strip():
            raise TTSSynthesisError("Nothing to synthesize")

        start = time.perf_counter()
        metadata = SynthesisMetadata(provider="gtts", voice=self._language, input_chars=len(text))
        try:
            mp3 = await asyncio.to_thread(self._fetch_mp3, text)
            pcm, metadata.source_sample_rate = await mp3_to_pcm(
                mp3, self._settings.tts_target_sample_rate
            )
        except gTTSError as e:
            record_external_call("tts", (time.perf_counter() - start) * 1000, ok=False)
            logger.error(f"gTTS request failed: {e}")
            raise TTSConnectionError(f"gTTS request failed: {e}") from e
        except TTSServiceError:
            record_external_call("tts", (time.perf_counter() - start) * 1000, ok=False)
            raise
        except Exception as e:
            record_external_call("tts", (time.perf_counter() - start) * 1000, ok=False)
            logger.error(f"gTTS synthesis error: {e}")
            raise TTSSynthesisError(f"gTTS synthesis failed: {e}") from e

        if not pcm:
            raise TTSSynthesisError("gTTS returned no audio")

        metadata.total_synthesis_ms = (time.perf_counter() - start) * 1000
        metadata.output_duration_ms = len(pcm) / 2 / self._settings.tts_target_sample_rate * 1000
        self.last_metadata = metadata
        record_external_call("tts", metadata.total_synthesis_ms)
        logger.debug(
            f"gTTS synthesis: {metadata.input_chars} chars -> "
            f"{metadata.output_duration_ms:.0f}ms audio in {metadata.total_synthesis_ms:.0f}ms"
        )
        return pcm

    async def close(self) -> None:
        pass
