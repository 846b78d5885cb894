"""PCM resampling with soxr."""

from __future__ import annotations

import asyncio
from typing import Any

import numpy as np
import soxr

from voxmenu.logging_config import get_logger
from voxmenu.services.tts.exceptions import TTSResamplingError

logger: Any = get_logger(__name__)


class AudioResampler:
    """Converts TTS output (22.05/24 kHz) to the 8 kHz telephony rate."""

    def __init__(self, source_rate: int, target_rate: int, quality: str = "HQ") -> None:
        self.source_rate = source_rate
        self.target_rate = target_rate
        self._quality = quality

    @property
    def needs_resampling(self) -> bool:
        return self.source_rate != self.target_rate

    def resample_sync(self, audio_data: bytes) -> bytes:
        """Resample 16-bit mono PCM."""
        if not self.needs_resampling or not audio_data:
            return audio_data
        samples = np.frombuffer(audio_data, dtype=np.int16).astype(np.float64) / 32768.0
        resampled = soxr.resample(samples, self.source_rate, self.target_rate, quality=self._quality)
        return (resampled * 32767).clip(-32768, 32767).astype(np.int16).tobytes()

    async def resample(self, audio_data: bytes) -> bytes:
        if not self.needs_resampling or not audio_data:
            return audio_data
        try:
            # CPU-bound, keep it off the event loop
            return await asyncio.to_thread(self.resample_sync, audio_data)
        except Exception as e:
            logger.error(f"Resampling {self.source_rate}Hz -> {self.target_rate}Hz failed: {e}")
            raise TTSResamplingError(f"Failed to resample audio: {e}") from e
