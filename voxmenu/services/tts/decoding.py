"""MP3 decoding for TTS backends that return compressed audio."""

from __future__ import annotations

import asyncio
import io
from typing import Any

import numpy as np
from pydub import AudioSegment

from voxmenu.logging_config import get_logger
from voxmenu.services.tts.exceptions import TTSDecodeError
from voxmenu.services.tts.resampler import AudioResampler

logger: Any = get_logger(__name__)


def decode_mp3_to_pcm(mp3_data: bytes) -> tuple[bytes, int]:
    """Decode MP3 to mono 16-bit PCM (pydub needs ffmpeg on PATH).

    Returns:
        Tuple of (raw PCM bytes, sample rate)
    """
    if not mp3_data:
        raise TTSDecodeError("No MP3 data to decode")
    try:
        audio = AudioSegment.from_mp3(io.BytesIO(mp3_data))
    except Exception as e:
        raise TTSDecodeError(f"MP3 decode failed (is ffmpeg installed?): {e}") from e

    audio = audio.set_channels(1).set_sample_width(2)
    samples = np.array(audio.get_array_of_samples(), dtype=np.int16)
    return samples.tobytes(), audio.frame_rate


async def mp3_to_pcm(mp3_data: bytes, target_rate: int) -> tuple[bytes, int]:
    """Decode MP3 and resample to `target_rate`.

    Returns:
        Tuple of (PCM at target_rate, source sample rate)
    """
    raw, source_rate = await asyncio.to_thread(decode_mp3_to_pcm, mp3_data)
    resampler = AudioResampler(source_rate, target_rate)
    if resampler.needs_resampling:
        logger.debug(f"Resampling TTS audio {source_rate}Hz -> {target_rate}Hz")
        raw = await resampler.resample(raw)
    return raw, source_rate
