"""G.711 μ-law codec helpers.

Every component that touches telephony audio goes through these functions:
the pacer encodes outgoing PCM, the recorder decodes both directions for
mixing and WAV serialization.
"""

from __future__ import annotations

import audioop

# Audio format constants
MULAW_SAMPLE_WIDTH = 1  # μ-law is 8-bit
PCM16_SAMPLE_WIDTH = 2  # 16-bit PCM
TELEPHONY_SAMPLE_RATE = 8000

# μ-law byte for zero amplitude
SILENCE_BYTE = 0xFF

INT16_MIN = -32768
INT16_MAX = 32767


def encode_sample(sample: int) -> int:
    """Encode one signed 16-bit sample to a μ-law byte."""
    sample = max(INT16_MIN, min(INT16_MAX, sample))
    return audioop.lin2ulaw(sample.to_bytes(2, "little", signed=True), PCM16_SAMPLE_WIDTH)[0]


def decode_sample(value: int) -> int:
    """Decode one μ-law byte to a signed 16-bit sample."""
    return int.from_bytes(
        audioop.ulaw2lin(bytes((value & 0xFF,)), PCM16_SAMPLE_WIDTH),
        "little",
        signed=True,
    )


def mulaw_to_pcm16(mulaw_bytes: bytes) -> bytes:
    """Convert μ-law encoded audio to 16-bit signed PCM.

    Args:
        mulaw_bytes: μ-law encoded audio bytes

    Returns:
        16-bit signed PCM bytes (little-endian)
    """
    return audioop.ulaw2lin(mulaw_bytes, PCM16_SAMPLE_WIDTH)


def pcm16_to_mulaw(pcm_bytes: bytes) -> bytes:
    """Convert 16-bit signed PCM to μ-law encoding.

    Args:
        pcm_bytes: 16-bit signed PCM bytes (little-endian)

    Returns:
        μ-law encoded audio bytes
    """
    return audioop.lin2ulaw(pcm_bytes, PCM16_SAMPLE_WIDTH)


def alaw_to_mulaw(alaw_bytes: bytes) -> bytes:
    """Transcode A-law (PCMA) audio to μ-law so both voice payload types mix alike."""
    return audioop.lin2ulaw(audioop.alaw2lin(alaw_bytes, PCM16_SAMPLE_WIDTH), PCM16_SAMPLE_WIDTH)


def silence(sample_count: int) -> bytes:
    """μ-law silence of the given length."""
    return bytes((SILENCE_BYTE,)) * sample_count
