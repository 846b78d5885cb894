"""Speech synthesis protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass
class SynthesisMetadata:
    """Details of the last synthesis, for logs and metrics."""

    provider: str = ""
    voice: str = ""
    input_chars: int = 0
    source_sample_rate: int = 0
    output_duration_ms: float = 0.0
    total_synthesis_ms: float | None = None


class SpeechSynthesizer(Protocol):
    """Text in, telephony-ready audio out."""

    async def synthesize(self, text: str) -> bytes:
        """Synthesize text.

        Returns:
            8 kHz mono 16-bit little-endian PCM.

        Raises:
            TTSServiceError: On any synthesis failure.
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""
        ...
