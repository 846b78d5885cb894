"""Text-to-Speech services (gTTS, Edge TTS).

- GoogleTTSService: Google Translate TTS via gTTS (default)
- EdgeTTSService: Microsoft Edge TTS (unofficial API)
"""

from voxmenu.config import Settings, get_settings
from voxmenu.services.tts.edge import EdgeTTSService
from voxmenu.services.tts.exceptions import (
    TTSConnectionError,
    TTSDecodeError,
    TTSResamplingError,
    TTSServiceError,
    TTSSynthesisError,
)
from voxmenu.services.tts.google import GoogleTTSService
from voxmenu.services.tts.protocol import SpeechSynthesizer, SynthesisMetadata
from voxmenu.services.tts.resampler import AudioResampler


def create_synthesizer(settings: Settings | None = None) -> SpeechSynthesizer:
    """Build the synthesizer selected by `tts_provider`."""
    settings = settings or get_settings()
    if settings.tts_provider == "edge":
        return EdgeTTSService(settings)
    return GoogleTTSService(settings)


__all__ = [
    # Services
    "GoogleTTSService",
    "EdgeTTSService",
    "create_synthesizer",
    # Protocol
    "SpeechSynthesizer",
    "SynthesisMetadata",
    # Utilities
    "AudioResampler",
    # Exceptions
    "TTSServiceError",
    "TTSSynthesisError",
    "TTSConnectionError",
    "TTSDecodeError",
    "TTSResamplingError",
]
