"""Custom exceptions for TTS services."""


class TTSServiceError(Exception):
    """Base exception for TTS service errors."""

    pass


class TTSSynthesisError(TTSServiceError):
    """Raised when synthesis fails or returns no audio."""

    pass


class TTSConnectionError(TTSServiceError):
    """Raised when the remote TTS endpoint cannot be reached."""

    pass


class TTSDecodeError(TTSServiceError):
    """Raised when synthesized MP3 audio cannot be decoded."""

    pass


class TTSResamplingError(TTSServiceError):
    """Raised when audio resampling fails."""

    pass
