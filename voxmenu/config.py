"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables (or a local .env).
See .env.example for the available variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Factory default key map: digit -> clip filename or built-in action name
DEFAULT_KEY_MAPPINGS: dict[str, str] = {
    "1": "cibula.wav",
    "2": "sergei.wav",
    "3": "pam.wav",
    "4": "dollar.wav",
    "5": "smack.wav",
    "6": "SYSTEM_STATUS",
    "7": "INFO_PACKAGE",
    "8": "VOICEMAIL",
    "9": "",
    "0": "eliska.wav",
    "*": "ASSISTANT",
    "#": "",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ==========================================================================
    # API Keys
    # ==========================================================================
    groq_api_key: SecretStr | None = Field(
        default=None, description="Groq API key for transcription and assistant chat"
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    host: str = Field(default="0.0.0.0", description="HTTP/WebSocket bind address")
    port: int = Field(default=8080, description="HTTP/WebSocket bind port")

    # ==========================================================================
    # Storage
    # ==========================================================================
    base_dir: str = Field(default="data", description="Root directory for audio files")
    audio_subdir: str = Field(default="audio", description="Menu clips directory")
    recordings_subdir: str = Field(default="recordings", description="Call recordings")
    voicemail_subdir: str = Field(default="voicemail", description="Voicemail messages")

    # ==========================================================================
    # Telephony / Call Handling
    # ==========================================================================
    recording_enabled: bool = Field(
        default=False,
        description="Record every call (mixed inbound + outbound) to the recordings dir",
    )
    dtmf_payload_type: int = Field(
        default=101,
        description="RTP payload type carrying telephone-event (DTMF) packets",
    )
    dtmf_debounce_ms: float = Field(
        default=200.0,
        description="Window in which a repeated identical digit is treated as a duplicate",
    )
    digit_queue_size: int = Field(
        default=4,
        description="Pending digits kept per call; oldest dropped on overflow",
    )
    watchdog_interval_ms: float = Field(
        default=20.0,
        description="How often the watchdog polls call liveness",
    )
    watchdog_max_errors: int = Field(
        default=5,
        description="Consecutive liveness query failures before a call is considered dead",
    )
    max_concurrent_calls: int = Field(
        default=10,
        description="Calls above this limit are rejected",
    )

    # ==========================================================================
    # Menu
    # ==========================================================================
    key_mappings: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_KEY_MAPPINGS),
        description="Digit -> clip filename or action (INFO_PACKAGE, SYSTEM_STATUS, ...)",
    )
    greeting_clip: str = Field(default="eliska.wav", description="Greeting / menu prompt clip")
    replay_menu_after_action: bool = Field(
        default=True,
        description="Replay the menu prompt after built-in (spoken) actions",
    )
    assistant_max_seconds: float = Field(default=10.0, description="Assistant input limit")
    assistant_min_input_bytes: int = Field(
        default=1600,
        description="Minimum captured audio (μ-law bytes) worth transcribing",
    )
    voicemail_max_seconds: float = Field(default=30.0, description="Voicemail length limit")

    # Spoken phrases
    assistant_prompt: str = Field(
        default="Speak after the tone. Press the pound key when you are done."
    )
    assistant_no_input_phrase: str = Field(default="I did not hear anything.")
    assistant_fallback_phrase: str = Field(
        default="Sorry, the assistant is not available right now."
    )
    voicemail_prompt: str = Field(default="Please leave a message after the tone.")
    voicemail_saved_phrase: str = Field(default="Your message has been saved.")
    system_status_phrase: str = Field(
        default="The system is working correctly. Active calls: {active_calls}."
    )
    info_fallback_phrase: str = Field(default="Information is not available.")

    # ==========================================================================
    # TTS Configuration
    # ==========================================================================
    tts_provider: Literal["gtts", "edge"] = Field(
        default="gtts",
        description="Speech synthesis backend",
    )
    tts_language: str = Field(default="en", description="Language code for gTTS")
    edge_tts_voice: str = Field(default="en-US-AriaNeural", description="Edge TTS voice name")
    tts_target_sample_rate: int = Field(
        default=8000,
        description="Target sample rate for TTS output (8000 for telephony)",
    )
    tts_timeout_seconds: float = Field(default=10.0, description="Max time for one synthesis")

    # ==========================================================================
    # Info Providers
    # ==========================================================================
    weather_city: str = Field(default="Karviná", description="City name spoken in reports")
    weather_latitude: float = Field(default=49.85)
    weather_longitude: float = Field(default=18.54)
    weather_url: str = Field(default="https://api.open-meteo.com/v1/forecast")
    nameday_url: str = Field(default="https://svatky.adresa.info/json")
    info_timeout_seconds: float = Field(default=5.0, description="HTTP timeout for info APIs")

    # ==========================================================================
    # Assistant (Groq)
    # ==========================================================================
    assistant_model: str = Field(default="llama-3.1-8b-instant")
    transcription_model: str = Field(default="whisper-large-v3-turbo")
    assistant_system_prompt: str = Field(
        default=(
            "You are a friendly telephone assistant. Answer in one or two short "
            "sentences suitable for speaking aloud."
        )
    )
    assistant_max_tokens: int = Field(default=150)
    assistant_timeout_seconds: float = Field(default=20.0)

    @field_validator("key_mappings")
    @classmethod
    def _normalize_keys(cls, value: dict[str, str]) -> dict[str, str]:
        return {str(k).strip(): (v or "").strip() for k, v in value.items()}

    # ==========================================================================
    # Derived Properties
    # ==========================================================================
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Use dependency injection in FastAPI:
        settings: Settings = Depends(get_settings)
    """
    return Settings()
