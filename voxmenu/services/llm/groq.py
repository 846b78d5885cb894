"""Groq assistant service: Whisper transcription and chat completion."""

from __future__ import annotations

import time
from typing import Any

import groq
from groq import AsyncGroq

from voxmenu.config import Settings, get_settings
from voxmenu.logging_config import get_logger
from voxmenu.observability.metrics import record_external_call
from voxmenu.services.llm.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMServiceError,
    TranscriptionError,
)
from voxmenu.services.llm.protocol import Message, Role

logger: Any = get_logger(__name__)


class GroqService:
    """Transcribes caller audio and answers it with a Groq-hosted model.

    One instance is shared by all calls; each request is independent
    (no conversation history is kept between calls).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: AsyncGroq | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self._chat_model = self._settings.assistant_model
        self._transcription_model = self._settings.transcription_model

    @property
    def client(self) -> AsyncGroq:
        """Lazy initialization of AsyncGroq client."""
        if self._client is None:
            if self._settings.groq_api_key is None:
                raise LLMAuthenticationError("GROQ_API_KEY is not configured")
            self._client = AsyncGroq(
                api_key=self._settings.groq_api_key.get_secret_value(),
                timeout=self._settings.assistant_timeout_seconds,
                max_retries=1,
            )
        return self._client

    async def transcribe(self, wav_bytes: bytes) -> str:
        """Transcribe caller audio (WAV) to text."""
        start = time.perf_counter()
        try:
            response = await self.client.audio.transcriptions.create(
                file=("input.wav", wav_bytes),
                model=self._transcription_model,
            )
        except groq.GroqError as e:
            record_external_call("transcription", (time.perf_counter() - start) * 1000, ok=False)
            raise self._translate_error(e, "transcription") from e

        record_external_call("transcription", (time.perf_counter() - start) * 1000)
        text = (getattr(response, "text", "") or "").strip()
        if not text:
            raise TranscriptionError("Empty transcript")
        logger.debug(f"Transcribed {len(wav_bytes)} bytes -> {len(text)} chars")
        return text

    async def reply(self, user_text: str) -> str:
        """Single-turn chat completion for one caller utterance."""
        messages = [
            Message(Role.SYSTEM, self._settings.assistant_system_prompt),
            Message(Role.USER, user_text),
        ]
        start = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                messages=[m.to_api() for m in messages],  # type: ignore[misc]
                model=self._chat_model,
                max_tokens=self._settings.assistant_max_tokens,
                temperature=0.7,
            )
        except groq.GroqError as e:
            record_external_call("assistant", (time.perf_counter() - start) * 1000, ok=False)
            raise self._translate_error(e, "chat") from e

        record_external_call("assistant", (time.perf_counter() - start) * 1000)
        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise LLMServiceError("Empty response from Groq")
        return content.strip()

    def _translate_error(self, error: groq.GroqError, operation: str) -> LLMServiceError:
        """Map Groq SDK errors onto the service exception hierarchy."""
        if isinstance(error, groq.RateLimitError):
            logger.warning(f"Groq rate limit hit during {operation}: {error}")
            return LLMRateLimitError("Rate limit exceeded", retry_after=self._extract_retry_after(error))
        if isinstance(error, groq.APIConnectionError):
            logger.error(f"Groq connection error during {operation}: {error.__cause__}")
            return LLMConnectionError("Failed to connect to Groq API")
        if isinstance(error, groq.AuthenticationError):
            logger.error(f"Groq authentication failed during {operation}")
            return LLMAuthenticationError("Invalid Groq API key")
        if isinstance(error, groq.APIStatusError):
            logger.error(f"Groq API error during {operation}: {error.status_code} - {error.message}")
            return LLMServiceError(f"Groq API error: {error.status_code}")
        logger.error(f"Groq {operation} failed: {error}")
        return LLMServiceError(f"Groq {operation} failed: {error}")

    def _extract_retry_after(self, error: groq.RateLimitError) -> float:
        """Extract retry-after from rate limit error."""
        response = getattr(error, "response", None)
        if response is not None:
            retry_after = response.headers.get("retry-after")
            if retry_after:
                try:
                    return float(retry_after)
                except ValueError:
                    pass
        return 60.0

    async def close(self) -> None:
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None
