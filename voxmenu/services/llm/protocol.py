"""Assistant service protocols and data types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class Role(str, Enum):
    """Message role in conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True, slots=True)
class Message:
    """A single chat message."""

    role: Role
    content: str

    def to_api(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class Transcriber(Protocol):
    """Speech-to-text for captured caller audio."""

    async def transcribe(self, wav_bytes: bytes) -> str:
        """Transcribe a WAV file.

        Raises:
            LLMServiceError: On failure or empty transcript.
        """
        ...


class AssistantChat(Protocol):
    """Single-turn chat completion."""

    async def reply(self, user_text: str) -> str:
        """Answer one caller utterance.

        Raises:
            LLMServiceError: On any API failure.
        """
        ...
