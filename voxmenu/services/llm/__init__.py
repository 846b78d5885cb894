"""Assistant services (Groq transcription and chat)."""

from voxmenu.services.llm.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMServiceError,
    TranscriptionError,
)
from voxmenu.services.llm.groq import GroqService
from voxmenu.services.llm.protocol import AssistantChat, Message, Role, Transcriber

__all__ = [
    # Protocol and types
    "AssistantChat",
    "Transcriber",
    "Message",
    "Role",
    # Implementation
    "GroqService",
    # Exceptions
    "LLMServiceError",
    "LLMRateLimitError",
    "LLMConnectionError",
    "LLMAuthenticationError",
    "TranscriptionError",
]
