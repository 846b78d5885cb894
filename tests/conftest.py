"""Shared pytest fixtures for Voxmenu tests."""

from __future__ import annotations

import asyncio
import struct
import time
import wave
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from voxmenu.config import Settings
from voxmenu.core.session import CallServices
from voxmenu.core.status import CallStatusEvent, StatusPublisher
from voxmenu.services.storage import AudioStorage
from voxmenu.services.telephony.protocol import IncomingCall

SAMPLES_PER_WINDOW = 160


def build_settings(**overrides) -> Settings:
    """Create a Settings object with safe test defaults."""
    base = {
        "groq_api_key": "test-groq-key",
        "log_level": "DEBUG",
        "environment": "development",
        "recording_enabled": False,
        "tts_timeout_seconds": 2.0,
        "info_timeout_seconds": 1.0,
        "assistant_timeout_seconds": 2.0,
    }
    base.update(overrides)
    return Settings(**base)


@pytest.fixture
def settings_factory(tmp_path: Path) -> Callable[..., Settings]:
    """Return a factory to build Settings with overrides, storing files under tmp_path."""

    def factory(**overrides) -> Settings:
        overrides.setdefault("base_dir", str(tmp_path / "data"))
        return build_settings(**overrides)

    return factory


@pytest.fixture
def settings(settings_factory: Callable[..., Settings]) -> Settings:
    """Default Settings fixture."""
    return settings_factory()


# =============================================================================
# Audio Helpers
# =============================================================================


def make_pcm(windows: int, amplitude: int = 4000) -> bytes:
    """Constant-amplitude 16-bit PCM covering `windows` 20 ms windows."""
    return struct.pack("<h", amplitude) * (SAMPLES_PER_WINDOW * windows)


def write_wav(path: Path, pcm: bytes, sample_rate: int = 8000) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return path


async def wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> None:
    """Poll `predicate` until true or fail the test."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


# =============================================================================
# Telephony Fakes
# =============================================================================


class FakeSignaling:
    """Signaling session whose callbacks tests fire by hand."""

    def __init__(self) -> None:
        self.hangup_handler = None
        self.tone_handler = None

    def set_hangup_handler(self, handler) -> None:
        self.hangup_handler = handler

    def set_tone_handler(self, handler) -> None:
        self.tone_handler = handler

    def remote_hangup(self) -> None:
        if self.hangup_handler is not None:
            self.hangup_handler()

    def press(self, tone: str, duration: int = 100) -> None:
        if self.tone_handler is not None:
            self.tone_handler(tone, duration)


class FakeSink:
    """Media sink that keeps every sent window."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, bytes]] = []
        self.send_times: list[float] = []
        self.packet_handler = None

    async def send_audio(self, sample_count: int, payload: bytes) -> None:
        self.sent.append((sample_count, payload))
        self.send_times.append(time.perf_counter())

    def set_packet_handler(self, handler) -> None:
        self.packet_handler = handler

    def deliver(self, payload_type: int, payload: bytes) -> None:
        if self.packet_handler is not None:
            self.packet_handler(payload_type, payload)


class FakeTelephony:
    """Telephony stack without a liveness query."""

    def __init__(self) -> None:
        self.signaling = FakeSignaling()
        self.sink = FakeSink()
        self.accepted: list[IncomingCall] = []
        self.answered = 0
        self.hangups = 0

    def accept_call(self, invite: IncomingCall) -> FakeSignaling:
        self.accepted.append(invite)
        return self.signaling

    def create_media_sink(self, session: FakeSignaling) -> FakeSink:
        return self.sink

    async def answer(self, session: FakeSignaling, sink: FakeSink) -> None:
        self.answered += 1

    async def hangup(self, session: FakeSignaling) -> None:
        self.hangups += 1


class LivenessTelephony(FakeTelephony):
    """Telephony stack that answers liveness queries."""

    def __init__(self) -> None:
        super().__init__()
        self.alive = True
        self.liveness_error: Exception | None = None
        self.queries = 0

    def is_call_active(self, session: FakeSignaling) -> bool:
        self.queries += 1
        if self.liveness_error is not None:
            raise self.liveness_error
        return self.alive


# =============================================================================
# Service Fakes
# =============================================================================


class FakeSynthesizer:
    """Returns a fixed number of windows of PCM per request."""

    def __init__(self, windows: int = 3, error: Exception | None = None) -> None:
        self.windows = windows
        self.error = error
        self.texts: list[str] = []

    async def synthesize(self, text: str) -> bytes:
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        return make_pcm(self.windows)

    async def close(self) -> None:
        pass


class FakeAssistant:
    """Transcriber and chat in one."""

    def __init__(
        self,
        transcript: str = "what time is it",
        answer: str = "It is noon.",
        error: Exception | None = None,
    ) -> None:
        self.transcript = transcript
        self.answer = answer
        self.error = error
        self.audio: list[bytes] = []
        self.questions: list[str] = []

    async def transcribe(self, wav_bytes: bytes) -> str:
        self.audio.append(wav_bytes)
        if self.error is not None:
            raise self.error
        return self.transcript

    async def reply(self, user_text: str) -> str:
        self.questions.append(user_text)
        return self.answer

    async def close(self) -> None:
        pass


class FakeInfo:
    def __init__(self, text: str = "The time is 12:00.", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls = 0

    async def build(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text

    async def close(self) -> None:
        pass


class CollectingSink:
    """Status sink that keeps every event."""

    def __init__(self) -> None:
        self.events: list[CallStatusEvent] = []

    def publish(self, event: CallStatusEvent) -> None:
        self.events.append(event)

    def statuses(self, call_id: str | None = None) -> list[str]:
        return [e.status.value for e in self.events if call_id is None or e.call_id == call_id]


@pytest.fixture
def status_sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def services_factory(
    status_sink: CollectingSink,
) -> Callable[..., CallServices]:
    """Build CallServices with fakes; keyword overrides replace individual fakes."""

    def factory(settings: Settings, **overrides) -> CallServices:
        assistant = overrides.pop("assistant", FakeAssistant())
        parts = {
            "storage": AudioStorage(settings),
            "synthesizer": FakeSynthesizer(),
            "transcriber": assistant,
            "assistant": assistant,
            "info": FakeInfo(),
            "publisher": StatusPublisher([status_sink]),
        }
        parts.update(overrides)
        return CallServices(**parts)

    return factory


@pytest.fixture
def greeting_settings(settings_factory: Callable[..., Settings]) -> Settings:
    """Settings whose greeting clip (5 windows) exists on disk."""
    settings = settings_factory()
    audio_dir = Path(settings.base_dir) / settings.audio_subdir
    write_wav(audio_dir / settings.greeting_clip, make_pcm(5))
    return settings


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest.fixture
def test_client(
    greeting_settings: Settings,
    services_factory: Callable[..., CallServices],
) -> Generator:
    """FastAPI TestClient with fake services and storage under tmp_path."""
    from fastapi.testclient import TestClient

    from voxmenu.main import create_app

    app = create_app(greeting_settings, services_factory(greeting_settings))

    with TestClient(app) as client:
        yield client
