"""Call session controller.

One `CallSession` drives one call from answer to cleanup:

    CONNECTING -> CONNECTED -> MENU_LOOP -> {PLAYING_CLIP | ASSISTANT_RECORDING
    | VOICEMAIL_RECORDING} -> MENU_LOOP ... -> TERMINATING -> CLOSED

Signaling and media callbacks only touch thread-safe state (`CallState`,
`DuplexRecorder`); the session task is the single consumer of digits and the
only place external services are awaited.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from voxmenu.config import Settings, get_settings
from voxmenu.core.call_state import CallState
from voxmenu.core.dtmf import DtmfDebouncer, DtmfInput
from voxmenu.core.menu import ActionKind, Menu, MenuAction
from voxmenu.core.pacing import AudioPacer, PlaybackResult
from voxmenu.core.recorder import CaptureKind, DuplexRecorder, mulaw_to_wav
from voxmenu.core.status import CallStatus, StatusPublisher
from voxmenu.core.watchdog import REASON_SHUTDOWN, CallWatchdog
from voxmenu.logging_config import call_logger, mask_caller
from voxmenu.observability.metrics import (
    CALL_TERMINATIONS,
    EXTERNAL_FAILURES,
    record_call_metrics,
)
from voxmenu.services.info import InfoProviderError, InfoReporter
from voxmenu.services.llm import AssistantChat, LLMServiceError, Transcriber
from voxmenu.services.storage import AudioStorage
from voxmenu.services.telephony.codec import alaw_to_mulaw
from voxmenu.services.telephony.protocol import (
    PAYLOAD_TYPE_PCMA,
    PAYLOAD_TYPE_PCMU,
    IncomingCall,
    MediaSink,
    SignalingSession,
    TelephonyStack,
)
from voxmenu.services.tts import SpeechSynthesizer, TTSServiceError


REASON_HANGUP = "hangup"
REASON_ERROR = "error"
REASON_CANCELLED = "cancelled"
REASON_COMPLETED = "completed"

HANGUP_TIMEOUT_SECONDS = 5.0

ActionHandler = Callable[[MenuAction], Awaitable[None]]


class CallPhase(str, Enum):
    """Session state machine phases."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    MENU_LOOP = "menu_loop"
    PLAYING_CLIP = "playing_clip"
    ASSISTANT_RECORDING = "assistant_recording"
    VOICEMAIL_RECORDING = "voicemail_recording"
    TERMINATING = "terminating"
    CLOSED = "closed"


@dataclass
class CallServices:
    """Collaborators shared by every call."""

    storage: AudioStorage
    synthesizer: SpeechSynthesizer
    transcriber: Transcriber
    assistant: AssistantChat
    info: InfoReporter
    publisher: StatusPublisher


class CallSession:
    """Runs the IVR menu for one admitted call."""

    def __init__(
        self,
        invite: IncomingCall,
        telephony: TelephonyStack,
        services: CallServices,
        shutdown: asyncio.Event,
        *,
        settings: Settings | None = None,
        active_calls: Callable[[], int] = lambda: 1,
        on_finished: Callable[[str], None] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.invite = invite
        self.call_id = invite.call_id
        self._log = call_logger(__name__, self.call_id)
        self.phase = CallPhase.CONNECTING

        self._telephony = telephony
        self._services = services
        self._shutdown = shutdown
        self._active_calls = active_calls
        self._on_finished = on_finished

        self.state = CallState(self.call_id, digit_queue_size=self._settings.digit_queue_size)
        self.recorder = DuplexRecorder(enabled=self._settings.recording_enabled)
        self._menu = Menu(self._settings.key_mappings)
        self._dtmf = DtmfInput(
            self.state,
            services.publisher,
            debouncer=DtmfDebouncer(self._settings.dtmf_debounce_ms),
            payload_type=self._settings.dtmf_payload_type,
        )

        self._signaling: SignalingSession | None = None
        self._sink: MediaSink | None = None
        self._pacer: AudioPacer | None = None
        self._watchdog_task: asyncio.Task[None] | None = None
        self._terminated = False

        # Open dispatch table; register_action() adds new kinds
        self._handlers: dict[ActionKind, ActionHandler] = {
            ActionKind.PLAY_FILE: self._action_play_file,
            ActionKind.INFO: self._action_info,
            ActionKind.SYSTEM_STATUS: self._action_system_status,
            ActionKind.ASSISTANT: self._action_assistant,
            ActionKind.VOICEMAIL: self._action_voicemail,
        }

    def register_action(self, kind: ActionKind, handler: ActionHandler) -> None:
        self._handlers[kind] = handler

    # -------------------------------------------------------------------------
    # Task entry point
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """Handle the call until it ends, then clean up exactly once."""
        self._log.info(f"Starting session for caller {mask_caller(self.invite.from_uri)}")
        try:
            await self._connect()
            await self._greet()
            await self._menu_loop()
        except asyncio.CancelledError:
            self.state.deactivate(REASON_CANCELLED)
            raise
        except Exception:
            self._log.exception(f"fatal error in session")
            self.state.deactivate(REASON_ERROR)
        finally:
            await self._terminate()

    # -------------------------------------------------------------------------
    # Callbacks (may run on a foreign thread)
    # -------------------------------------------------------------------------

    def _on_hangup(self) -> None:
        if self.state.deactivate(REASON_HANGUP):
            self._log.info(f"remote hangup")

    def _on_tone(self, tone: str, duration: int = 0) -> None:
        self._dtmf.on_tone(tone, duration)

    def _on_media_packet(self, payload_type: int, payload: bytes) -> None:
        if payload_type == self._settings.dtmf_payload_type:
            self._dtmf.on_media_packet(payload_type, payload)
            return
        if payload_type == PAYLOAD_TYPE_PCMU:
            mulaw = payload
        elif payload_type == PAYLOAD_TYPE_PCMA:
            mulaw = alaw_to_mulaw(payload)
        else:
            return

        self.recorder.append_inbound(mulaw)
        if self.state.is_recording_assistant_input:
            self.recorder.append_capture(CaptureKind.ASSISTANT, mulaw)
        elif self.state.is_recording_voicemail:
            self.recorder.append_capture(CaptureKind.VOICEMAIL, mulaw)

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    def _ending(self) -> bool:
        return not self.state.is_active or self._shutdown.is_set()

    def _interrupted(self) -> bool:
        return self.state.has_pending_digit or self._ending()

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    async def _connect(self) -> None:
        self._signaling = self._telephony.accept_call(self.invite)
        self._signaling.set_hangup_handler(self._on_hangup)
        self._signaling.set_tone_handler(self._on_tone)

        self._sink = self._telephony.create_media_sink(self._signaling)
        self._sink.set_packet_handler(self._on_media_packet)
        self._pacer = AudioPacer(
            self._sink,
            record=self.recorder.append_outbound if self.recorder.enabled else None,
        )

        await self._telephony.answer(self._signaling, self._sink)

        watchdog = CallWatchdog(
            self.state,
            self._telephony,
            self._signaling,
            self._shutdown,
            interval_ms=self._settings.watchdog_interval_ms,
            max_errors=self._settings.watchdog_max_errors,
        )
        self._watchdog_task = asyncio.create_task(
            watchdog.run(), name=f"watchdog-{self.call_id}"
        )

        self.phase = CallPhase.CONNECTED
        self._services.publisher.publish(self.call_id, CallStatus.CONNECTED)
        self._log.info(f"connected")

    async def _greet(self) -> None:
        if self._ending():
            return
        await self._play_clip(self._settings.greeting_clip)

    async def _menu_loop(self) -> None:
        assert self._pacer is not None
        self.phase = CallPhase.MENU_LOOP
        while not self._ending():
            digit = self.state.take_digit()
            if digit is None:
                await self._pacer.send_silence(self._interrupted)
                continue
            await self._dispatch(digit)

    async def _dispatch(self, digit: str) -> None:
        action = self._menu.resolve(digit)
        handler = self._handlers.get(action.kind)
        if handler is None:
            return

        self._log.info(f"key {digit} -> {action.kind.value} {action.argument}".rstrip())
        await handler(action)
        self.phase = CallPhase.MENU_LOOP

        if (
            action.is_spoken
            and self._settings.replay_menu_after_action
            and not self._interrupted()
        ):
            await self._play_clip(self._settings.greeting_clip)

    # -------------------------------------------------------------------------
    # Playback helpers
    # -------------------------------------------------------------------------

    async def _play_clip(self, name: str) -> PlaybackResult:
        assert self._pacer is not None
        pcm = await self._services.storage.read_clip_async(name)
        if pcm is None:
            return PlaybackResult()
        return await self._pacer.play_pcm(pcm, self._interrupted, label=name)

    async def _speak(self, text: str, *, label: str = "speech") -> PlaybackResult:
        """Synthesize and stream text. A TTS failure leaves the call silent, never ends it."""
        assert self._pacer is not None
        try:
            pcm = await asyncio.wait_for(
                self._services.synthesizer.synthesize(text),
                timeout=self._settings.tts_timeout_seconds,
            )
        except (TTSServiceError, TimeoutError) as e:
            EXTERNAL_FAILURES.labels(service="tts").inc()
            self._log.warning(f"speech synthesis failed for {label}: {e!r}")
            return PlaybackResult()

        if self._ending():
            return PlaybackResult(interrupted=True)
        return await self._pacer.play_pcm(pcm, self._interrupted, label=label)

    async def _capture(self, kind: CaptureKind, max_seconds: float) -> bytes:
        """Record caller audio until "#", timeout, or the call ends."""
        assert self._pacer is not None
        self.recorder.start_capture(kind)
        self.state.open_recording_mode(
            assistant=kind is CaptureKind.ASSISTANT,
            voicemail=kind is CaptureKind.VOICEMAIL,
        )

        def stop() -> bool:
            return not self.state.is_recording or self._ending()

        deadline = time.monotonic() + max_seconds
        while not stop() and time.monotonic() < deadline:
            await self._pacer.send_silence(stop)

        timed_out = self.state.close_recording_modes() and not self._ending()
        # Keys pressed while recording are not menu input
        self.state.clear_digits()

        audio = self.recorder.take_capture(kind)
        self._log.info(
            f"{kind.value} capture finished "
            f"({len(audio)} bytes{', timeout' if timed_out else ''})"
        )
        return audio

    # -------------------------------------------------------------------------
    # Menu actions
    # -------------------------------------------------------------------------

    async def _action_play_file(self, action: MenuAction) -> None:
        self.phase = CallPhase.PLAYING_CLIP
        await self._play_clip(action.argument)

    async def _action_system_status(self, action: MenuAction) -> None:
        text = self._settings.system_status_phrase.format(active_calls=self._active_calls())
        await self._speak(text, label="system status")

    async def _action_info(self, action: MenuAction) -> None:
        try:
            text = await asyncio.wait_for(
                self._services.info.build(),
                timeout=self._settings.info_timeout_seconds * 2,
            )
        except (InfoProviderError, TimeoutError) as e:
            EXTERNAL_FAILURES.labels(service="info").inc()
            self._log.warning(f"info package unavailable: {e!r}")
            text = self._settings.info_fallback_phrase
        await self._speak(text, label="info")

    async def _action_assistant(self, action: MenuAction) -> None:
        prompt = await self._speak(self._settings.assistant_prompt, label="assistant prompt")
        if prompt.interrupted or self._ending():
            return

        self.phase = CallPhase.ASSISTANT_RECORDING
        audio = await self._capture(CaptureKind.ASSISTANT, self._settings.assistant_max_seconds)
        self.phase = CallPhase.MENU_LOOP
        if self._ending():
            return

        if len(audio) < self._settings.assistant_min_input_bytes:
            self._log.info(f"assistant input too short ({len(audio)} bytes)")
            await self._speak(self._settings.assistant_no_input_phrase, label="no input")
            return

        timeout = self._settings.assistant_timeout_seconds
        try:
            question = await asyncio.wait_for(
                self._services.transcriber.transcribe(mulaw_to_wav(audio)), timeout=timeout
            )
            self._log.info(f"assistant heard {question!r}")
            answer = await asyncio.wait_for(
                self._services.assistant.reply(question), timeout=timeout
            )
        except (LLMServiceError, TimeoutError) as e:
            EXTERNAL_FAILURES.labels(service="assistant").inc()
            self._log.warning(f"assistant failed: {e!r}")
            answer = self._settings.assistant_fallback_phrase

        await self._speak(answer, label="assistant reply")

    async def _action_voicemail(self, action: MenuAction) -> None:
        prompt = await self._speak(self._settings.voicemail_prompt, label="voicemail prompt")
        if prompt.interrupted or self._ending():
            return

        self.phase = CallPhase.VOICEMAIL_RECORDING
        audio = await self._capture(CaptureKind.VOICEMAIL, self._settings.voicemail_max_seconds)
        self.phase = CallPhase.MENU_LOOP
        if not audio:
            return

        # Saved even if the caller hung up mid-message
        try:
            await self._services.storage.save_voicemail(mulaw_to_wav(audio))
        except OSError as e:
            self._log.error(f"could not save voicemail: {e}")
            return

        if not self._ending():
            await self._speak(self._settings.voicemail_saved_phrase, label="voicemail saved")

    # -------------------------------------------------------------------------
    # Termination
    # -------------------------------------------------------------------------

    async def _terminate(self) -> None:
        """Finalize the call exactly once.

        Hangup, unregister, recording flush and the ENDED status each run even
        if an earlier step fails, or if the task is cancelled while waiting on
        the telephony stack.
        """
        if self._terminated:
            return
        self._terminated = True
        self.phase = CallPhase.TERMINATING

        if self.state.is_active:
            self.state.deactivate(REASON_SHUTDOWN if self._shutdown.is_set() else REASON_COMPLETED)
        reason = self.state.end_reason or REASON_COMPLETED

        try:
            await self._stop_watchdog()
        finally:
            try:
                await self._hangup()
            finally:
                self._unregister()
                try:
                    await self._save_recording()
                finally:
                    self._publish_end(reason)

    async def _stop_watchdog(self) -> None:
        if self._watchdog_task is None:
            return
        self._watchdog_task.cancel()
        await asyncio.wait({self._watchdog_task})

    async def _hangup(self) -> None:
        if self._signaling is None:
            return
        try:
            await asyncio.wait_for(
                self._telephony.hangup(self._signaling), timeout=HANGUP_TIMEOUT_SECONDS
            )
        except Exception as e:
            self._log.warning(f"hangup failed: {e!r}")

    def _unregister(self) -> None:
        if self._on_finished is None:
            return
        try:
            self._on_finished(self.call_id)
        except Exception as e:
            self._log.error(f"unregister failed: {e}")

    async def _save_recording(self) -> None:
        if not self.recorder.enabled:
            return
        try:
            mixed = self.recorder.take_mix()
            if mixed:
                await self._services.storage.save_recording(self.call_id, mulaw_to_wav(mixed))
        except Exception as e:
            self._log.error(f"could not save recording: {e}")

    def _publish_end(self, reason: str) -> None:
        self._services.publisher.publish(self.call_id, CallStatus.ENDED)

        CALL_TERMINATIONS.labels(reason=reason).inc()
        outcome = {REASON_ERROR: "error", REASON_SHUTDOWN: "shutdown"}.get(reason, "completed")
        record_call_metrics(outcome, self.state.duration_seconds)

        self.phase = CallPhase.CLOSED
        self._log.info(f"ended ({reason}) after {self.state.duration_seconds:.1f}s")
