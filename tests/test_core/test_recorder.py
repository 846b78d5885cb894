"""Tests for duplex recording, mixing and WAV serialization."""

from __future__ import annotations

import io
import math
import struct
import wave

import numpy as np

from voxmenu.core.recorder import CaptureKind, DuplexRecorder, mix_mulaw, mulaw_to_wav
from voxmenu.services.telephony.codec import decode_sample, encode_sample, pcm16_to_mulaw, silence


def sine_mulaw(samples: int, amplitude: float = 0.4) -> bytes:
    t = np.arange(samples)
    pcm = (amplitude * 32767 * np.sin(2 * math.pi * 440 * t / 8000)).astype(np.int16)
    return pcm16_to_mulaw(pcm.tobytes())


class TestMixing:
    """Tests for the linear-domain mixer."""

    def test_mixing_with_silence_reproduces_track(self) -> None:
        track = sine_mulaw(800)

        assert mix_mulaw(track, silence(len(track))) == track
        assert mix_mulaw(silence(len(track)), track) == track

    def test_shorter_side_padded_with_silence(self) -> None:
        track = sine_mulaw(400)

        mixed = mix_mulaw(track, b"")
        assert mixed == track
        assert len(mix_mulaw(track, track[:100])) == 400

    def test_both_sides_averaged(self) -> None:
        a = bytes([encode_sample(8000)] * 10)
        b = bytes([encode_sample(-8000)] * 10)

        mixed = mix_mulaw(a, b)

        assert all(abs(decode_sample(x)) <= 16 for x in mixed)

    def test_zero_samples_inside_audio_do_not_change_level(self) -> None:
        """A window carrying audio is averaged as a whole, zero samples included."""
        steady = bytes([encode_sample(4000)]) * 160
        level = decode_sample(steady[0])
        gappy = pcm16_to_mulaw(np.array([0, 4000] * 80, dtype=np.int16).tobytes())

        mixed = mix_mulaw(steady, gappy)

        for sample in mixed[0::2]:
            assert abs(decode_sample(sample) - level // 2) <= 150

    def test_silent_window_passes_other_side_through(self) -> None:
        track = sine_mulaw(320)
        other = silence(160) + sine_mulaw(160, amplitude=0.9)

        mixed = mix_mulaw(track, other)

        assert mixed[:160] == track[:160]
        assert mixed[160:] != track[160:]

    def test_average_of_equal_signals_is_the_signal(self) -> None:
        track = sine_mulaw(160)

        assert mix_mulaw(track, track) == track

    def test_mixing_is_deterministic(self) -> None:
        a, b = sine_mulaw(300), sine_mulaw(300, amplitude=0.9)

        assert mix_mulaw(a, b) == mix_mulaw(a, b)

    def test_empty(self) -> None:
        assert mix_mulaw(b"", b"") == b""


class TestWav:
    """Tests for WAV serialization sizes and format."""

    def test_header_sizes(self) -> None:
        """M μ-law bytes -> data size 2M, RIFF size 36 + 2M, file 44 + 2M."""
        m = 1234
        wav = mulaw_to_wav(silence(m))

        assert len(wav) == 44 + 2 * m
        assert wav[:4] == b"RIFF"
        assert wav[8:12] == b"WAVE"
        assert struct.unpack("<I", wav[4:8])[0] == 36 + 2 * m
        assert wav[36:40] == b"data"
        assert struct.unpack("<I", wav[40:44])[0] == 2 * m

    def test_format_is_8khz_mono_16bit(self) -> None:
        with wave.open(io.BytesIO(mulaw_to_wav(sine_mulaw(80)))) as wf:
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getframerate() == 8000
            assert wf.getnframes() == 80

    def test_empty_recording_is_header_only(self) -> None:
        assert len(mulaw_to_wav(b"")) == 44


class TestDuplexRecorder:
    """Tests for per-call buffers."""

    def test_disabled_recorder_ignores_full_call_audio(self) -> None:
        recorder = DuplexRecorder(enabled=False)
        recorder.append_inbound(b"\x01" * 10)
        recorder.append_outbound(b"\x02" * 10)

        assert recorder.inbound_size == 0
        assert recorder.take_mix() == b""

    def test_enabled_recorder_mixes_both_sides(self) -> None:
        recorder = DuplexRecorder(enabled=True)
        track = sine_mulaw(320)
        recorder.append_inbound(track)
        recorder.append_outbound(silence(160))

        assert recorder.take_mix() == track
        # Consumed
        assert recorder.take_mix() == b""

    def test_captures_work_without_global_recording(self) -> None:
        recorder = DuplexRecorder(enabled=False)
        recorder.start_capture(CaptureKind.VOICEMAIL)
        recorder.append_capture(CaptureKind.VOICEMAIL, b"\x10" * 160)

        assert recorder.take_capture(CaptureKind.VOICEMAIL) == b"\x10" * 160
        assert recorder.take_capture(CaptureKind.VOICEMAIL) == b""
        assert recorder.take_capture(CaptureKind.ASSISTANT) == b""

    def test_start_capture_discards_stale_audio(self) -> None:
        recorder = DuplexRecorder()
        recorder.append_capture(CaptureKind.ASSISTANT, b"\x10" * 10)
        recorder.start_capture(CaptureKind.ASSISTANT)

        assert recorder.take_capture(CaptureKind.ASSISTANT) == b""
