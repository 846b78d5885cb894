"""Tests for clip, recording and voicemail storage."""

import os
from datetime import datetime

import pytest

from voxmenu.services.storage import AudioStorage, recording_filename, voicemail_filename


class TestFilenames:
    def test_recording_filename(self) -> None:
        name = recording_filename("abc-1", datetime(2024, 5, 1, 9, 5, 7))
        assert name.startswith("call_abc-1_")
        assert name.endswith(".wav")

    def test_recording_filename_sanitizes_id(self) -> None:
        name = recording_filename("a/b@c", datetime(2024, 5, 1))
        assert "/" not in name
        assert "@" not in name

    def test_voicemail_filename(self) -> None:
        assert voicemail_filename(datetime(2024, 5, 1)).startswith("msg_")


class TestAudioStorage:
    """Tests for AudioStorage."""

    def test_creates_directories(self, settings) -> None:
        storage = AudioStorage(settings)

        assert storage.audio_dir.is_dir()
        assert storage.recordings_dir.is_dir()
        assert storage.voicemail_dir.is_dir()

    def test_missing_clip(self, settings) -> None:
        assert AudioStorage(settings).read_clip("nope.wav") is None

    def test_clip_path_stays_in_audio_dir(self, settings) -> None:
        storage = AudioStorage(settings)
        assert storage.clip_path("../../etc/passwd").parent == storage.audio_dir

    @pytest.mark.asyncio
    async def test_read_clip_async(self, settings) -> None:
        storage = AudioStorage(settings)
        storage.clip_path("a.wav").write_bytes(b"RIFFdata")

        assert await storage.read_clip_async("a.wav") == b"RIFFdata"

    @pytest.mark.asyncio
    async def test_save_and_list(self, settings) -> None:
        storage = AudioStorage(settings)
        recording = await storage.save_recording("c1", b"RIFF-rec")
        voicemail = await storage.save_voicemail(b"RIFF-msg")
        os.utime(recording, (1_000_000, 1_000_000))

        files = storage.list_files()

        assert [f.name for f in files] == [voicemail.name, recording.name]
        assert files[0].kind == "voicemail"
        assert files[1].kind == "recording"
        assert files[1].size_bytes == len(b"RIFF-rec")
        assert files[0].to_dict()["name"] == voicemail.name
