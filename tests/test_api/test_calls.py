"""Tests for the management API (calls, menu, recordings)."""

from __future__ import annotations


class TestMenuEndpoint:
    def test_default_menu(self, test_client) -> None:
        data = test_client.get("/api/menu").json()

        assert data["greeting_clip"] == "eliska.wav"
        assert data["keys"]["7"] == {"kind": "info", "argument": ""}
        assert data["keys"]["1"] == {"kind": "play_file", "argument": "cibula.wav"}
        assert data["keys"]["#"]["kind"] == "none"


class TestCallsEndpoint:
    def test_no_calls(self, test_client) -> None:
        response = test_client.get("/api/calls")

        assert response.status_code == 200
        assert response.json() == {"active_calls": 0, "calls": []}


class TestRecordingsEndpoint:
    def test_lists_voicemail(self, test_client) -> None:
        storage = test_client.app.state.storage
        (storage.voicemail_dir / "msg_20240501_090500.wav").write_bytes(b"RIFF")

        data = test_client.get("/api/recordings").json()

        assert data["total"] == 1
        assert data["files"][0]["kind"] == "voicemail"
        assert data["files"][0]["name"] == "msg_20240501_090500.wav"
