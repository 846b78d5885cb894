"""Audio file storage.

Menu clips are read from the audio directory; call recordings and voicemail
messages are written to their own directories. Directories are created on
first use.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from voxmenu.config import Settings, get_settings
from voxmenu.logging_config import get_logger

logger: Any = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


@dataclass(frozen=True, slots=True)
class StoredFile:
    """A file in one of the output directories."""

    name: str
    kind: str  # "recording" or "voicemail"
    size_bytes: int
    modified_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "size_bytes": self.size_bytes,
            "modified_at": self.modified_at.isoformat(),
        }


def recording_filename(call_id: str, at: datetime | None = None) -> str:
    stamp = (at or datetime.now()).strftime(TIMESTAMP_FORMAT)
    safe_id = "".join(c if c.isalnum() or c in "-_" else "_" for c in call_id)
    return f"call_{safe_id}_{stamp}.wav"


def voicemail_filename(at: datetime | None = None) -> str:
    return f"msg_{(at or datetime.now()).strftime(TIMESTAMP_FORMAT)}.wav"


class AudioStorage:
    """Filesystem access for clips, recordings and voicemail."""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        base = Path(settings.base_dir)
        self.audio_dir = base / settings.audio_subdir
        self.recordings_dir = base / settings.recordings_subdir
        self.voicemail_dir = base / settings.voicemail_subdir
        for directory in (self.audio_dir, self.recordings_dir, self.voicemail_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def clip_path(self, name: str) -> Path:
        # Clip names come from configuration; never leave the audio dir
        return self.audio_dir / Path(name).name

    def read_clip(self, name: str) -> bytes | None:
        """Read a menu clip.

        Returns:
            File contents, or None if the clip does not exist.
        """
        path = self.clip_path(name)
        if not path.is_file():
            logger.warning(f"Clip not found: {path}")
            return None
        return path.read_bytes()

    async def read_clip_async(self, name: str) -> bytes | None:
        return await asyncio.to_thread(self.read_clip, name)

    async def write_file(self, path: Path, data: bytes) -> Path:
        """Write bytes to `path` off the event loop."""
        await asyncio.to_thread(self._write, path, data)
        logger.info(f"Saved {path} ({len(data)} bytes)")
        return path

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def save_recording(self, call_id: str, wav: bytes) -> Path:
        return await self.write_file(self.recordings_dir / recording_filename(call_id), wav)

    async def save_voicemail(self, wav: bytes) -> Path:
        return await self.write_file(self.voicemail_dir / voicemail_filename(), wav)

    def list_files(self) -> list[StoredFile]:
        """Recordings and voicemail messages, newest first."""
        files: list[StoredFile] = []
        for kind, directory in (("recording", self.recordings_dir), ("voicemail", self.voicemail_dir)):
            for path in directory.glob("*.wav"):
                stat = path.stat()
                files.append(
                    StoredFile(
                        name=path.name,
                        kind=kind,
                        size_bytes=stat.st_size,
                        modified_at=datetime.fromtimestamp(stat.st_mtime, UTC),
                    )
                )
        files.sort(key=lambda f: f.modified_at, reverse=True)
        return files
