from __future__ import annotations

import logging
import subprocess
import tempfile
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

TEMP_MEDIA_PREFIX = "instagram"

# Re-encode settings accepted by the video analysis backend.
TRANSCODE_ARGS = [
    "-c:v",
    "libx264",
    "-pix_fmt",
    "yuv420p",
    "-preset",
    "fast",
    "-crf",
    "23",
    "-movflags",
    "+faststart",
]


class RecordingStateError(RuntimeError):
    pass


class TranscodeError(RuntimeError):
    pass


def temp_media_path(ext: str, *, temp_dir: Optional[Path] = None) -> Path:
    """Unique `instagram-<epoch-ms>-<8 hex>.<ext>` path in the temp dir."""
    base = temp_dir if temp_dir is not None else Path(tempfile.gettempdir())
    stamp = int(time.time() * 1000)
    return base / f"{TEMP_MEDIA_PREFIX}-{stamp}-{uuid.uuid4().hex[:8]}.{ext.lstrip('.')}"


REENCODED_SUFFIX = "-reencoded"


def transcode_recording(src: Path) -> Path:
    dst = src.with_name(f"{src.stem}{REENCODED_SUFFIX}.mp4")
    cmd = ["ffmpeg", "-y", "-i", str(src), *TRANSCODE_ARGS, str(dst)]
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except FileNotFoundError as e:
        raise TranscodeError("ffmpeg executable not found on PATH") from e
    if proc.returncode != 0:
        raise TranscodeError(f"ffmpeg transcode failed for {src}: {proc.stderr}")
    return dst


def raw_recording_path(transcoded: Path) -> Path:
    """Path of the untranscoded capture that `transcoded` was made from."""
    stem = transcoded.stem
    if stem.endswith(REENCODED_SUFFIX):
        stem = stem[: -len(REENCODED_SUFFIX)]
    return transcoded.with_name(f"{stem}.mp4")


@dataclass
class ScreenRecording:
    """Handle for the one in-flight device recording; saving it consumes it."""

    started_at: float
    consumed: bool = False


class RecordingSession:
    """
    Tracks the device's single screen-recording slot.

    A plain flag is enough: the crawler is single threaded, so start/stop can
    never race. Starting while active hands back the live handle; finishing
    without an active recording (or with a stale handle) is an error.
    """

    def __init__(self) -> None:
        self._active: Optional[ScreenRecording] = None

    @property
    def is_active(self) -> bool:
        return self._active is not None

    @property
    def active(self) -> Optional[ScreenRecording]:
        return self._active

    def begin(self) -> ScreenRecording:
        if self._active is not None:
            raise RecordingStateError("Screen recording already started")
        self._active = ScreenRecording(started_at=time.time())
        return self._active

    def finish(self, handle: Optional[ScreenRecording] = None) -> ScreenRecording:
        active = self._active
        if active is None:
            raise RecordingStateError("Screen recording not started")
        if handle is not None and handle is not active:
            raise RecordingStateError("Recording handle is stale; it was already saved")
        active.consumed = True
        self._active = None
        return active
