"""
Thin ffmpeg wrappers used by the audio and video extractors.

Every call is a blocking subprocess with a timeout. Callers own the
directories they pass in; use `scoped_workdir` so intermediate artifacts
are removed on every exit path.
"""

from __future__ import annotations

import re
import subprocess
import tempfile
import wave
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Sequence

from imageio_ffmpeg import get_ffmpeg_exe

from common.config import yaml_config
from common.errors import MediaRagError
from common.logger import get_logger
from ingestion.document_models import Frame

log = get_logger(__name__)

_FRAME_NUM = re.compile(r"(\d+)")


class MediaToolError(MediaRagError):
    """ffmpeg failed, timed out or is not installed."""


@contextmanager
def scoped_workdir(prefix: str = "mediarag_") -> Iterator[Path]:
    with tempfile.TemporaryDirectory(prefix=prefix) as td:
        yield Path(td)


class MediaTools:
    def __init__(self, timeout_s: float | None = None):
        self.timeout_s = timeout_s or yaml_config.ingestion.ffmpeg_timeout_s

    def _run(self, args: Sequence[str]) -> None:
        try:
            cmd = [get_ffmpeg_exe(), "-y", "-loglevel", "error", *args]
        except RuntimeError as e:
            raise MediaToolError(f"ffmpeg not available: {e}") from e
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired as e:
            raise MediaToolError(f"ffmpeg timed out after {self.timeout_s}s") from e
        if proc.returncode != 0:
            raise MediaToolError(proc.stderr.decode("utf-8", "ignore").strip())

    def to_wav(self, src: Path, dst: Path) -> Path:
        """Convert any media file to mono 16 kHz PCM wav."""
        self._run(
            ["-i", str(src), "-vn", "-ac", "1", "-ar", "16000", "-acodec", "pcm_s16le", str(dst)]
        )
        return dst

    def duration(self, wav_path: Path) -> float:
        try:
            with wave.open(str(wav_path), "rb") as w:
                return w.getnframes() / float(w.getframerate())
        except (wave.Error, EOFError) as e:
            raise MediaToolError(f"Cannot read wav duration: {e}") from e

    def cut(self, src: Path, dst: Path, start: float, duration: float) -> Path:
        self._run(
            [
                "-ss", f"{start:.3f}",
                "-t", f"{duration:.3f}",
                "-i", str(src),
                "-ac", "1", "-ar", "16000", "-acodec", "pcm_s16le",
                str(dst),
            ]
        )
        return dst

    def sample_frames(self, video: Path, out_dir: Path, interval_s: int) -> List[Frame]:
        """
        Write one PNG per `interval_s` seconds of video into `out_dir`.
        Frame i gets timestamp i * interval_s.
        """
        out_dir.mkdir(parents=True, exist_ok=True)
        self._run(
            ["-i", str(video), "-vf", f"fps=1/{interval_s}", str(out_dir / "frame_%06d.png")]
        )
        files = sorted(
            out_dir.glob("frame_*.png"),
            key=lambda p: int(_FRAME_NUM.search(p.stem).group(1)),
        )
        log.info("Sampled %d frames from %s", len(files), video.name)
        return [
            Frame(index=i, timestamp=i * interval_s, path=p) for i, p in enumerate(files)
        ]
