# tests/conftest.py
"""
Fakes for the external capabilities (OCR, speech-to-text, ffmpeg) so the
extractors and pipeline run without tesseract, ffmpeg, OpenAI or Neo4j.
Pillow is real: frames and images are generated in memory.
"""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest
from PIL import Image

from common.errors import OcrError, TranscriptionError
from graph.store import InMemoryDocumentStore
from ingestion.document_models import Document, Frame, MediaType, OcrResult, OcrToken


def png_bytes(width: int = 64, height: int = 32, color=(200, 30, 30)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def token(text: str, x: int, y: int, w: int = 20, h: int = 10) -> OcrToken:
    return OcrToken(text=text, box=((x, y), (x + w, y), (x + w, y + h), (x, y + h)))


class DummyOcr:
    """Returns a fixed result, or one per call from `results`."""

    def __init__(self, result: Optional[OcrResult] = None, results: Optional[List] = None):
        self.result = result or OcrResult(text="")
        self.results = list(results) if results is not None else None
        self.calls = 0

    def recognize(self, image_bytes: bytes) -> OcrResult:
        self.calls += 1
        item = self.results.pop(0) if self.results is not None else self.result
        if isinstance(item, Exception):
            raise item
        return item


class FailingOcr:
    def recognize(self, image_bytes: bytes) -> OcrResult:
        raise OcrError("tesseract exploded")


class DummyStt:
    """Echoes the file stem; stems listed in `fail` raise TranscriptionError."""

    def __init__(self, fail: tuple = (), text_for: Optional[Callable[[Path], str]] = None):
        self.fail = set(fail)
        self.text_for = text_for or (lambda p: f"said in {p.stem}")
        self.calls: List[str] = []

    def transcribe(self, audio_path: Path) -> str:
        self.calls.append(audio_path.stem)
        if audio_path.stem in self.fail:
            raise TranscriptionError(f"could not transcribe {audio_path.name}")
        return self.text_for(audio_path)


class DummyMedia:
    """
    Stands in for MediaTools. `to_wav` and `cut` write placeholder files,
    `duration` is fixed, `sample_frames` renders `frame_count` real PNGs.
    """

    def __init__(self, duration: float = 10.0, frame_count: int = 3, fail_on: tuple = ()):
        self._duration = duration
        self.frame_count = frame_count
        self.fail_on = set(fail_on)
        self.cuts: List[tuple] = []

    def _check(self, op: str):
        if op in self.fail_on:
            from ingestion.media_tools import MediaToolError

            raise MediaToolError(f"{op} failed")

    def to_wav(self, src: Path, dst: Path) -> Path:
        self._check("to_wav")
        dst.write_bytes(b"RIFF")
        return dst

    def duration(self, wav_path: Path) -> float:
        self._check("duration")
        return self._duration

    def cut(self, src: Path, dst: Path, start: float, duration: float) -> Path:
        self._check("cut")
        self.cuts.append((start, duration))
        dst.write_bytes(b"RIFF")
        return dst

    def sample_frames(self, video: Path, out_dir: Path, interval_s: int) -> List[Frame]:
        self._check("sample_frames")
        out_dir.mkdir(parents=True, exist_ok=True)
        frames = []
        for i in range(self.frame_count):
            path = out_dir / f"frame_{i + 1:06d}.png"
            path.write_bytes(png_bytes(1600, 900))
            frames.append(Frame(index=i, timestamp=i * interval_s, path=path))
        return frames


def make_doc(
    doc_id: str,
    content: str = "",
    extracted_text: str = "",
    media_type: MediaType = MediaType.TEXT,
    filename: Optional[str] = None,
    tenant_id: str = "t1",
) -> Document:
    ext = {"text": "txt", "image": "png", "audio": "mp3", "video": "mp4"}[media_type.value]
    return Document(
        id=doc_id,
        tenant_id=tenant_id,
        filename=filename or f"{doc_id}.{ext}",
        file_type=ext,
        media_type=media_type,
        content=content,
        extracted_text=extracted_text,
        features="{}",
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    with InMemoryDocumentStore() as s:
        yield s


@pytest.fixture
def dummy_extractors() -> Dict[MediaType, object]:
    from ingestion.audio_transcriber import AudioTranscriber
    from ingestion.image_extractor import ImageExtractor
    from ingestion.loaders import TextPassthrough
    from ingestion.video_extractor import VideoExtractor

    media = DummyMedia()
    ocr = DummyOcr(OcrResult(text="HELLO", tokens=[token("HELLO", 5, 5)]))
    transcriber = AudioTranscriber(DummyStt(), media=media)
    return {
        MediaType.TEXT: TextPassthrough(),
        MediaType.IMAGE: ImageExtractor(ocr),
        MediaType.AUDIO: transcriber,
        MediaType.VIDEO: VideoExtractor(transcriber, ocr, media=media),
    }
