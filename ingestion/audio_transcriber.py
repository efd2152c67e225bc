from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from common.config import AudioConfig, yaml_config
from common.errors import ProviderError
from common.logger import get_logger
from ingestion.document_models import AudioChunk, Extraction, Transcript
from ingestion.media_tools import MediaToolError, MediaTools, scoped_workdir
from models.stt import SpeechToText

log = get_logger(__name__)

CHUNK_FAILED = "[Error transcribing this segment]"
TRANSCRIPTION_FAILED = "Error transcribing audio content."

T = TypeVar("T")
R = TypeVar("R")


def plan_chunks(duration: float, chunk_seconds: int = 300) -> List[AudioChunk]:
    """Sequential fixed-length chunks; the last one is cut to what remains."""
    chunks: List[AudioChunk] = []
    start = 0.0
    while start < duration:
        chunks.append(
            AudioChunk(
                index=len(chunks),
                start=start,
                duration=min(float(chunk_seconds), duration - start),
            )
        )
        start += chunk_seconds
    return chunks


def ordered_map(fn: Callable[[T], R], items: Sequence[T], workers: int = 1) -> List[R]:
    """Apply `fn` to each item; results come back in input order."""
    if workers <= 1 or len(items) <= 1:
        return [fn(item) for item in items]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(fn, items))


class AudioTranscriber:
    def __init__(
        self,
        stt: SpeechToText,
        media: Optional[MediaTools] = None,
        cfg: Optional[AudioConfig] = None,
    ):
        self.stt = stt
        self.media = media or MediaTools()
        self.cfg = cfg or yaml_config.ingestion.audio

    @property
    def size_ceiling(self) -> int:
        return self.cfg.size_ceiling_mb * 1024 * 1024

    def transcribe(self, audio_path: Path, size: Optional[int] = None) -> Transcript:
        size = audio_path.stat().st_size if size is None else size
        if size <= self.size_ceiling:
            try:
                return Transcript(text=self.stt.transcribe(audio_path))
            except ProviderError as e:
                log.warning("Transcription failed for %s: %s", audio_path.name, e)
                return Transcript(text=TRANSCRIPTION_FAILED, degraded_reason=str(e))

        log.info("Audio file too large (%d bytes), splitting into chunks", size)
        return self._transcribe_chunked(audio_path)

    def _transcribe_chunked(self, audio_path: Path) -> Transcript:
        with scoped_workdir("mediarag_chunks_") as work:
            try:
                wav = self.media.to_wav(audio_path, work / "source.wav")
                duration = self.media.duration(wav)
            except MediaToolError as e:
                log.error("Could not split %s: %s", audio_path.name, e)
                return Transcript(text=TRANSCRIPTION_FAILED, degraded_reason=str(e))

            chunks = plan_chunks(duration, self.cfg.chunk_seconds)
            results = ordered_map(
                lambda c: self._transcribe_chunk(wav, c, work),
                chunks,
                workers=self.cfg.chunk_workers,
            )

        failed = sum(1 for _, ok in results if not ok)
        return Transcript(
            text="\n".join(text for text, _ in results),
            chunk_count=len(chunks),
            failed_chunks=failed,
            duration=duration,
            degraded_reason=f"{failed} of {len(chunks)} chunks failed" if failed else None,
        )

    def _transcribe_chunk(self, wav: Path, chunk: AudioChunk, work: Path) -> Tuple[str, bool]:
        path = work / f"chunk_{chunk.index:04d}.wav"
        try:
            self.media.cut(wav, path, chunk.start, chunk.duration)
            return self.stt.transcribe(path), True
        except (ProviderError, MediaToolError) as e:
            log.warning("Error transcribing chunk %d (%.0fs): %s", chunk.index, chunk.start, e)
            return CHUNK_FAILED, False
        finally:
            path.unlink(missing_ok=True)

    def extract(self, source: Path, file_type: str) -> Extraction:
        size = source.stat().st_size
        transcript = self.transcribe(source, size)
        return Extraction(
            content=f"[Audio: {source.name}]\nTranscription: {transcript.text}",
            extracted_text=transcript.text,
            features={
                "format": file_type,
                "size": round(size / 1024),
                "duration": round(transcript.duration) if transcript.duration else None,
                "chunk_count": transcript.chunk_count,
                "failed_chunks": transcript.failed_chunks,
            },
            degraded_reason=transcript.degraded_reason,
        )
