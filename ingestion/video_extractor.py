from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from common.config import VideoConfig, yaml_config
from common.errors import ProviderError
from common.logger import get_logger
from ingestion.audio_transcriber import AudioTranscriber, ordered_map
from ingestion.document_models import Extraction, Frame
from ingestion.media_tools import MediaTools, scoped_workdir
from models.ocr import OcrProvider

log = get_logger(__name__)

NO_TEXT_IN_FRAME = "No text detected in frame."
FRAME_FAILED = "Error processing frame content."
VIDEO_FAILED = "Error processing video content."


def key_frame_line(timestamp: int, text: str) -> str:
    return f"[{timestamp}s] {' '.join(text.split())}"


class VideoExtractor:
    """
    Video → transcript of the demuxed audio track + OCR of frames sampled
    every `frame_interval_s` seconds.

    Frame and chunk failures stay local. Anything else that goes wrong turns
    the whole file into an explicit error document.
    """

    def __init__(
        self,
        transcriber: AudioTranscriber,
        ocr: OcrProvider,
        media: Optional[MediaTools] = None,
        cfg: Optional[VideoConfig] = None,
    ):
        self.transcriber = transcriber
        self.ocr = ocr
        self.media = media or transcriber.media
        self.cfg = cfg or yaml_config.ingestion.video

    def _prepare_frame(self, path: Path) -> Tuple[bytes, Tuple[int, int]]:
        with Image.open(path) as img:
            width = self.cfg.frame_width
            height = max(1, round(img.height * width / img.width))
            resized = img.convert("RGB").resize((width, height))
        buf = BytesIO()
        resized.save(buf, format="PNG")
        return buf.getvalue(), resized.size

    def describe_frame(self, frame: Frame) -> Tuple[str, bool]:
        """One key-frame line for `frame`, and whether OCR succeeded."""
        try:
            image_bytes, (w, h) = self._prepare_frame(frame.path)
        except (UnidentifiedImageError, OSError, ValueError, ZeroDivisionError) as e:
            log.warning("Unreadable frame at %ss: %s", frame.timestamp, e)
            return key_frame_line(frame.timestamp, FRAME_FAILED), False
        finally:
            frame.path.unlink(missing_ok=True)

        try:
            result = self.ocr.recognize(image_bytes)
        except ProviderError as e:
            log.warning("OCR failed for frame at %ss, using frame size: %s", frame.timestamp, e)
            return key_frame_line(frame.timestamp, f"Frame size: {w}x{h}"), False

        return key_frame_line(frame.timestamp, result.text.strip() or NO_TEXT_IN_FRAME), True

    def extract(self, source: Path, file_type: str) -> Extraction:
        size_kb = round(source.stat().st_size / 1024)
        try:
            with scoped_workdir("mediarag_video_") as work:
                wav = self.media.to_wav(source, work / "audio.wav")
                transcript = self.transcriber.transcribe(wav)
                wav.unlink(missing_ok=True)

                frames = self.media.sample_frames(
                    source, work / "frames", self.cfg.frame_interval_s
                )
                described = ordered_map(
                    self.describe_frame, frames, workers=self.cfg.frame_workers
                )
        except Exception as e:
            log.error("Error processing video %s: %s", source.name, e, exc_info=True)
            return Extraction(
                content=f"[Video: {source.name}]\n{VIDEO_FAILED}",
                extracted_text="",
                features={"format": file_type, "size": size_kb, "error": "Processing failed"},
                degraded_reason=f"video processing failed: {e}",
            )

        ordered = sorted(zip(frames, described), key=lambda pair: pair[0].timestamp)
        lines: List[str] = [line for _, (line, _) in ordered]
        failed_frames = sum(1 for _, (_, ok) in ordered if not ok)

        reasons = [r for r in (transcript.degraded_reason,) if r]
        if failed_frames:
            reasons.append(f"{failed_frames} of {len(frames)} frames fell back")

        content = (
            f"[Video: {source.name}]\n"
            f"Transcription: {transcript.text}\n"
            "Key Frames:\n" + "\n".join(lines)
        )
        return Extraction(
            content=content,
            extracted_text=transcript.text,
            features={
                "format": file_type,
                "size": size_kb,
                "frame_count": len(frames),
                "failed_frames": failed_frames,
            },
            degraded_reason="; ".join(reasons) or None,
        )
