from __future__ import annotations

from ingestion.document_models import MediaType

IMAGE_TYPES = frozenset({"jpg", "jpeg", "png", "gif", "bmp", "webp"})
AUDIO_TYPES = frozenset({"mp3", "wav", "ogg", "m4a", "flac"})
VIDEO_TYPES = frozenset({"mp4", "avi", "mov", "wmv", "flv", "mkv"})


def classify(extension: str) -> MediaType:
    """Map a file extension to its modality. Unknown extensions are text."""
    ext = (extension or "").strip().lstrip(".").lower()
    if ext in IMAGE_TYPES:
        return MediaType.IMAGE
    if ext in AUDIO_TYPES:
        return MediaType.AUDIO
    if ext in VIDEO_TYPES:
        return MediaType.VIDEO
    return MediaType.TEXT
