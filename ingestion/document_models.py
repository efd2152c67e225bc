from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


class MediaType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"


@dataclass
class IngestInput:
    filename: str
    data: bytes
    extension: Optional[str] = None  # inferred from filename when missing
    document_id: Optional[str] = None  # deliberate re-submission only

    @property
    def file_type(self) -> str:
        ext = self.extension or Path(self.filename).suffix or "txt"
        return ext.lstrip(".").lower() or "txt"


@dataclass
class Extraction:
    content: str
    extracted_text: str
    features: Dict[str, Any]
    degraded_reason: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.degraded_reason is not None


@dataclass
class Document:
    id: str
    tenant_id: str
    filename: str
    file_type: str
    media_type: MediaType
    content: str
    extracted_text: str
    features: str  # orjson-encoded feature bundle
    file_size: int = 0  # KB
    degraded_reason: Optional[str] = None  # not persisted as a field

    def to_record(self) -> Dict[str, Any]:
        """Store field names, as written by the graph store."""
        return {
            "id": self.id,
            "databaseId": self.tenant_id,
            "filename": self.filename,
            "fileType": self.file_type,
            "mediaType": self.media_type.value,
            "content": self.content,
            "extractedText": self.extracted_text,
            "features": self.features,
            "fileSize": self.file_size,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Document":
        return cls(
            id=record["id"],
            tenant_id=record.get("databaseId") or "",
            filename=record.get("filename") or "unknown",
            file_type=record.get("fileType") or "txt",
            media_type=MediaType(record.get("mediaType") or "text"),
            content=record.get("content") or "",
            extracted_text=record.get("extractedText") or "",
            features=record.get("features") or "{}",
            file_size=int(record.get("fileSize") or 0),
        )


@dataclass(frozen=True)
class AudioChunk:
    index: int
    start: float  # seconds
    duration: float  # seconds


@dataclass(frozen=True)
class Frame:
    index: int
    timestamp: int  # seconds
    path: Path


@dataclass(frozen=True)
class OcrToken:
    text: str
    box: Tuple[Tuple[int, int], ...]  # clockwise from top-left

    @property
    def top(self) -> int:
        return self.box[0][1] if self.box else 0


@dataclass
class OcrResult:
    text: str
    tokens: List[OcrToken] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.text.strip() and not self.tokens


@dataclass
class Transcript:
    text: str
    chunk_count: int = 1
    failed_chunks: int = 0
    duration: Optional[float] = None
    degraded_reason: Optional[str] = None
