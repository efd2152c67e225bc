from __future__ import annotations

import uuid
from typing import Optional

import orjson

from ingestion.document_models import Document, Extraction, IngestInput
from ingestion.media_types import classify


class DocumentAssembler:
    """Turn an extractor's output into the canonical, storable Document."""

    @staticmethod
    def new_id() -> str:
        return str(uuid.uuid4())

    def assemble(
        self,
        item: IngestInput,
        extraction: Extraction,
        tenant_id: str,
        size_bytes: Optional[int] = None,
    ) -> Document:
        features = dict(extraction.features)
        if extraction.degraded_reason:
            features.setdefault("error", extraction.degraded_reason)

        size_bytes = len(item.data) if size_bytes is None else size_bytes
        return Document(
            id=item.document_id or self.new_id(),
            tenant_id=tenant_id,
            filename=item.filename,
            file_type=item.file_type,
            media_type=classify(item.file_type),
            content=extraction.content,
            extracted_text=extraction.extracted_text or "",
            features=orjson.dumps(features).decode("utf-8"),
            file_size=round(size_bytes / 1024),
            degraded_reason=extraction.degraded_reason,
        )
