from __future__ import annotations

from typing import Iterable, Optional

from graph.store import DocumentPredicate
from ingestion.document_models import Document, MediaType


def build_document_filter(
    media_types: Optional[Iterable[str | MediaType]] = None,
    filenames: Optional[Iterable[str]] = None,
    file_types: Optional[Iterable[str]] = None,  # extensions, without the dot
) -> Optional[DocumentPredicate]:
    """
    Construct a Document predicate from the fields written during ingestion:
      - media_type ("text" | "image" | "audio" | "video")
      - filename (exact match)
      - file_type (extension)
    Conditions are AND-ed; returns None when nothing was asked for.
    """
    wanted_media = {MediaType(m) for m in media_types} if media_types else None
    wanted_names = set(filenames) if filenames else None
    wanted_types = {t.lower().lstrip(".") for t in file_types} if file_types else None
    if not (wanted_media or wanted_names or wanted_types):
        return None

    def predicate(doc: Document) -> bool:
        if wanted_media and doc.media_type not in wanted_media:
            return False
        if wanted_names and doc.filename not in wanted_names:
            return False
        if wanted_types and doc.file_type.lower() not in wanted_types:
            return False
        return True

    return predicate
