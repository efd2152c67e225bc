from __future__ import annotations

from typing import List, Sequence

from ingestion.cleaners import clean_extracted_text
from ingestion.document_models import Document, MediaType


def _key_moments(content: str) -> List[str]:
    # "[15s] ..." lines; the "[Video: name]" header can also end in "s]"
    return [
        clean_extracted_text(line)
        for line in content.splitlines()
        if line.startswith("[") and "s]" in line and not line.startswith("[Video:")
    ]


def format_document(doc: Document) -> str:
    """Render one document as a context block for the answer prompt."""
    extracted = clean_extracted_text(doc.extracted_text)

    if doc.media_type is MediaType.VIDEO:
        block = f"[Video: {doc.filename}]\n"
        if extracted:
            block += f"Transcription: {extracted}\n"
        moments = _key_moments(doc.content)
        if moments:
            block += "Key moments:\n" + "\n".join(moments) + "\n"
        return block

    if doc.media_type is MediaType.AUDIO:
        block = f"[Audio: {doc.filename}]\n"
        if extracted:
            block += f"Transcription: {extracted}\n"
        return block

    if doc.media_type is MediaType.IMAGE:
        block = f"[Image: {doc.filename}]\n"
        if extracted:
            block += f"Content: {extracted}\n"
        return block

    return doc.content


def build_context(docs: Sequence[Document]) -> str:
    """Context blocks in ranking order, separated by a blank line."""
    return "\n\n".join(format_document(d) for d in docs)
