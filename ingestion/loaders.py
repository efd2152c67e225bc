from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Callable, Dict

from bs4 import BeautifulSoup
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from common.logger import get_logger
from ingestion.document_models import Extraction

log = get_logger(__name__)


def _extract_pdf_text(content: bytes) -> str:
    reader = PdfReader(BytesIO(content))
    texts = [page.extract_text() or "" for page in reader.pages]
    return "\n".join(texts).strip()


def _extract_html_text(content: bytes) -> str:
    soup = BeautifulSoup(content.decode("utf-8", errors="replace"), "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.extract()
    return "\n".join(t.strip() for t in soup.get_text("\n").splitlines() if t.strip())


_RENDERERS: Dict[str, Callable[[bytes], str]] = {
    "pdf": _extract_pdf_text,
    "html": _extract_html_text,
    "htm": _extract_html_text,
}


class TextPassthrough:
    """
    Text files are stored verbatim. PDF and HTML are rendered to text first;
    if that fails the decoded bytes are kept instead.
    """

    def extract(self, source: Path, file_type: str) -> Extraction:
        raw = source.read_bytes()
        features = {"format": file_type, "size": round(len(raw) / 1024)}

        render = _RENDERERS.get(file_type)
        if render is not None:
            try:
                text = render(raw)
            except (PdfReadError, ValueError, OSError) as e:
                log.warning("Could not render %s as %s: %s", source.name, file_type, e)
                return Extraction(
                    content=raw.decode("utf-8", errors="replace"),
                    extracted_text="",
                    features=features,
                    degraded_reason=f"{file_type} rendering failed: {e}",
                )
            if not text:
                # scanned PDFs have no text layer
                log.warning("No text could be rendered from %s", source.name)
                return Extraction(
                    content="",
                    extracted_text="",
                    features=features,
                    degraded_reason=f"no text found in {file_type}",
                )
            return Extraction(content=text, extracted_text="", features=features)

        return Extraction(
            content=raw.decode("utf-8", errors="replace"),
            extracted_text="",
            features=features,
        )
