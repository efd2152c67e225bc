from __future__ import annotations

import base64
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from PIL import Image, ImageStat, UnidentifiedImageError

from common.config import ImageConfig, yaml_config
from common.errors import ProviderError
from common.logger import get_logger
from ingestion.document_models import Extraction, OcrResult, OcrToken
from models.ocr import OcrProvider

log = get_logger(__name__)

NO_TEXT = "No text detected in the image."
OCR_FAILED = "Error analyzing image content."


def reconstruct_tables(tokens: Sequence[OcrToken], row_threshold: int = 10) -> List[List[str]]:
    """
    Group OCR tokens into rows by vertical position, top to bottom.

    A token joins the open row while its top y is within `row_threshold`
    of the y that opened the row. Only rows holding more than one token
    are kept as table rows.
    """
    rows: List[List[str]] = []
    current: List[str] = []
    row_y: Optional[int] = None

    for tok in sorted(tokens, key=lambda t: t.top):
        if row_y is None or abs(tok.top - row_y) > row_threshold:
            if current:
                rows.append(current)
                current = []
            row_y = tok.top
        current.append(tok.text)

    if current:
        rows.append(current)
    return [r for r in rows if len(r) > 1]


def describe_ocr(result: OcrResult, tables: List[List[str]]) -> str:
    if result.empty:
        return NO_TEXT

    blocks = [
        f"{t.text} [at {' '.join(f'({x},{y})' for x, y in t.box)}]" for t in result.tokens
    ]
    parts = ["Full text:", result.text, "\nText blocks:", *blocks]
    if tables:
        parts.append("\nTables found:")
        parts.append(
            "\n".join(f"Table {i + 1}:\n{' | '.join(row)}" for i, row in enumerate(tables))
        )
    return "\n".join(parts)


def image_statistics(image_bytes: bytes) -> Dict[str, Any]:
    """Dimensions plus per-channel brightness/contrast proxies."""
    with Image.open(BytesIO(image_bytes)) as img:
        fmt = (img.format or "").lower()
        if img.mode not in ("L", "LA", "RGB", "RGBA"):
            img = img.convert("RGB")
        stat = ImageStat.Stat(img)
        width, height = img.size
    return {
        "width": width,
        "height": height,
        "format": fmt,
        "colors": ",".join(f"{m:.0f}" for m in stat.mean),
        "brightness": round(stat.mean[0]),
        "contrast": round(stat.stddev[0]),
    }


class ImageExtractor:
    def __init__(self, ocr: OcrProvider, cfg: ImageConfig | None = None):
        self.ocr = ocr
        self.cfg = cfg or yaml_config.ingestion.image

    def extract(self, source: Path, file_type: str) -> Extraction:
        image_bytes = source.read_bytes()
        size_kb = round(len(image_bytes) / 1024)
        reasons: List[str] = []

        features: Dict[str, Any] = {"format": file_type, "size": size_kb}
        try:
            features.update(image_statistics(image_bytes))
            features["format"] = features["format"] or file_type
        except (UnidentifiedImageError, OSError, ValueError) as e:
            log.warning("Image statistics unavailable for %s: %s", source.name, e)
            reasons.append(f"image statistics unavailable: {e}")

        tables: List[List[str]] = []
        try:
            result = self.ocr.recognize(image_bytes)
            tables = reconstruct_tables(result.tokens, self.cfg.row_threshold)
            extracted = describe_ocr(result, tables)
            features["token_count"] = len(result.tokens)
        except ProviderError as e:
            log.warning("OCR failed for %s: %s", source.name, e)
            reasons.append(str(e))
            extracted = OCR_FAILED
        features["has_tables"] = bool(tables)
        features["table_count"] = len(tables)

        if self.cfg.embed_data_uri:
            payload = base64.b64encode(image_bytes).decode("ascii")
            content = f"data:image/{file_type};base64,{payload}"
        else:
            content = f"[Image: {source.name}]"

        return Extraction(
            content=content,
            extracted_text=extracted,
            features=features,
            degraded_reason="; ".join(reasons) or None,
        )
