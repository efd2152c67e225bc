from __future__ import annotations

from io import BytesIO
from typing import Dict, List, Protocol, Tuple

import pytesseract
from PIL import Image, UnidentifiedImageError
from pytesseract import Output

from common.config import yaml_config
from common.errors import OcrError
from common.logger import get_logger
from ingestion.document_models import OcrResult, OcrToken

log = get_logger(__name__)


class OcrProvider(Protocol):
    def recognize(self, image_bytes: bytes) -> OcrResult: ...


class TesseractOcr:
    """
    Text detection backed by Tesseract.
    Returns the full text (line structure kept) and one token per word with
    its four-corner bounding box.
    """

    def __init__(self, lang: str | None = None, timeout_s: float | None = None):
        self.lang = lang or yaml_config.ocr.lang
        self.timeout_s = timeout_s or yaml_config.ocr.timeout_s

    def recognize(self, image_bytes: bytes) -> OcrResult:
        try:
            image = Image.open(BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise OcrError(f"Unreadable image: {e}") from e

        try:
            data = pytesseract.image_to_data(
                image, lang=self.lang, output_type=Output.DICT, timeout=self.timeout_s
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, RuntimeError) as e:
            raise OcrError(str(e)) from e

        return _to_result(data)


def _to_result(data: Dict[str, List]) -> OcrResult:
    tokens: List[OcrToken] = []
    lines: Dict[Tuple[int, int, int], List[str]] = {}

    for i, raw in enumerate(data.get("text", [])):
        text = (raw or "").strip()
        if not text or float(data["conf"][i]) < 0:
            continue
        left, top = int(data["left"][i]), int(data["top"][i])
        right, bottom = left + int(data["width"][i]), top + int(data["height"][i])
        tokens.append(
            OcrToken(text=text, box=((left, top), (right, top), (right, bottom), (left, bottom)))
        )
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(text)

    full_text = "\n".join(" ".join(words) for words in lines.values())
    log.debug("OCR found %d tokens", len(tokens))
    return OcrResult(text=full_text, tokens=tokens)
