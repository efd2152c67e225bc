import re

# one or more "(x,y)" vertices: "[at (1,2) (3,4)]"
_COORDINATES = re.compile(r"\[at\s+(?:\([^()]*\)\s*)+\]")
_WHITESPACE = re.compile(r"\s+")


def clean_extracted_text(text: str) -> str:
    """
    Drop OCR coordinate annotations like `[at (x,y) ...]`, collapse whitespace
    runs to one space and trim. Idempotent.
    """
    if not text:
        return ""
    while True:
        cleaned = _WHITESPACE.sub(" ", _COORDINATES.sub("", text)).strip()
        if cleaned == text:
            return cleaned
        text = cleaned
