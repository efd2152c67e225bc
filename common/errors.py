"""
Exceptions shared across ingestion, retrieval and chat.

Hierarchy:
    MediaRagError
    ├── ProviderError - an external capability (OCR, STT, LLM) failed
    │   ├── OcrError
    │   ├── TranscriptionError
    │   └── GenerationError
    ├── ValidationError - bad caller input, raised immediately
    └── StorageError - the document store failed
"""


class MediaRagError(Exception):
    """Base class for all project errors."""


class ProviderError(MediaRagError):
    """An external capability provider failed or timed out."""

    provider = "provider"

    def __init__(self, message: str, *, provider: str | None = None):
        super().__init__(message)
        if provider:
            self.provider = provider

    def __str__(self) -> str:
        return f"{self.provider}: {super().__str__()}"


class OcrError(ProviderError):
    provider = "ocr"


class TranscriptionError(ProviderError):
    provider = "stt"


class GenerationError(ProviderError):
    provider = "llm"


class ValidationError(MediaRagError):
    """Missing tenant, question or file. Never retried."""


class StorageError(MediaRagError):
    """Document store failure, propagated to the caller."""


def require_tenant(tenant_id: str | None) -> str:
    if tenant_id is None or not str(tenant_id).strip():
        raise ValidationError("Tenant id is required")
    return str(tenant_id)
