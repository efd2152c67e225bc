from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from common.config import yaml_config
from common.errors import require_tenant
from common.logger import get_logger
from graph.store import DocumentStore
from ingestion.document_models import Document

log = get_logger(__name__)


@dataclass(frozen=True)
class ScoredDocument:
    document: Document
    score: int


def tokenize_query(query: str, min_token_length: int = 3) -> List[str]:
    """Lower-cased whitespace tokens; shorter than `min_token_length` are dropped."""
    return [t for t in (query or "").lower().split() if len(t) >= min_token_length]


def score_documents(
    query: str, documents: Sequence[Document], min_token_length: int = 3
) -> List[ScoredDocument]:
    """
    Keyword-overlap ranking. A document scores one point per query token found
    (as a substring, case-insensitive) in its content plus one per token found
    in its extracted text. Documents matching nothing are left out; ties keep
    the input order.
    """
    tokens = tokenize_query(query, min_token_length)
    if not tokens:
        return []

    scored: List[ScoredDocument] = []
    for doc in documents:
        content = (doc.content or "").lower()
        extracted = (doc.extracted_text or "").lower()
        score = sum(1 for t in tokens if t in content) + sum(
            1 for t in tokens if t in extracted
        )
        if score > 0:
            scored.append(ScoredDocument(document=doc, score=score))

    # sorted() is stable
    return sorted(scored, key=lambda s: s.score, reverse=True)


class RetrievalScorer:
    def __init__(self, store: DocumentStore, min_token_length: Optional[int] = None):
        self.store = store
        self.min_token_length = (
            min_token_length
            if min_token_length is not None
            else yaml_config.retrieval.min_token_length
        )

    def search(self, query: str, tenant_id: str) -> List[ScoredDocument]:
        tenant_id = require_tenant(tenant_id)
        if not tokenize_query(query, self.min_token_length):
            return []
        documents = self.store.list_all(tenant_id)
        ranked = score_documents(query, documents, self.min_token_length)
        log.debug(
            "Query matched %d of %d documents for tenant '%s'",
            len(ranked),
            len(documents),
            tenant_id,
        )
        return ranked
