from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from langchain_core.language_models import BaseLanguageModel
from langchain_core.output_parsers import StrOutputParser

from chains.grounding import build_context
from chains.prompts import ANSWER_TEMPLATE
from common.config import yaml_config
from common.errors import GenerationError, ValidationError, require_tenant
from common.logger import get_logger
from graph.store import DocumentStore
from ingestion.document_models import Document
from retrieval.filters import build_document_filter
from retrieval.scorer import RetrievalScorer

log = get_logger(__name__)

NO_DOCUMENTS = (
    "I don't have any documents to search through. Please upload some documents first."
)
NO_MATCH = (
    "I couldn't find any relevant information in the documents. "
    "Could you try rephrasing your question or provide more specific details?"
)

_UNSET = object()


class ChatState(str, Enum):
    CHECK_HAS_DOCS = "CHECK_HAS_DOCS"
    NO_DOCS = "NO_DOCS"
    RETRIEVE = "RETRIEVE"
    NO_MATCH = "NO_MATCH"
    FORMAT_CONTEXT = "FORMAT_CONTEXT"
    GENERATE = "GENERATE"
    RESPOND_WITH_SOURCES = "RESPOND_WITH_SOURCES"


@dataclass(frozen=True)
class ChatResponse:
    response: str
    documents: List[Document] = field(default_factory=list)
    state: ChatState = ChatState.RESPOND_WITH_SOURCES


def with_sources(answer: str, docs: Iterable[Document]) -> str:
    return f"{answer}\n\nRetrieved from: {', '.join(d.filename for d in docs)}"


class ChatOrchestrator:
    """
    Answer a question from one tenant's documents:
      1) Bail out early when the tenant has no documents
      2) Rank documents by keyword overlap and keep the top_k
      3) Format them into a grounding context
      4) Ask the LLM and append the list of source filenames

    The store handle is passed in; nothing here opens connections.
    """

    def __init__(
        self,
        store: DocumentStore,
        llm: Optional[BaseLanguageModel] = None,
        scorer: Optional[RetrievalScorer] = None,
        top_k=_UNSET,
    ):
        self.store = store
        self.llm = llm
        self.scorer = scorer or RetrievalScorer(store)
        self.top_k: Optional[int] = (
            yaml_config.retrieval.top_k if top_k is _UNSET else top_k
        )

    def _chain(self):
        if self.llm is None:
            from models.llm import load_llm

            self.llm = load_llm("llm_qa")
        return ANSWER_TEMPLATE | self.llm | StrOutputParser()

    def _generate(self, question: str, context: str) -> str:
        try:
            answer = self._chain().invoke({"documents": context, "question": question})
        except Exception as e:
            log.error("Answer generation failed: %s", e, exc_info=True)
            raise GenerationError(str(e)) from e
        return str(answer).strip()

    def chat(
        self,
        question: str,
        tenant_id: str,
        media_types: Optional[Iterable[str]] = None,
    ) -> ChatResponse:
        tenant_id = require_tenant(tenant_id)
        if not question or not question.strip():
            raise ValidationError("Question is required")

        if not self.store.has_documents(tenant_id):
            log.info("Tenant '%s' has no documents", tenant_id)
            return ChatResponse(NO_DOCUMENTS, [], ChatState.NO_DOCS)

        ranked = [s.document for s in self.scorer.search(question, tenant_id)]
        predicate = build_document_filter(media_types=media_types)
        if predicate is not None:
            ranked = [d for d in ranked if predicate(d)]
        if not ranked:
            log.info("No documents matched the question for tenant '%s'", tenant_id)
            return ChatResponse(NO_MATCH, [], ChatState.NO_MATCH)

        docs = ranked if self.top_k is None else ranked[: self.top_k]
        context = build_context(docs)
        log.info("Answering from %d of %d matching documents", len(docs), len(ranked))

        answer = self._generate(question, context)
        return ChatResponse(with_sources(answer, docs), docs, ChatState.RESPOND_WITH_SOURCES)
