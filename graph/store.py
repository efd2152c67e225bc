from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from common.errors import require_tenant
from common.logger import get_logger
from ingestion.document_models import Document

log = get_logger(__name__)

DocumentPredicate = Callable[[Document], bool]


class DocumentStore(Protocol):
    """Tenant-partitioned document store. Scoring happens outside the store."""

    def upsert(self, tenant_id: str, doc_id: str, fields: Dict[str, Any]) -> None: ...

    def list_all(self, tenant_id: str) -> List[Document]: ...

    def count(self, tenant_id: str) -> int: ...

    def has_documents(self, tenant_id: str) -> bool: ...

    def delete_where(self, tenant_id: str, predicate: DocumentPredicate) -> int: ...

    def list_tenants(self) -> List[Dict[str, Any]]: ...

    def cleanup_orphans(self) -> int: ...

    def close(self) -> None: ...


def commit_documents(store: DocumentStore, docs: Iterable[Document]) -> int:
    n = 0
    for d in docs:
        store.upsert(d.tenant_id, d.id, d.to_record())
        n += 1
    return n


class InMemoryDocumentStore:
    """
    Dict-backed store for tests and local runs. Same semantics as the graph
    store: upsert merges fields keyed by (tenant, id), listing keeps
    insertion order.
    """

    def __init__(self):
        self._tenants: Dict[Optional[str], Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> "InMemoryDocumentStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def upsert(self, tenant_id: str, doc_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            docs = self._tenants.setdefault(tenant_id, {})
            record = docs.setdefault(doc_id, {"id": doc_id, "databaseId": tenant_id})
            record.update({k: v for k, v in fields.items() if k not in ("id", "databaseId")})

    def list_all(self, tenant_id: str) -> List[Document]:
        tenant_id = require_tenant(tenant_id)
        with self._lock:
            records = list(self._tenants.get(tenant_id, {}).values())
        return [Document.from_record(r) for r in records]

    def count(self, tenant_id: str) -> int:
        tenant_id = require_tenant(tenant_id)
        with self._lock:
            return len(self._tenants.get(tenant_id, {}))

    def has_documents(self, tenant_id: str) -> bool:
        return self.count(tenant_id) > 0

    def delete_where(self, tenant_id: str, predicate: DocumentPredicate) -> int:
        doomed = [d.id for d in self.list_all(tenant_id) if predicate(d)]
        with self._lock:
            docs = self._tenants.get(tenant_id, {})
            for doc_id in doomed:
                docs.pop(doc_id, None)
        log.info("Deleted %d documents for tenant '%s'", len(doomed), tenant_id)
        return len(doomed)

    def list_tenants(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                {"databaseId": t, "count": len(docs)}
                for t, docs in self._tenants.items()
                if t and docs
            ]

    def cleanup_orphans(self) -> int:
        with self._lock:
            orphaned = [t for t in self._tenants if not t]
            n = sum(len(self._tenants.pop(t)) for t in orphaned)
        log.info("Removed %d documents without a tenant", n)
        return n

    def close(self) -> None:
        pass
