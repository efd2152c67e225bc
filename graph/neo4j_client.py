from __future__ import annotations

from typing import Any, Dict, List, Optional

from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from common.config import secrets, yaml_config
from common.errors import StorageError, require_tenant
from common.logger import get_logger
from graph.store import DocumentPredicate
from ingestion.document_models import Document

log = get_logger(__name__)

_DOCUMENT_FIELDS = (
    "id", "databaseId", "filename", "fileType", "mediaType",
    "content", "extractedText", "features", "fileSize",
)
_RETURN_DOCUMENT = ", ".join(f"d.{f} AS {f}" for f in _DOCUMENT_FIELDS)


class Neo4jDocumentStore:
    """
    Documents live as (:Document {id, databaseId}) nodes; databaseId is the
    tenant. Open once at startup, pass the handle around, close at shutdown.
    """

    def __init__(
        self,
        uri: str | None = None,
        user: str | None = None,
        password: str | None = None,
        driver=None,
    ):
        self._driver = driver or GraphDatabase.driver(
            uri or yaml_config.neo4j.uri,
            auth=(user or secrets.neo4j_user, password or secrets.neo4j_password),
        )

    def __enter__(self) -> "Neo4jDocumentStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self):
        self._driver.close()

    def run(
        self, cypher: str, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        try:
            with self._driver.session() as session:
                result = session.run(cypher, params or {})
                return [r.data() for r in result]
        except (Neo4jError, DriverError) as e:
            log.error("Neo4j query failed: %s", e)
            raise StorageError(str(e)) from e

    def upsert(self, tenant_id: str, doc_id: str, fields: Dict[str, Any]) -> None:
        cypher = """
        MERGE (d:Document {id: $id, databaseId: $databaseId})
        SET d += $fields
        """
        props = {k: v for k, v in fields.items() if k not in ("id", "databaseId")}
        self.run(cypher, {"id": doc_id, "databaseId": tenant_id, "fields": props})

    def list_all(self, tenant_id: str) -> List[Document]:
        cypher = f"""
        MATCH (d:Document {{databaseId: $databaseId}})
        RETURN {_RETURN_DOCUMENT}
        """
        rows = self.run(cypher, {"databaseId": require_tenant(tenant_id)})
        return [Document.from_record(r) for r in rows]

    def count(self, tenant_id: str) -> int:
        cypher = """
        MATCH (d:Document {databaseId: $databaseId})
        RETURN count(d) AS count
        """
        rows = self.run(cypher, {"databaseId": require_tenant(tenant_id)})
        return int(rows[0]["count"]) if rows else 0

    def has_documents(self, tenant_id: str) -> bool:
        return self.count(tenant_id) > 0

    def delete_where(self, tenant_id: str, predicate: DocumentPredicate) -> int:
        ids = [d.id for d in self.list_all(tenant_id) if predicate(d)]
        if not ids:
            return 0
        cypher = """
        MATCH (d:Document {databaseId: $databaseId})
        WHERE d.id IN $ids
        OPTIONAL MATCH (d)-[:CONTAINS]->(c:Content)
        DETACH DELETE d, c
        """
        self.run(cypher, {"databaseId": tenant_id, "ids": ids})
        log.info("Deleted %d documents for tenant '%s'", len(ids), tenant_id)
        return len(ids)

    def list_tenants(self) -> List[Dict[str, Any]]:
        cypher = """
        MATCH (d:Document)
        WHERE d.databaseId IS NOT NULL AND d.databaseId <> ''
        WITH d.databaseId AS databaseId, count(*) AS count
        RETURN databaseId, count
        ORDER BY databaseId
        """
        return self.run(cypher)

    def contents(self) -> List[Dict[str, Any]]:
        """Every document across tenants, for inspection."""
        cypher = f"""
        MATCH (d:Document)
        RETURN {_RETURN_DOCUMENT}
        ORDER BY databaseId, filename
        """
        return self.run(cypher)

    def cleanup_orphans(self) -> int:
        cypher = """
        MATCH (d:Document)
        WHERE d.databaseId IS NULL OR d.databaseId = ''
        OPTIONAL MATCH (d)-[:CONTAINS]->(c:Content)
        DETACH DELETE d, c
        RETURN count(DISTINCT d) AS deleted
        """
        rows = self.run(cypher)
        deleted = int(rows[0]["deleted"]) if rows else 0
        log.info("Removed %d documents without a tenant", deleted)
        return deleted
