from __future__ import annotations

import argparse
import uuid
from pathlib import Path

from common.logger import get_logger
from graph.neo4j_client import Neo4jDocumentStore
from graph.store import InMemoryDocumentStore
from ingestion.ingest_pipeline import IngestionPipeline, ingest_paths

log = get_logger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Extract text from files (text, images, audio, video) and store them for a tenant."
    )
    parser.add_argument("files", nargs="+", type=Path, help="Files to ingest")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--tenant", type=str, help="Tenant id to store documents under")
    group.add_argument(
        "--new-tenant", action="store_true", help="Create a fresh tenant id and use it"
    )
    parser.add_argument(
        "--memory",
        action="store_true",
        help="Use a throwaway in-memory store instead of Neo4j (dry run)",
    )
    parser.add_argument("--workers", type=int, default=None, help="Files processed in parallel")
    args = parser.parse_args()

    missing = [p for p in args.files if not p.is_file()]
    if missing:
        log.error("File(s) not found: %s", ", ".join(map(str, missing)))
        raise SystemExit(1)

    tenant = str(uuid.uuid4()) if args.new_tenant else args.tenant
    if args.new_tenant:
        print(f"Created tenant {tenant}")

    store = InMemoryDocumentStore() if args.memory else Neo4jDocumentStore()
    with store:
        pipeline = IngestionPipeline(store, max_workers=args.workers)
        docs = ingest_paths(pipeline, args.files, tenant)

    for d in docs:
        status = f"degraded: {d.degraded_reason}" if d.degraded_reason else "ok"
        print(f"- {d.filename} [{d.media_type.value}] {d.id} ({status})")


if __name__ == "__main__":
    main()
