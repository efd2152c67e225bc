from __future__ import annotations

import argparse
from pathlib import Path

from chains.chat_orchestrator import ChatOrchestrator
from common.errors import MediaRagError
from common.logger import get_logger
from graph.neo4j_client import Neo4jDocumentStore
from graph.store import InMemoryDocumentStore
from ingestion.document_models import MediaType
from ingestion.ingest_pipeline import IngestionPipeline, ingest_paths

log = get_logger(__name__)


def main():
    p = argparse.ArgumentParser("Ask a question about a tenant's documents")
    p.add_argument("question", type=str)
    p.add_argument("--tenant", type=str, required=True)
    p.add_argument("--file", type=Path, default=None, help="Ingest this file before asking")
    p.add_argument(
        "--types",
        nargs="+",
        choices=[m.value for m in MediaType],
        default=None,
        help="Only answer from these media types",
    )
    p.add_argument("--top_k", type=int, default=None)
    p.add_argument("--memory", action="store_true", help="Use an in-memory store")
    args = p.parse_args()

    store = InMemoryDocumentStore() if args.memory else Neo4jDocumentStore()
    with store:
        if args.file:
            if not args.file.is_file():
                log.error("File not found: %s", args.file)
                raise SystemExit(1)
            ingest_paths(IngestionPipeline(store), [args.file], args.tenant)
            print(f"Successfully processed and stored file: {args.file.name}")

        kwargs = {"top_k": args.top_k} if args.top_k is not None else {}
        bot = ChatOrchestrator(store, **kwargs)
        try:
            result = bot.chat(args.question, args.tenant, media_types=args.types)
        except MediaRagError as e:
            log.error("Chat failed: %s", e)
            raise SystemExit(1)

    print("\n=== ANSWER ===\n")
    print(result.response)

    if result.documents:
        print("\n=== SOURCES ===\n")
        for d in result.documents:
            print(f"- {d.filename} ({d.media_type.value}, {d.file_type})")


if __name__ == "__main__":
    main()
