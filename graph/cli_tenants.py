from __future__ import annotations

import argparse
import uuid

import orjson

from common.logger import get_logger
from graph.neo4j_client import Neo4jDocumentStore
from ingestion.document_models import MediaType
from retrieval.filters import build_document_filter

log = get_logger(__name__)


def main(argv=None):
    p = argparse.ArgumentParser("Manage tenants in the document graph")
    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="Tenants and their document counts")
    sub.add_parser("create", help="Mint a new tenant id")
    sub.add_parser("contents", help="Every stored document, across tenants")
    sub.add_parser("cleanup", help="Delete documents that have no tenant")

    delete = sub.add_parser("delete", help="Delete a tenant's documents matching filters")
    delete.add_argument("--tenant", type=str, required=True)
    delete.add_argument("--types", nargs="+", choices=[m.value for m in MediaType], default=None)
    delete.add_argument("--filenames", nargs="+", default=None)
    delete.add_argument("--file-types", nargs="+", default=None, help="Extensions, e.g. pdf mp4")

    query = sub.add_parser("query", help="Run a raw Cypher query and print the rows")
    query.add_argument("cypher", type=str)
    args = p.parse_args(argv)

    if args.command == "create":
        # tenants exist implicitly once they own a document
        print(str(uuid.uuid4()))
        return

    with Neo4jDocumentStore() as store:
        if args.command == "list":
            tenants = store.list_tenants()
            if not tenants:
                print("No tenants found.")
            for t in tenants:
                print(f"{t['databaseId']}\t{t['count']} documents")
        elif args.command == "contents":
            for r in store.contents():
                print(
                    f"{r['databaseId'] or '<none>'}\t{r['filename']}\t"
                    f"{r['mediaType']}\t{r['fileSize']} KB"
                )
        elif args.command == "cleanup":
            print(f"Removed {store.cleanup_orphans()} documents without a tenant")
        elif args.command == "delete":
            predicate = build_document_filter(
                media_types=args.types,
                filenames=args.filenames,
                file_types=args.file_types,
            )
            if predicate is None:
                log.error("Refusing to delete without --types, --filenames or --file-types")
                raise SystemExit(1)
            deleted = store.delete_where(args.tenant, predicate)
            print(f"Deleted {deleted} documents from tenant {args.tenant}")
        elif args.command == "query":
            rows = store.run(args.cypher)
            print(orjson.dumps(rows, default=str, option=orjson.OPT_INDENT_2).decode("utf-8"))


if __name__ == "__main__":
    main()
