"""Command line entry point: ``skglossary [run|init|search|find-url|delete|env]``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from contextlib import AsyncExitStack
from typing import List, Optional, Sequence, Tuple

from skglossary.config import GlossaryConfig, load_config
from skglossary.errors import ConfigurationError
from skglossary.models.glossary import VectorSearchResult
from skglossary.models.schema import glossary_schema
from skglossary.services.azure_ai_search import AzureAISearchCollection
from skglossary.services.credentials import (
    build_default_credential,
    openai_token_provider,
    search_credential,
)
from skglossary.services.embedding_service import AzureOpenAIEmbeddingService
from skglossary.services.in_memory import InMemoryVectorCollection
from skglossary.services.vector_collection import VectorCollection
from skglossary.workflow import LOOKUP_STRATEGIES, GlossaryWorkflow, WorkflowReport

logger = logging.getLogger("skglossary")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_PARTIAL = 3


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for noisy in ("azure", "httpx", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skglossary",
        description="Upsert glossary entries into a vector index and query them.",
    )
    parser.add_argument(
        "--in-memory",
        action="store_true",
        help="use an in-process collection instead of Azure AI Search (embeddings stay remote)",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="create, embed, upsert, then run the sample lookups (default)")
    sub.add_parser("init", help="create the index if it does not exist")

    p_search = sub.add_parser("search", help="vector search by free text")
    p_search.add_argument("--text", required=True, help="query text")
    p_search.add_argument("--top", type=int, default=3, help="number of results (default=3)")
    p_search.add_argument("--category", help="restrict results to this category")

    p_url = sub.add_parser("find-url", help="find the key of the record stored under a url")
    p_url.add_argument("url")
    p_url.add_argument("--strategy", choices=LOOKUP_STRATEGIES, default="filter")

    p_delete = sub.add_parser("delete", help="delete a record by key")
    p_delete.add_argument("--key", required=True)

    sub.add_parser("env", help="print the loaded configuration with secrets masked")
    return parser


async def _open_services(
    config: GlossaryConfig, stack: AsyncExitStack, *, in_memory: bool
) -> Tuple[AzureOpenAIEmbeddingService, VectorCollection]:
    credential = await stack.enter_async_context(build_default_credential())
    embedder = await stack.enter_async_context(
        AzureOpenAIEmbeddingService(
            endpoint=config.openai_endpoint,
            deployment=config.embedding_deployment,
            api_version=config.embedding_api_version,
            api_key=config.openai_api_key,
            token_provider=None if config.openai_api_key else openai_token_provider(credential),
            max_retries=config.openai_max_retries,
            dimension=config.embedding_dimension,
        )
    )
    schema = glossary_schema(config.embedding_dimension, config.vector_metric)
    collection: VectorCollection
    if in_memory:
        # lives only for this process, so every subcommand starts from an empty collection
        collection = InMemoryVectorCollection(config.index_name, schema)
        await collection.create_if_not_exists()
    else:
        collection = AzureAISearchCollection(
            endpoint=config.search_endpoint,
            index_name=config.index_name,
            schema=schema,
            credential=search_credential(config.search_api_key, credential),
            retry_total=config.search_retry_total,
        )
    await stack.enter_async_context(collection)
    return embedder, collection


def print_results(title: str, results: List[VectorSearchResult]) -> None:
    print(f"{title}: {len(results)} result(s)")
    for i, r in enumerate(results, 1):
        score = f"{r.score:.4f}" if r.score is not None else "-"
        print(f"  [{i}] key={r.record.key} score={score} term={r.record.term!r}")
        print(f"      {r.record.definition}")


def print_report(report: WorkflowReport) -> None:
    print(f"Upserted keys: {', '.join(report.upserted_keys)}")
    for lookup in report.lookups:
        if lookup.ok:
            print_results(lookup.name, lookup.results)
        else:
            print(f"{lookup.name}: FAILED ({lookup.error})")


async def _dispatch(args: argparse.Namespace, config: GlossaryConfig) -> int:
    async with AsyncExitStack() as stack:
        embedder, collection = await _open_services(config, stack, in_memory=args.in_memory)
        workflow = GlossaryWorkflow(embedder, collection, max_concurrency=config.max_concurrency)

        if args.command in (None, "run"):
            report = await workflow.run()
            print_report(report)
            return EXIT_OK if report.succeeded else EXIT_PARTIAL

        if args.command == "init":
            await workflow.initialize()
            print(f"Index '{collection.name}' ready")
        elif args.command == "search":
            results = await workflow.search(args.text, top=args.top, category=args.category)
            print_results(f"Search {args.text!r}", results)
        elif args.command == "find-url":
            key = await workflow.find_key_by_url(args.url, strategy=args.strategy)
            print(f"Key for url '{args.url}': {key if key is not None else '<not found>'}")
            if key is None:
                return EXIT_FAILURE
        elif args.command == "delete":
            await collection.delete(args.key)
            print(f"Deleted key={args.key}")
        return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config()
    except ConfigurationError as exc:
        configure_logging("INFO")
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG
    configure_logging(config.log_level)

    if args.command == "env":
        for name, value in config.masked().items():
            print(f"  {name} = {value}")
        return EXIT_OK

    try:
        return asyncio.run(_dispatch(args, config))
    except Exception as exc:
        logger.exception("An error occurred: %s", exc)
        return EXIT_FAILURE


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
