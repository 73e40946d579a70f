"""Glossary workflow driver.

Sequence: create collection -> embed every definition concurrently -> for each
entry delete its key then upsert it, concurrently -> run the sample lookups.
Embedding and upsert failures abort the run. Each lookup is independent and
its failure is recorded in the :class:`WorkflowReport` instead.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Optional, Protocol, Sequence, TypeVar

from skglossary.errors import GlossaryError
from skglossary.models.glossary import GlossaryEntry, VectorSearchResult, create_glossary_entries
from skglossary.services.vector_collection import EqualityFilter, VectorCollection

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

RAG_QUERY = "What is Retrieval Augmented Generation"
EXTERNAL_CATEGORY = "External Definitions"
SAMPLE_URL = "https://example.com/1"
LOOKUP_STRATEGIES = ("filter", "vector")


class Embedder(Protocol):
    async def embed(self, text: str) -> List[float]: ...


@dataclass
class LookupOutcome:
    name: str
    results: List[VectorSearchResult] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class WorkflowReport:
    upserted_keys: List[str] = field(default_factory=list)
    lookups: List[LookupOutcome] = field(default_factory=list)

    @property
    def failed_lookups(self) -> List[LookupOutcome]:
        return [lookup for lookup in self.lookups if not lookup.ok]

    @property
    def succeeded(self) -> bool:
        return not self.failed_lookups


class GlossaryWorkflow:
    def __init__(
        self,
        embedder: Embedder,
        collection: VectorCollection,
        *,
        max_concurrency: int = 8,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.embedder = embedder
        self.collection = collection
        self.max_concurrency = max_concurrency

    async def initialize(self) -> None:
        await self.collection.create_if_not_exists()

    async def embed_entries(self, entries: Sequence[GlossaryEntry]) -> List[GlossaryEntry]:
        """Compute ``definition_embedding`` for every entry; all-or-nothing."""

        async def _embed(entry: GlossaryEntry) -> GlossaryEntry:
            entry.definition_embedding = await self.embedder.embed(entry.definition)
            logger.debug("Embedded entry %s (%d dims)", entry.key, len(entry.definition_embedding))
            return entry

        embedded = await self._fan_out(_embed, entries)
        logger.info("Embedded %d glossary entries", len(embedded))
        return embedded

    async def upsert_entries(self, entries: Sequence[GlossaryEntry]) -> List[str]:
        """Replace every entry in the collection and return the upserted keys."""
        missing = [entry.key for entry in entries if entry.definition_embedding is None]
        if missing:
            raise ValueError(f"entries without embeddings cannot be upserted: {missing}")

        async def _replace(entry: GlossaryEntry) -> str:
            # delete must finish before the upsert for the same key is issued
            await self.collection.delete(entry.key)
            try:
                return await self.collection.upsert(entry)
            except GlossaryError:
                logger.exception("Error upserting entry %s", entry.key)
                raise

        keys = await self._fan_out(_replace, entries)
        logger.info("Upserted keys: %s", ", ".join(keys))
        return keys

    async def search(
        self,
        text: str,
        *,
        top: int = 1,
        category: Optional[str] = None,
    ) -> List[VectorSearchResult]:
        vector = await self.embedder.embed(text)
        search_filter = EqualityFilter().equal_to("category", category) if category else None
        return await self.collection.vector_search(vector, top=top, filter=search_filter)

    async def find_key_by_url(self, url: str, *, strategy: str = "filter") -> Optional[str]:
        """Return the key of the record stored under ``url``, or None.

        ``filter`` issues a pure scalar-filter query. ``vector`` runs a
        filtered vector search with a zero query vector and ignores the score;
        it exists for stores without a filter-only endpoint.
        """
        url_filter = EqualityFilter().equal_to("url", url)
        if strategy == "filter":
            hits = await self.collection.filter_search(url_filter, top=1)
        elif strategy == "vector":
            neutral = [0.0] * self.collection.schema.dimension
            hits = await self.collection.vector_search(neutral, top=1, filter=url_filter)
        else:
            raise ValueError(f"unknown lookup strategy {strategy!r}, expected one of {LOOKUP_STRATEGIES}")
        if not hits:
            logger.info("No record found for url %s", url)
            return None
        key = hits[0].record.key
        logger.info("Found key %s for url %s", key, url)
        return key

    async def run(self, entries: Optional[Iterable[GlossaryEntry]] = None) -> WorkflowReport:
        entries = list(entries) if entries is not None else list(create_glossary_entries())

        await self.initialize()
        await self.embed_entries(entries)
        report = WorkflowReport(upserted_keys=await self.upsert_entries(entries))

        report.lookups.append(
            await self._lookup("rag-top1", lambda: self.search(RAG_QUERY, top=1))
        )
        report.lookups.append(
            await self._lookup(
                "rag-external-top3",
                lambda: self.search(RAG_QUERY, top=3, category=EXTERNAL_CATEGORY),
            )
        )
        report.lookups.append(await self._lookup("url-lookup", self._url_lookup))
        return report

    async def _url_lookup(self) -> List[VectorSearchResult]:
        return await self.collection.filter_search(EqualityFilter().equal_to("url", SAMPLE_URL), top=1)

    async def _lookup(
        self, name: str, call: Callable[[], Awaitable[List[VectorSearchResult]]]
    ) -> LookupOutcome:
        try:
            results = await call()
        except GlossaryError as exc:
            logger.exception("Lookup %s failed", name)
            return LookupOutcome(name=name, error=exc)
        logger.info("Lookup %s returned %d result(s)", name, len(results))
        return LookupOutcome(name=name, results=results)

    async def _fan_out(self, func: Callable[[T], Awaitable[R]], items: Sequence[T]) -> List[R]:
        """Run ``func`` over ``items`` with bounded concurrency.

        The first failure cancels the remaining tasks and is re-raised.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(item: T) -> R:
            async with semaphore:
                return await func(item)

        tasks = [asyncio.ensure_future(_bounded(item)) for item in items]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
