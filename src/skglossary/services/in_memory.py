"""In-process vector collection.

Mirrors the Azure AI Search collection closely enough to run the whole
workflow without a search service: same schema checks, same filter
semantics, scores where higher means more similar.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from skglossary.errors import CollectionNotFoundError
from skglossary.models.glossary import GlossaryEntry, VectorSearchResult
from skglossary.models.schema import CollectionSchema
from skglossary.services.vector_collection import EqualityFilter, VectorCollection

logger = logging.getLogger(__name__)


def similarity(query: np.ndarray, stored: np.ndarray, metric: str) -> float:
    if metric == "dotProduct":
        return float(np.dot(query, stored))
    if metric == "euclidean":
        return float(1.0 / (1.0 + np.linalg.norm(query - stored)))
    norm = np.linalg.norm(query) * np.linalg.norm(stored)
    if norm == 0:
        return 0.0
    return float(np.dot(query, stored) / norm)


class InMemoryVectorCollection(VectorCollection):
    def __init__(self, name: str, schema: CollectionSchema):
        super().__init__(name, schema)
        self._records: Optional[Dict[str, GlossaryEntry]] = None
        self._lock = asyncio.Lock()

    def _require_records(self) -> Dict[str, GlossaryEntry]:
        if self._records is None:
            raise CollectionNotFoundError(f"collection {self.name!r} does not exist")
        return self._records

    async def create_if_not_exists(self) -> None:
        if self._records is None:
            self._records = {}
            logger.info("Created in-memory collection %s", self.name)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._require_records().pop(key, None)

    async def upsert(self, record: GlossaryEntry) -> str:
        self._check_upsert(record)
        async with self._lock:
            self._require_records()[record.key] = record.model_copy(deep=True)
        return record.key

    async def get(self, key: str) -> Optional[GlossaryEntry]:
        found = self._require_records().get(key)
        return found.model_copy(deep=True) if found is not None else None

    async def vector_search(
        self,
        vector: Sequence[float],
        *,
        top: int = 3,
        filter: Optional[EqualityFilter] = None,
    ) -> List[VectorSearchResult]:
        self._check_search(vector, top, filter)
        query = np.asarray(vector, dtype=np.float64)
        scored: List[VectorSearchResult] = []
        for record in self._candidates(filter):
            stored = np.asarray(record.definition_embedding, dtype=np.float64)
            score = similarity(query, stored, self.schema.metric)
            scored.append(VectorSearchResult(record=record.model_copy(deep=True), score=score))
        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[:top]

    async def filter_search(
        self, filter: EqualityFilter, *, top: int = 1
    ) -> List[VectorSearchResult]:
        self._check_filter_only(filter, top)
        hits = [
            VectorSearchResult(record=record.model_copy(deep=True))
            for record in self._candidates(filter)
        ]
        return hits[:top]

    async def count(self) -> int:
        return len(self._require_records())

    def _candidates(self, filter: Optional[EqualityFilter]) -> List[GlossaryEntry]:
        records = self._require_records().values()
        if not filter:
            return list(records)
        return [r for r in records if filter.matches(r.to_document())]
