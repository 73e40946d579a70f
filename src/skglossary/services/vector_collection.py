"""Vector collection contract shared by the Azure AI Search and in-memory stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from skglossary.errors import InvalidFilterError
from skglossary.models.glossary import GlossaryEntry, VectorSearchResult
from skglossary.models.schema import CollectionSchema


class EqualityFilter:
    """Conjunction of ``field == value`` clauses.

    >>> EqualityFilter().equal_to("category", "External Definitions").to_odata()
    "category eq 'External Definitions'"
    """

    def __init__(self) -> None:
        self._clauses: List[Tuple[str, str]] = []

    def equal_to(self, field: str, value: str) -> "EqualityFilter":
        self._clauses.append((field, str(value)))
        return self

    @property
    def clauses(self) -> Tuple[Tuple[str, str], ...]:
        return tuple(self._clauses)

    def __bool__(self) -> bool:
        return bool(self._clauses)

    def __repr__(self) -> str:
        return f"EqualityFilter({self.to_odata()!r})"

    def validate(self, schema: CollectionSchema) -> None:
        for field, _ in self._clauses:
            schema.require_filterable(field)

    def matches(self, document: Mapping[str, Any]) -> bool:
        return all(document.get(field) == value for field, value in self._clauses)

    def to_odata(self) -> str:
        # OData string literals escape a single quote by doubling it
        parts = []
        for field, value in self._clauses:
            escaped = value.replace("'", "''")
            parts.append(f"{field} eq '{escaped}'")
        return " and ".join(parts)


class VectorCollection(ABC):
    """A named, schema-typed store of :class:`GlossaryEntry` records."""

    def __init__(self, name: str, schema: CollectionSchema):
        self._name = name
        self._schema = schema

    @property
    def name(self) -> str:
        return self._name

    @property
    def schema(self) -> CollectionSchema:
        return self._schema

    @abstractmethod
    async def create_if_not_exists(self) -> None:
        """Create the collection; no-op when it already exists."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the record with ``key``. Succeeds silently when absent."""

    @abstractmethod
    async def upsert(self, record: GlossaryEntry) -> str:
        """Insert or fully replace ``record`` and return its key."""

    @abstractmethod
    async def get(self, key: str) -> Optional[GlossaryEntry]:
        """Point read by key."""

    @abstractmethod
    async def vector_search(
        self,
        vector: Sequence[float],
        *,
        top: int = 3,
        filter: Optional[EqualityFilter] = None,
    ) -> List[VectorSearchResult]:
        """Nearest neighbours by descending score, restricted to ``filter``."""

    @abstractmethod
    async def filter_search(
        self, filter: EqualityFilter, *, top: int = 1
    ) -> List[VectorSearchResult]:
        """Pure scalar-filter query; results carry no score."""

    @abstractmethod
    async def count(self) -> int:
        """Number of records currently stored."""

    async def close(self) -> None:  # pragma: no cover - nothing to release by default
        return None

    async def __aenter__(self) -> "VectorCollection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # shared argument checks -------------------------------------------------

    def _check_upsert(self, record: GlossaryEntry) -> None:
        self._schema.validate_vector(record.definition_embedding)

    def _check_search(
        self,
        vector: Optional[Sequence[float]],
        top: int,
        filter: Optional[EqualityFilter],
    ) -> None:
        if top < 1:
            raise ValueError(f"top must be >= 1, got {top}")
        if vector is not None:
            self._schema.validate_vector(vector)
        if filter is not None:
            filter.validate(self._schema)

    def _check_filter_only(self, filter: EqualityFilter, top: int) -> None:
        if not filter:
            raise InvalidFilterError("filter_search needs at least one clause")
        self._check_search(None, top, filter)
