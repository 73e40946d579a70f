from __future__ import annotations

"""Glossary record model and the built-in sample set."""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class GlossaryEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(..., min_length=1, description="Unique record identifier")
    category: str = Field(..., description="Filterable grouping")
    term: str = Field(..., description="Glossary term")
    definition: str = Field(..., description="Text the embedding is computed from")
    definition_embedding: Optional[List[float]] = Field(
        default=None,
        alias="definitionEmbedding",
        description="Embedding of `definition`; must be set before upsert",
    )
    url: str = Field(..., description="External correlation key, distinct from `key`")

    def to_document(self) -> Dict[str, Any]:
        """Serialise to the storage mapping (camelCase vector field)."""
        if self.definition_embedding is None:
            raise ValueError(f"entry {self.key!r} has no definition embedding")
        return self.model_dump(by_alias=True)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "GlossaryEntry":
        """Build an entry from a search hit, ignoring service annotations like ``@search.score``."""
        data = {k: v for k, v in document.items() if not k.startswith("@")}
        return cls.model_validate(data)


@dataclass
class VectorSearchResult:
    record: GlossaryEntry
    # None for filter-only lookups, where similarity is meaningless
    score: Optional[float] = None


def create_glossary_entries() -> Iterator[GlossaryEntry]:
    yield GlossaryEntry(
        key="1",
        category="External Definitions",
        term="API",
        definition=(
            "Application Programming Interface. A set of rules and specifications that allow "
            "software components to communicate and exchange data."
        ),
        url="https://example.com/1",
    )
    yield GlossaryEntry(
        key="2",
        category="Core Definitions",
        term="Connectors",
        definition=(
            "Connectors allow you to integrate with various services provide AI capabilities, "
            "including LLM, AudioToText, TextToAudio, Embedding generation, etc."
        ),
        url="https://example.com/2",
    )
    yield GlossaryEntry(
        key="3",
        category="External Definitions",
        term="RAG",
        definition=(
            "Retrieval Augmented Generation - a term that refers to the process of retrieving "
            "additional data to provide as context to an LLM to use when generating a response "
            "(completion) to a user's question (prompt)."
        ),
        url="https://example.com/3",
    )
