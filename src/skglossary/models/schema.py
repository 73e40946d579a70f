"""Explicit collection schema descriptor.

The schema maps storage field names to their role in the vector store. It is
handed to a collection at construction time, so the record class carries no
store-specific annotations and several embedding dimensions can coexist.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from skglossary.errors import InvalidFilterError, SchemaMismatchError


class FieldRole(str, Enum):
    KEY = "key"
    SCALAR = "scalar"
    VECTOR = "vector"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    role: FieldRole
    filterable: bool = False
    searchable: bool = False
    dimension: Optional[int] = None


@dataclass(frozen=True)
class CollectionSchema:
    fields: Tuple[FieldSpec, ...]
    metric: str = "cosine"

    def __post_init__(self) -> None:
        keys = [f for f in self.fields if f.role is FieldRole.KEY]
        vectors = [f for f in self.fields if f.role is FieldRole.VECTOR]
        if len(keys) != 1:
            raise ValueError(f"schema needs exactly one key field, got {len(keys)}")
        if len(vectors) != 1:
            raise ValueError(f"schema needs exactly one vector field, got {len(vectors)}")
        if not vectors[0].dimension or vectors[0].dimension <= 0:
            raise ValueError("vector field dimension must be a positive integer")
        names = [f.name for f in self.fields]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate field names in schema: {names}")

    @property
    def by_name(self) -> Dict[str, FieldSpec]:
        return {f.name: f for f in self.fields}

    @property
    def key_field(self) -> FieldSpec:
        return next(f for f in self.fields if f.role is FieldRole.KEY)

    @property
    def vector_field(self) -> FieldSpec:
        return next(f for f in self.fields if f.role is FieldRole.VECTOR)

    @property
    def dimension(self) -> int:
        return int(self.vector_field.dimension)  # type: ignore[arg-type]

    @property
    def data_field_names(self) -> Tuple[str, ...]:
        """Every non-vector field, i.e. what a search should select."""
        return tuple(f.name for f in self.fields if f.role is not FieldRole.VECTOR)

    def validate_vector(self, vector: Optional[Sequence[float]]) -> None:
        if vector is None:
            raise SchemaMismatchError(
                f"record has no value for vector field {self.vector_field.name!r}"
            )
        if len(vector) != self.dimension:
            raise SchemaMismatchError(
                f"Embedding vector length {len(vector)} != expected {self.dimension}"
            )

    def require_filterable(self, name: str) -> FieldSpec:
        spec = self.by_name.get(name)
        if spec is None:
            raise InvalidFilterError(f"unknown field {name!r}")
        if spec.role is FieldRole.VECTOR or not (spec.filterable or spec.role is FieldRole.KEY):
            raise InvalidFilterError(f"field {name!r} is not filterable")
        return spec


def glossary_schema(dimension: int, metric: str = "cosine") -> CollectionSchema:
    """Schema for :class:`~skglossary.models.glossary.GlossaryEntry` records."""
    return CollectionSchema(
        fields=(
            FieldSpec("key", FieldRole.KEY, filterable=True),
            FieldSpec("category", FieldRole.SCALAR, filterable=True),
            FieldSpec("term", FieldRole.SCALAR),
            FieldSpec("definition", FieldRole.SCALAR, searchable=True),
            FieldSpec("definitionEmbedding", FieldRole.VECTOR, dimension=dimension),
            FieldSpec("url", FieldRole.SCALAR, filterable=True),
        ),
        metric=metric,
    )
