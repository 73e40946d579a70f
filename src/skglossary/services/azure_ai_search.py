"""Azure AI Search vector collection built on the async azure-search-documents SDK."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.search.documents.aio import SearchClient
from azure.search.documents.indexes.aio import SearchIndexClient
from azure.search.documents.indexes.models import (
    HnswAlgorithmConfiguration,
    HnswParameters,
    SearchableField,
    SearchField,
    SearchFieldDataType,
    SearchIndex,
    SimpleField,
    VectorSearch,
    VectorSearchProfile,
)
from azure.search.documents.models import VectorizedQuery

from skglossary.errors import AuthenticationError, GlossaryServiceError, TransientServiceError
from skglossary.models.glossary import GlossaryEntry, VectorSearchResult
from skglossary.models.schema import CollectionSchema, FieldRole
from skglossary.services.vector_collection import EqualityFilter, VectorCollection

logger = logging.getLogger(__name__)

HNSW_CONFIG_NAME = "hnsw-config"
HNSW_PROFILE_NAME = "hnsw-profile"


def map_azure_error(exc: Exception, action: str) -> Exception:
    """Translate an azure-core exception into the skglossary hierarchy."""
    if isinstance(exc, ClientAuthenticationError):
        return AuthenticationError(f"{action}: credential rejected: {exc}")
    if isinstance(exc, (ServiceRequestError, ServiceResponseError)):
        return TransientServiceError(f"{action}: {exc}")
    status = getattr(exc, "status_code", None)
    if status is not None and (status == 429 or status >= 500):
        return TransientServiceError(f"{action}: HTTP {status}: {exc}")
    return GlossaryServiceError(f"{action}: {exc}")


def build_search_index(name: str, schema: CollectionSchema) -> SearchIndex:
    """Translate a :class:`CollectionSchema` into an Azure ``SearchIndex``."""
    fields: List[Any] = []
    for spec in schema.fields:
        if spec.role is FieldRole.KEY:
            fields.append(
                SimpleField(name=spec.name, type=SearchFieldDataType.String, key=True, filterable=True)
            )
        elif spec.role is FieldRole.VECTOR:
            fields.append(
                SearchField(
                    name=spec.name,
                    type=SearchFieldDataType.Collection(SearchFieldDataType.Single),
                    searchable=True,
                    vector_search_dimensions=spec.dimension,
                    vector_search_profile_name=HNSW_PROFILE_NAME,
                )
            )
        elif spec.searchable:
            fields.append(
                SearchableField(name=spec.name, type=SearchFieldDataType.String, filterable=spec.filterable)
            )
        else:
            fields.append(
                SimpleField(name=spec.name, type=SearchFieldDataType.String, filterable=spec.filterable)
            )

    vector_search = VectorSearch(
        algorithms=[
            HnswAlgorithmConfiguration(
                name=HNSW_CONFIG_NAME,
                parameters=HnswParameters(metric=schema.metric),
            )
        ],
        profiles=[
            VectorSearchProfile(
                name=HNSW_PROFILE_NAME,
                algorithm_configuration_name=HNSW_CONFIG_NAME,
            )
        ],
    )
    return SearchIndex(name=name, fields=fields, vector_search=vector_search)


class AzureAISearchCollection(VectorCollection):
    """Glossary collection backed by one Azure AI Search index.

    Both SDK clients are async and shared by every in-flight call.
    """

    def __init__(
        self,
        *,
        endpoint: str,
        index_name: str,
        schema: CollectionSchema,
        credential: Any,
        retry_total: Optional[int] = None,
    ):
        super().__init__(index_name, schema)
        self.endpoint = endpoint
        client_kwargs: Dict[str, Any] = {}
        if retry_total is not None:
            client_kwargs["retry_total"] = retry_total
        self.search_client = SearchClient(
            endpoint=endpoint,
            index_name=index_name,
            credential=credential,
            **client_kwargs,
        )
        self.index_client = SearchIndexClient(
            endpoint=endpoint,
            credential=credential,
            **client_kwargs,
        )

    async def create_if_not_exists(self) -> None:
        try:
            await self.index_client.get_index(self.name)
            logger.info("Index %s already exists", self.name)
            return
        except ResourceNotFoundError:
            pass
        except AzureError as exc:
            logger.error("Index existence check failed for %s: %s", self.name, exc)
            raise map_azure_error(exc, f"get index {self.name}") from exc

        try:
            await self.index_client.create_index(build_search_index(self.name, self.schema))
        except AzureError as exc:
            logger.error("Failed to create index %s: %s", self.name, exc)
            raise map_azure_error(exc, f"create index {self.name}") from exc
        logger.info(
            "Created Azure AI Search index %s (dimension=%d, metric=%s)",
            self.name,
            self.schema.dimension,
            self.schema.metric,
        )

    async def delete(self, key: str) -> None:
        key_field = self.schema.key_field.name
        try:
            results = await self.search_client.delete_documents(documents=[{key_field: key}])
        except ResourceNotFoundError:
            logger.debug("Delete of %s: not found", key)
            return
        except AzureError as exc:
            logger.error("Failed to delete document %s: %s", key, exc)
            raise map_azure_error(exc, f"delete {key}") from exc

        for item in results or []:
            if not item.succeeded and item.status_code != 404:
                raise GlossaryServiceError(
                    f"Azure AI Search delete of {key} failed: {item.error_message or 'unknown error'}"
                )

    async def upsert(self, record: GlossaryEntry) -> str:
        self._check_upsert(record)
        document = record.to_document()
        try:
            # upload replaces the whole document
            results = await self.search_client.upload_documents(documents=[document])
        except AzureError as exc:
            logger.error("Failed to upload document %s: %s", record.key, exc)
            raise map_azure_error(exc, f"upsert {record.key}") from exc

        failed = [item for item in results if not item.succeeded]
        if failed:
            error_message = failed[0].error_message or "Unknown Azure AI Search failure."
            raise GlossaryServiceError(f"Azure AI Search indexing of {record.key} failed: {error_message}")
        return record.key

    async def get(self, key: str) -> Optional[GlossaryEntry]:
        try:
            document = await self.search_client.get_document(key=key)
        except ResourceNotFoundError:
            return None
        except AzureError as exc:
            raise map_azure_error(exc, f"get {key}") from exc
        return GlossaryEntry.from_document(document)

    async def vector_search(
        self,
        vector: Sequence[float],
        *,
        top: int = 3,
        filter: Optional[EqualityFilter] = None,
    ) -> List[VectorSearchResult]:
        self._check_search(vector, top, filter)
        vector_query = VectorizedQuery(
            vector=[float(x) for x in vector],
            k_nearest_neighbors=top,
            fields=self.schema.vector_field.name,
        )
        kwargs: Dict[str, Any] = {}
        if filter:
            kwargs["filter"] = filter.to_odata()
        hits = await self._search(
            search_text=None, vector_queries=[vector_query], top=top, **kwargs
        )
        results = [
            VectorSearchResult(record=GlossaryEntry.from_document(hit), score=_score(hit))
            for hit in hits
        ]
        results.sort(key=lambda r: r.score or 0.0, reverse=True)
        return results[:top]

    async def filter_search(
        self, filter: EqualityFilter, *, top: int = 1
    ) -> List[VectorSearchResult]:
        self._check_filter_only(filter, top)
        hits = await self._search(search_text="*", filter=filter.to_odata(), top=top)
        return [VectorSearchResult(record=GlossaryEntry.from_document(hit)) for hit in hits]

    async def count(self) -> int:
        try:
            return int(await self.search_client.get_document_count())
        except AzureError as exc:
            raise map_azure_error(exc, f"count {self.name}") from exc

    async def close(self) -> None:
        await self.search_client.close()
        await self.index_client.close()

    async def _search(self, **kwargs: Any) -> List[Dict[str, Any]]:
        logger.debug("Azure AI Search query on %s: filter=%s top=%s", self.name, kwargs.get("filter"), kwargs.get("top"))
        try:
            pages = await self.search_client.search(
                select=list(self.schema.data_field_names),
                **kwargs,
            )
            return [dict(hit) async for hit in pages]
        except AzureError as exc:
            logger.error("Azure AI Search query failed: %s", exc)
            raise map_azure_error(exc, f"search {self.name}") from exc


def _score(hit: Dict[str, Any]) -> float:
    score = hit.get("@search.score")
    return float(score) if score is not None else 0.0
