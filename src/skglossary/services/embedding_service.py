"""Azure OpenAI embedding client."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Optional

import openai
from openai import AsyncAzureOpenAI

from skglossary.errors import AuthenticationError, GlossaryServiceError, TransientServiceError

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)
_AUTH_ERRORS = (openai.AuthenticationError, openai.PermissionDeniedError)


def map_openai_error(exc: Exception, deployment: str) -> Exception:
    """Translate an OpenAI SDK exception into the skglossary hierarchy."""
    if isinstance(exc, _AUTH_ERRORS):
        return AuthenticationError(f"Azure OpenAI rejected the credential: {exc}")
    if isinstance(exc, _TRANSIENT_ERRORS):
        return TransientServiceError(f"Embedding deployment {deployment} unavailable: {exc}")
    return GlossaryServiceError(f"Embedding request to {deployment} failed: {exc}")


class AzureOpenAIEmbeddingService:
    """Maps text to a dense vector using an Azure OpenAI embedding deployment.

    The underlying ``AsyncAzureOpenAI`` client is safe to share between
    concurrent tasks; one instance serves the whole workflow.
    """

    def __init__(
        self,
        *,
        endpoint: str,
        deployment: str,
        api_version: str,
        api_key: Optional[str] = None,
        token_provider: Optional[Callable[[], Awaitable[str]]] = None,
        max_retries: int = 0,
        dimension: Optional[int] = None,
        client: Optional[Any] = None,
    ):
        self.deployment = deployment
        self.dimension = dimension
        if client is not None:
            self._client = client
        elif api_key:
            self._client = AsyncAzureOpenAI(
                api_key=api_key,
                azure_endpoint=endpoint,
                api_version=api_version,
                max_retries=max_retries,
            )
        elif token_provider is not None:
            self._client = AsyncAzureOpenAI(
                azure_ad_token_provider=token_provider,
                azure_endpoint=endpoint,
                api_version=api_version,
                max_retries=max_retries,
            )
        else:
            raise ValueError("either api_key or token_provider is required")
        logger.info("Embedding service ready: deployment=%s endpoint=%s", deployment, endpoint)

    async def embed(self, text: str) -> List[float]:
        """Embed a single text.

        The embeddings endpoint rejects empty input, so the empty string maps
        to the zero vector of ``dimension`` without a request.
        """
        if text == "" and self.dimension:
            return [0.0] * self.dimension
        try:
            response = await self._client.embeddings.create(input=text, model=self.deployment)
        except openai.OpenAIError as exc:
            logger.error("Embedding request failed (deployment=%s): %s", self.deployment, exc)
            raise map_openai_error(exc, self.deployment) from exc
        return list(response.data[0].embedding)

    async def close(self) -> None:
        await self._client.close()

    async def __aenter__(self) -> "AzureOpenAIEmbeddingService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
