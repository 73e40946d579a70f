"""Credential construction for Azure OpenAI and Azure AI Search.

Keyless (Microsoft Entra / managed identity) is the default. An API key is
used only when one is configured.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from azure.core.credentials import AzureKeyCredential
from azure.identity.aio import DefaultAzureCredential, get_bearer_token_provider

logger = logging.getLogger(__name__)

COGNITIVE_SERVICES_SCOPE = "https://cognitiveservices.azure.com/.default"


def build_default_credential() -> DefaultAzureCredential:
    logger.info("Using DefaultAzureCredential (keyless) for Azure authentication")
    return DefaultAzureCredential()


def search_credential(api_key: Optional[str], default_credential: Any) -> Any:
    """AzureKeyCredential when ``api_key`` is set, otherwise the shared token credential."""
    if api_key:
        return AzureKeyCredential(api_key)
    return default_credential


def openai_token_provider(default_credential: Any) -> Callable[[], Awaitable[str]]:
    return get_bearer_token_provider(default_credential, COGNITIVE_SERVICES_SCOPE)
