"""Unit tests for environment-driven configuration."""

from __future__ import annotations

import pytest

from skglossary.config import DEFAULT_EMBEDDING_DIMENSION, load_config
from skglossary.errors import ConfigurationError

BASE_ENV = {
    "AZURE_OPENAI_ENDPOINT": "https://aoai.example.openai.azure.com/",
    "AISEARCH_ENDPOINT": "https://search.example.search.windows.net",
    "AISEARCH_INDEXNAME": "skglossary",
    "MODEL_EMBEDDINGS_DEPLOYMENT_NAME": "text-embedding-3-large",
    "MODEL_EMBEDDINGS_VERSION": "2024-02-01",
}


def test_defaults_from_minimal_env():
    config = load_config(dict(BASE_ENV))
    assert config.openai_endpoint == "https://aoai.example.openai.azure.com"
    assert config.embedding_dimension == DEFAULT_EMBEDDING_DIMENSION
    assert config.vector_metric == "cosine"
    assert config.max_concurrency == 8
    assert config.openai_api_key is None
    assert config.search_api_key is None
    assert config.chat_deployment is None


@pytest.mark.parametrize("missing", sorted(BASE_ENV))
def test_missing_required_value_fails_fast(missing):
    env = dict(BASE_ENV)
    env.pop(missing)
    with pytest.raises(ConfigurationError, match=missing):
        load_config(env)


def test_blank_value_counts_as_missing():
    env = dict(BASE_ENV, AISEARCH_INDEXNAME="   ")
    with pytest.raises(ConfigurationError):
        load_config(env)


def test_endpoint_must_be_url():
    env = dict(BASE_ENV, AISEARCH_ENDPOINT="search.example")
    with pytest.raises(ConfigurationError, match="AISEARCH_ENDPOINT"):
        load_config(env)


def test_dimension_is_configurable_and_validated():
    assert load_config(dict(BASE_ENV, MODEL_EMBEDDINGS_DIMENSION="1536")).embedding_dimension == 1536
    with pytest.raises(ConfigurationError):
        load_config(dict(BASE_ENV, MODEL_EMBEDDINGS_DIMENSION="lots"))
    with pytest.raises(ConfigurationError):
        load_config(dict(BASE_ENV, MODEL_EMBEDDINGS_DIMENSION="0"))


def test_unknown_metric_rejected():
    with pytest.raises(ConfigurationError, match="AISEARCH_VECTOR_METRIC"):
        load_config(dict(BASE_ENV, AISEARCH_VECTOR_METRIC="manhattan"))


def test_chat_settings_loaded_but_optional():
    env = dict(
        BASE_ENV,
        MODEL_CHAT_DEPLOYMENT_NAME="gpt-4o",
        MODEL_CHAT_ID="gpt-4o",
        MODEL_CHAT_VERSION="2024-08-01-preview",
    )
    config = load_config(env)
    assert config.chat_deployment == "gpt-4o"
    assert config.chat_api_version == "2024-08-01-preview"


def test_masked_hides_secrets():
    config = load_config(dict(BASE_ENV, AISEARCH_API_KEY="supersecretkey", LOG_LEVEL="debug"))
    masked = config.masked()
    assert masked["search_api_key"] == "supe***"
    assert masked["openai_api_key"] == "<unset>"
    assert masked["index_name"] == "skglossary"
    assert masked["log_level"] == "DEBUG"
