"""Environment-driven configuration for the glossary workflow.

Values are read from the process environment after loading an optional
``.env`` file (python-dotenv, ``override=False`` so exported variables win).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

from skglossary.errors import ConfigurationError

DEFAULT_EMBEDDING_DIMENSION = 3072  # text-embedding-3-large
VALID_METRICS = {"cosine", "dotProduct", "euclidean"}
_SECRET_FIELDS = {"openai_api_key", "search_api_key"}


@dataclass(frozen=True)
class GlossaryConfig:
    openai_endpoint: str
    search_endpoint: str
    index_name: str
    embedding_deployment: str
    embedding_api_version: str
    embedding_model_id: Optional[str] = None
    embedding_dimension: int = DEFAULT_EMBEDDING_DIMENSION
    chat_deployment: Optional[str] = None
    chat_model_id: Optional[str] = None
    chat_api_version: Optional[str] = None
    openai_api_key: Optional[str] = None
    search_api_key: Optional[str] = None
    vector_metric: str = "cosine"
    max_concurrency: int = 8
    openai_max_retries: int = 0
    search_retry_total: int = 0
    log_level: str = "INFO"

    def masked(self, keep: int = 4) -> Dict[str, str]:
        """Return every setting as a string with secrets reduced to a short prefix."""
        out: Dict[str, str] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                out[f.name] = "<unset>"
            elif f.name in _SECRET_FIELDS:
                text = str(value)
                out[f.name] = text[:keep] + "***" if len(text) > keep else "***"
            else:
                out[f.name] = str(value)
        return out


def _require(env: Mapping[str, str], name: str) -> str:
    value = (env.get(name) or "").strip()
    if not value:
        raise ConfigurationError(f"Environment variable {name} is not set")
    return value


def _optional(env: Mapping[str, str], name: str) -> Optional[str]:
    value = (env.get(name) or "").strip()
    return value or None


def _int(env: Mapping[str, str], name: str, default: int, *, minimum: int) -> int:
    raw = _optional(env, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _endpoint(env: Mapping[str, str], name: str) -> str:
    value = _require(env, name)
    if not value.startswith(("https://", "http://")):
        raise ConfigurationError(f"{name} must be an http(s) URL, got {value!r}")
    return value.rstrip("/")


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    dotenv_path: Optional[Path] = None,
) -> GlossaryConfig:
    """Build a :class:`GlossaryConfig`, failing fast on anything missing or malformed.

    When ``env`` is given it is used as-is and no ``.env`` file is read; this
    keeps tests independent of the developer's shell.
    """
    if env is None:
        load_dotenv(dotenv_path=dotenv_path, override=False)
        env = os.environ

    metric = _optional(env, "AISEARCH_VECTOR_METRIC") or "cosine"
    if metric not in VALID_METRICS:
        raise ConfigurationError(
            f"AISEARCH_VECTOR_METRIC must be one of {sorted(VALID_METRICS)}, got {metric!r}"
        )

    return GlossaryConfig(
        openai_endpoint=_endpoint(env, "AZURE_OPENAI_ENDPOINT"),
        search_endpoint=_endpoint(env, "AISEARCH_ENDPOINT"),
        index_name=_require(env, "AISEARCH_INDEXNAME"),
        embedding_deployment=_require(env, "MODEL_EMBEDDINGS_DEPLOYMENT_NAME"),
        embedding_api_version=_require(env, "MODEL_EMBEDDINGS_VERSION"),
        embedding_model_id=_optional(env, "MODEL_EMBEDDINGS_ID"),
        embedding_dimension=_int(
            env, "MODEL_EMBEDDINGS_DIMENSION", DEFAULT_EMBEDDING_DIMENSION, minimum=1
        ),
        chat_deployment=_optional(env, "MODEL_CHAT_DEPLOYMENT_NAME"),
        chat_model_id=_optional(env, "MODEL_CHAT_ID"),
        chat_api_version=_optional(env, "MODEL_CHAT_VERSION"),
        openai_api_key=_optional(env, "AZURE_OPENAI_API_KEY"),
        search_api_key=_optional(env, "AISEARCH_API_KEY"),
        vector_metric=metric,
        max_concurrency=_int(env, "GLOSSARY_MAX_CONCURRENCY", 8, minimum=1),
        openai_max_retries=_int(env, "OPENAI_MAX_RETRIES", 0, minimum=0),
        search_retry_total=_int(env, "AISEARCH_RETRY_TOTAL", 0, minimum=0),
        log_level=(_optional(env, "LOG_LEVEL") or "INFO").upper(),
    )
