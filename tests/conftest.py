"""Pytest configuration: ensure project src/ is importable, load .env, shared fakes."""
import asyncio
import os
import re
import sys
from pathlib import Path
from typing import Dict, List

import pytest
from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Load .env at project root
load_dotenv(dotenv_path=ROOT / ".env", override=False)

from skglossary.models.schema import glossary_schema  # noqa: E402
from skglossary.services.in_memory import InMemoryVectorCollection  # noqa: E402

TEST_DIMENSION = 256
_TOKEN = re.compile(r"[a-z0-9]+")


class FakeEmbedder:
    """Deterministic bag-of-words embedder.

    Each new word gets the next free dimension, so texts sharing words get
    similar vectors and unrelated words never collide. The empty string maps
    to the zero vector.
    """

    def __init__(self, dimension: int = TEST_DIMENSION, delay: float = 0.0):
        self.dimension = dimension
        self.delay = delay
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.fail_on: set = set()
        self._vocabulary: Dict[str, int] = {}

    def vector(self, text: str) -> List[float]:
        vec = [0.0] * self.dimension
        for token in _TOKEN.findall(text.lower()):
            bucket = self._vocabulary.setdefault(token, len(self._vocabulary)) % self.dimension
            vec[bucket] += 1.0
        return vec

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if text in self.fail_on:
                from skglossary.errors import TransientServiceError

                raise TransientServiceError(f"throttled while embedding {text[:20]!r}")
            return self.vector(text)
        finally:
            self.in_flight -= 1


@pytest.fixture()
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def schema():
    return glossary_schema(TEST_DIMENSION)


@pytest.fixture()
async def collection(schema):
    store = InMemoryVectorCollection("skglossary-test", schema)
    await store.create_if_not_exists()
    return store


@pytest.fixture()
def clean_env(monkeypatch):
    """Strip every variable load_config reads so tests control the environment."""
    for name in list(os.environ):
        if name.startswith(("AZURE_OPENAI_", "AISEARCH_", "MODEL_", "GLOSSARY_", "OPENAI_")) or name == "LOG_LEVEL":
            monkeypatch.delenv(name, raising=False)
    return monkeypatch
