"""CLI tests: service construction is patched, the in-memory collection does the storage."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

from skglossary import main as cli
from skglossary.config import load_config
from skglossary.errors import AuthenticationError, ConfigurationError

from conftest import TEST_DIMENSION, FakeEmbedder

ENV = {
    "AZURE_OPENAI_ENDPOINT": "https://aoai.example.openai.azure.com",
    "AISEARCH_ENDPOINT": "https://search.example.search.windows.net",
    "AISEARCH_INDEXNAME": "skglossary",
    "MODEL_EMBEDDINGS_DEPLOYMENT_NAME": "text-embedding-3-large",
    "MODEL_EMBEDDINGS_VERSION": "2024-02-01",
    "MODEL_EMBEDDINGS_DIMENSION": str(TEST_DIMENSION),
    "AISEARCH_API_KEY": "search-admin-key",
}


class DummyCredential:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None


class FakeEmbeddingService(FakeEmbedder):
    instances = []

    def __init__(self, **kwargs):
        super().__init__()
        self.kwargs = kwargs
        FakeEmbeddingService.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None


@pytest.fixture()
def patched_cli(monkeypatch):
    FakeEmbeddingService.instances = []
    monkeypatch.setattr(cli, "load_config", lambda: load_config(dict(ENV)))
    monkeypatch.setattr(cli, "build_default_credential", DummyCredential)
    monkeypatch.setattr(cli, "openai_token_provider", lambda credential: "token-provider")
    monkeypatch.setattr(cli, "AzureOpenAIEmbeddingService", FakeEmbeddingService)
    return cli


def test_run_in_memory_prints_report(patched_cli, capsys):
    assert patched_cli.main(["--in-memory", "run"]) == cli.EXIT_OK
    out = capsys.readouterr().out
    assert "Upserted keys: 1, 2, 3" in out
    assert "rag-top1: 1 result(s)" in out
    assert "url-lookup: 1 result(s)" in out


def test_default_command_is_run(patched_cli, capsys):
    assert patched_cli.main(["--in-memory"]) == cli.EXIT_OK
    assert "Upserted keys" in capsys.readouterr().out


def test_api_key_disables_token_provider(patched_cli, monkeypatch):
    monkeypatch.setattr(cli, "load_config", lambda: load_config(dict(ENV, AZURE_OPENAI_API_KEY="aoai-key")))
    assert patched_cli.main(["--in-memory", "init"]) == cli.EXIT_OK
    kwargs = FakeEmbeddingService.instances[-1].kwargs
    assert kwargs["api_key"] == "aoai-key"
    assert kwargs["token_provider"] is None


def test_find_url_not_found_on_empty_collection(patched_cli, capsys):
    assert patched_cli.main(["--in-memory", "find-url", "https://example.com/2"]) == cli.EXIT_FAILURE
    assert "<not found>" in capsys.readouterr().out


def test_env_masks_secrets(patched_cli, capsys):
    assert patched_cli.main(["env"]) == cli.EXIT_OK
    out = capsys.readouterr().out
    assert "sear***" in out
    assert "search-admin-key" not in out


def test_configuration_error_exit_code(monkeypatch):
    def broken():
        raise ConfigurationError("AISEARCH_ENDPOINT is not set")

    monkeypatch.setattr(cli, "load_config", broken)
    assert cli.main(["run"]) == cli.EXIT_CONFIG


def test_fatal_error_returns_non_zero(patched_cli, monkeypatch):
    class RejectingEmbedder(FakeEmbeddingService):
        async def embed(self, text):
            raise AuthenticationError("credential rejected")

    monkeypatch.setattr(cli, "AzureOpenAIEmbeddingService", RejectingEmbedder)
    assert patched_cli.main(["--in-memory", "run"]) == cli.EXIT_FAILURE


def test_failed_lookup_returns_partial_code(patched_cli, monkeypatch):
    from skglossary.services.in_memory import InMemoryVectorCollection

    async def broken(self, filter, *, top=1):
        raise AuthenticationError("query key revoked")

    monkeypatch.setattr(InMemoryVectorCollection, "filter_search", broken)
    assert patched_cli.main(["--in-memory", "run"]) == cli.EXIT_PARTIAL


def test_module_entry_point_runs_env_command(tmp_path):
    src = Path(__file__).resolve().parent.parent / "src"
    env = {
        name: value
        for name, value in os.environ.items()
        if not name.startswith(("AZURE_OPENAI_", "AISEARCH_", "MODEL_", "GLOSSARY_", "OPENAI_"))
    }
    env.update(ENV)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(src), os.environ.get("PYTHONPATH")]))

    proc = subprocess.run(
        [sys.executable, "-m", "skglossary", "env"],
        cwd=tmp_path,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert proc.returncode == cli.EXIT_OK, proc.stderr
    assert "sear***" in proc.stdout
    assert "search-admin-key" not in proc.stdout
