"""Shared test fixtures for ollamalink."""

from __future__ import annotations

from typing import Any

import pytest

from ollamalink.adapters.ollama import OllamaProvider
from ollamalink.config import EnvironmentSnapshot
from ollamalink.types import Message, Role

OLLAMA_ENV_VARS = ("OLLAMA_API_BASE_URL", "RUNNING_IN_DOCKER", "DEFAULT_NUM_CTX", "OPENAI_API_KEY")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host's Ollama settings out of every test."""
    for var in OLLAMA_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def snapshot() -> EnvironmentSnapshot:
    """Snapshot with nothing set, so every field holds its fallback."""
    return EnvironmentSnapshot.from_env({})


@pytest.fixture
def provider(snapshot: EnvironmentSnapshot) -> OllamaProvider:
    return OllamaProvider(snapshot)


@pytest.fixture
def tags_payload() -> dict[str, Any]:
    """A /api/tags body with two models."""
    return {
        "models": [
            {
                "name": "llama3",
                "model": "llama3:latest",
                "modified_at": "2024-05-01T10:00:00Z",
                "size": 4661224676,
                "digest": "365c0bd3c000",
                "details": {
                    "parent_model": "",
                    "format": "gguf",
                    "family": "llama",
                    "families": ["llama"],
                    "parameter_size": "8B",
                    "quantization_level": "Q4_0",
                },
            },
            {
                "name": "qwen2.5:7b",
                "model": "qwen2.5:7b",
                "modified_at": "2024-09-20T08:30:00Z",
                "size": 4683087332,
                "digest": "845dbda0ea48",
                "details": {
                    "format": "gguf",
                    "family": "qwen2",
                    "families": ["qwen2"],
                    "parameter_size": "7.6B",
                    "quantization_level": "Q4_K_M",
                },
            },
        ]
    }


@pytest.fixture
def sample_messages() -> list[Message]:
    """Provide a simple conversation for testing."""
    return [
        Message(role=Role.SYSTEM, content="You are a helpful assistant."),
        Message(role=Role.USER, content="Hello, how are you?"),
    ]
