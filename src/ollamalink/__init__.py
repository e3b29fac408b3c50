"""ollamalink: configuration-resolving adapter for local Ollama chat models."""

__version__ = "0.1.0"
