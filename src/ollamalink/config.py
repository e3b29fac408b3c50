"""Configuration loading and endpoint resolution for ollamalink."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import httpx
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ollamalink.errors import ConfigurationError
from ollamalink.types import ProviderSettings

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_BASE_URL = "http://127.0.0.1:11434"
DEFAULT_NUM_CTX = 32768
CONTAINER_HOST_ALIAS = "host.docker.internal"
LOOPBACK_HOSTS = ("localhost", "127.0.0.1")

# env var name -> EnvironmentSnapshot field
_ENV_FIELDS: dict[str, str] = {
    "OLLAMA_API_BASE_URL": "ollama_api_base_url",
    "RUNNING_IN_DOCKER": "running_in_docker",
    "DEFAULT_NUM_CTX": "default_num_ctx",
    "OPENAI_API_KEY": "openai_api_key",
}


class EnvironmentSnapshot(BaseModel):
    """Server-side environment values captured once and passed around explicitly."""

    model_config = ConfigDict(frozen=True)

    ollama_api_base_url: str = DEFAULT_OLLAMA_BASE_URL
    running_in_docker: str = "false"
    default_num_ctx: str | None = None
    openai_api_key: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EnvironmentSnapshot:
        """Build a snapshot from ``environ`` (defaults to ``os.environ``).

        Only absent variables fall back; an empty string is kept as-is.
        """
        source = os.environ if environ is None else environ
        values = {field: source[key] for key, field in _ENV_FIELDS.items() if key in source}
        return cls(**values)

    def as_env(self) -> dict[str, str]:
        """Return the snapshot as an env record keyed by variable name."""
        record: dict[str, str] = {}
        for key, field in _ENV_FIELDS.items():
            value = getattr(self, field)
            if value is not None:
                record[key] = value
        return record


def default_snapshot() -> EnvironmentSnapshot:
    """Snapshot the live process environment."""
    return EnvironmentSnapshot.from_env()


class ResolvedEndpoint(BaseModel):
    """Outcome of configuration resolution for one provider call."""

    model_config = ConfigDict(frozen=True)

    base_url: str
    api_key: str = ""
    container_mode: bool = False


def to_env_record(env: Mapping[str, Any] | None) -> dict[str, str]:
    """Stringify an env-like mapping, dropping unset values."""
    if not env:
        return {}
    record: dict[str, str] = {}
    for key, value in env.items():
        if value is None:
            continue
        if isinstance(value, bool):
            record[key] = "true" if value else "false"
        else:
            record[key] = str(value)
    return record


def merge_env(*layers: Mapping[str, Any] | None) -> dict[str, str]:
    """Shallow-merge env layers; later layers win. Inputs are not mutated."""
    merged: dict[str, str] = {}
    for layer in layers:
        merged.update(to_env_record(layer))
    return merged


def is_container_mode(env: Mapping[str, str]) -> bool:
    return env.get("RUNNING_IN_DOCKER") == "true"


def rewrite_for_container(base_url: str) -> str:
    """Point loopback hosts at the address a container uses to reach its host."""
    for host in LOOPBACK_HOSTS:
        base_url = base_url.replace(host, CONTAINER_HOST_ALIAS, 1)
    return base_url


def _check_absolute(base_url: str, provider_name: str) -> None:
    try:
        url = httpx.URL(base_url)
    except httpx.InvalidURL as e:
        raise ConfigurationError(
            f"Base URL for {provider_name.upper()} provider is not an absolute URL: {base_url!r}"
        ) from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(
            f"Base URL for {provider_name.upper()} provider must be an absolute "
            f"http(s) URL, got {base_url!r}"
        )


def resolve_endpoint(
    *,
    provider_name: str,
    base_url_key: str,
    env: Mapping[str, str],
    settings: ProviderSettings | None = None,
    api_keys: Mapping[str, str] | None = None,
    api_token_key: str = "",
    fallback_base_url: str | None = None,
    container_mode: bool = False,
) -> ResolvedEndpoint:
    """Resolve the base URL and credential for a provider.

    Precedence for the base URL, highest first: ``settings.base_url``,
    ``env[base_url_key]``, ``fallback_base_url``. The container rewrite is
    applied last when ``container_mode`` is set or ``RUNNING_IN_DOCKER`` is
    ``"true"`` in ``env``; an override of ``"false"`` cannot turn off a
    process-level ``"true"`` passed in as ``container_mode``.

    Raises:
        ConfigurationError: If no layer yields an absolute http(s) URL.
    """
    base_url = (settings.base_url if settings else None) or env.get(base_url_key) or fallback_base_url
    if not base_url:
        raise ConfigurationError(f"No base URL found for {provider_name.upper()} provider")
    if base_url.endswith("/"):
        base_url = base_url[:-1]

    api_key = (api_keys or {}).get(provider_name) or (env.get(api_token_key) if api_token_key else None) or ""

    container_mode = container_mode or is_container_mode(env)
    if container_mode:
        rewritten = rewrite_for_container(base_url)
        if rewritten != base_url:
            logger.debug("Container mode: %s -> %s", base_url, rewritten)
        base_url = rewritten

    _check_absolute(base_url, provider_name)
    return ResolvedEndpoint(base_url=base_url, api_key=api_key, container_mode=container_mode)


def get_default_num_ctx(env: Mapping[str, str] | None) -> int:
    """Context window size from ``DEFAULT_NUM_CTX``, or 32768."""
    raw = (env or {}).get("DEFAULT_NUM_CTX")
    if not raw:
        return DEFAULT_NUM_CTX
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric DEFAULT_NUM_CTX=%r", raw)
        return DEFAULT_NUM_CTX


# ---------------------------------------------------------------------------
# File configuration
# ---------------------------------------------------------------------------

class AppConfig(BaseModel):
    """Caller-side configuration: keys, per-provider settings, env overrides."""

    api_keys: dict[str, str] = Field(default_factory=dict)
    providers: dict[str, ProviderSettings] = Field(default_factory=dict)
    env: dict[str, str] = Field(default_factory=dict)

    @field_validator("env", mode="before")
    @classmethod
    def _stringify_env(cls, value: Any) -> Any:
        # YAML turns `4096` and `true` into int and bool.
        if isinstance(value, Mapping):
            return to_env_record(value)
        return value


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML, falling back to defaults.

    Args:
        path: Optional path to a YAML config file.

    Returns:
        Validated AppConfig instance.

    Raises:
        ConfigurationError: The file is not valid YAML or does not match AppConfig.
    """
    data: Any = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigurationError(f"Invalid YAML in {p}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    try:
        return AppConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e


def merge_cli_overrides(config: AppConfig, **overrides: Any) -> AppConfig:
    """Merge CLI flag overrides into an existing config.

    Only non-None overrides are applied.
    """
    updates: dict[str, Any] = {}
    if overrides.get("base_url"):
        providers = dict(config.providers)
        current = providers.get("ollama", ProviderSettings())
        providers["ollama"] = current.model_copy(update={"base_url": overrides["base_url"]})
        updates["providers"] = providers
    env = dict(config.env)
    if overrides.get("docker") is not None:
        env["RUNNING_IN_DOCKER"] = "true" if overrides["docker"] else "false"
    if overrides.get("num_ctx") is not None:
        env["DEFAULT_NUM_CTX"] = str(overrides["num_ctx"])
    if env != config.env:
        updates["env"] = env
    if updates:
        return config.model_copy(update=updates)
    return config
