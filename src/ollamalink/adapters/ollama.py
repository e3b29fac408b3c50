"""Ollama provider adapter and chat client."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from ollamalink.config import (
    EnvironmentSnapshot,
    ResolvedEndpoint,
    default_snapshot,
    get_default_num_ctx,
    merge_env,
    resolve_endpoint,
)
from ollamalink.errors import TransportError
from ollamalink.types import (
    Message,
    ModelDescriptor,
    OllamaChatReply,
    OllamaModel,
    OllamaTagsResponse,
    ProviderSettings,
    Response,
    ToolCallRequest,
    ToolSchema,
    Usage,
)

logger = logging.getLogger(__name__)

# Fixed approximation; /api/tags carries no context length.
MAX_TOKEN_ALLOWED = 8000
DEFAULT_TIMEOUT_SECONDS = 120.0


def _coerce_settings(settings: ProviderSettings | Mapping[str, Any] | None) -> ProviderSettings | None:
    if settings is None or isinstance(settings, ProviderSettings):
        return settings
    return ProviderSettings.model_validate(dict(settings))


class OllamaProvider:
    """Adapter for a local Ollama daemon.

    Every call merges its own env view (snapshot < caller overrides) and
    resolves the endpoint from scratch; nothing is cached between calls.

    Env vars (read through the snapshot):
        OLLAMA_API_BASE_URL: Daemon root URL.
        RUNNING_IN_DOCKER: "true" rewrites loopback hosts to host.docker.internal.
        DEFAULT_NUM_CTX: Context window size for created clients.
    """

    name = "ollama"
    get_api_key_link = "https://ollama.com/download"
    label_for_get_api_key = "Download Ollama"
    icon = "i-ph:cloud-arrow-down"
    base_url_key = "OLLAMA_API_BASE_URL"
    api_token_key = ""

    def __init__(
        self,
        snapshot: EnvironmentSnapshot | None = None,
        *,
        timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._snapshot = snapshot if snapshot is not None else default_snapshot()
        self._timeout = timeout
        self.static_models: list[ModelDescriptor] = []

    @property
    def snapshot(self) -> EnvironmentSnapshot:
        return self._snapshot

    def _env(self, override: Mapping[str, Any] | None) -> dict[str, str]:
        return merge_env(self._snapshot.as_env(), override)

    def _resolve(
        self,
        env: Mapping[str, str],
        settings: ProviderSettings | Mapping[str, Any] | None,
        api_keys: Mapping[str, str] | None,
    ) -> ResolvedEndpoint:
        return resolve_endpoint(
            provider_name=self.name,
            base_url_key=self.base_url_key,
            api_token_key=self.api_token_key,
            env=env,
            settings=_coerce_settings(settings),
            api_keys=api_keys,
            fallback_base_url=self._snapshot.ollama_api_base_url or None,
            container_mode=self._snapshot.running_in_docker == "true",
        )

    def get_default_num_ctx(self, server_env: Mapping[str, Any] | None = None) -> int:
        return get_default_num_ctx(self._env(server_env))

    async def list_models(
        self,
        api_keys: Mapping[str, str] | None = None,
        settings: ProviderSettings | Mapping[str, Any] | None = None,
        server_env_override: Mapping[str, Any] | None = None,
    ) -> list[ModelDescriptor]:
        """Query the daemon's model listing.

        Raises:
            ConfigurationError: No base URL resolves; no request is made.
            TransportError: The request fails or the body is not a model list.
        """
        endpoint = self._resolve(self._env(server_env_override), settings, api_keys)
        url = f"{endpoint.base_url}/api/tags"
        logger.debug("Listing Ollama models from %s", url)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to list Ollama models from {url}: {e}") from e
        except ValueError as e:
            raise TransportError(f"Ollama returned a non-JSON body from {url}") from e

        try:
            tags = OllamaTagsResponse.model_validate(data)
        except ValidationError as e:
            raise TransportError(f"Unexpected model listing shape from {url}") from e

        return [self._describe(m) for m in tags.models]

    def _describe(self, model: OllamaModel) -> ModelDescriptor:
        size = model.details.parameter_size
        return ModelDescriptor(
            name=model.name,
            label=f"{model.name} ({size})" if size else model.name,
            provider=self.name,
            max_token_allowed=MAX_TOKEN_ALLOWED,
        )

    def create_client(
        self,
        model: str,
        *,
        server_env: Mapping[str, Any] | None = None,
        api_keys: Mapping[str, str] | None = None,
        provider_settings: Mapping[str, ProviderSettings | Mapping[str, Any]] | None = None,
    ) -> OllamaChatClient:
        """Build a chat client bound to ``<base_url>/api``.

        Raises:
            ConfigurationError: No base URL resolves.
        """
        env = self._env(server_env)
        settings = (provider_settings or {}).get(self.name)
        endpoint = self._resolve(env, settings, api_keys)
        logger.debug("Ollama Base Url used: %s", endpoint.base_url)

        return OllamaChatClient(
            model=model,
            base_url=f"{endpoint.base_url}/api",
            num_ctx=get_default_num_ctx(env),
            api_key=endpoint.api_key,
            timeout=self._timeout,
        )


class OllamaChatClient:
    """Chat handle for one Ollama model, speaking the native /api/chat endpoint."""

    def __init__(
        self,
        model: str,
        base_url: str,
        num_ctx: int,
        api_key: str = "",
        timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._model = model
        self._base_url = base_url
        self._num_ctx = num_ctx
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        self._http = httpx.Client(base_url=base_url, headers=headers, timeout=timeout)

    @property
    def name(self) -> str:
        return self._model

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def num_ctx(self) -> int:
        return self._num_ctx

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> OllamaChatClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def complete(
        self,
        messages: list[Message],
        tools: list[ToolSchema] | None = None,
        seed: int | None = None,
        temperature: float | None = None,
    ) -> Response:
        """Send a non-streaming chat request."""
        options: dict[str, Any] = {"num_ctx": self._num_ctx}
        if seed is not None:
            options["seed"] = seed
        if temperature is not None:
            options["temperature"] = temperature

        payload: dict[str, Any] = {
            "model": self._model,
            "messages": self._format_messages(messages),
            "stream": False,
            "options": options,
        }
        if tools:
            payload["tools"] = self._format_tools(tools)

        try:
            resp = self._http.post("/chat", json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise TransportError(f"Ollama chat request failed for {self._model}: {e}") from e
        except ValueError as e:
            raise TransportError(f"Ollama returned a non-JSON chat body for {self._model}") from e

        try:
            reply = OllamaChatReply.model_validate(data)
            tool_calls = [
                ToolCallRequest(
                    id=tc.id,
                    name=tc.function.name,
                    arguments=self._decode_arguments(tc.function.arguments),
                )
                for tc in reply.message.tool_calls or []
            ]
        except ValidationError as e:
            raise TransportError(f"Unexpected chat reply shape for {self._model}") from e

        usage = Usage(
            prompt_tokens=reply.prompt_eval_count,
            completion_tokens=reply.eval_count,
        )

        return Response(
            content=reply.message.content,
            tool_calls=tool_calls,
            usage=usage,
            model=reply.model or self._model,
            raw=data,
        )

    @staticmethod
    def _decode_arguments(args: dict[str, Any] | str) -> Any:
        if not isinstance(args, str):
            return args
        try:
            return json.loads(args)
        except json.JSONDecodeError:
            return {"raw": args}

    def _format_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        """Convert internal messages to Ollama chat format."""
        result: list[dict[str, Any]] = []
        for m in messages:
            msg: dict[str, Any] = {"role": m.role.value, "content": m.content}
            if m.tool_calls:
                msg["tool_calls"] = [
                    {"function": {"name": tc.name, "arguments": tc.arguments}}
                    for tc in m.tool_calls
                ]
            if m.name:
                msg["tool_name"] = m.name
            result.append(msg)
        return result

    def _format_tools(self, tools: list[ToolSchema]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": t.name,
                    "description": t.description,
                    "parameters": t.parameters,
                },
            }
            for t in tools
        ]
