"""Shared type definitions for ollamalink."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Message types
# ---------------------------------------------------------------------------

class Role(StrEnum):
    """Message role in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolSchema(BaseModel):
    """A function the model may call."""

    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)


class ToolCallRequest(BaseModel):
    """A request from the model to call a tool."""

    id: str = ""
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    """A single message in a conversation.

    Sent to /api/chat as `{role, content}`. Assistant `tool_calls` go out as
    `{"function": {"name", "arguments"}}` with arguments as a dict, and
    `name` on a tool message becomes Ollama's `tool_name`.
    """

    role: Role
    content: str = ""
    tool_calls: list[ToolCallRequest] | None = None
    name: str | None = None


class Usage(BaseModel):
    """Token usage information from a model response."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class Response(BaseModel):
    """Response from a chat client.

    Built from an /api/chat reply: `message.content`, `message.tool_calls`,
    and usage from `prompt_eval_count` / `eval_count`. `raw` keeps the body.
    """

    content: str = ""
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)
    model: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Provider types
# ---------------------------------------------------------------------------

class ModelDescriptor(BaseModel):
    """A model as presented to the application's model picker."""

    name: str
    label: str
    provider: str
    max_token_allowed: int


class ProviderSettings(BaseModel):
    """User-supplied settings for one provider.

    Unknown keys are kept so callers can pass through whatever their
    settings store holds.
    """

    model_config = ConfigDict(extra="allow")

    base_url: str | None = None


# ---------------------------------------------------------------------------
# Ollama wire types (GET /api/tags)
# ---------------------------------------------------------------------------

class OllamaModelDetails(BaseModel):
    parent_model: str = ""
    format: str = ""
    family: str = ""
    families: list[str] | None = None
    parameter_size: str = ""
    quantization_level: str = ""


class OllamaModel(BaseModel):
    name: str
    model: str = ""
    modified_at: str = ""
    size: int = 0
    digest: str = ""
    details: OllamaModelDetails = Field(default_factory=OllamaModelDetails)


class OllamaTagsResponse(BaseModel):
    models: list[OllamaModel] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Ollama wire types (POST /api/chat, stream=false)
# ---------------------------------------------------------------------------

class OllamaToolFunction(BaseModel):
    name: str = ""
    # Ollama sends a dict; OpenAI-style servers send a JSON string.
    arguments: dict[str, Any] | str = Field(default_factory=dict)


class OllamaToolCall(BaseModel):
    id: str = ""
    function: OllamaToolFunction


class OllamaChatMessage(BaseModel):
    role: str = "assistant"
    content: str = ""
    tool_calls: list[OllamaToolCall] | None = None


class OllamaChatReply(BaseModel):
    model: str = ""
    message: OllamaChatMessage = Field(default_factory=OllamaChatMessage)
    done: bool = True
    prompt_eval_count: int = 0
    eval_count: int = 0
