"""Tests for the Ollama chat client handle."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from ollamalink.adapters.ollama import OllamaChatClient
from ollamalink.errors import TransportError
from ollamalink.types import Message, Role, ToolCallRequest, ToolSchema

CHAT_URL = "http://127.0.0.1:11434/api/chat"


def chat_reply(content: str = "Hi there!", **message: object) -> dict:
    return {
        "model": "llama3",
        "created_at": "2024-05-01T10:00:00Z",
        "message": {"role": "assistant", "content": content, **message},
        "done": True,
        "prompt_eval_count": 12,
        "eval_count": 5,
    }


@pytest.fixture
def client():  # type: ignore[no-untyped-def]
    with OllamaChatClient(model="llama3", base_url="http://127.0.0.1:11434/api", num_ctx=4096) as c:
        yield c


class TestComplete:
    @respx.mock
    def test_request_payload(self, client: OllamaChatClient, sample_messages: list[Message]) -> None:
        route = respx.post(CHAT_URL).mock(return_value=httpx.Response(200, json=chat_reply()))

        client.complete(sample_messages, seed=7, temperature=0.2)

        body = json.loads(route.calls.last.request.content)
        assert body["model"] == "llama3"
        assert body["stream"] is False
        assert body["options"] == {"num_ctx": 4096, "seed": 7, "temperature": 0.2}
        assert body["messages"] == [
            {"role": "system", "content": "You are a helpful assistant."},
            {"role": "user", "content": "Hello, how are you?"},
        ]
        assert "tools" not in body

    @respx.mock
    def test_parses_response(self, client: OllamaChatClient, sample_messages: list[Message]) -> None:
        respx.post(CHAT_URL).mock(return_value=httpx.Response(200, json=chat_reply()))

        response = client.complete(sample_messages)

        assert response.content == "Hi there!"
        assert response.model == "llama3"
        assert response.usage.prompt_tokens == 12
        assert response.usage.completion_tokens == 5
        assert response.usage.total_tokens == 17
        assert response.tool_calls == []

    @respx.mock
    def test_tool_calls(self, client: OllamaChatClient) -> None:
        route = respx.post(CHAT_URL).mock(
            return_value=httpx.Response(
                200,
                json=chat_reply(
                    "",
                    tool_calls=[
                        {"function": {"name": "calculator", "arguments": {"expression": "2+2"}}},
                        {"function": {"name": "search", "arguments": '{"query": "ollama"}'}},
                        {"function": {"name": "broken", "arguments": "{not json"}},
                    ],
                ),
            )
        )
        tools = [ToolSchema(name="calculator", description="Calculate", parameters={"type": "object"})]

        response = client.complete([Message(role=Role.USER, content="2+2?")], tools=tools)

        body = json.loads(route.calls.last.request.content)
        assert body["tools"][0]["type"] == "function"
        assert body["tools"][0]["function"]["name"] == "calculator"
        assert response.tool_calls == [
            ToolCallRequest(name="calculator", arguments={"expression": "2+2"}),
            ToolCallRequest(name="search", arguments={"query": "ollama"}),
            ToolCallRequest(name="broken", arguments={"raw": "{not json"}),
        ]

    @respx.mock
    def test_formats_tool_history(self, client: OllamaChatClient) -> None:
        route = respx.post(CHAT_URL).mock(return_value=httpx.Response(200, json=chat_reply()))
        history = [
            Message(
                role=Role.ASSISTANT,
                tool_calls=[ToolCallRequest(name="calculator", arguments={"expression": "2+2"})],
            ),
            Message(role=Role.TOOL, content="4", name="calculator"),
        ]

        client.complete(history)

        sent = json.loads(route.calls.last.request.content)["messages"]
        assert sent[0]["tool_calls"] == [
            {"function": {"name": "calculator", "arguments": {"expression": "2+2"}}}
        ]
        assert sent[1] == {"role": "tool", "content": "4", "tool_name": "calculator"}

    @respx.mock
    def test_network_error(self, client: OllamaChatClient, sample_messages: list[Message]) -> None:
        respx.post(CHAT_URL).mock(side_effect=httpx.ConnectError("Connection refused"))
        with pytest.raises(TransportError, match="llama3"):
            client.complete(sample_messages)

    @respx.mock
    def test_error_status(self, client: OllamaChatClient, sample_messages: list[Message]) -> None:
        respx.post(CHAT_URL).mock(
            return_value=httpx.Response(404, json={"error": "model 'llama3' not found"})
        )
        with pytest.raises(TransportError):
            client.complete(sample_messages)

    @pytest.mark.parametrize(
        "body",
        [
            ["not", "an", "object"],
            chat_reply("", tool_calls=[{"function": None}]),
            chat_reply("", tool_calls=[{"function": {"name": "search", "arguments": "[1, 2]"}}]),
        ],
    )
    @respx.mock
    def test_malformed_reply(
        self, client: OllamaChatClient, sample_messages: list[Message], body: object
    ) -> None:
        respx.post(CHAT_URL).mock(return_value=httpx.Response(200, json=body))
        with pytest.raises(TransportError, match="Unexpected chat reply"):
            client.complete(sample_messages)
