"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import json
from typing import Any, Callable, Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from nim_forwarder.core.config import Settings
from nim_forwarder.main import create_app

NIM_BASE_URL = "http://nim.local/v1"


def build_settings(**overrides: Any) -> Settings:
    """Settings for tests, independent of the developer's .env."""
    values: dict[str, Any] = {
        "NIM_API_BASE": NIM_BASE_URL,
        "NIM_API_KEY": "test-key",
        "SHOW_REASONING": False,
        "ENABLE_THINKING_MODE": False,
        "STRICT_ERROR_TYPES": False,
    }
    values.update(overrides)
    return Settings(**values)


def nim_completion(content: str = "hi", **message_fields: Any) -> dict[str, Any]:
    """A minimal NVIDIA NIM chat completion body with one choice."""
    return {
        "id": "nim-123",
        "object": "chat.completion",
        "model": "qwen/qwen3-coder-480b-a35b-instruct",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content, **message_fields},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 5, "completion_tokens": 1, "total_tokens": 6},
    }


class FakeNim:
    """Records requests sent upstream and answers with a canned response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json=nim_completion()
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last_payload(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def fake_nim() -> FakeNim:
    return FakeNim()


@pytest.fixture
def make_client(fake_nim: FakeNim) -> Generator[Callable[..., TestClient], None, None]:
    """Factory for a TestClient whose outbound calls hit `fake_nim`.

    Usage:
        def test_chat(make_client, fake_nim):
            client = make_client(SHOW_REASONING=True)
            client.post("/api/v1/chat/completions", json={...})
    """
    clients: list[TestClient] = []

    def factory(**overrides: Any) -> TestClient:
        app = create_app(build_settings(**overrides), transport=httpx.MockTransport(fake_nim))
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    try:
        yield factory
    finally:
        for client in clients:
            client.__exit__(None, None, None)


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()
