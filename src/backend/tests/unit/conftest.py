"""
Unit test fixtures

Fixtures for unit tests that mock external dependencies.
Unit tests should be fast (< 100ms) and isolated.
"""

import json
from typing import Callable, Dict
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest


@pytest.fixture
def mock_redis_client():
    """Mock Redis async client for unit tests"""
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    return client


@pytest.fixture
def mock_openai_client():
    """Mock AsyncOpenAI client for unit tests"""
    client = MagicMock()

    completion = MagicMock()
    completion.choices = [MagicMock()]
    completion.choices[0].message.content = "Photosynthesis converts light into chemical energy."
    completion.usage = MagicMock(prompt_tokens=30, completion_tokens=12, total_tokens=42)
    client.chat.completions.create = AsyncMock(return_value=completion)

    embeddings = MagicMock()
    embeddings.data = [
        MagicMock(index=1, embedding=[0.0, 1.0]),
        MagicMock(index=0, embedding=[1.0, 0.0]),
    ]
    client.embeddings.create = AsyncMock(return_value=embeddings)

    models = MagicMock()
    models.data = [MagicMock(id="gpt-4"), MagicMock(id="text-embedding-ada-002")]
    client.models.list = AsyncMock(return_value=models)

    return client


@pytest.fixture
def mock_http_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an httpx.AsyncClient whose requests are answered by a handler function"""
    def _make(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return _make


@pytest.fixture
def recorded_requests() -> Dict[str, list]:
    """Shared dict for handlers to record request paths and JSON bodies"""
    return {"paths": [], "bodies": []}


def json_body(request: httpx.Request) -> dict:
    return json.loads(request.content.decode("utf-8")) if request.content else {}


@pytest.fixture
def read_json_body():
    return json_body
