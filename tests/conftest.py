"""Pytest configuration for Coffee Discovery tests.

No test touches the network: OpenAI clients are MagicMocks and Supabase is
served by an httpx.MockTransport that records every request.
"""
import json
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import MagicMock

import httpx
import pytest

from coffee_discovery.core import config as config_module
from coffee_discovery.core.config import CoffeeConfig, set_config

SUPABASE_URL = "https://test.supabase.co"
SUPABASE_KEY = "anon-key"


@pytest.fixture(autouse=True)
def test_config():
    """Install a fully credentialed config for every test and restore the old one after."""
    previous = config_module._config
    config = CoffeeConfig(
        supabase_url=SUPABASE_URL,
        supabase_key=SUPABASE_KEY,
        openai_api_key="sk-test",
    )
    set_config(config)
    yield config
    config_module._config = previous


def completion(content: Optional[str]) -> MagicMock:
    """Build a chat-completion response whose first choice carries content."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def openai_returning(content: Optional[str]) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create.return_value = completion(content)
    return client


def openai_raising(error: Exception) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create.side_effect = error
    return client


class RecordingSupabase:
    """
    In-memory stand-in for the Supabase HTTP API.

    Responses are registered per (method, path) where path is e.g.
    "/rest/v1/products" or "/auth/v1/token". Unregistered requests get 200 [].
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Tuple[int, Any]]] = {}
        self.requests: List[httpx.Request] = []

    def respond(self, method: str, path: str, body: Any = None, status: int = 200) -> None:
        self.routes[(method, path)] = [(status, body)]

    def respond_sequence(self, method: str, path: str, bodies: List[Any]) -> None:
        """Serve bodies one per request; the last one repeats."""
        self.routes[(method, path)] = [(200, body) for body in bodies]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path)) or [(200, [])]
        status, body = queue.pop(0) if len(queue) > 1 else queue[0]
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def last(self, method: Optional[str] = None, path: Optional[str] = None) -> httpx.Request:
        for request in reversed(self.requests):
            if (method is None or request.method == method) and (path is None or request.url.path == path):
                return request
        raise AssertionError(f"No {method or ''} request to {path or 'any path'}")

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


@pytest.fixture
def supabase():
    return RecordingSupabase()


@pytest.fixture
def supabase_client(supabase):
    from coffee_discovery.utils.supabase_client import SupabaseClient
    return SupabaseClient(url=SUPABASE_URL, key=SUPABASE_KEY, transport=supabase.transport)


@pytest.fixture
def store(supabase_client, test_config):
    from coffee_discovery.data.catalog_store import CatalogStore
    return CatalogStore(client=supabase_client, config=test_config)


def product_row(**overrides) -> Dict[str, Any]:
    row = {
        "id": "p-1",
        "name": "Yirgacheffe",
        "origin": "Ethiopia",
        "roast_level": "light",
        "acidity": "high",
        "price": 18.5,
        "description": "Floral and bright.",
        "image_url": None,
        "purchase_url": None,
        "flavor_notes": ["jasmine", "lemon"],
        "is_featured": False,
        "merchant_id": None,
        "is_merchant_product": False,
        "created_at": "2024-05-01T10:00:00+00:00",
    }
    row.update(overrides)
    return row
