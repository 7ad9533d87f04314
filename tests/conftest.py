"""Shared pytest fixtures for store-context tests."""

import pytest

from store_context.config import LookupConfig


class FakeCompletionClient:
    """Stand-in for OpenAIStoreClient that records calls.

    primary / search are either the text to return or an exception to raise.
    """

    def __init__(self, primary: str | Exception = "", search: str | Exception = ""):
        self.primary = primary
        self.search_result = search
        self.complete_calls: list[tuple[str, str]] = []
        self.search_calls: list[str] = []

    async def complete(self, system: str, prompt: str) -> str:
        self.complete_calls.append((system, prompt))
        if isinstance(self.primary, Exception):
            raise self.primary
        return self.primary

    async def search(self, text: str) -> str:
        self.search_calls.append(text)
        if isinstance(self.search_result, Exception):
            raise self.search_result
        return self.search_result


@pytest.fixture
def config():
    """A valid config with a dummy API key."""
    return LookupConfig(api_key="test-key")


@pytest.fixture
def fake_client():
    """Factory for FakeCompletionClient instances."""

    def _make(primary: str | Exception = "", search: str | Exception = ""):
        return FakeCompletionClient(primary=primary, search=search)

    return _make
