"""Tests for the OpenAI client wrapper."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from store_context.client import (
    WEB_SEARCH_TOOL,
    OpenAIStoreClient,
    extract_output_text,
    translate_error,
)
from store_context.config import LookupConfig
from store_context.models import ApiError, RemoteServiceError

API_URL = "https://api.openai.com/v1/chat/completions"


def make_request() -> httpx.Request:
    return httpx.Request("POST", API_URL)


def make_status_error(cls, status_code: int, code: str | None = None):
    request = make_request()
    response = httpx.Response(status_code, request=request)
    body = {"message": "Something went wrong", "code": code} if code else None
    return cls("Something went wrong", response=response, body=body)


def make_completion(content: str | None):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


@pytest.fixture
def sdk():
    """A mock AsyncOpenAI client."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    client.responses.create = AsyncMock()
    client.close = AsyncMock()
    return client


class TestExtractOutputText:
    """Test decoding of web-search responses."""

    def test_plain_string(self):
        assert extract_output_text("Acme sells tools.") == "Acme sells tools."

    def test_object_output_text(self):
        response = SimpleNamespace(output_text="Acme sells tools.", output=[])
        assert extract_output_text(response) == "Acme sells tools."

    def test_dict_output_text(self):
        assert extract_output_text({"output_text": "Acme sells tools."}) == "Acme sells tools."

    def test_list_of_items(self):
        items = [
            {"type": "web_search_call", "status": "completed"},
            {"type": "message", "content": [{"type": "output_text", "text": "Found it."}]},
        ]
        assert extract_output_text(items) == "Found it."

    def test_list_skips_non_text_messages(self):
        items = [
            {"type": "message", "content": [{"type": "refusal", "refusal": "no"}]},
            {"type": "message", "content": []},
            {"type": "message", "content": [{"type": "output_text", "text": "Second."}]},
        ]
        assert extract_output_text(items) == "Second."

    def test_object_falls_back_to_output_items(self):
        """An empty output_text should fall back to the output item list."""
        message = SimpleNamespace(
            type="message",
            content=[SimpleNamespace(type="output_text", text="From items.")],
        )
        reasoning = SimpleNamespace(type="reasoning", content=None)
        response = SimpleNamespace(output_text="", output=[reasoning, message])
        assert extract_output_text(response) == "From items."

    @pytest.mark.parametrize("response", [None, 42, {}, [], SimpleNamespace()])
    def test_unrecognized_shapes(self, response):
        assert extract_output_text(response) == ""


class TestTranslateError:
    """Test mapping SDK errors to our error types."""

    def test_connection_error(self):
        error = translate_error(openai.APIConnectionError(request=make_request()))
        assert isinstance(error, RemoteServiceError)

    def test_timeout_error(self):
        error = translate_error(openai.APITimeoutError(request=make_request()))
        assert isinstance(error, RemoteServiceError)

    def test_authentication_error(self):
        error = translate_error(
            make_status_error(openai.AuthenticationError, 401, "invalid_api_key")
        )
        assert isinstance(error, ApiError)
        assert error.status_code == 401
        assert error.code == "invalid_api_key"
        assert "Something went wrong" in error.message

    def test_rate_limit_error(self):
        error = translate_error(make_status_error(openai.RateLimitError, 429))
        assert isinstance(error, ApiError)
        assert error.status_code == 429
        assert error.code is None

    def test_other_api_error(self):
        error = translate_error(openai.APIError("odd", request=make_request(), body=None))
        assert isinstance(error, ApiError)
        assert error.status_code is None

    def test_unknown_exception(self):
        error = translate_error(ValueError("bad"))
        assert isinstance(error, RemoteServiceError)
        assert error.details == "bad"


class TestOpenAIStoreClient:
    """Test OpenAIStoreClient against a mocked SDK."""

    @pytest.mark.asyncio
    async def test_complete(self, config, sdk):
        sdk.chat.completions.create.return_value = make_completion("Acme sells tools.")
        client = OpenAIStoreClient(config, sdk_client=sdk)

        text = await client.complete("system rules", "user prompt")

        assert text == "Acme sells tools."
        sdk.chat.completions.create.assert_awaited_once_with(
            model="gpt-5-nano",
            messages=[
                {"role": "system", "content": "system rules"},
                {"role": "user", "content": "user prompt"},
            ],
        )

    @pytest.mark.asyncio
    async def test_complete_uses_configured_model(self, sdk):
        config = LookupConfig(api_key="k", model="gpt-4o-mini")
        sdk.chat.completions.create.return_value = make_completion("x")
        client = OpenAIStoreClient(config, sdk_client=sdk)

        await client.complete("s", "p")

        assert sdk.chat.completions.create.call_args.kwargs["model"] == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_complete_empty_content(self, config, sdk):
        sdk.chat.completions.create.return_value = make_completion(None)
        client = OpenAIStoreClient(config, sdk_client=sdk)

        assert await client.complete("s", "p") == ""

    @pytest.mark.asyncio
    async def test_complete_no_choices(self, config, sdk):
        sdk.chat.completions.create.return_value = SimpleNamespace(choices=[])
        client = OpenAIStoreClient(config, sdk_client=sdk)

        assert await client.complete("s", "p") == ""

    @pytest.mark.asyncio
    async def test_complete_translates_status_error(self, config, sdk):
        sdk.chat.completions.create.side_effect = make_status_error(
            openai.AuthenticationError, 401, "invalid_api_key"
        )
        client = OpenAIStoreClient(config, sdk_client=sdk)

        with pytest.raises(ApiError) as exc_info:
            await client.complete("s", "p")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_complete_translates_timeout(self, config, sdk):
        sdk.chat.completions.create.side_effect = openai.APITimeoutError(
            request=make_request()
        )
        client = OpenAIStoreClient(config, sdk_client=sdk)

        with pytest.raises(RemoteServiceError):
            await client.complete("s", "p")

    @pytest.mark.asyncio
    async def test_search(self, config, sdk):
        sdk.responses.create.return_value = SimpleNamespace(
            output_text="Acme sells tools.", output=[]
        )
        client = OpenAIStoreClient(config, sdk_client=sdk)

        text = await client.search("combined input")

        assert text == "Acme sells tools."
        sdk.responses.create.assert_awaited_once_with(
            model="gpt-5-mini",
            tools=[WEB_SEARCH_TOOL],
            input="combined input",
        )

    @pytest.mark.asyncio
    async def test_search_translates_errors(self, config, sdk):
        sdk.responses.create.side_effect = openai.APIConnectionError(request=make_request())
        client = OpenAIStoreClient(config, sdk_client=sdk)

        with pytest.raises(RemoteServiceError):
            await client.search("input")

    def test_builds_sdk_client_from_config(self):
        config = LookupConfig(api_key="sk-test", timeout_ms=5000, base_url="http://proxy/v1")
        client = OpenAIStoreClient(config)

        with patch("store_context.client.AsyncOpenAI") as MockOpenAI:
            built = client._get_client()
            again = client._get_client()

        MockOpenAI.assert_called_once_with(
            api_key="sk-test",
            base_url="http://proxy/v1",
            timeout=5.0,
            max_retries=0,
        )
        assert built is again

    @pytest.mark.asyncio
    async def test_close(self, config, sdk):
        client = OpenAIStoreClient(config, sdk_client=sdk)
        await client.close()
        sdk.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_without_client(self, config):
        """Closing before any call should be a no-op."""
        client = OpenAIStoreClient(config)
        await client.close()
