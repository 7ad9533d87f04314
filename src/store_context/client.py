"""
OpenAI client for store-context.

Wraps the two call shapes the lookup needs:

- a plain chat completion (system instruction + user prompt), used for the
  fast first attempt
- a Responses API call with the built-in web_search tool, used as the
  fallback when the fast model does not know the store

API errors are translated into ApiError / RemoteServiceError so callers
never see SDK exception types.
"""

import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from .config import LookupConfig
from .models import ApiError, RemoteServiceError

logger = logging.getLogger(__name__)

WEB_SEARCH_TOOL = {"type": "web_search"}


def _field(item: Any, name: str) -> Any:
    """Read a field from either a dict or an SDK object."""
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _find_message_text(items: Any) -> str:
    """Return the text of the first message item whose first part is output_text."""
    if not isinstance(items, list):
        return ""
    for item in items:
        if _field(item, "type") != "message":
            continue
        content = _field(item, "content") or []
        if not content:
            continue
        first = content[0]
        if _field(first, "type") == "output_text":
            return _field(first, "text") or ""
    return ""


def extract_output_text(response: Any) -> str:
    """
    Pull the answer text out of a web-search response.

    Shapes are tried in order:
    1. a plain string
    2. an object (or dict) with a non-empty ``output_text`` field, falling
       back to searching its ``output`` item list
    3. a list of output items, searched for the first message item

    Returns "" when nothing matches.
    """
    if response is None:
        return ""
    if isinstance(response, str):
        return response
    if isinstance(response, list):
        return _find_message_text(response)

    output_text = _field(response, "output_text")
    if isinstance(output_text, str) and output_text:
        return output_text
    return _find_message_text(_field(response, "output"))


def translate_error(error: Exception) -> Exception:
    """Map an SDK or transport exception to one of our error types."""
    # APITimeoutError is a subclass of APIConnectionError
    if isinstance(error, openai.APIConnectionError):
        return RemoteServiceError("Failed to reach the OpenAI API", details=str(error))
    if isinstance(error, openai.APIStatusError):
        return ApiError(
            f"OpenAI API error: {error.message}",
            status_code=error.status_code,
            code=error.code,
        )
    if isinstance(error, openai.APIError):
        return ApiError(f"OpenAI API error: {error.message}", code=error.code)
    return RemoteServiceError("Failed to get store information", details=str(error))


class OpenAIStoreClient:
    """
    Client for the OpenAI chat and responses endpoints.

    The SDK client is created lazily so tests can inject a mock.
    """

    def __init__(self, config: LookupConfig, sdk_client: AsyncOpenAI | None = None):
        """
        Initialize the client.

        Args:
            config: Validated configuration (credential, models, timeout)
            sdk_client: Optional pre-built AsyncOpenAI client
        """
        self.config = config
        self._sdk_client = sdk_client

    def _get_client(self) -> AsyncOpenAI:
        if self._sdk_client is None:
            # No automatic retries: a failed primary call is surfaced as-is
            self._sdk_client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
        return self._sdk_client

    async def complete(self, system: str, prompt: str) -> str:
        """
        Run a plain chat completion.

        Returns:
            The first choice's text, or "" if the model returned none.

        Raises:
            ApiError, RemoteServiceError
        """
        logger.debug(f"Chat completion with {self.config.model}")
        try:
            completion = await self._get_client().chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
            )
        except Exception as e:
            raise translate_error(e) from e

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    async def search(self, text: str) -> str:
        """
        Run a Responses API call with web search enabled.

        Returns:
            The extracted answer text, or "" if none could be found.

        Raises:
            ApiError, RemoteServiceError
        """
        logger.debug(f"Web search response with {self.config.search_model}")
        try:
            response = await self._get_client().responses.create(
                model=self.config.search_model,
                tools=[WEB_SEARCH_TOOL],
                input=text,
            )
        except Exception as e:
            raise translate_error(e) from e

        return extract_output_text(response)

    async def close(self) -> None:
        if self._sdk_client is not None:
            await self._sdk_client.close()
