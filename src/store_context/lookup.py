"""
Store lookup service.

Each lookup runs in up to two stages:

1. Primary: a fast, cheap chat completion. The model is told to answer
   with the sentinel "0" when it does not know the store.
2. Web search: only when the primary answer is the sentinel (or empty),
   the same instructions are sent to a model with the web_search tool.
   Its output may contain citation markup, so it is normalized.

A failed web search never fails the lookup; it degrades to the fixed
fallback sentence.
"""

import logging
import re
from dataclasses import dataclass
from typing import Protocol

from .client import OpenAIStoreClient
from .config import LookupConfig
from .models import (
    FALLBACK_TEXT,
    LookupRequest,
    LookupResult,
    LookupSource,
)

logger = logging.getLogger(__name__)

SENTINEL = "0"

SYSTEM_PROMPT = (
    "You are an ecommerce expert (DTC, retail, etc.). HERE ARE YOUR RULES: "
    "1) Be factual. "
    "2) NEVER offer advice on what to do. "
    "3) NEVER report on subjective or reported experiences or reviews/ratings. "
    "4) ONLY give information on eCommerce operations/topics (i.e. NEVER DISCUSS "
    "AWS/Infrastructure, other business lines, capital raising, controversies, "
    "politics, political affiliations, etc...)."
)

SINGLE_PARAGRAPH_DIRECTIVE = (
    "CRITICAL: Write your response as ONE SINGLE PARAGRAPH. No line breaks. "
    "No bullet points. No citations. Just one flowing paragraph exactly like "
    "you would without web search."
)

# Normalization patterns, applied in order
_WRAPPED_LINK = re.compile(r"\(\[([^\]]+)\]\([^)]+\)\)")  # ([text](url))
_LINK = re.compile(r"\[[^\]]+\]\([^)]+\)")  # [text](url)
_PARENTHETICAL = re.compile(r"\([^)]*\)")
_BULLET_GLYPH = re.compile(r"\s*[•·]\s*")
_LINE_BULLET = re.compile(r"^(?:\s*[-*]\s+)+", re.MULTILINE)  # stacked markers too
_NEWLINES = re.compile(r"[\r\n]+")
_WHITESPACE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCT = re.compile(r"\s+([.,])")


def build_prompt(identifier: str) -> str:
    """Build the user prompt asking for a short store history."""
    return (
        "Provide ONLY 1 PARAGRAPH OF 3-4 SENTENCES of general history about the "
        f'store at URL: "{identifier}". Focus on factors that will help shoppers '
        "understand the context of the store, such as its scale, history, "
        "offerings, achievements and trust signals.\n\n"
        "IMPORTANT: Keep each sentence SHORT and CONCISE. Aim for 15-20 words per "
        'sentence maximum. Never use "I" in responses.\n\n'
        f'If uncertain about the store, ONLY return: "{SENTINEL}"'
    )


def build_search_input(identifier: str) -> str:
    """Combine system rules, prompt and formatting directive for web search."""
    return f"{SYSTEM_PROMPT}\n\n{build_prompt(identifier)}\n\n{SINGLE_PARAGRAPH_DIRECTIVE}"


def normalize_search_text(text: str) -> str:
    """
    Strip web-search markup down to a single plain paragraph.

    Removes markdown links and parenthetical asides, turns list bullets and
    line breaks into spaces, collapses whitespace, and removes spaces
    before periods and commas. Applying it twice gives the same result.
    """
    cleaned = _WRAPPED_LINK.sub("", text)
    cleaned = _LINK.sub("", cleaned)
    cleaned = _PARENTHETICAL.sub("", cleaned)
    cleaned = _BULLET_GLYPH.sub(" ", cleaned)
    cleaned = _LINE_BULLET.sub(" ", cleaned)
    cleaned = _NEWLINES.sub(" ", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    cleaned = _SPACE_BEFORE_PUNCT.sub(r"\1", cleaned)
    return cleaned.strip()


def is_inconclusive(text: str) -> bool:
    """True for the sentinel answer or an empty one."""
    stripped = text.strip()
    return not stripped or stripped == SENTINEL


@dataclass(frozen=True)
class SearchText:
    """Web search produced (normalized) text."""

    text: str


@dataclass(frozen=True)
class SearchUnavailable:
    """Web search was disabled or failed."""

    reason: str


SearchOutcome = SearchText | SearchUnavailable


class CompletionClient(Protocol):
    """The remote calls LookupService depends on."""

    async def complete(self, system: str, prompt: str) -> str: ...

    async def search(self, text: str) -> str: ...


class LookupService:
    """Looks up store context, hiding the two-stage fallback from callers."""

    def __init__(self, config: LookupConfig, client: CompletionClient | None = None):
        self.config = config
        self.client = client if client is not None else OpenAIStoreClient(config)

    async def lookup(self, identifier: str) -> LookupResult:
        """
        Get a short description of a store.

        Raises:
            InvalidInputError: identifier empty or longer than 200 characters
            ApiError: the primary call was rejected by the API
            RemoteServiceError: the primary call could not reach the API
        """
        request = LookupRequest.create(identifier)
        logger.info(f"Getting information for: {request.identifier}")

        raw = await self.client.complete(SYSTEM_PROMPT, build_prompt(request.identifier))
        text = raw.strip()
        source = LookupSource.PRIMARY

        if is_inconclusive(text):
            logger.info("Store not known to primary model, searching the web...")
            outcome = await self._search(request)

            if isinstance(outcome, SearchText) and not is_inconclusive(outcome.text):
                text = outcome.text
                source = LookupSource.WEB_SEARCH
                logger.info(f"Found information via web search for {request.identifier}")
            else:
                text = SENTINEL
                if isinstance(outcome, SearchUnavailable):
                    logger.warning(f"Web search unavailable: {outcome.reason}")
                else:
                    logger.warning("Web search found no information about this store")

        if is_inconclusive(text):
            text = FALLBACK_TEXT
            source = LookupSource.FALLBACK

        return LookupResult(identifier=request.identifier, text=text, source=source)

    async def _search(self, request: LookupRequest) -> SearchOutcome:
        """Run the web-search stage. Never raises."""
        if not self.config.web_search_enabled:
            return SearchUnavailable("web search disabled in configuration")

        try:
            raw = await self.client.search(build_search_input(request.identifier))
        except Exception as e:
            logger.debug("Web search call failed", exc_info=True)
            return SearchUnavailable(str(e) or type(e).__name__)

        logger.debug(f"Raw web search response: {raw!r}")
        cleaned = normalize_search_text(raw)
        logger.debug(f"Cleaned web search response: {cleaned!r}")
        return SearchText(cleaned)
