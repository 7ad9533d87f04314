"""
Data models and error types for store-context.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# Shown when neither the model nor web search knows the store
FALLBACK_TEXT = "We're unable to single-out detailed context about this store."

MAX_IDENTIFIER_LENGTH = 200


class ErrorType(str, Enum):
    """Kinds of failure a lookup can report."""

    API_ERROR = "api_error"
    INVALID_INPUT = "invalid_input"
    NETWORK_ERROR = "network_error"
    CONFIGURATION_ERROR = "configuration_error"


class LookupSource(str, Enum):
    """Which stage produced the final text."""

    PRIMARY = "primary"
    WEB_SEARCH = "web_search"
    FALLBACK = "fallback"


class StoreContextError(Exception):
    """Base class for application errors."""

    error_type: ErrorType = ErrorType.API_ERROR

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(StoreContextError):
    """Missing or invalid configuration. Fatal at startup."""

    error_type = ErrorType.CONFIGURATION_ERROR


class InvalidInputError(StoreContextError):
    """Store identifier is empty or too long."""

    error_type = ErrorType.INVALID_INPUT


class RemoteServiceError(StoreContextError):
    """The model API was unreachable, timed out, or failed at the transport level."""

    error_type = ErrorType.NETWORK_ERROR


class ApiError(StoreContextError):
    """The model API answered with an application-level error."""

    error_type = ErrorType.API_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        details: Any = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.code = code


def validate_identifier(identifier: str | None) -> str:
    """
    Check a store identifier and return it trimmed.

    Raises InvalidInputError if it is empty, whitespace-only, or longer
    than MAX_IDENTIFIER_LENGTH characters once trimmed.
    """
    cleaned = (identifier or "").strip()
    if not cleaned:
        raise InvalidInputError("Store URL cannot be empty")
    if len(cleaned) > MAX_IDENTIFIER_LENGTH:
        raise InvalidInputError(
            f"Store URL is too long (maximum {MAX_IDENTIFIER_LENGTH} characters)"
        )
    return cleaned


@dataclass(frozen=True)
class LookupRequest:
    """A single store lookup."""

    identifier: str

    @classmethod
    def create(cls, identifier: str | None) -> "LookupRequest":
        """Validate and build a request from raw user input."""
        return cls(identifier=validate_identifier(identifier))


@dataclass(frozen=True)
class LookupResult:
    """Description of a store, as returned to the caller."""

    identifier: str
    text: str
    source: LookupSource = LookupSource.PRIMARY
    generated_ts: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_uncertain(self) -> bool:
        """True when no stage produced real information."""
        return self.source == LookupSource.FALLBACK

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "identifier": self.identifier,
            "text": self.text,
            "source": self.source.value,
            "is_uncertain": self.is_uncertain,
            "generated_ts": self.generated_ts.isoformat(),
        }
