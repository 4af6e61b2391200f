from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

Message = Mapping[str, str]


@dataclass
class RequestOptions:
    """Per-request overrides for a provider request body."""

    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        pass

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier."""
        pass

    @abstractmethod
    def format_request(
        self,
        messages: Sequence[Message],
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        """Build the provider-specific request body."""
        pass

    @abstractmethod
    def parse_response(self, body: Any) -> str:
        """Validate a response body and extract its text content."""
        pass

    @abstractmethod
    def headers(self, api_key: str) -> dict[str, str]:
        """HTTP headers for an authenticated request."""
        pass

    def token_usage(self, body: Any) -> tuple[int, int]:
        """Return (input, output) token counts reported in a response body."""
        return 0, 0
