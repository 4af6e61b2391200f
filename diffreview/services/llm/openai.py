from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from diffreview.core.config import settings
from diffreview.core.exceptions import (
    EmptyResponseError,
    InvalidRequestError,
    InvalidResponseError,
)
from diffreview.services.llm.base import LLMProvider, Message, RequestOptions

logger = structlog.get_logger()

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_TOKENS = 1000
DEFAULT_TEMPERATURE = 0.1


class OpenAIProvider(LLMProvider):
    """OpenAI chat-completions provider (and compatible endpoints)."""

    def __init__(self, model: str | None = None) -> None:
        self._model = model or settings.llm_model or DEFAULT_MODEL

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model

    def format_request(
        self,
        messages: Sequence[Message],
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        self._validate_messages(messages)
        options = options or RequestOptions()

        return {
            "model": options.model or self._model,
            "messages": list(messages),
            "max_tokens": (
                options.max_tokens if options.max_tokens is not None else DEFAULT_MAX_TOKENS
            ),
            "temperature": (
                options.temperature if options.temperature is not None else DEFAULT_TEMPERATURE
            ),
        }

    def _validate_messages(self, messages: Sequence[Message]) -> None:
        if isinstance(messages, (str, bytes)) or not isinstance(messages, Sequence):
            raise InvalidRequestError("Messages must be a sequence of role/content mappings")
        if not messages:
            raise InvalidRequestError("Messages must not be empty")

        for index, message in enumerate(messages):
            if not isinstance(message, Mapping):
                raise InvalidRequestError(f"Message {index} is not a mapping")
            role = message.get("role")
            content = message.get("content")
            if not isinstance(role, str) or not role:
                raise InvalidRequestError(f"Message {index} has no role")
            if not isinstance(content, str) or not content:
                raise InvalidRequestError(f"Message {index} has no content")

    def parse_response(self, body: Any) -> str:
        try:
            choice = body["choices"][0]
            content = choice["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise InvalidResponseError(
                f"Invalid {self.name} response format", {"provider": self.name}
            ) from e

        if not isinstance(content, str):
            raise InvalidResponseError(
                f"Invalid {self.name} response format", {"provider": self.name}
            )

        if isinstance(choice, Mapping) and choice.get("finish_reason") == "length":
            logger.warning(
                "LLM response truncated by token limit",
                provider=self.name,
                model=self._model,
            )

        if not content.strip():
            raise EmptyResponseError(
                f"Empty response from {self.name}", {"provider": self.name}
            )

        return content

    def headers(self, api_key: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    def token_usage(self, body: Any) -> tuple[int, int]:
        usage = body.get("usage") if isinstance(body, Mapping) else None
        if not isinstance(usage, Mapping):
            return 0, 0
        return int(usage.get("prompt_tokens") or 0), int(usage.get("completion_tokens") or 0)
