import json
import re
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from diffreview.core.config import settings
from diffreview.core.exceptions import (
    ConfigurationError,
    InvalidJSONResponseError,
    InvalidResponseError,
    ProviderRequestError,
)
from diffreview.core.metrics import record_llm_request
from diffreview.prompts.review import (
    REVIEW_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    build_review_prompt,
    build_summary_prompt,
)
from diffreview.services.llm.base import LLMProvider, Message, RequestOptions
from diffreview.services.llm.registry import get_provider

if TYPE_CHECKING:
    from diffreview.services.review.diff_parser import Hunk

logger = structlog.get_logger()

LEADING_FENCE_PATTERN = re.compile(r"^\s*```[\w-]*[ \t]*\n?")
TRAILING_FENCE_PATTERN = re.compile(r"\n?[ \t]*```\s*$")


class LLMCoordinator:
    """Builds prompts and runs LLM round trips through a single provider."""

    def __init__(
        self,
        provider: LLMProvider | None = None,
        endpoint: str | None = None,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.provider = provider or get_provider()
        self.endpoint = endpoint or settings.llm_endpoint
        self.api_key = api_key or settings.api_key_value
        self._client = http_client
        self._owns_client = http_client is None

    def get_provider(self) -> LLMProvider:
        return self.provider

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            # No internal deadline; callers wrap the call if they need one
            self._client = httpx.AsyncClient(timeout=None)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this coordinator created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def make_request(
        self,
        endpoint: str | None,
        api_key: str | None,
        messages: Sequence[Message],
        options: RequestOptions | None = None,
    ) -> str:
        """
        Send one chat request and return the provider's text content.

        Args:
            endpoint: Chat-completions URL.
            api_key: Bearer token for the endpoint.
            messages: Ordered role/content messages.
            options: Model, token cap and temperature overrides.

        Returns:
            Raw completion text.

        Raises:
            ConfigurationError: If endpoint or api_key is missing.
            ProviderRequestError: On HTTP or network failure.
            LLMError: If the provider rejects the request or response.
        """
        if not endpoint:
            raise ConfigurationError("LLM_ENDPOINT is required")
        if not api_key:
            raise ConfigurationError("LLM_API_KEY is required")

        provider = self.provider
        request_body = provider.format_request(messages, options)
        model = request_body.get("model", provider.model)
        client = await self._get_client()

        logger.debug(
            "Sending LLM request",
            provider=provider.name,
            model=model,
            max_tokens=request_body.get("max_tokens"),
        )

        start_time = time.perf_counter()
        status = "error"
        tokens_input = tokens_output = 0

        try:
            try:
                response = await client.post(
                    endpoint,
                    json=request_body,
                    headers=provider.headers(api_key),
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                upstream_message = self._upstream_error_message(e.response) or str(e)
                logger.error(
                    "LLM API error",
                    provider=provider.name,
                    status_code=status_code,
                    error=upstream_message,
                )
                raise ProviderRequestError(
                    f"LLM API Error ({provider.name}): {status_code} - {upstream_message}",
                    provider=provider.name,
                    status_code=status_code,
                ) from e
            except httpx.HTTPError as e:
                error = str(e) or e.__class__.__name__
                logger.error("LLM request failed", provider=provider.name, error=error)
                raise ProviderRequestError(
                    f"LLM Request Failed ({provider.name}): {error}",
                    provider=provider.name,
                ) from e

            try:
                data = response.json()
            except ValueError as e:
                raise InvalidResponseError(
                    f"Invalid {provider.name} response format: body is not JSON",
                    {"provider": provider.name},
                ) from e

            tokens_input, tokens_output = provider.token_usage(data)
            content = provider.parse_response(data)
            status = "success"
            return content
        finally:
            record_llm_request(
                provider=provider.name,
                model=model,
                status=status,
                duration_seconds=time.perf_counter() - start_time,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
            )

    @staticmethod
    def _upstream_error_message(response: httpx.Response) -> str | None:
        try:
            data = response.json()
        except ValueError:
            return response.reason_phrase or None

        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return response.reason_phrase or None

    async def get_review(self, hunk: "Hunk") -> Any:
        """Ask the model for review comments on one hunk and decode its JSON."""
        messages = [
            {"role": "system", "content": REVIEW_SYSTEM_PROMPT},
            {"role": "user", "content": build_review_prompt(hunk)},
        ]
        options = RequestOptions(
            max_tokens=settings.review_max_tokens,
            temperature=settings.llm_temperature,
        )

        content = await self.make_request(self.endpoint, self.api_key, messages, options)
        return self.parse_review_response(content)

    async def get_summary(self, diff_text: str) -> str:
        """Ask the model for a free-text summary of incremental changes."""
        messages = [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": build_summary_prompt(diff_text)},
        ]
        options = RequestOptions(
            max_tokens=settings.summary_max_tokens,
            temperature=settings.llm_temperature,
        )

        return await self.make_request(self.endpoint, self.api_key, messages, options)

    @staticmethod
    def parse_review_response(content: str) -> Any:
        """Strip code-fence wrapping and decode the review payload."""
        cleaned = LEADING_FENCE_PATTERN.sub("", content)
        cleaned = TRAILING_FENCE_PATTERN.sub("", cleaned).strip()

        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.error(
                "Failed to parse LLM response as JSON",
                response=cleaned[:500],
                error=str(e),
            )
            raise InvalidJSONResponseError("Invalid JSON response from LLM") from e
