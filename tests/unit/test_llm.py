import json
from collections.abc import Callable
from typing import Any
from unittest.mock import patch

import httpx
import pytest

from diffreview.core.exceptions import (
    ConfigurationError,
    EmptyResponseError,
    InvalidJSONResponseError,
    InvalidRequestError,
    InvalidResponseError,
    ProviderRequestError,
)
from diffreview.services.llm.base import RequestOptions
from diffreview.services.llm.coordinator import LLMCoordinator
from diffreview.services.llm.openai import DEFAULT_MODEL, OpenAIProvider
from diffreview.services.llm.registry import get_provider
from diffreview.services.review.diff_parser import Hunk
from tests.fixtures.llm_responses import make_completion

ENDPOINT = "https://api.openai.com/v1/chat/completions"
MESSAGES = [
    {"role": "system", "content": "You review code."},
    {"role": "user", "content": "Review this."},
]


class TestOpenAIProvider:
    """Tests for the OpenAI provider."""

    @pytest.fixture
    def provider(self) -> OpenAIProvider:
        return OpenAIProvider()

    def test_name_and_default_model(self, provider: OpenAIProvider) -> None:
        assert provider.name == "openai"
        assert provider.model == DEFAULT_MODEL == "gpt-4o-mini"

    def test_format_request_defaults(self, provider: OpenAIProvider) -> None:
        """Test the default body fields."""
        body = provider.format_request(MESSAGES)

        assert body == {
            "model": "gpt-4o-mini",
            "messages": MESSAGES,
            "max_tokens": 1000,
            "temperature": 0.1,
        }

    def test_format_request_overrides(self, provider: OpenAIProvider) -> None:
        """Test that options override model, token cap and temperature."""
        body = provider.format_request(
            MESSAGES,
            RequestOptions(model="gpt-4o", max_tokens=1500, temperature=0.0),
        )

        assert body["model"] == "gpt-4o"
        assert body["max_tokens"] == 1500
        assert body["temperature"] == 0.0

    def test_constructor_model_override(self) -> None:
        assert OpenAIProvider(model="gpt-4.1").format_request(MESSAGES)["model"] == "gpt-4.1"

    @pytest.mark.parametrize(
        "messages",
        [
            [],
            "not a list",
            [{"role": "user"}],
            [{"role": "", "content": "hello"}],
            [{"role": "user", "content": ""}],
            [{"role": "user", "content": "ok"}, "bad"],
        ],
    )
    def test_format_request_rejects_bad_messages(
        self, provider: OpenAIProvider, messages: Any
    ) -> None:
        with pytest.raises(InvalidRequestError):
            provider.format_request(messages)

    def test_parse_response(self, provider: OpenAIProvider) -> None:
        assert provider.parse_response(make_completion("Looks good")) == "Looks good"

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"choices": []},
            {"choices": [{}]},
            {"choices": [{"message": {}}]},
            {"choices": [{"message": {"content": None}}]},
            None,
        ],
    )
    def test_parse_response_invalid_format(self, provider: OpenAIProvider, body: Any) -> None:
        with pytest.raises(InvalidResponseError, match="Invalid openai response format"):
            provider.parse_response(body)

    @pytest.mark.parametrize("content", ["", "   \n\t"])
    def test_parse_response_empty(self, provider: OpenAIProvider, content: str) -> None:
        with pytest.raises(EmptyResponseError):
            provider.parse_response(make_completion(content))

    def test_parse_response_truncated_still_returns_text(
        self, provider: OpenAIProvider
    ) -> None:
        """Test that a length-capped completion only warns."""
        with patch("diffreview.services.llm.openai.logger") as mock_logger:
            content = provider.parse_response(make_completion("partial", finish_reason="length"))

        assert content == "partial"
        mock_logger.warning.assert_called_once()

    def test_headers(self, provider: OpenAIProvider) -> None:
        assert provider.headers("secret") == {
            "Content-Type": "application/json",
            "Authorization": "Bearer secret",
        }

    def test_token_usage(self, provider: OpenAIProvider) -> None:
        assert provider.token_usage(make_completion("x")) == (120, 30)
        assert provider.token_usage({"choices": []}) == (0, 0)


class TestProviderRegistry:
    """Tests for provider selection."""

    def test_default_provider(self) -> None:
        assert isinstance(get_provider(), OpenAIProvider)

    def test_model_override(self) -> None:
        assert get_provider("openai", model="gpt-4o").model == "gpt-4o"

    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown LLM provider"):
            get_provider("nonexistent")


def make_coordinator(
    handler: Callable[[httpx.Request], httpx.Response],
    endpoint: str | None = ENDPOINT,
    api_key: str | None = "test-api-key",
) -> LLMCoordinator:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return LLMCoordinator(
        provider=OpenAIProvider(),
        endpoint=endpoint,
        api_key=api_key,
        http_client=client,
    )


class TestLLMCoordinator:
    """Tests for the LLM coordinator."""

    @pytest.fixture
    def requests(self) -> list[httpx.Request]:
        return []

    def _responder(
        self,
        requests: list[httpx.Request],
        body: Any,
        status_code: int = 200,
    ) -> Callable[[httpx.Request], httpx.Response]:
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(status_code, json=body)

        return handler

    def test_owns_single_provider(self) -> None:
        provider = OpenAIProvider()
        coordinator = LLMCoordinator(provider=provider, endpoint=ENDPOINT, api_key="k")

        assert coordinator.get_provider() is provider
        assert coordinator.get_provider().name == "openai"

    @pytest.mark.asyncio
    async def test_get_review(
        self,
        requests: list[httpx.Request],
        sample_hunk: Hunk,
        sample_llm_response: dict[str, Any],
        sample_review_payload: dict[str, Any],
    ) -> None:
        """Test a review round trip and the request it sends."""
        coordinator = make_coordinator(self._responder(requests, sample_llm_response))

        result = await coordinator.get_review(sample_hunk)

        assert result == sample_review_payload
        assert len(requests) == 1

        request = requests[0]
        assert str(request.url) == ENDPOINT
        assert request.method == "POST"
        assert request.headers["Authorization"] == "Bearer test-api-key"
        assert request.headers["Content-Type"] == "application/json"

        body = json.loads(request.content)
        assert body["model"] == "gpt-4o-mini"
        assert body["max_tokens"] == 1000
        assert body["temperature"] == 0.1
        assert [m["role"] for m in body["messages"]] == ["system", "user"]

        user_prompt = body["messages"][1]["content"]
        assert json.dumps(sample_hunk.to_dict()) in user_prompt
        assert "Review the code changes" in user_prompt
        assert "Only comment on added or modified lines" in user_prompt
        assert "Use the exact lineNumber" in user_prompt

    @pytest.mark.asyncio
    async def test_get_review_strips_code_fence(
        self, requests: list[httpx.Request], sample_hunk: Hunk
    ) -> None:
        payload = {"comments": [{"body": "Good code structure", "line": 2}]}
        fenced = "```json\n" + json.dumps(payload) + "\n```"
        coordinator = make_coordinator(self._responder(requests, make_completion(fenced)))

        assert await coordinator.get_review(sample_hunk) == payload

    @pytest.mark.asyncio
    async def test_get_review_invalid_json(
        self, requests: list[httpx.Request], sample_hunk: Hunk
    ) -> None:
        coordinator = make_coordinator(
            self._responder(requests, make_completion("Invalid JSON response"))
        )

        with pytest.raises(InvalidJSONResponseError, match="Invalid JSON response from LLM"):
            await coordinator.get_review(sample_hunk)

    @pytest.mark.asyncio
    async def test_get_summary(self, requests: list[httpx.Request], sample_diff: str) -> None:
        """Test that the summary is returned verbatim."""
        summary = "Added a new constant `b`.\n\n```python\nb = 2\n```"
        coordinator = make_coordinator(self._responder(requests, make_completion(summary)))

        result = await coordinator.get_summary(sample_diff)

        assert result == summary
        body = json.loads(requests[0].content)
        assert body["max_tokens"] == 1500
        assert body["temperature"] == 0.1
        assert "summarizes incremental code changes" in body["messages"][0]["content"]

        user_prompt = body["messages"][1]["content"]
        assert "incremental changes" in user_prompt
        assert "since the last review" in user_prompt
        assert "new additions or modifications" in user_prompt
        assert sample_diff in user_prompt

    @pytest.mark.asyncio
    @pytest.mark.parametrize("endpoint,api_key", [(None, "key"), (ENDPOINT, None), ("", "")])
    async def test_make_request_requires_configuration(
        self,
        requests: list[httpx.Request],
        endpoint: str | None,
        api_key: str | None,
    ) -> None:
        coordinator = make_coordinator(self._responder(requests, make_completion("x")))

        with pytest.raises(ConfigurationError):
            await coordinator.make_request(endpoint, api_key, MESSAGES)
        assert requests == []

    @pytest.mark.asyncio
    async def test_http_error_carries_status_and_upstream_message(
        self, requests: list[httpx.Request]
    ) -> None:
        coordinator = make_coordinator(
            self._responder(
                requests,
                {"error": {"message": "Rate limit exceeded"}},
                status_code=429,
            )
        )

        with pytest.raises(ProviderRequestError) as exc_info:
            await coordinator.make_request(ENDPOINT, "key", MESSAGES)

        assert exc_info.value.status_code == 429
        assert exc_info.value.provider == "openai"
        assert str(exc_info.value) == "LLM API Error (openai): 429 - Rate limit exceeded"

    @pytest.mark.asyncio
    async def test_network_error_is_wrapped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Network error", request=request)

        coordinator = make_coordinator(handler)

        with pytest.raises(ProviderRequestError) as exc_info:
            await coordinator.make_request(ENDPOINT, "key", MESSAGES)

        assert exc_info.value.status_code is None
        assert str(exc_info.value) == "LLM Request Failed (openai): Network error"

    @pytest.mark.asyncio
    async def test_invalid_response_propagates(self, requests: list[httpx.Request]) -> None:
        coordinator = make_coordinator(self._responder(requests, {"unexpected": True}))

        with pytest.raises(InvalidResponseError):
            await coordinator.make_request(ENDPOINT, "key", MESSAGES)

    @pytest.mark.asyncio
    async def test_records_llm_metrics(
        self, requests: list[httpx.Request], sample_llm_response: dict[str, Any]
    ) -> None:
        coordinator = make_coordinator(self._responder(requests, sample_llm_response))

        with patch("diffreview.services.llm.coordinator.record_llm_request") as mock_record:
            await coordinator.make_request(ENDPOINT, "key", MESSAGES)

        kwargs = mock_record.call_args.kwargs
        assert kwargs["provider"] == "openai"
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["status"] == "success"
        assert kwargs["tokens_input"] == 120
        assert kwargs["tokens_output"] == 30

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(
        self, requests: list[httpx.Request]
    ) -> None:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(self._responder(requests, make_completion("x")))
        )
        coordinator = LLMCoordinator(
            provider=OpenAIProvider(), endpoint=ENDPOINT, api_key="k", http_client=client
        )

        await coordinator.close()

        assert not client.is_closed
        await client.aclose()


class TestParseReviewResponse:
    """Tests for review payload decoding."""

    @pytest.mark.parametrize(
        "content",
        [
            '{"comments": []}',
            '```json\n{"comments": []}\n```',
            '```\n{"comments": []}\n```',
            '  ```json\n{"comments": []}```  ',
        ],
    )
    def test_decodes_with_and_without_fence(self, content: str) -> None:
        assert LLMCoordinator.parse_review_response(content) == {"comments": []}

    def test_rejects_prose(self) -> None:
        with pytest.raises(InvalidJSONResponseError):
            LLMCoordinator.parse_review_response("Here are my comments: none")
