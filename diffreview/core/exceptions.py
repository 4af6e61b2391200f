from typing import Any


class DiffReviewError(Exception):
    """Base exception for diffreview."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidInputError(DiffReviewError):
    """Diff text or hunk data is malformed."""

    pass


class InvalidHunkError(InvalidInputError):
    """A hunk is missing its filename or changes."""

    pass


class ConfigurationError(DiffReviewError):
    """Invalid or missing configuration."""

    pass


class LLMError(DiffReviewError):
    """Errors related to LLM interactions."""

    pass


class InvalidRequestError(LLMError):
    """The message sequence handed to a provider is malformed."""

    pass


class ProviderRequestError(LLMError):
    """The HTTP round trip to the LLM provider failed."""

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        super().__init__(message, {"provider": provider, "status_code": status_code})


class InvalidResponseError(LLMError):
    """Provider response does not have the expected shape."""

    pass


class EmptyResponseError(LLMError):
    """Provider returned no usable text."""

    pass


class InvalidJSONResponseError(LLMError):
    """Failed to decode the LLM review payload as JSON."""

    pass


class ReviewError(DiffReviewError):
    """Errors during the review process."""

    pass
