"""Line-anchored LLM review of unified diffs."""

from diffreview.core.config import settings
from diffreview.services.llm import LLMCoordinator, LLMProvider, OpenAIProvider, RequestOptions
from diffreview.services.review import (
    CodeReviewer,
    CommentFilters,
    DiffParser,
    Hunk,
    ReviewComment,
    ReviewResult,
    parse_diff,
)

__version__ = "0.1.0"


def create_reviewer(coordinator: LLMCoordinator | None = None) -> CodeReviewer:
    """Create a reviewer wired to the configured LLM provider."""
    return CodeReviewer(coordinator=coordinator)


def create_llm_coordinator(provider: LLMProvider | None = None) -> LLMCoordinator:
    """Create a coordinator for the given or configured provider."""
    return LLMCoordinator(provider=provider)


__all__ = [
    "CodeReviewer",
    "CommentFilters",
    "DiffParser",
    "Hunk",
    "LLMCoordinator",
    "LLMProvider",
    "OpenAIProvider",
    "RequestOptions",
    "ReviewComment",
    "ReviewResult",
    "create_llm_coordinator",
    "create_reviewer",
    "parse_diff",
    "settings",
    "__version__",
]
