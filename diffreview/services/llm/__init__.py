from diffreview.services.llm.base import LLMProvider, RequestOptions
from diffreview.services.llm.coordinator import LLMCoordinator
from diffreview.services.llm.openai import OpenAIProvider
from diffreview.services.llm.registry import get_provider

__all__ = [
    "LLMProvider",
    "LLMCoordinator",
    "OpenAIProvider",
    "RequestOptions",
    "get_provider",
]
