import structlog

from diffreview.core.config import settings
from diffreview.core.exceptions import ConfigurationError
from diffreview.services.llm.base import LLMProvider
from diffreview.services.llm.openai import OpenAIProvider

logger = structlog.get_logger()

PROVIDERS: dict[str, type[LLMProvider]] = {
    "openai": OpenAIProvider,
}


def get_provider(name: str | None = None, model: str | None = None) -> LLMProvider:
    """
    Create the provider registered under the given or configured name.

    Args:
        name: Provider name; defaults to the LLM_PROVIDER setting.
        model: Optional model override.

    Returns:
        A new provider instance.

    Raises:
        ConfigurationError: If no provider is registered under that name.
    """
    provider_name = (name or settings.llm_provider).lower()
    provider_cls = PROVIDERS.get(provider_name)
    if provider_cls is None:
        raise ConfigurationError(
            f"Unknown LLM provider: {provider_name}",
            {"available": sorted(PROVIDERS)},
        )

    logger.debug("Selected LLM provider", provider=provider_name)
    return provider_cls(model=model)  # type: ignore[call-arg]
