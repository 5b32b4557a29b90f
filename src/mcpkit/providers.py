"""LLM provider factory using browser-use native providers."""

from typing import TYPE_CHECKING

from browser_use import ChatAnthropic, ChatGoogle, ChatOpenAI

from .config import STANDARD_ENV_VAR_NAMES, parse_model_reference, resolve_api_key
from .exceptions import LLMProviderError

if TYPE_CHECKING:
    from browser_use.llm.base import BaseChatModel

    from .config import LLMSettings

# xAI exposes an OpenAI-compatible API
XAI_BASE_URL = "https://api.x.ai/v1"


def get_llm(provider: str, model: str, api_key: str | None = None) -> "BaseChatModel":
    """Create LLM instance using browser-use native providers.

    Supports 4 providers:
    - openai: OpenAI GPT models
    - anthropic: Claude models
    - google: Gemini models
    - xai: Grok models (OpenAI-compatible endpoint)

    Args:
        provider: LLM provider name
        model: Model name/identifier
        api_key: API key for the provider

    Returns:
        Configured BaseChatModel instance

    Raises:
        LLMProviderError: If provider is unsupported or API key is missing
    """
    if not api_key:
        standard_var = STANDARD_ENV_VAR_NAMES.get(provider, "API key")
        raise LLMProviderError(f"API key required for provider '{provider}'. Set {standard_var} or MCPKIT_LLM_API_KEY environment variable.")

    try:
        match provider:
            case "openai":
                return ChatOpenAI(model=model, api_key=api_key)

            case "anthropic":
                return ChatAnthropic(model=model, api_key=api_key)

            case "google":
                return ChatGoogle(model=model, api_key=api_key)

            case "xai":
                return ChatOpenAI(model=model, api_key=api_key, base_url=XAI_BASE_URL)

            case _:
                raise LLMProviderError(f"Unsupported provider: {provider}")

    except LLMProviderError:
        raise
    except Exception as e:
        raise LLMProviderError(f"Failed to initialize {provider} LLM: {e}") from e


def get_llm_for_reference(reference: str, llm_settings: "LLMSettings") -> "BaseChatModel":
    """Create an LLM from a ``<provider>/<model>`` reference.

    The generic MCPKIT_LLM_API_KEY override applies only when the reference uses the
    same provider as the main model; otherwise the provider's standard variable is used.
    """
    provider, model = parse_model_reference(reference)
    override = llm_settings.api_key if provider == llm_settings.provider else None
    return get_llm(provider, model, api_key=resolve_api_key(provider, override))
