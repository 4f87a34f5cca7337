"""
LLM Factory - Multi-provider LLM abstraction.

Supports:
- OpenAI (GPT)
- Google (Gemini)
- Anthropic (Claude)
"""

import os
from typing import Literal

from langchain_core.language_models import BaseChatModel

from .exceptions import LLMInvalidModelError, LLMProviderError

Provider = Literal["openai", "google", "anthropic"]

MODEL_PROVIDERS: dict[Provider, list[str]] = {
    "openai": [
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-4.1",
        "gpt-4.1-mini",
    ],
    "google": [
        "gemini-2.5-flash",
        "gemini-2.5-pro",
        "gemini-2.0-flash",
    ],
    "anthropic": [
        "claude-sonnet-4-20250514",
        "claude-3-5-haiku-20241022",
    ],
}

# Environment variable holding the credentials for each provider
API_KEY_ENV: dict[Provider, str] = {
    "openai": "OPENAI_API_KEY",
    "google": "GEMINI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

ALL_MODELS: set[str] = {model for models in MODEL_PROVIDERS.values() for model in models}


def detect_provider(model: str) -> Provider:
    """
    Detect the provider based on model name.

    Raises:
        LLMInvalidModelError: If the model is not recognized
    """
    model_lower = model.lower()

    if model_lower.startswith(("gpt", "o1", "o3", "o4")):
        return "openai"
    if model_lower.startswith("gemini"):
        return "google"
    if model_lower.startswith("claude"):
        return "anthropic"

    for provider, models in MODEL_PROVIDERS.items():
        if model in models:
            return provider

    raise LLMInvalidModelError(model, list(ALL_MODELS))


class LLMFactory:
    """Factory for creating chat models across multiple providers."""

    # Cache for LLM instances (one per model+config)
    _instances: dict[str, BaseChatModel] = {}

    @classmethod
    def create(
        cls,
        model: str,
        temperature: float = 0.0,
        max_retries: int = 2,
        timeout: float = 30,
        api_key: str | None = None,
        use_cache: bool = True,
        **kwargs,
    ) -> BaseChatModel:
        """
        Create a chat model instance for the specified model.

        Args:
            model: Model name (e.g., 'gpt-4o', 'gemini-2.5-flash')
            temperature: Sampling temperature
            max_retries: Provider-level retries on transport failures
            timeout: Request timeout in seconds
            api_key: Optional API key (defaults to the provider's environment variable)
            use_cache: Whether to reuse cached instances

        Raises:
            LLMInvalidModelError: If model is not recognized
            LLMProviderError: If credentials are missing or initialisation fails
        """
        cache_key = f"{model}:{temperature}:{timeout}"
        if use_cache and cache_key in cls._instances:
            return cls._instances[cache_key]

        provider = detect_provider(model)
        resolved_key = api_key or os.getenv(API_KEY_ENV[provider])
        if not resolved_key:
            raise LLMProviderError(
                f"{API_KEY_ENV[provider]} is not set; cannot create '{model}'.",
                provider=provider,
                model=model,
            )

        try:
            llm = cls._create_for_provider(
                provider=provider,
                model=model,
                temperature=temperature,
                max_retries=max_retries,
                timeout=timeout,
                api_key=resolved_key,
                **kwargs,
            )
        except ImportError as e:
            raise LLMProviderError(
                f"Provider '{provider}' dependencies not installed: {e}",
                provider=provider,
                model=model,
            ) from e
        except Exception as e:
            raise LLMProviderError(
                f"Failed to create LLM for '{model}': {e}",
                provider=provider,
                model=model,
            ) from e

        if use_cache:
            cls._instances[cache_key] = llm
        return llm

    @classmethod
    def _create_for_provider(
        cls,
        provider: Provider,
        model: str,
        temperature: float,
        max_retries: int,
        timeout: float,
        api_key: str,
        **kwargs,
    ) -> BaseChatModel:
        match provider:
            case "openai":
                from langchain_openai import ChatOpenAI

                return ChatOpenAI(
                    model=model,
                    temperature=temperature,
                    max_retries=max_retries,
                    timeout=timeout,
                    api_key=api_key,
                    **kwargs,
                )
            case "google":
                from langchain_google_genai import ChatGoogleGenerativeAI

                return ChatGoogleGenerativeAI(
                    model=model,
                    temperature=temperature,
                    max_retries=max_retries,
                    timeout=timeout,
                    google_api_key=api_key,
                    **kwargs,
                )
            case "anthropic":
                from langchain_anthropic import ChatAnthropic

                return ChatAnthropic(
                    model=model,
                    temperature=temperature,
                    max_retries=max_retries,
                    timeout=timeout,
                    api_key=api_key,
                    **kwargs,
                )

    @classmethod
    def list_models(cls, provider: Provider | None = None) -> list[str]:
        if provider:
            return MODEL_PROVIDERS.get(provider, [])
        return sorted(ALL_MODELS)

    @classmethod
    def clear_cache(cls) -> None:
        """Clear the LLM instance cache."""
        cls._instances.clear()

    @classmethod
    def get_default_model(cls, provider: Provider | None = None) -> str:
        provider = provider or "openai"
        models = MODEL_PROVIDERS.get(provider, [])
        if not models:
            raise LLMProviderError(f"No models available for provider: {provider}")
        return models[0]
