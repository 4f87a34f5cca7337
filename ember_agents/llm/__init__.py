"""
LLM Module - Multi-provider LLM abstraction layer.

This module provides:
- LLMFactory: Create chat models for multiple providers (OpenAI, Google, Anthropic)
- The LLMError exception hierarchy
"""

from .factory import LLMFactory, detect_provider, MODEL_PROVIDERS
from .exceptions import (
    LLMError,
    LLMProviderError,
    LLMTimeoutError,
    LLMInvalidModelError,
)

__all__ = [
    # Factory
    "LLMFactory",
    "detect_provider",
    "MODEL_PROVIDERS",
    # Exceptions
    "LLMError",
    "LLMProviderError",
    "LLMTimeoutError",
    "LLMInvalidModelError",
]
