"""Prompt executors for LLM providers."""

from .base import BaseLLMProvider, CircuitBreakerConfig, RetryConfig
from .mock import MockPromptExecutor, MockRule
from .multi import MultiLLMPromptExecutor

__all__ = [
    "BaseLLMProvider", "RetryConfig", "CircuitBreakerConfig",
    "MockPromptExecutor", "MockRule", "MultiLLMPromptExecutor",
    "OpenAIProvider", "AnthropicProvider",
]


def __getattr__(name: str):
    # SDK-backed providers import lazily
    if name == "OpenAIProvider":
        from .openai import OpenAIProvider

        return OpenAIProvider
    if name == "AnthropicProvider":
        from .anthropic import AnthropicProvider

        return AnthropicProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
