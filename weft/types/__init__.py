"""Core type definitions, re-exported from sub-modules."""

from .messages import (
    Message, Response, SystemMessage, UserMessage, AssistantMessage, ToolCall, ToolMessage,
)
from .tools import ToolDescriptor
from .llm import LLModel, LLMParams, ToolChoice, PromptExecutor

__all__ = [
    "Message", "Response", "SystemMessage", "UserMessage", "AssistantMessage", "ToolCall", "ToolMessage",
    "ToolDescriptor",
    "LLModel", "LLMParams", "ToolChoice", "PromptExecutor",
]
