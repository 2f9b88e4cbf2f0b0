"""LLM context, sessions and request helpers."""

from .compression import FromLastNMessages, HistoryCompressionStrategy, WholeHistory
from .context import LLMContext
from .proxy import PromptExecutorProxy
from .rwlock import RWLock
from .session import ReadSession, SessionState, WriteSession, convert_tool_messages
from .structure import JsonStructuredData, StructuredResponse

__all__ = [
    "LLMContext", "ReadSession", "WriteSession", "SessionState", "RWLock",
    "PromptExecutorProxy", "convert_tool_messages",
    "JsonStructuredData", "StructuredResponse",
    "HistoryCompressionStrategy", "WholeHistory", "FromLastNMessages",
]
