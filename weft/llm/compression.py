"""History compression strategies used to replace long histories with a TLDR."""

from __future__ import annotations

from dataclasses import dataclass

from ..types import Message, SystemMessage

SUMMARIZE_PROMPT = (
    "Create a comprehensive summary (TLDR) of the conversation so far. "
    "Keep every fact, decision and tool result needed to continue the task; "
    "drop greetings and repetition."
)

# Prefix of messages injected by the memory feature; preserved through compression.
MEMORY_FACTS_PREFIX = "Here are the relevant facts from memory about"


class HistoryCompressionStrategy:
    def select(self, messages: list[Message]) -> list[Message]:
        raise NotImplementedError


class WholeHistory(HistoryCompressionStrategy):
    def select(self, messages: list[Message]) -> list[Message]:
        return [m for m in messages if not isinstance(m, SystemMessage)]


@dataclass
class FromLastNMessages(HistoryCompressionStrategy):
    n: int

    def select(self, messages: list[Message]) -> list[Message]:
        history = [m for m in messages if not isinstance(m, SystemMessage)]
        return history[-self.n:] if self.n > 0 else []


def is_memory_message(message: Message) -> bool:
    return message.role == "user" and message.content.startswith(MEMORY_FACTS_PREFIX)
