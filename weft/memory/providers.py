"""Memory providers: where facts are stored and looked up."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

from .model import Concept, Fact, MemorySubject, ScopeValue

logger = logging.getLogger(__name__)


@runtime_checkable
class AgentMemoryProvider(Protocol):
    async def save(self, fact: Fact, subject: MemorySubject, scope: ScopeValue) -> None: ...

    async def load(
        self, concept: Concept, subject: MemorySubject, scope: ScopeValue
    ) -> list[Fact]: ...

    async def load_all(self, subject: MemorySubject, scope: ScopeValue) -> list[Fact]: ...

    async def load_by_description(
        self, description: str, subject: MemorySubject, scope: ScopeValue
    ) -> list[Fact]: ...


class NoMemory:
    """Provider that remembers nothing."""

    async def save(self, fact: Fact, subject: MemorySubject, scope: ScopeValue) -> None:
        return None

    async def load(self, concept: Concept, subject: MemorySubject, scope: ScopeValue) -> list[Fact]:
        return []

    async def load_all(self, subject: MemorySubject, scope: ScopeValue) -> list[Fact]:
        return []

    async def load_by_description(
        self, description: str, subject: MemorySubject, scope: ScopeValue
    ) -> list[Fact]:
        return []


class InMemoryMemoryProvider:
    """Append-only process-local store; facts are returned in insertion order."""

    def __init__(self) -> None:
        self._facts: list[tuple[MemorySubject, ScopeValue, Fact]] = []
        self._lock = asyncio.Lock()

    async def save(self, fact: Fact, subject: MemorySubject, scope: ScopeValue) -> None:
        async with self._lock:
            self._facts.append((subject, scope, fact))
        logger.debug("Saved fact %s for %s in %s", fact.concept.keyword, subject.name, scope)

    async def _select(self, subject: MemorySubject, scope: ScopeValue) -> list[Fact]:
        async with self._lock:
            return [f for s, sc, f in self._facts if s is subject and sc == scope]

    async def load(self, concept: Concept, subject: MemorySubject, scope: ScopeValue) -> list[Fact]:
        return [f for f in await self._select(subject, scope) if f.concept.keyword == concept.keyword]

    async def load_all(self, subject: MemorySubject, scope: ScopeValue) -> list[Fact]:
        return await self._select(subject, scope)

    async def load_by_description(
        self, description: str, subject: MemorySubject, scope: ScopeValue
    ) -> list[Fact]:
        needle = description.lower()
        return [
            f
            for f in await self._select(subject, scope)
            if needle in f.concept.description.lower()
        ]
