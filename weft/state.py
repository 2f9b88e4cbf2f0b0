"""Per-run agent state: iteration counter and a typed key-value storage."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class StorageKey(Generic[T]):
    name: str


@dataclass
class AgentState:
    iterations: int = 0


class AgentStateManager:
    def __init__(self) -> None:
        self._state = AgentState()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def lock(self) -> AsyncIterator[AgentState]:
        async with self._lock:
            yield self._state


class AgentStorage:
    """Concurrency-safe storage shared by all nodes of one run."""

    def __init__(self) -> None:
        self._data: dict[StorageKey, Any] = {}
        self._lock = asyncio.Lock()

    async def set(self, key: StorageKey[T], value: T) -> None:
        async with self._lock:
            self._data[key] = value

    async def get(self, key: StorageKey[T]) -> T | None:
        async with self._lock:
            return self._data.get(key)

    async def get_value(self, key: StorageKey[T]) -> T:
        async with self._lock:
            if key not in self._data:
                raise KeyError(f'No value for key "{key.name}"')
            return self._data[key]

    async def remove(self, key: StorageKey[T]) -> T | None:
        async with self._lock:
            return self._data.pop(key, None)

    async def to_dict(self) -> dict[StorageKey, Any]:
        async with self._lock:
            return dict(self._data)

    async def clear(self) -> None:
        async with self._lock:
            self._data.clear()
