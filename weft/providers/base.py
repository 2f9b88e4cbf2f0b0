"""Base prompt executor with retry and circuit breaker."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from ..errors import LLMAuthError, LLMError
from ..prompt import Prompt
from ..types import LLModel, Response, ToolDescriptor

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5
    reset_time: float = 60.0


class BaseLLMProvider:
    """Implements ``PromptExecutor``. Subclass and implement ``_do_execute``/``_do_stream``/``_do_embed``."""

    provider_name = "base"

    def __init__(
        self,
        retry: RetryConfig | None = None,
        circuit_breaker: CircuitBreakerConfig | None = None,
    ) -> None:
        self._retry = retry or RetryConfig()
        self._cb = circuit_breaker or CircuitBreakerConfig()
        self._failures = 0
        self._last_failure = 0.0

    async def execute(
        self, prompt: Prompt, model: LLModel, tools: list[ToolDescriptor] | None = None
    ) -> list[Response]:
        self._check_circuit()
        return await self._with_retry(lambda: self._do_execute(prompt, model, list(tools or [])))

    async def execute_streaming(self, prompt: Prompt, model: LLModel) -> AsyncIterator[str]:
        self._check_circuit()
        async for chunk in self._do_stream(prompt, model):
            yield chunk

    async def embed(self, text: str, model: LLModel) -> list[float]:
        self._check_circuit()
        return await self._with_retry(lambda: self._do_embed(text, model))

    # -- Override these --

    async def _do_execute(
        self, prompt: Prompt, model: LLModel, tools: list[ToolDescriptor]
    ) -> list[Response]:
        raise NotImplementedError

    async def _do_stream(self, prompt: Prompt, model: LLModel) -> AsyncIterator[str]:
        raise NotImplementedError
        yield  # pragma: no cover

    async def _do_embed(self, text: str, model: LLModel) -> list[float]:
        raise LLMError(
            "LLM_UNSUPPORTED", self.provider_name, f"{self.provider_name} does not support embeddings"
        )

    # -- Internals --

    def _check_circuit(self) -> None:
        if self._failures >= self._cb.failure_threshold:
            if time.time() - self._last_failure < self._cb.reset_time:
                raise LLMError("LLM_CIRCUIT_OPEN", self.provider_name, "Circuit breaker open")
            self._failures = 0

    async def _with_retry(self, fn: Callable[[], Awaitable[T]]) -> T:
        last_err: Exception | None = None
        for i in range(self._retry.max_retries + 1):
            try:
                result = await fn()
                self._failures = 0
                return result
            except (LLMAuthError, NotImplementedError):
                raise
            except LLMError as e:
                if e.code == "LLM_UNSUPPORTED":
                    raise
                last_err = e
            except Exception as e:
                last_err = e
            self._failures += 1
            self._last_failure = time.time()
            if i < self._retry.max_retries:
                delay = min(
                    self._retry.base_delay * (2 ** i) + random.random() * 0.1,
                    self._retry.max_delay,
                )
                logger.warning(
                    "%s call failed (%s), retrying in %.1fs", self.provider_name, last_err, delay
                )
                await asyncio.sleep(delay)
        if last_err is None:
            raise LLMError("LLM_API_ERROR", self.provider_name, "No attempts were made")
        raise last_err
