"""Feature contracts: feature descriptor, config and message processors."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Protocol, TypeVar, runtime_checkable

from ..state import StorageKey

if TYPE_CHECKING:
    from .pipeline import AgentPipeline

logger = logging.getLogger(__name__)

C = TypeVar("C", bound="FeatureConfig")


class FeatureMessageProcessor(ABC):
    """Sink for feature event records (log, file, console, remote)."""

    async def initialize(self) -> None:
        return None

    @abstractmethod
    async def process_message(self, message: Any) -> None: ...

    async def close(self) -> None:
        return None


class FeatureConfig:
    def __init__(self) -> None:
        self.message_processors: list[FeatureMessageProcessor] = []
        self.message_filter: Callable[[Any], bool] = lambda message: True

    def add_message_processor(self, processor: FeatureMessageProcessor) -> None:
        self.message_processors.append(processor)

    def set_message_filter(self, predicate: Callable[[Any], bool]) -> None:
        self.message_filter = predicate

    async def dispatch(self, message: Any) -> None:
        """Send ``message`` to every processor; one failing processor doesn't stop the rest."""
        try:
            if not self.message_filter(message):
                return
        except Exception:
            logger.exception("Message filter failed for %s", type(message).__name__)
            return
        for processor in self.message_processors:
            try:
                await processor.process_message(message)
            except Exception:
                logger.exception(
                    "Message processor %s failed on %s",
                    type(processor).__name__,
                    type(message).__name__,
                )


@runtime_checkable
class AgentFeature(Protocol[C]):
    key: StorageKey

    def create_initial_config(self) -> C: ...

    def install(self, config: C, pipeline: AgentPipeline) -> None: ...
