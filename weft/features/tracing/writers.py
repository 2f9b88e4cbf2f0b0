"""Trace writers: logging, JSON-lines file and rich console sinks."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import IO, Callable

from rich.console import Console
from rich.json import JSON
from rich.text import Text

from ..base import FeatureMessageProcessor
from ..messages import (
    AgentFinishedEvent,
    AgentRunErrorEvent,
    FeatureEvent,
    ToolCallEvent,
    ToolCallFailureEvent,
    ToolValidationErrorEvent,
)


def format_event(event: FeatureEvent) -> str:
    fields = {
        k: v for k, v in event.to_dict().items() if k not in ("event_id", "timestamp", "event_type")
    }
    details = ", ".join(f"{k}={v!r}" for k, v in fields.items())
    return f"{event.event_type} ({details})"


class TraceLogWriter(FeatureMessageProcessor):
    def __init__(
        self,
        logger: logging.Logger,
        level: int = logging.INFO,
        format: Callable[[FeatureEvent], str] | None = None,
    ) -> None:
        self.logger = logger
        self.level = level
        self.format = format or format_event

    async def process_message(self, message: FeatureEvent) -> None:
        if self.logger.isEnabledFor(self.level):
            self.logger.log(self.level, self.format(message))


class TraceFileWriter(FeatureMessageProcessor):
    """Appends one JSON object per event to ``path``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._file: IO[str] | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("a", encoding="utf-8")

    async def process_message(self, message: FeatureEvent) -> None:
        if self._file is None:
            raise RuntimeError(f"TraceFileWriter for {self.path} is not initialized")
        line = json.dumps(message.to_dict(), ensure_ascii=False, default=str)
        async with self._lock:
            self._file.write(line + "\n")
            self._file.flush()

    async def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


_STYLES = {
    "Agent": "bold green",
    "Strategy": "bold blue",
    "Node": "cyan",
    "LLM": "magenta",
    "Tool": "yellow",
}


class TraceConsoleWriter(FeatureMessageProcessor):
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def _style(self, event: FeatureEvent) -> str:
        if isinstance(event, (AgentRunErrorEvent, ToolCallFailureEvent, ToolValidationErrorEvent)):
            return "bold red"
        return next(
            (style for prefix, style in _STYLES.items() if event.event_type.startswith(prefix)),
            "white",
        )

    async def process_message(self, message: FeatureEvent) -> None:
        stamp = message.timestamp.strftime("%H:%M:%S")
        line = Text.assemble((f"{stamp} ", "dim"), (message.event_type, self._style(message)))
        if isinstance(message, ToolCallEvent):
            line.append(f" {message.tool_name}")
            self.console.print(line)
            self.console.print(JSON(json.dumps(message.tool_args, ensure_ascii=False, default=str)))
            return
        if isinstance(message, AgentFinishedEvent):
            line.append(f" result={message.result!r}")
        else:
            line.append(" " + format_event(message).split(" ", 1)[1], style="dim")
        self.console.print(line)
