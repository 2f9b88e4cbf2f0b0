"""Built-in tools: termination, the per-stage tool listing and chat helpers."""

from __future__ import annotations

from pydantic import BaseModel, Field
from rich.console import Console
from rich.markup import escape

from ..types import ToolDescriptor
from .schema import NoArgs
from .tool import Tool


class TerminationArgs(BaseModel):
    result: str | None = Field(None, description="Final result of the agent run")


class TerminationTool(Tool[TerminationArgs, str]):
    """Designated tool name/argument carried by the termination message."""

    NAME = "__terminate__"
    ARG = "result"

    name = NAME
    description = "Finish the agent run with the given result."
    args_type = TerminationArgs

    async def execute(self, args: TerminationArgs) -> str:
        return args.result or ""


class ListToolsTool(Tool[NoArgs, list[dict]]):
    """Reserved tool added to every stage; returns the descriptors of the stage's tools."""

    description = "List the tools available in the current stage."
    args_type = NoArgs

    def __init__(self, name: str, descriptors: list[ToolDescriptor]) -> None:
        self.name = name
        self._descriptors = list(descriptors)

    async def execute(self, args: NoArgs) -> list[dict]:
        return [
            {"name": d.name, "description": d.description, "parameters": d.parameters}
            for d in self._descriptors
        ]


class SayToUserArgs(BaseModel):
    message: str = Field(..., description="Message from the agent")


class SayToUser(Tool[SayToUserArgs, str]):
    """Lets the agent talk to the user through the console."""

    name = "say_to_user"
    description = "Service tool, used by the agent to talk."
    args_type = SayToUserArgs

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    async def execute(self, args: SayToUserArgs) -> str:
        self.console.print(f"[bold]Agent says:[/bold] {escape(args.message)}")
        return "DONE"


class ExitTool(Tool[NoArgs, str]):
    """Called by the LLM to end a chat."""

    NAME = "__exit__"

    name = NAME
    description = "Finish the conversation with the user."
    args_type = NoArgs

    async def execute(self, args: NoArgs) -> str:
        return "DONE"
