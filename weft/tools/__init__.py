"""Tools: definitions, stage-aware registry and safe invocation."""

from ..errors import ToolException
from .builtin import ExitTool, ListToolsTool, SayToUser, TerminationTool
from .registry import (
    DEFAULT_STAGE_NAME,
    DEFAULT_TOOL_LIST_NAME,
    STAGE_PARAM_NAME,
    ToolRegistry,
    ToolRegistryBuilder,
    ToolStage,
    simple_tool_registry,
)
from .safe_tool import Failure, ReceivedToolResult, SafeTool, SafeToolResult, Success
from .schema import ArgsSchema, NoArgs
from .tool import FunctionTool, Tool, define_tool

__all__ = [
    "Tool", "FunctionTool", "define_tool", "ToolException", "ArgsSchema", "NoArgs",
    "TerminationTool", "ListToolsTool", "SayToUser", "ExitTool",
    "ToolStage", "ToolRegistry", "ToolRegistryBuilder", "simple_tool_registry",
    "DEFAULT_STAGE_NAME", "DEFAULT_TOOL_LIST_NAME", "STAGE_PARAM_NAME",
    "SafeTool", "SafeToolResult", "Success", "Failure", "ReceivedToolResult",
]
