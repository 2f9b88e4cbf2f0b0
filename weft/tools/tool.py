"""Tool base class and the define_tool helper."""

from __future__ import annotations

import inspect
import json
from typing import Any, Awaitable, Callable, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from ..types import ToolDescriptor
from .schema import ArgsSchema, NoArgs

A = TypeVar("A", bound=BaseModel)
R = TypeVar("R")


class Tool(Generic[A, R]):
    """A capability exposed to the LLM.

    Subclasses set ``name``, ``description`` and ``args_type`` (a Pydantic model)
    and implement ``execute``. Raise ``ToolException`` from ``execute`` to
    reject arguments; the message is fed back to the LLM as a validation error.
    """

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    args_type: ClassVar[type[BaseModel]] = NoArgs

    @property
    def schema(self) -> ArgsSchema:
        return ArgsSchema(self.args_type)

    @property
    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            parameters=self.schema.to_json_schema(),
        )

    def decode_args(self, raw: Any) -> A:
        return self.schema.parse(raw)

    def encode_args(self, args: A | dict[str, Any]) -> str:
        if isinstance(args, BaseModel):
            return args.model_dump_json()
        return json.dumps(args)

    async def execute(self, args: A) -> R:
        raise NotImplementedError

    def encode_result(self, result: R) -> str:
        if isinstance(result, str):
            return result
        if isinstance(result, BaseModel):
            return result.model_dump_json(indent=2)
        return json.dumps(result, default=str)

    async def execute_and_serialize(self, args: A) -> tuple[R, str]:
        result = await self.execute(args)
        return result, self.encode_result(result)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FunctionTool(Tool[BaseModel, Any]):
    """Tool backed by a plain (sync or async) function taking the parsed arguments."""

    def __init__(
        self,
        name: str,
        description: str,
        parameters: type[BaseModel],
        execute: Callable[[Any], Awaitable[Any] | Any],
    ) -> None:
        self.name = name
        self.description = description
        self.args_type = parameters
        self._fn = execute

    async def execute(self, args: BaseModel) -> Any:
        result = self._fn(args)
        if inspect.isawaitable(result):
            result = await result
        return result


def define_tool(
    name: str,
    description: str,
    parameters: type[BaseModel],
    execute: Callable[[Any], Awaitable[Any] | Any],
) -> FunctionTool:
    return FunctionTool(name=name, description=description, parameters=parameters, execute=execute)
