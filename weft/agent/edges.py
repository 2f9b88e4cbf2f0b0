"""Chainable edge builder: guards and transforms applied to a node's output.

    builder.edge(send_input.forward_to(call_tool).on_tool_call())
    builder.edge(send_input.forward_to(builder.node_finish).on_assistant_message())

Edges from one node are tried in declaration order and the first match wins,
so put specific guards before catch-all ones.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable

from ..errors import GraphValidationError
from ..tools import Failure, ReceivedToolResult, Success, Tool
from ..types import AssistantMessage, ToolCall
from .node import NO_MATCH, Edge, maybe_await

if TYPE_CHECKING:
    from .node import Node

Predicate = Callable[[Any], bool | Awaitable[bool]]
Transform = Callable[[Any], Any]


async def _identity(value: Any) -> Any:
    return value


class EdgeBuilder:
    def __init__(
        self,
        source: Node,
        target: Node,
        forward: Callable[[Any], Awaitable[Any]] = _identity,
        output_type: Any = None,
    ) -> None:
        self.source = source
        self.target = target
        self._forward = forward
        self.output_type = source.output_type if output_type is None else output_type

    def _then(self, step: Callable[[Any], Awaitable[Any]], output_type: Any) -> EdgeBuilder:
        previous = self._forward

        async def forward(value: Any) -> Any:
            value = await previous(value)
            if value is NO_MATCH:
                return NO_MATCH
            return await step(value)

        return EdgeBuilder(self.source, self.target, forward, output_type)

    # -- Primitives --

    def on_condition(self, predicate: Predicate) -> EdgeBuilder:
        async def step(value: Any) -> Any:
            return value if await maybe_await(predicate(value)) else NO_MATCH

        return self._then(step, self.output_type)

    def transformed(self, transform: Transform, output_type: Any = object) -> EdgeBuilder:
        async def step(value: Any) -> Any:
            return await maybe_await(transform(value))

        return self._then(step, output_type)

    def on_is_instance(self, cls: type) -> EdgeBuilder:
        return self.on_condition(lambda v: isinstance(v, cls))._retyped(cls)

    def _retyped(self, output_type: Any) -> EdgeBuilder:
        return EdgeBuilder(self.source, self.target, self._forward, output_type)

    # -- Messages --

    def on_tool_call(
        self,
        predicate: Predicate | Tool | None = None,
        args_predicate: Predicate | None = None,
    ) -> EdgeBuilder:
        """Match a ``ToolCall``; optionally restricted to one tool and its decoded arguments."""
        edge = self.on_is_instance(ToolCall)
        if isinstance(predicate, Tool):
            tool = predicate
            edge = edge.on_condition(lambda call: call.tool == tool.name)
            if args_predicate is not None:
                edge = edge.on_condition(lambda call: args_predicate(tool.decode_args(call.args)))
            return edge
        if predicate is not None:
            edge = edge.on_condition(predicate)
        return edge

    def on_tool_not_called(self, tool: Tool) -> EdgeBuilder:
        return self.on_is_instance(ToolCall).on_condition(lambda call: call.tool != tool.name)

    def on_assistant_message(self, predicate: Predicate | None = None) -> EdgeBuilder:
        edge = self.on_is_instance(AssistantMessage)
        if predicate is not None:
            edge = edge.on_condition(predicate)
        return edge.transformed(lambda m: m.content, output_type=str)

    def on_multiple_tool_calls(self, predicate: Predicate | None = None) -> EdgeBuilder:
        edge = self.on_condition(
            lambda v: isinstance(v, list) and all(isinstance(m, ToolCall) for m in v)
        )._retyped(list)
        return edge.on_condition(predicate) if predicate is not None else edge

    # -- Tool results --

    def on_tool_result(self, tool: Tool, predicate: Predicate | None = None) -> EdgeBuilder:
        async def matches(result: ReceivedToolResult) -> bool:
            if result.tool != tool.name:
                return False
            return predicate is None or await maybe_await(predicate(result.to_safe_result()))

        return self.on_is_instance(ReceivedToolResult).on_condition(matches)

    def on_multiple_tool_results(self, predicate: Predicate | None = None) -> EdgeBuilder:
        edge = self.on_condition(
            lambda v: isinstance(v, list) and all(isinstance(r, ReceivedToolResult) for r in v)
        )._retyped(list)
        return edge.on_condition(predicate) if predicate is not None else edge

    def on_successful(self, predicate: Predicate | None = None) -> EdgeBuilder:
        edge = self.on_is_instance(Success)
        return edge.on_condition(lambda s: predicate(s.result)) if predicate else edge

    def on_failure(self, predicate: Predicate | None = None) -> EdgeBuilder:
        edge = self.on_is_instance(Failure)
        return edge.on_condition(lambda f: predicate(f.message)) if predicate else edge

    # -- Build --

    def build(self) -> Edge:
        expected = self.target.input_type
        actual = self.output_type
        if (
            isinstance(expected, type)
            and isinstance(actual, type)
            and expected is not object
            and actual is not object
            and not issubclass(actual, expected)
        ):
            raise GraphValidationError(
                f'Edge {self.source.name} -> {self.target.name}: output type '
                f'{actual.__name__} does not match input type {expected.__name__}'
            )
        return Edge(self.source, self.target, self._forward)
