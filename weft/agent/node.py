"""Graph nodes and edges."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from ..errors import GraphValidationError

if TYPE_CHECKING:
    from .context import AgentContext
    from .edges import EdgeBuilder

NodeFn = Callable[["AgentContext", Any], Awaitable[Any] | Any]


class _NoMatch:
    def __repr__(self) -> str:
        return "NO_MATCH"


NO_MATCH: Any = _NoMatch()


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass
class Edge:
    """Guarded transition. ``forward`` returns the next input or ``NO_MATCH``."""

    source: Node
    target: Node
    forward: Callable[[Any], Awaitable[Any]]


@dataclass
class ResolvedEdge:
    edge: Edge
    output: Any


class Node:
    """Unit of work in a strategy graph: ``execute(context, input) -> output``.

    ``input_type``/``output_type`` are optional declarations used by the
    build-time type check of edges; ``object`` means "anything".
    """

    def __init__(
        self,
        name: str,
        execute: NodeFn | None = None,
        input_type: Any = object,
        output_type: Any = object,
    ) -> None:
        self.name = name
        self._fn = execute
        self.input_type = input_type
        self.output_type = output_type
        self.edges: list[Edge] = []

    def add_edge(self, edge: Edge) -> None:
        self.edges.append(edge)

    def forward_to(self, target: Node) -> EdgeBuilder:
        from .edges import EdgeBuilder

        return EdgeBuilder(self, target)

    async def execute(self, context: AgentContext, input: Any) -> Any:
        await context.pipeline.on_before_node(self, context, input)
        output = await self._run(context, input)
        await context.pipeline.on_after_node(self, context, input, output)
        return output

    async def _run(self, context: AgentContext, input: Any) -> Any:
        if self._fn is None:
            raise NotImplementedError(f"Node {self.name} has no body")
        return await maybe_await(self._fn(context, input))

    async def resolve_edge(self, output: Any) -> ResolvedEdge | None:
        """First edge (declaration order) whose guard accepts ``output``."""
        for edge in self.edges:
            forwarded = await edge.forward(output)
            if forwarded is not NO_MATCH:
                return ResolvedEdge(edge, forwarded)
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class StartNode(Node):
    def __init__(self, name: str = "__start__") -> None:
        super().__init__(name, lambda ctx, value: value)


class FinishNode(Node):
    def __init__(self, name: str = "__finish__") -> None:
        super().__init__(name, lambda ctx, value: value)

    def add_edge(self, edge: Edge) -> None:
        raise GraphValidationError("FinishNode cannot have outgoing edges")
