"""Tool stages and the stage-aware tool registry."""

from __future__ import annotations

import logging
from typing import Iterable, TypeVar

from ..errors import ToolRegistryError
from ..types import ToolDescriptor
from .builtin import ListToolsTool
from .tool import Tool

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Tool)

DEFAULT_STAGE_NAME = "default"
DEFAULT_TOOL_LIST_NAME = "__tools_list__"
STAGE_PARAM_NAME = "__stage__"


class ToolStage:
    """Named, ordered group of tools."""

    def __init__(self, name: str, tools: Iterable[Tool]) -> None:
        self.name = name
        self.tools: list[Tool] = list(tools)

    @classmethod
    def build(
        cls,
        name: str = DEFAULT_STAGE_NAME,
        tools: Iterable[Tool] = (),
        tool_list_name: str = DEFAULT_TOOL_LIST_NAME,
    ) -> ToolStage:
        """Validate ``tools`` and append the reserved listing tool."""
        collected: list[Tool] = []
        for tool in tools:
            if tool.name == tool_list_name:
                raise ToolRegistryError(
                    f'Stage can\'t define "{tool_list_name}" tool, it\'s a reserved tool with a list of tools'
                )
            if any(t.name == tool.name for t in collected):
                raise ToolRegistryError(f'Tool "{tool.name}" is already defined')
            collected.append(tool)
        if not collected:
            raise ToolRegistryError("No tools defined")
        listing = ListToolsTool(tool_list_name, [t.descriptor for t in collected])
        return cls(name, [*collected, listing])

    @property
    def descriptors(self) -> list[ToolDescriptor]:
        return [t.descriptor for t in self.tools]

    def get_tool_or_none(self, name: str) -> Tool | None:
        return next((t for t in self.tools if t.name == name), None)

    def get_tool(self, name: str) -> Tool:
        tool = self.get_tool_or_none(name)
        if tool is None:
            raise ToolRegistryError(f'Tool "{name}" is not defined in stage "{self.name}"')
        return tool

    def __repr__(self) -> str:
        return f"ToolStage(name={self.name!r}, tools={[t.name for t in self.tools]})"


class ToolRegistry:
    """Maps stage names to tools; lookups return the first match across stages."""

    EMPTY: ToolRegistry

    def __init__(self, stages: Iterable[ToolStage] = ()) -> None:
        self._stages: list[ToolStage] = list(stages)

    @staticmethod
    def builder() -> ToolRegistryBuilder:
        return ToolRegistryBuilder()

    @property
    def stages(self) -> list[ToolStage]:
        return list(self._stages)

    @property
    def stages_tool_descriptors(self) -> dict[str, list[ToolDescriptor]]:
        return {s.name: s.descriptors for s in self._stages}

    def _all_tools(self) -> Iterable[Tool]:
        for stage in self._stages:
            yield from stage.tools

    def get_tool_or_none(self, tool: str | type[T]) -> Tool | None:
        if isinstance(tool, str):
            return next((t for t in self._all_tools() if t.name == tool), None)
        return next((t for t in self._all_tools() if isinstance(t, tool)), None)

    def get_tool(self, tool: str | type[T]) -> Tool:
        found = self.get_tool_or_none(tool)
        if found is None:
            label = tool if isinstance(tool, str) else tool.__name__
            raise ToolRegistryError(f'Tool "{label}" is not defined')
        return found

    def get_stage_by_tool_or_none(self, tool: str) -> ToolStage | None:
        return next((s for s in self._stages if s.get_tool_or_none(tool) is not None), None)

    def get_stage_by_tool(self, tool: str) -> ToolStage:
        stage = self.get_stage_by_tool_or_none(tool)
        if stage is None:
            raise ToolRegistryError(f'Tool "{tool}" is not defined')
        return stage

    def get_stage_by_name_or_none(self, name: str) -> ToolStage | None:
        return next((s for s in self._stages if s.name == name), None)

    def get_stage_by_name(self, name: str) -> ToolStage:
        stage = self.get_stage_by_name_or_none(name)
        if stage is None:
            raise ToolRegistryError(f'Stage "{name}" is not defined')
        return stage

    def merge(self, other: ToolRegistry) -> ToolRegistry:
        """Union of both registries; same-named stages concatenate, first tool of a name wins.

        Each merged stage gets a fresh listing tool describing all of its tools.
        """
        order: list[str] = []
        tools: dict[str, list[Tool]] = {}
        list_names: dict[str, str] = {}
        for stage in [*self._stages, *other._stages]:
            if stage.name not in tools:
                order.append(stage.name)
                tools[stage.name] = []
            bucket = tools[stage.name]
            for tool in stage.tools:
                if isinstance(tool, ListToolsTool):
                    list_names.setdefault(stage.name, tool.name)
                elif all(t.name != tool.name for t in bucket):
                    bucket.append(tool)

        def merged(name: str) -> ToolStage:
            bucket = tools[name]
            if name not in list_names:
                return ToolStage(name, bucket)
            listing = ListToolsTool(list_names[name], [t.descriptor for t in bucket])
            return ToolStage(name, [*bucket, listing])

        return ToolRegistry(merged(name) for name in order)

    def __add__(self, other: ToolRegistry) -> ToolRegistry:
        return self.merge(other)

    def __repr__(self) -> str:
        return f"ToolRegistry(stages={[s.name for s in self._stages]})"


ToolRegistry.EMPTY = ToolRegistry()


class ToolRegistryBuilder:
    def __init__(self) -> None:
        self._stages: list[ToolStage] = []

    def add_stage(self, stage: ToolStage) -> ToolRegistryBuilder:
        if any(s.name == stage.name for s in self._stages):
            raise ToolRegistryError(f'Stage "{stage.name}" is already defined')
        names = [t.name for t in stage.tools]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ToolRegistryError(
                f"All tools must have unique names across stages, but got duplicates: {duplicates}"
            )
        self._stages.append(stage)
        return self

    def stage(
        self,
        name: str = DEFAULT_STAGE_NAME,
        tools: Iterable[Tool] = (),
        tool_list_name: str = DEFAULT_TOOL_LIST_NAME,
    ) -> ToolRegistryBuilder:
        return self.add_stage(ToolStage.build(name, tools, tool_list_name))

    def build(self) -> ToolRegistry:
        logger.debug("Built tool registry with stages: %s", [s.name for s in self._stages])
        return ToolRegistry(self._stages)


def simple_tool_registry(tools: Iterable[Tool]) -> ToolRegistry:
    """Registry with a single default stage."""
    return ToolRegistry.builder().stage(DEFAULT_STAGE_NAME, tools).build()
