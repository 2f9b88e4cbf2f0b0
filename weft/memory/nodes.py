"""Graph nodes that move facts between the LLM history and memory."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ..agent.context import AgentContext
from ..agent.node import Node
from ..llm.structure import strip_code_fence
from .feature import memory
from .model import (
    Concept,
    Fact,
    FactType,
    MemoryScopeType,
    MemorySubject,
    MultipleFacts,
    SingleFact,
    SubjectWithFact,
)
from .prompts import auto_detect_facts_prompt

logger = logging.getLogger(__name__)

_facts_adapter = TypeAdapter(list[SubjectWithFact])


def load_from_memory(
    concepts: list[Concept],
    subjects: list[MemorySubject] | None = None,
    scopes: list[MemoryScopeType] | None = None,
    name: str = "load_from_memory",
) -> Node:
    async def run(context: AgentContext, input: Any) -> Any:
        agent_memory = memory(context)
        for concept in concepts:
            await agent_memory.load_facts_to_agent(concept, scopes, subjects)
        return input

    return Node(name, run)


def load_all_facts_from_memory(
    subjects: list[MemorySubject] | None = None,
    scopes: list[MemoryScopeType] | None = None,
    name: str = "load_all_facts_from_memory",
) -> Node:
    async def run(context: AgentContext, input: Any) -> Any:
        await memory(context).load_all_facts_to_agent(scopes, subjects)
        return input

    return Node(name, run)


def save_to_memory(
    concepts: list[Concept],
    subject: MemorySubject,
    scope: MemoryScopeType = MemoryScopeType.AGENT,
    name: str = "save_to_memory",
) -> Node:
    async def run(context: AgentContext, input: Any) -> Any:
        agent_memory = memory(context)
        target = agent_memory.scopes_profile.get_scope(scope)
        if target is None:
            logger.warning("No %s scope configured, facts not saved", scope.name)
            return input
        for concept in concepts:
            await agent_memory.save_facts_from_history(
                concept, subject, target, preserve_questions_in_llm_chat=True
            )
        return input

    return Node(name, run)


def parse_detected_facts(content: str) -> list[tuple[MemorySubject, Fact]]:
    """Group detected facts by (subject, keyword); several values become ``MultipleFacts``."""
    entries = _facts_adapter.validate_json(strip_code_fence(content))

    grouped: dict[tuple[MemorySubject, str], list[SubjectWithFact]] = {}
    for entry in entries:
        grouped.setdefault((entry.subject, entry.keyword), []).append(entry)

    facts: list[tuple[MemorySubject, Fact]] = []
    for (subject, keyword), items in grouped.items():
        if len(items) == 1:
            concept = Concept(keyword, items[0].description, FactType.SINGLE)
            facts.append((subject, SingleFact(concept=concept, value=items[0].value)))
        else:
            concept = Concept(keyword, items[0].description, FactType.MULTIPLE)
            facts.append(
                (subject, MultipleFacts(concept=concept, values=tuple(i.value for i in items)))
            )
    return facts


def save_to_memory_auto_detect_facts(
    subjects: list[MemorySubject] | None = None,
    scopes: list[MemoryScopeType] | None = None,
    name: str = "save_to_memory_auto_detect_facts",
) -> Node:
    subjects = list(MemorySubject) if subjects is None else subjects
    scopes = [MemoryScopeType.AGENT] if scopes is None else scopes

    async def run(context: AgentContext, input: Any) -> Any:
        agent_memory = memory(context)
        async with context.llm.write_session() as session:
            session.update_prompt(lambda b: b.user(auto_detect_facts_prompt(subjects)))
            response = await session.request_llm_without_tools()

        try:
            detected = parse_detected_facts(response.content)
        except (ValidationError, ValueError):
            logger.exception("Could not parse detected facts")
            return input

        for scope_type in scopes:
            scope = agent_memory.scopes_profile.get_scope(scope_type)
            if scope is None:
                continue
            for subject, fact in detected:
                await agent_memory.provider.save(fact, subject, scope)
        return input

    return Node(name, run)
