"""Memory feature: save facts extracted from the LLM history and load them back."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Awaitable, Callable

from ..features.base import FeatureConfig
from ..features.pipeline import AgentPipeline
from ..llm import LLMContext, WriteSession
from ..state import StorageKey
from .model import (
    UNKNOWN_NAME,
    Concept,
    Fact,
    FactType,
    MemoryScopesProfile,
    MemoryScopeType,
    MemorySubject,
    MultipleFacts,
    ScopeValue,
    SingleFact,
)
from .prompts import facts_message, multiple_facts_prompt, single_fact_prompt
from .providers import AgentMemoryProvider, NoMemory

if TYPE_CHECKING:
    from ..agent.context import AgentContext

logger = logging.getLogger(__name__)


class MemoryFeatureConfig(FeatureConfig):
    def __init__(self) -> None:
        super().__init__()
        self.memory_provider: AgentMemoryProvider = NoMemory()
        self.scopes_profile = MemoryScopesProfile()

    def _name(self, type: MemoryScopeType) -> str:
        return self.scopes_profile.names.get(type, UNKNOWN_NAME)

    @property
    def agent_name(self) -> str:
        return self._name(MemoryScopeType.AGENT)

    @agent_name.setter
    def agent_name(self, value: str) -> None:
        self.scopes_profile.names[MemoryScopeType.AGENT] = value

    @property
    def feature_name(self) -> str:
        return self._name(MemoryScopeType.FEATURE)

    @feature_name.setter
    def feature_name(self, value: str) -> None:
        self.scopes_profile.names[MemoryScopeType.FEATURE] = value

    @property
    def product_name(self) -> str:
        return self._name(MemoryScopeType.PRODUCT)

    @product_name.setter
    def product_name(self, value: str) -> None:
        self.scopes_profile.names[MemoryScopeType.PRODUCT] = value

    @property
    def organization_name(self) -> str:
        return self.scopes_profile.organization

    @organization_name.setter
    def organization_name(self, value: str) -> None:
        self.scopes_profile.organization = value


async def retrieve_facts_from_history(
    session: WriteSession, concept: Concept, preserve_questions: bool
) -> Fact:
    """Ask the LLM (without tools) for facts about ``concept`` in the current history."""
    if concept.fact_type is FactType.SINGLE:
        question = single_fact_prompt(concept)
    else:
        question = multiple_facts_prompt(concept)
    session.update_prompt(lambda b: b.user(question))
    response = await session.request_llm_without_tools()

    fact: Fact
    if concept.fact_type is FactType.SINGLE:
        fact = SingleFact(concept=concept, value=response.content.strip())
    else:
        values = [
            line.strip().removeprefix("-").strip()
            for line in response.content.splitlines()
            if line.strip()
        ]
        fact = MultipleFacts(concept=concept, values=tuple(values))

    if not preserve_questions:
        session.rewrite_prompt(lambda p: p.with_updated_messages(lambda ms: ms[:-2]))
    return fact


class AgentMemory:
    """Memory bound to one agent context's LLM history."""

    def __init__(
        self,
        provider: AgentMemoryProvider,
        llm: LLMContext,
        scopes_profile: MemoryScopesProfile,
    ) -> None:
        self.provider = provider
        self.llm = llm
        self.scopes_profile = scopes_profile

    async def save_facts_from_history(
        self,
        concept: Concept,
        subject: MemorySubject,
        scope: ScopeValue,
        preserve_questions_in_llm_chat: bool = False,
    ) -> None:
        async with self.llm.write_session() as session:
            fact = await retrieve_facts_from_history(
                session, concept, preserve_questions_in_llm_chat
            )
            await self.provider.save(fact, subject, scope)
        logger.info("Saved fact for concept %r in scope %s", concept.keyword, scope)

    async def load_facts_to_agent(
        self,
        concept: Concept,
        scopes: list[MemoryScopeType] | None = None,
        subjects: list[MemorySubject] | None = None,
    ) -> None:
        async def load(subject: MemorySubject, scope: ScopeValue) -> list[Fact]:
            return await self.provider.load(concept, subject, scope)

        await self._load_facts_to_agent(scopes, subjects, load)

    async def load_all_facts_to_agent(
        self,
        scopes: list[MemoryScopeType] | None = None,
        subjects: list[MemorySubject] | None = None,
    ) -> None:
        await self._load_facts_to_agent(scopes, subjects, self.provider.load_all)

    async def _load_facts_to_agent(
        self,
        scopes: list[MemoryScopeType] | None,
        subjects: list[MemorySubject] | None,
        load: Callable[[MemorySubject, ScopeValue], Awaitable[list[Fact]]],
    ) -> None:
        scopes = list(MemoryScopeType) if scopes is None else scopes
        subjects = list(MemorySubject) if subjects is None else subjects
        # least specific first; a more specific subject overrides single facts
        ordered = sorted(subjects, key=lambda s: s.specificity, reverse=True)

        multiple: list[Fact] = []
        singles: dict[str, tuple[MemorySubject, SingleFact]] = {}
        for scope_type in scopes:
            scope = self.scopes_profile.get_scope(scope_type)
            if scope is None:
                continue
            for subject in ordered:
                for fact in await load(subject, scope):
                    if isinstance(fact, SingleFact):
                        existing = singles.get(fact.concept.keyword)
                        if existing is None or subject.specificity < existing[0].specificity:
                            singles[fact.concept.keyword] = (subject, fact)
                    else:
                        multiple.append(fact)

        facts = multiple + [fact for _, fact in singles.values()]
        by_concept: dict[Concept, list[Fact]] = {}
        for fact in facts:
            by_concept.setdefault(fact.concept, []).append(fact)
        logger.info("Found %d facts for %d concepts", len(facts), len(by_concept))

        for concept, concept_facts in by_concept.items():
            message = facts_message(concept, concept_facts)
            async with self.llm.write_session() as session:
                session.update_prompt(lambda b: b.user(message))


class MemoryFeature:
    """Installs ``AgentMemory`` as a per-context feature.

        pipeline.install(MemoryFeature(), lambda c: setattr(c, "memory_provider", provider))
        ...
        await context.feature(MemoryFeature()).load_all_facts_to_agent()
    """

    key: StorageKey = StorageKey("agent_memory")

    def create_initial_config(self) -> MemoryFeatureConfig:
        return MemoryFeatureConfig()

    def install(self, config: MemoryFeatureConfig, pipeline: AgentPipeline) -> None:
        def create(context: AgentContext) -> AgentMemory:
            profile = config.scopes_profile
            if MemoryScopeType.AGENT not in profile.names:
                profile = replace(
                    profile, names={**profile.names, MemoryScopeType.AGENT: context.strategy_id}
                )
            return AgentMemory(config.memory_provider, context.llm, profile)

        pipeline.intercept_context_feature(self, create)


def memory(context: AgentContext) -> AgentMemory:
    return context.feature(MemoryFeature())
