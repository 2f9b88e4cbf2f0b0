"""Memory model: concepts, facts, subjects and scopes."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class FactType(Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class Concept:
    keyword: str
    description: str
    fact_type: FactType


def _timestamp() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SingleFact:
    concept: Concept
    value: str
    timestamp: int = field(default_factory=_timestamp)


@dataclass(frozen=True)
class MultipleFacts:
    concept: Concept
    values: tuple[str, ...]
    timestamp: int = field(default_factory=_timestamp)


Fact = SingleFact | MultipleFacts


class MemorySubject(Enum):
    """Who a fact is about. Declaration order is specificity: MACHINE is the most specific."""

    MACHINE = "machine"
    USER = "user"
    PROJECT = "project"
    ORGANIZATION = "organization"

    @property
    def specificity(self) -> int:
        return list(MemorySubject).index(self)


class MemoryScopeType(Enum):
    AGENT = "agent"
    FEATURE = "feature"
    PRODUCT = "product"
    CROSS_PRODUCT = "cross_product"


@dataclass(frozen=True)
class AgentScope:
    name: str


@dataclass(frozen=True)
class FeatureScope:
    id: str


@dataclass(frozen=True)
class ProductScope:
    name: str


@dataclass(frozen=True)
class CrossProductScope:
    pass


class MemoryScope:
    """Where a fact is visible. ``MemoryScope.Agent("planner")`` etc."""

    Agent = AgentScope
    Feature = FeatureScope
    Product = ProductScope
    CrossProduct = CrossProductScope()


ScopeValue = AgentScope | FeatureScope | ProductScope | CrossProductScope

UNKNOWN_NAME = "unknown"


@dataclass
class MemoryScopesProfile:
    names: dict[MemoryScopeType, str] = field(default_factory=dict)
    organization: str = UNKNOWN_NAME

    def get_scope(self, type: MemoryScopeType) -> ScopeValue | None:
        if type is MemoryScopeType.CROSS_PRODUCT:
            return MemoryScope.CrossProduct
        name = self.names.get(type)
        if name is None:
            return None
        match type:
            case MemoryScopeType.AGENT:
                return AgentScope(name)
            case MemoryScopeType.FEATURE:
                return FeatureScope(name)
            case _:
                return ProductScope(name)


class SubjectWithFact(BaseModel):
    """One entry of the auto-detected facts list returned by the LLM."""

    subject: MemorySubject
    keyword: str = Field(..., description="Short identifier, e.g. 'user-preference'")
    description: str = Field(..., description="What kind of information this fact holds")
    value: str = Field(..., description="The fact itself")

    @field_validator("subject", mode="before")
    @classmethod
    def _subject_by_name(cls, v: object) -> object:
        if isinstance(v, str) and v.upper() in MemorySubject.__members__:
            return MemorySubject[v.upper()]
        return v
