"""Agent memory: facts about concepts, scoped by subject and visibility."""

from .feature import AgentMemory, MemoryFeature, MemoryFeatureConfig, memory
from .model import (
    Concept,
    FactType,
    MemoryScope,
    MemoryScopesProfile,
    MemoryScopeType,
    MemorySubject,
    MultipleFacts,
    SingleFact,
)
from .nodes import (
    load_all_facts_from_memory,
    load_from_memory,
    save_to_memory,
    save_to_memory_auto_detect_facts,
)
from .providers import AgentMemoryProvider, InMemoryMemoryProvider, NoMemory

__all__ = [
    "MemoryFeature", "MemoryFeatureConfig", "AgentMemory", "memory",
    "Concept", "FactType", "SingleFact", "MultipleFacts",
    "MemorySubject", "MemoryScope", "MemoryScopeType", "MemoryScopesProfile",
    "AgentMemoryProvider", "NoMemory", "InMemoryMemoryProvider",
    "load_from_memory", "load_all_facts_from_memory",
    "save_to_memory", "save_to_memory_auto_detect_facts",
]
