from __future__ import annotations

from ..llm.compression import MEMORY_FACTS_PREFIX
from .model import Concept, Fact, MemorySubject, SingleFact

_SUBJECT_HINTS = {
    MemorySubject.MACHINE: "Technical environment (installed tools, package managers, SDKs, OS, etc.)",
    MemorySubject.USER: "User's preferences, settings, behavior patterns and preferred messaging style",
    MemorySubject.PROJECT: "Project details, requirements, constraints, dependencies and technologies",
    MemorySubject.ORGANIZATION: "Organization structure and policies",
}


def single_fact_prompt(concept: Concept) -> str:
    return (
        f'Based on our previous conversation, what is the most important fact about concept '
        f'"{concept.keyword}" ({concept.description})? Provide a single, concise fact.\n'
        "ONLY reply with the fact, without explanations."
    )


def multiple_facts_prompt(concept: Concept) -> str:
    return (
        f'Based on our previous conversation, what are the key facts about concept '
        f'"{concept.keyword}" ({concept.description})? List each fact on its own line.\n'
        "ONLY reply with the list of facts, without explanations."
    )


def auto_detect_facts_prompt(subjects: list[MemorySubject]) -> str:
    hints = "\n".join(f'- [subject: "{s.value}"] {_SUBJECT_HINTS[s]}' for s in subjects)
    return (
        "Analyze the conversation history and identify important facts about:\n"
        f"{hints}\n\n"
        "For each fact provide the subject (one of the subjects above), a keyword "
        "(e.g. 'user-preference'), a description that helps identify similar "
        "information, and the fact value.\n"
        "Reply with a JSON array only:\n"
        '[{"subject": "string", "keyword": "string", "description": "string", "value": "string"}]'
    )


def _shortened(text: str) -> str:
    first = text.splitlines()[0] if text else ""
    return first[:100] + "..."


def facts_message(concept: Concept, facts: list[Fact]) -> str:
    lines = [f"{MEMORY_FACTS_PREFIX} [{concept.keyword}]({_shortened(concept.description)}):"]
    for fact in facts:
        if isinstance(fact, SingleFact):
            lines.append(f"- [{fact.concept.keyword}]: {fact.value}")
        else:
            lines.append(f"- [{fact.concept.keyword}]:")
            lines.extend(f"  - {value}" for value in fact.values)
    return "\n".join(lines)
