"""Structured output: prompt definition plus tolerant parsing into a Pydantic model."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    m = _FENCE.match(cleaned)
    return m.group(1) if m else cleaned


@dataclass
class StructuredResponse(Generic[T]):
    structure: T
    raw: str


class JsonStructuredData(Generic[T]):
    def __init__(self, model: type[T], examples: Sequence[T] = ()) -> None:
        self.model = model
        self.examples = list(examples)

    @property
    def id(self) -> str:
        return self.model.__name__

    @property
    def schema(self) -> dict:
        return self.model.model_json_schema()

    @property
    def definition(self) -> str:
        lines = [
            f"Respond with a JSON object of type {self.id} matching this JSON schema:",
            json.dumps(self.schema, indent=2),
        ]
        if self.examples:
            lines.append("Examples:")
            lines.extend(e.model_dump_json() for e in self.examples)
        lines.append("Reply with the JSON only, no commentary.")
        return "\n".join(lines)

    def parse(self, text: str) -> T:
        return self.model.model_validate_json(strip_code_fence(text))

    def try_parse(self, text: str) -> tuple[T | None, Exception | None]:
        try:
            return self.parse(text), None
        except (ValidationError, ValueError) as e:
            return None, e


def fixing_prompt(structure: JsonStructuredData, raw: str, error: Exception) -> str:
    return (
        "The following output could not be parsed.\n"
        f"Output:\n{raw}\n\n"
        f"Error:\n{error}\n\n"
        f"{structure.definition}"
    )
