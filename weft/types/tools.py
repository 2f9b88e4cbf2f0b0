"""Tool descriptor types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ToolDescriptor:
    """LLM-facing declaration of a tool: name, description and JSON schema of its arguments."""

    name: str
    description: str
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    @property
    def required_parameters(self) -> list[str]:
        return list(self.parameters.get("required", []))

    @property
    def optional_parameters(self) -> list[str]:
        required = set(self.required_parameters)
        return [p for p in self.parameters.get("properties", {}) if p not in required]

    def __hash__(self) -> int:
        return hash((self.name, self.description))
