"""Tool argument schema: pydantic-based parameter validation."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ArgsSchema:
    """Validates raw tool arguments against a Pydantic model and exposes its JSON schema."""

    def __init__(self, model: type[BaseModel]) -> None:
        self._model = model

    @property
    def model(self) -> type[BaseModel]:
        return self._model

    def parse(self, raw: Any) -> BaseModel:
        if isinstance(raw, self._model):
            return raw
        if isinstance(raw, (str, bytes)):
            return self._model.model_validate_json(raw)
        return self._model.model_validate(raw)

    def to_json_schema(self) -> dict:
        schema = self._model.model_json_schema()
        schema.pop("title", None)
        return schema


class NoArgs(BaseModel):
    """Argument model for tools that take no parameters."""
