"""Structured output: a pydantic model exposed to the model as a forced tool."""

from __future__ import annotations

from typing import Any, Dict, Generic, Type, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


class OutputSpec(Generic[T]):
    """Describes the object a run must finish with.

    The model answers by calling a tool named after the model class whose
    parameters are the model's JSON schema; the call's input is then validated.
    """

    def __init__(self, model: Type[T]) -> None:
        self.model = model

    @property
    def tool_name(self) -> str:
        return self.model.__name__

    def tool_schema(self) -> Dict[str, Any]:
        schema = self.model.model_json_schema()
        return {
            "name": self.tool_name,
            "description": schema.get("description", f"Structured output: {self.tool_name}"),
            "parameters": schema,
        }

    def parse(self, data: Dict[str, Any]) -> T:
        """Validate the raw tool input. Raises ``pydantic.ValidationError``."""
        return self.model.model_validate(data)

    @classmethod
    def object(cls, model: Type[T]) -> "OutputSpec[T]":
        return cls(model)
