"""Tests for structured output specs."""

import pytest
from pydantic import BaseModel, Field, ValidationError

from traced_agents.output import OutputSpec


class CityFacts(BaseModel):
    """Facts about a city."""

    city: str
    population: int = Field(description="Number of residents")


class Bare(BaseModel):
    value: int


def test_tool_schema_uses_model_docstring():
    output = OutputSpec.object(CityFacts)
    schema = output.tool_schema()

    assert output.tool_name == "CityFacts"
    assert schema["name"] == "CityFacts"
    assert schema["description"] == "Facts about a city."
    assert schema["parameters"]["required"] == ["city", "population"]


def test_tool_schema_default_description():
    assert OutputSpec(Bare).tool_schema()["description"] == "Structured output: Bare"


def test_parse_validates():
    output = OutputSpec(CityFacts)
    facts = output.parse({"city": "Tokyo", "population": 14000000})
    assert facts == CityFacts(city="Tokyo", population=14000000)

    with pytest.raises(ValidationError):
        output.parse({"city": "Tokyo"})
