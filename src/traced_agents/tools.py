"""Tool registry and function-to-tool-schema converter.

Tools may be plain functions, coroutine functions, or async generators. An
async generator streams progress: every value it yields except the last is
reported as a preliminary result.
"""

from __future__ import annotations

import enum
import inspect
import types
from typing import (
    Annotated,
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Literal,
    Optional,
    Tuple,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from pydantic import BaseModel

_PYTHON_TYPE_TO_JSON: Dict[type, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    dict: "object",
}

_SEQUENCE_ORIGINS = (list, tuple, set, frozenset)


def _json_type_of_value(value: Any) -> str:
    return _PYTHON_TYPE_TO_JSON.get(type(value), "string")


def _python_type_to_json_schema(tp: Any) -> Dict[str, Any]:
    """Convert a Python type annotation to a JSON Schema fragment."""
    json_type = _PYTHON_TYPE_TO_JSON.get(tp)
    if json_type is not None:
        return {"type": json_type}

    origin = get_origin(tp)
    args = get_args(tp)

    if origin is Annotated:
        schema = _python_type_to_json_schema(args[0])
        descriptions = [m for m in args[1:] if isinstance(m, str)]
        if descriptions:
            schema["description"] = descriptions[0]
        return schema

    if origin is Union or origin is types.UnionType:
        members = [a for a in args if a is not type(None)]
        if len(members) == 1:
            # Optional[X]
            return _python_type_to_json_schema(members[0])
        return {"anyOf": [_python_type_to_json_schema(a) for a in members]}

    if origin is Literal:
        return {"type": _json_type_of_value(args[0]), "enum": list(args)}

    if origin in _SEQUENCE_ORIGINS:
        schema = {"type": "array"}
        if args:
            schema["items"] = _python_type_to_json_schema(args[0])
        return schema

    if origin is dict:
        schema = {"type": "object"}
        if len(args) == 2:
            schema["additionalProperties"] = _python_type_to_json_schema(args[1])
        return schema

    if inspect.isclass(tp):
        if issubclass(tp, enum.Enum):
            values = [member.value for member in tp]
            return {"type": _json_type_of_value(values[0]), "enum": values}
        if issubclass(tp, BaseModel):
            return tp.model_json_schema()

    # Fallback for unknown types
    return {"type": "string"}


def _build_parameters_schema(func: Callable[..., Any]) -> Dict[str, Any]:
    """Build a JSON Schema 'parameters' object from a function's type hints."""
    hints = get_type_hints(func, include_extras=True)
    sig = inspect.signature(func)

    properties: Dict[str, Any] = {}
    required: List[str] = []

    for name, param in sig.parameters.items():
        if name == "self":
            continue
        properties[name] = _python_type_to_json_schema(hints.get(name, str))
        if param.default is inspect.Parameter.empty:
            required.append(name)

    schema: Dict[str, Any] = {
        "type": "object",
        "properties": properties,
    }
    if required:
        schema["required"] = required
    return schema


def _model_params(func: Callable[..., Any]) -> Dict[str, type]:
    """Parameters annotated with a pydantic model, which arrive as plain dicts."""
    hints = get_type_hints(func)
    return {
        name: tp
        for name, tp in hints.items()
        if name != "return" and inspect.isclass(tp) and issubclass(tp, BaseModel)
    }


class ToolDefinition:
    """A provider-agnostic tool definition."""

    def __init__(
        self,
        name: str,
        description: str,
        parameters: Dict[str, Any],
        func: Callable[..., Any],
    ) -> None:
        self.name = name
        self.description = description
        self.parameters = parameters
        self.func = func
        self._model_params = _model_params(func)

    @property
    def is_streaming(self) -> bool:
        return inspect.isasyncgenfunction(self.func)

    def _coerce(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        coerced = dict(kwargs)
        for name, model in self._model_params.items():
            if isinstance(coerced.get(name), dict):
                coerced[name] = model.model_validate(coerced[name])
        return coerced

    async def stream(self, **kwargs: Any) -> AsyncIterator[Tuple[Any, bool]]:
        """Run the tool, yielding ``(output, preliminary)`` pairs.

        The final pair always has ``preliminary=False``.
        """
        kwargs = self._coerce(kwargs)
        if self.is_streaming:
            pending: Any = None
            started = False
            async for value in self.func(**kwargs):
                if started:
                    yield pending, True
                pending, started = value, True
            yield pending, False
            return

        result = self.func(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        yield result, False

    async def execute(self, **kwargs: Any) -> Any:
        """Run the tool to completion and return its final output."""
        output: Any = None
        async for output, _ in self.stream(**kwargs):
            pass
        return output

    def to_schema(self) -> Dict[str, Any]:
        """Return the provider-agnostic schema dict."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


def _make_definition(
    func: Callable[..., Any],
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> ToolDefinition:
    return ToolDefinition(
        name=name or func.__name__,
        description=description if description is not None else (func.__doc__ or "").strip(),
        parameters=_build_parameters_schema(func),
        func=func,
    )


class ToolRegistry:
    """Stores registered tool definitions."""

    def __init__(self) -> None:
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, func: Callable[..., Any]) -> ToolDefinition:
        """Register a function (decorated with @tool or not) and return its definition."""
        defn = getattr(func, "_tool_definition", None)
        if defn is None:
            defn = _make_definition(func)
        self._tools[defn.name] = defn
        return defn

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def list_tools(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def schemas(self) -> List[Dict[str, Any]]:
        """Return all tool schemas as a list of dicts."""
        return [t.to_schema() for t in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def tool(
    func: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Any:
    """Decorator that marks a function as an agent tool.

    The function's name, docstring, and type hints are used to auto-generate
    a provider-agnostic JSON tool schema. ``Annotated[str, "..."]`` adds a
    parameter description.

    Usage:
        @tool
        async def get_weather(city: Annotated[str, "City name"]) -> dict:
            \"\"\"Get the current weather for a city.\"\"\"
            return {"city": city, "condition": "sunny"}

        @tool(name="getWeather")
        def weather(city: str) -> str:
            ...
    """

    def decorate(f: Callable[..., Any]) -> Callable[..., Any]:
        # Attach the tool definition to the function for later retrieval
        f._tool_definition = _make_definition(f, name, description)  # type: ignore[attr-defined]
        return f

    if func is not None:
        return decorate(func)
    return decorate
