"""Async provider abstraction for the Anthropic and OpenAI APIs."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import anthropic
import openai
from dotenv import load_dotenv

load_dotenv()

DEFAULT_PROVIDER = "openai"
DEFAULT_MODELS = {
    "anthropic": "claude-haiku-4-5-20251001",
    "openai": "gpt-5-nano",
}


@dataclass
class ToolCall:
    """A normalized tool call from the LLM response."""

    id: str
    name: str
    input: Dict[str, Any]


@dataclass
class Usage:
    """Token usage information."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )


@dataclass
class ProviderResponse:
    """Normalized response from any provider."""

    text: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)
    finish_reason: str = "stop"
    raw: Any = None


_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


async def _retryable_chat(call_fn: Callable[[], Awaitable[Any]], max_retries: int = 3) -> Any:
    """Await call_fn() with automatic retries on transient errors.

    Retries on rate-limit (429), server errors (5xx), and connection errors
    with exponential backoff (1s, 2s, 4s). Non-retryable errors propagate
    immediately.
    """
    last_exc: BaseException | None = None
    for attempt in range(max_retries):
        try:
            return await call_fn()
        except (anthropic.APIConnectionError, openai.APIConnectionError) as exc:
            last_exc = exc
        except (anthropic.APIStatusError, openai.APIStatusError) as exc:
            if exc.status_code not in _RETRYABLE_STATUS_CODES:
                raise
            last_exc = exc
        if attempt < max_retries - 1:
            await asyncio.sleep(2**attempt)
    raise last_exc  # type: ignore[misc]


class Provider(Protocol):
    """Protocol for LLM providers."""

    async def chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Any] = None,
        system: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
    ) -> ProviderResponse: ...

    def assistant_message(self, response: ProviderResponse) -> Dict[str, Any]: ...

    def tool_result_messages(
        self, results: Sequence[Tuple[ToolCall, str]]
    ) -> List[Dict[str, Any]]: ...

    @property
    def provider_name(self) -> str: ...

    @property
    def model_name(self) -> str: ...


def _to_anthropic_tools(tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert provider-agnostic tool schemas to Anthropic format."""
    return [
        {"name": t["name"], "description": t["description"], "input_schema": t["parameters"]}
        for t in tools
    ]


def _to_openai_tools(tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert provider-agnostic tool schemas to OpenAI format."""
    return [
        {
            "type": "function",
            "function": {
                "name": t["name"],
                "description": t["description"],
                "parameters": t["parameters"],
            },
        }
        for t in tools
    ]


def _to_anthropic_tool_choice(tool_choice: Any) -> Any:
    if tool_choice is None or tool_choice == "auto":
        return {"type": "auto"}
    if tool_choice in ("any", "required"):
        return {"type": "any"}
    if isinstance(tool_choice, str):
        return {"type": "tool", "name": tool_choice}
    return tool_choice


def _to_openai_tool_choice(tool_choice: Any) -> Any:
    if tool_choice is None:
        return "auto"
    if isinstance(tool_choice, str):
        if tool_choice in ("auto", "none", "required"):
            return tool_choice
        return {"type": "function", "function": {"name": tool_choice}}
    return tool_choice


class AnthropicProvider:
    """Provider implementation for the Anthropic API."""

    def __init__(self, model: str = DEFAULT_MODELS["anthropic"]) -> None:
        self._client = anthropic.AsyncAnthropic()
        self._model = model

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def model_name(self) -> str:
        return self._model

    async def chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Any] = None,
        system: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
    ) -> ProviderResponse:
        kwargs: Dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = _to_anthropic_tools(tools)
            kwargs["tool_choice"] = _to_anthropic_tool_choice(tool_choice)
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = await _retryable_chat(lambda: self._client.messages.create(**kwargs))

        texts: List[str] = []
        tool_calls: List[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(ToolCall(id=block.id, name=block.name, input=block.input))

        usage = Usage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return ProviderResponse(
            text="".join(texts) or None,
            tool_calls=tool_calls,
            usage=usage,
            finish_reason=response.stop_reason or "stop",
            raw=response,
        )

    def assistant_message(self, response: ProviderResponse) -> Dict[str, Any]:
        content: List[Dict[str, Any]] = []
        if response.text:
            content.append({"type": "text", "text": response.text})
        for tc in response.tool_calls:
            content.append({"type": "tool_use", "id": tc.id, "name": tc.name, "input": tc.input})
        return {"role": "assistant", "content": content}

    def tool_result_messages(
        self, results: Sequence[Tuple[ToolCall, str]]
    ) -> List[Dict[str, Any]]:
        # Anthropic expects every result of a turn in a single user message
        return [{
            "role": "user",
            "content": [
                {"type": "tool_result", "tool_use_id": tc.id, "content": result}
                for tc, result in results
            ],
        }]


class OpenAIProvider:
    """Provider implementation for the OpenAI API."""

    def __init__(self, model: str = DEFAULT_MODELS["openai"]) -> None:
        self._client = openai.AsyncOpenAI()
        self._model = model

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model

    async def chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Any] = None,
        system: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: Optional[float] = None,
    ) -> ProviderResponse:
        # OpenAI uses system message in the messages list
        oai_messages: List[Dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        oai_messages.extend(messages)

        kwargs: Dict[str, Any] = {
            "model": self._model,
            "messages": oai_messages,
            "max_completion_tokens": max_tokens,
        }
        if tools:
            kwargs["tools"] = _to_openai_tools(tools)
            kwargs["tool_choice"] = _to_openai_tool_choice(tool_choice)
            kwargs["parallel_tool_calls"] = True
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = await _retryable_chat(
            lambda: self._client.chat.completions.create(**kwargs)
        )

        choice = response.choices[0]
        message = choice.message
        tool_calls: List[ToolCall] = []
        for tc in message.tool_calls or []:
            tool_calls.append(
                ToolCall(
                    id=tc.id,
                    name=tc.function.name,
                    input=json.loads(tc.function.arguments or "{}"),
                )
            )

        usage = Usage()
        if response.usage:
            usage = Usage(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens or 0,
            )

        return ProviderResponse(
            text=message.content,
            tool_calls=tool_calls,
            usage=usage,
            finish_reason=choice.finish_reason or "stop",
            raw=response,
        )

    def assistant_message(self, response: ProviderResponse) -> Dict[str, Any]:
        message: Dict[str, Any] = {"role": "assistant", "content": response.text}
        if response.tool_calls:
            message["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.name, "arguments": json.dumps(tc.input)},
                }
                for tc in response.tool_calls
            ]
        return message

    def tool_result_messages(
        self, results: Sequence[Tuple[ToolCall, str]]
    ) -> List[Dict[str, Any]]:
        return [
            {"role": "tool", "tool_call_id": tc.id, "content": result}
            for tc, result in results
        ]


def get_provider(provider: str = DEFAULT_PROVIDER, model: Optional[str] = None) -> Provider:
    """Factory function to create a provider instance.

    Args:
        provider: "anthropic" or "openai"
        model: Model name override. Defaults to provider-specific default.
    """
    if provider == "anthropic":
        return AnthropicProvider(model=model or DEFAULT_MODELS["anthropic"])
    elif provider == "openai":
        return OpenAIProvider(model=model or DEFAULT_MODELS["openai"])
    else:
        raise ValueError(f"Unknown provider: {provider!r}. Use 'anthropic' or 'openai'.")
