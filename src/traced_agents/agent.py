"""Tool-loop agent: alternates model calls and concurrent tool execution,
streaming typed events as it goes."""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Type, Union

import jinja2
from pydantic import BaseModel, ValidationError

from .events import (
    AgentRunError,
    ErrorEvent,
    FinishEvent,
    StreamEvent,
    TextDeltaEvent,
    ToolCallEvent,
    ToolExecutionError,
    ToolResultEvent,
)
from .output import OutputSpec
from .provider import DEFAULT_PROVIDER, Provider, ToolCall, Usage, get_provider
from .telemetry import (
    TelemetrySettings,
    end_tool_call_span,
    record_error,
    record_response,
    record_usage,
    start_stream_span,
    start_tool_call_span,
    to_json,
)
from .tools import ToolDefinition, ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    """One model call and the tool calls it requested."""

    step: int
    provider: str
    model: str
    temperature: Optional[float]
    text: Optional[str]
    tool_calls: List[ToolCall]
    usage: Usage
    finish_reason: str


@dataclass
class RunResult:
    """Result of ``ToolLoopAgent.generate``."""

    output: Any
    usage: Usage = field(default_factory=Usage)
    provider_calls: int = 0
    steps: List[StepResult] = field(default_factory=list)


@dataclass
class AgentSettings:
    """Everything a ``ToolLoopAgent`` needs to run.

    Args:
        instructions: System prompt. Rendered as a Jinja2 template with
            ``options`` (the validated call options) in scope.
        tools: Plain, async, or async-generator functions (optionally @tool-decorated).
        provider: "openai" or "anthropic".
        model: Model name; ``None`` picks the provider default.
        temperature: Sampling temperature.
        max_tokens: Max output tokens per model call.
        max_steps: Max model calls per run (prevents infinite loops).
        output_type: Pydantic model the run must finish with.
        telemetry: Engine span settings.
        call_options_model: Pydantic model validating per-call ``options``.
        prepare_call: ``(options, settings) -> settings`` hook run before each call.
        on_step_finish: Callback (sync or async) receiving each ``StepResult``.
    """

    instructions: str = "You are a helpful assistant."
    tools: List[Callable[..., Any]] = field(default_factory=list)
    provider: str = DEFAULT_PROVIDER
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: int = 4096
    max_steps: int = 10
    output_type: Optional[Type[BaseModel]] = None
    telemetry: TelemetrySettings = field(default_factory=TelemetrySettings)
    call_options_model: Optional[Type[BaseModel]] = None
    prepare_call: Optional[Callable[[Any, "AgentSettings"], "AgentSettings"]] = None
    on_step_finish: Optional[Callable[[StepResult], Any]] = None


def _build_registry(tools: List[Callable[..., Any]]) -> ToolRegistry:
    registry = ToolRegistry()
    for func in tools:
        registry.register(func)
    return registry


def _tool_result_content(output: Any) -> str:
    if isinstance(output, str):
        return output
    return to_json(output)


class ToolLoopAgent:
    """An LLM agent that calls tools until the model produces an answer.

    Tool calls requested in the same model response run concurrently; their
    events are streamed in the order they happen, so results can arrive in a
    different order than the calls were made.

    Keyword arguments are the fields of ``AgentSettings``.
    """

    def __init__(self, **settings: Any) -> None:
        self.settings = AgentSettings(**settings)
        self._registry = _build_registry(self.settings.tools)

    @property
    def tools(self) -> List[str]:
        return [t.name for t in self._registry.list_tools()]

    async def stream(
        self,
        prompt: str,
        *,
        options: Union[BaseModel, Dict[str, Any], None] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Run the agent on ``prompt``, yielding events as they happen.

        The stream ends with exactly one ``FinishEvent`` or ``ErrorEvent``.
        Invalid options and provider construction failures also arrive as an
        ``ErrorEvent``.
        """
        events = self._stream(prompt, options, [])
        try:
            async for event in events:
                yield event
        finally:
            await events.aclose()

    async def generate(
        self,
        prompt: str,
        *,
        options: Union[BaseModel, Dict[str, Any], None] = None,
    ) -> RunResult:
        """Run to completion. Raises ``AgentRunError`` if the run fails."""
        steps: List[StepResult] = []
        events = self._stream(prompt, options, steps)
        try:
            async for event in events:
                if isinstance(event, ErrorEvent):
                    if isinstance(event.error, AgentRunError):
                        raise event.error
                    raise AgentRunError(event.message, event.error) from event.error
                if isinstance(event, FinishEvent):
                    return RunResult(
                        output=event.output,
                        usage=event.usage,
                        provider_calls=len(steps),
                        steps=steps,
                    )
        finally:
            await events.aclose()
        raise AgentRunError("Agent stream ended without a finish event")

    def _validate_options(self, options: Union[BaseModel, Dict[str, Any], None]) -> Any:
        model = self.settings.call_options_model
        if model is None or isinstance(options, model):
            return options
        if isinstance(options, BaseModel):
            options = options.model_dump()
        return model.model_validate(options or {})

    def _render_instructions(self, instructions: str, options: Any) -> str:
        if isinstance(options, BaseModel):
            options = options.model_dump()
        template = jinja2.Template(instructions, undefined=jinja2.Undefined)
        return template.render(options=options or {})

    async def _stream(
        self,
        prompt: str,
        options: Union[BaseModel, Dict[str, Any], None],
        steps: List[StepResult],
    ) -> AsyncIterator[StreamEvent]:
        try:
            call_options = self._validate_options(options)
            settings = self.settings
            if settings.prepare_call is not None:
                settings = settings.prepare_call(call_options, dataclasses.replace(settings))

            provider = get_provider(settings.provider, settings.model)
            registry = self._registry if settings is self.settings else _build_registry(settings.tools)
            system = self._render_instructions(settings.instructions, call_options)
        except Exception as exc:
            logger.warning("Agent setup failed: %s", exc)
            yield ErrorEvent(exc)
            return

        root = start_stream_span(
            settings.telemetry,
            provider_name=provider.provider_name,
            model=provider.model_name,
            prompt=prompt,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
        )
        events = self._loop(prompt, settings, provider, registry, system, root, steps)
        try:
            async for event in events:
                if isinstance(event, FinishEvent):
                    record_usage(root, event.usage)
                    record_response(root, to_json(event.output), event.finish_reason)
                elif isinstance(event, ErrorEvent):
                    record_error(root, event.error)
                yield event
        finally:
            await events.aclose()
            root.end()

    async def _loop(
        self,
        prompt: str,
        settings: AgentSettings,
        provider: Provider,
        registry: ToolRegistry,
        system: str,
        root: Any,
        steps: List[StepResult],
    ) -> AsyncIterator[StreamEvent]:
        output_spec = OutputSpec(settings.output_type) if settings.output_type else None

        tool_schemas = registry.schemas()
        tool_choice: Optional[str] = None
        if output_spec is not None:
            # The model may call real tools first but must finish through the output tool
            tool_choice = "required" if tool_schemas else output_spec.tool_name
            tool_schemas.append(output_spec.tool_schema())

        messages: List[Dict[str, Any]] = [{"role": "user", "content": prompt}]
        usage = Usage()
        last_text = ""

        for step in range(settings.max_steps):
            try:
                response = await provider.chat(
                    messages=messages,
                    tools=tool_schemas or None,
                    tool_choice=tool_choice if tool_schemas else None,
                    system=system,
                    max_tokens=settings.max_tokens,
                    temperature=settings.temperature,
                )
            except Exception as exc:
                logger.warning("Model call failed on step %d: %s", step, exc)
                yield ErrorEvent(exc)
                return

            usage = usage + response.usage
            if response.text:
                last_text = response.text
                yield TextDeltaEvent(response.text)

            step_result = StepResult(
                step=step,
                provider=provider.provider_name,
                model=provider.model_name,
                temperature=settings.temperature,
                text=response.text,
                tool_calls=list(response.tool_calls),
                usage=response.usage,
                finish_reason=response.finish_reason,
            )
            steps.append(step_result)
            if settings.on_step_finish is not None:
                try:
                    maybe = settings.on_step_finish(step_result)
                    if inspect.isawaitable(maybe):
                        await maybe
                except Exception as exc:
                    logger.warning("on_step_finish failed on step %d: %s", step, exc)
                    yield ErrorEvent(exc)
                    return

            if output_spec is not None:
                output_call = next(
                    (tc for tc in response.tool_calls if tc.name == output_spec.tool_name), None
                )
                if output_call is not None:
                    try:
                        parsed = output_spec.parse(output_call.input)
                    except ValidationError as exc:
                        yield ErrorEvent(exc)
                        return
                    yield FinishEvent(usage=usage, finish_reason="stop", output=parsed)
                    return

            if not response.tool_calls:
                yield FinishEvent(
                    usage=usage,
                    finish_reason=response.finish_reason,
                    output=response.text or "",
                )
                return

            messages.append(provider.assistant_message(response))

            results: Dict[str, Any] = {}
            tool_events = self._execute_tools(response.tool_calls, registry, settings.telemetry, root)
            try:
                async for event in tool_events:
                    yield event
                    if isinstance(event, ErrorEvent):
                        return
                    if isinstance(event, ToolResultEvent) and not event.preliminary:
                        results[event.tool_call_id] = event.output
            finally:
                await tool_events.aclose()

            messages.extend(provider.tool_result_messages([
                (tc, _tool_result_content(results.get(tc.id))) for tc in response.tool_calls
            ]))

        logger.info("Reached max_steps=%d without a final answer", settings.max_steps)
        yield FinishEvent(usage=usage, finish_reason="max-steps", output=last_text)

    async def _execute_tools(
        self,
        tool_calls: List[ToolCall],
        registry: ToolRegistry,
        telemetry: TelemetrySettings,
        root: Any,
    ) -> AsyncIterator[StreamEvent]:
        for tc in tool_calls:
            yield ToolCallEvent(tool_call_id=tc.id, tool_name=tc.name, input=tc.input)

        queue: asyncio.Queue = asyncio.Queue()
        tasks = [
            asyncio.create_task(
                self._run_tool(tc, registry.get(tc.name), queue, telemetry, root)
            )
            for tc in tool_calls
        ]
        remaining = len(tasks)
        try:
            while remaining:
                event = await queue.get()
                yield event
                if isinstance(event, ErrorEvent):
                    return
                if not event.preliminary:
                    remaining -= 1
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

    async def _run_tool(
        self,
        tc: ToolCall,
        defn: Optional[ToolDefinition],
        queue: asyncio.Queue,
        telemetry: TelemetrySettings,
        root: Any,
    ) -> None:
        span = start_tool_call_span(telemetry, root, tc.id, tc.name, tc.input)
        if defn is None:
            # Reported back to the model rather than failing the run
            message = f"Error: Unknown tool '{tc.name}'"
            end_tool_call_span(span, message)
            await queue.put(ToolResultEvent(tc.id, tc.name, message))
            return

        output: Any = None
        try:
            async for output, preliminary in defn.stream(**tc.input):
                await queue.put(ToolResultEvent(tc.id, tc.name, output, preliminary))
        except asyncio.CancelledError:
            span.end()
            raise
        except Exception as exc:
            logger.warning("Tool %s (%s) failed: %s", tc.name, tc.id, exc)
            error = ToolExecutionError(tc.name, tc.id, exc)
            record_error(span, error)
            span.end()
            await queue.put(ErrorEvent(error))
            return
        end_tool_call_span(span, output)
