"""Events emitted by a streaming agent run.

The set of variants is closed: consumers dispatch over ``StreamEvent`` and
raise ``TypeError`` for anything else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .provider import Usage


class AgentRunError(Exception):
    """Raised when an agent run terminates with an error event."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class ToolExecutionError(AgentRunError):
    """A tool raised while the engine was executing it."""

    def __init__(self, tool_name: str, tool_call_id: str, cause: BaseException) -> None:
        super().__init__(f"Error executing tool '{tool_name}': {cause}", cause)
        self.tool_name = tool_name
        self.tool_call_id = tool_call_id


@dataclass(frozen=True)
class ToolCallEvent:
    """The engine started executing a tool."""

    tool_call_id: str
    tool_name: str
    input: Any


@dataclass(frozen=True)
class ToolResultEvent:
    """A tool produced output.

    Streaming tools emit several results for the same call; all but the last
    are ``preliminary``.
    """

    tool_call_id: str
    tool_name: str
    output: Any
    preliminary: bool = False


@dataclass(frozen=True)
class TextDeltaEvent:
    text: str


@dataclass(frozen=True)
class FinishEvent:
    """The run completed. ``output`` is the final text or structured object."""

    usage: Usage = field(default_factory=Usage)
    finish_reason: str = "stop"
    output: Any = None


@dataclass(frozen=True)
class ErrorEvent:
    error: BaseException

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__


StreamEvent = Union[ToolCallEvent, ToolResultEvent, TextDeltaEvent, FinishEvent, ErrorEvent]
