"""Command-line surface shared by the example scripts.

A script takes a prompt from its arguments, or without arguments reads prompts
interactively until EOF or Ctrl+C.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from .correlator import ParallelismSummary, PendingToolCall
from .events import (
    ErrorEvent,
    FinishEvent,
    StreamEvent,
    TextDeltaEvent,
    ToolCallEvent,
    ToolResultEvent,
)

RULE = "─" * 60


async def run_agent_with_args(
    run_prompt: Callable[[str], Awaitable[None]],
    chat: Callable[[], Awaitable[None]],
    argv: Optional[Sequence[str]] = None,
) -> None:
    """Run ``run_prompt`` on the joined arguments, or ``chat`` when there are none."""
    args = list(sys.argv[1:] if argv is None else argv)
    if args:
        await run_prompt(" ".join(args))
    else:
        await chat()


async def create_chat_loop(
    run_prompt: Callable[[str], Awaitable[None]],
    welcome: str,
    read_line: Optional[Callable[[], str]] = None,
) -> None:
    """Print ``welcome`` then answer one prompt per input line.

    Blank lines are skipped. Stops at EOF or Ctrl+C.
    """
    read = read_line or (lambda: input("> "))
    print(welcome)
    while True:
        try:
            line = await asyncio.to_thread(read)
        except (EOFError, KeyboardInterrupt):
            print()
            return
        prompt = line.strip()
        if prompt:
            await run_prompt(prompt)


def _dump(value: Any, indent: Optional[int] = None) -> str:
    if hasattr(value, "model_dump"):
        value = value.model_dump(mode="json")
    return json.dumps(value, indent=indent, default=str, ensure_ascii=False)


def print_event(event: StreamEvent, call: Optional[PendingToolCall] = None) -> None:
    """Console rendering of one stream event."""
    if isinstance(event, ToolCallEvent):
        print(f"\n🔧 [{event.tool_name}] Starting...")
        print(f"   Input: {_dump(event.input)}")
    elif isinstance(event, ToolResultEvent):
        if event.preliminary:
            print(f"   ⏳ [{event.tool_name}] Progress: {_dump(event.output)}")
        elif call is not None and call.duration_ms is not None:
            print(f"✅ [{call.tool_name}] Completed in {call.duration_ms:.0f}ms")
            print(f"   Output: {_dump(event.output)}")
        else:
            print(f"✅ [{event.tool_name}] Result: {_dump(event.output)}")
    elif isinstance(event, TextDeltaEvent):
        sys.stdout.write(event.text)
        sys.stdout.flush()
    elif isinstance(event, FinishEvent):
        print("\n\n✓ Response complete")
    elif isinstance(event, ErrorEvent):
        print(f"\n❌ Error: {event.message}", file=sys.stderr)
    else:
        raise TypeError(f"Unhandled stream event: {event!r}")


def format_summary(summary: ParallelismSummary) -> List[str]:
    """Performance summary lines for a run that called tools."""
    lines = [
        RULE,
        "📊 Performance Summary:",
        RULE,
        f"✨ Tools called: {summary.tool_calls}",
        f"⚡ Actual execution time: {summary.actual_ms:.0f}ms",
        f"🐌 Sequential would take: {summary.sequential_ms:.0f}ms",
    ]
    if summary.has_savings:
        lines.append(
            f"🚀 Time saved: {summary.saved_ms:.0f}ms "
            f"({summary.speedup_pct:.0f}% speedup, {summary.reduction_pct:.0f}% less wall time)"
        )
    else:
        lines.append("🐢 No parallel savings observed")
    return lines
