"""Tests for the example command-line helpers."""

from unittest.mock import AsyncMock

import pytest

from traced_agents.correlator import ParallelismSummary
from traced_agents.events import (
    ErrorEvent,
    FinishEvent,
    TextDeltaEvent,
    ToolCallEvent,
    ToolResultEvent,
)
from traced_agents.runner import create_chat_loop, format_summary, print_event, run_agent_with_args


@pytest.mark.asyncio
async def test_run_with_args_joins_prompt():
    run_prompt, chat = AsyncMock(), AsyncMock()

    await run_agent_with_args(run_prompt, chat, ["Tell", "me", "about", "Tokyo"])

    run_prompt.assert_awaited_once_with("Tell me about Tokyo")
    chat.assert_not_awaited()


@pytest.mark.asyncio
async def test_run_without_args_starts_chat():
    run_prompt, chat = AsyncMock(), AsyncMock()

    await run_agent_with_args(run_prompt, chat, [])

    chat.assert_awaited_once()
    run_prompt.assert_not_awaited()


@pytest.mark.asyncio
async def test_chat_loop_skips_blank_lines_and_stops_at_eof(capsys):
    lines = iter(["Tokyo?", "   ", "Paris?"])

    def read_line():
        try:
            return next(lines)
        except StopIteration:
            raise EOFError

    run_prompt = AsyncMock()
    await create_chat_loop(run_prompt, "Welcome!", read_line)

    assert [c.args[0] for c in run_prompt.await_args_list] == ["Tokyo?", "Paris?"]
    assert "Welcome!" in capsys.readouterr().out


def test_print_event(capsys):
    print_event(ToolCallEvent("c1", "getWeather", {"city": "Tokyo"}))
    print_event(ToolResultEvent("c1", "getWeather", {"status": "loading"}, preliminary=True))
    print_event(TextDeltaEvent("Sunny"))
    print_event(FinishEvent())
    print_event(ErrorEvent(RuntimeError("boom")))

    captured = capsys.readouterr()
    assert "[getWeather] Starting" in captured.out
    assert '"city": "Tokyo"' in captured.out
    assert "Progress" in captured.out
    assert "Sunny" in captured.out
    assert "Response complete" in captured.out
    assert "Error: boom" in captured.err


def test_print_event_rejects_unknown():
    with pytest.raises(TypeError):
        print_event("tool-call")


def test_format_summary_with_savings():
    lines = format_summary(ParallelismSummary(tool_calls=3, sequential_ms=2700, actual_ms=1000))
    text = "\n".join(lines)

    assert "Tools called: 3" in text
    assert "Time saved: 1700ms (170% speedup" in text


def test_format_summary_without_savings():
    lines = format_summary(ParallelismSummary(tool_calls=2, sequential_ms=500, actual_ms=600))
    assert lines[-1] == "🐢 No parallel savings observed"
