"""Untraced agent instrumented by hand: a run span plus one span per tool call.

The agent itself emits no telemetry; every span here comes from the stream
events, exported to OpenLumix.
"""

import asyncio
import logging

from city_tools import city_tools

from traced_agents import AgentRunError, OpenLumixTracing, ToolLoopAgent, trace_agent_run
from traced_agents.runner import RULE, format_summary, print_event, run_agent_with_args

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

tracing = OpenLumixTracing()
tracing.init("agent-manual-spans")
tracer = tracing.get_tracer("manual-agent")

weather_agent = ToolLoopAgent(model="gpt-4o-mini", tools=city_tools())


async def run_prompt(prompt: str) -> None:
    print("\n" + RULE)
    print("🛠  Agent with manual OpenLumix tracing")
    print(RULE)
    try:
        run = await trace_agent_run(
            weather_agent,
            prompt,
            tracer,
            on_event=print_event,
            attributes={"agent.framework": "traced-agents"},
        )
    except AgentRunError as exc:
        print(f"Run failed: {exc}")
        return
    if run.calls:
        print()
        print("\n".join(format_summary(run.summary())))
    print("\n")


async def chat() -> None:
    await run_prompt("Tell me about Tokyo, New York, and London")


async def main() -> None:
    try:
        await run_agent_with_args(run_prompt, chat)
    finally:
        tracing.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
