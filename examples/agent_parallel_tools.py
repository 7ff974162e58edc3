"""Agent that fetches city facts with several tools running at once.

Spans go to OpenLumix; each tool call gets its own span under the run span.
"""

import asyncio
import logging

from city_tools import city_tools

from traced_agents import AgentRunError, OpenLumixTracing, TracedAgentFactory, trace_agent_run
from traced_agents.runner import RULE, create_chat_loop, format_summary, print_event, run_agent_with_args

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

tracing = OpenLumixTracing()
agent = TracedAgentFactory(tracing).create(
    __file__,
    instructions=(
        "You are a helpful assistant that can fetch information from multiple sources "
        "simultaneously. When asked about multiple things, use all relevant tools in "
        "parallel for efficiency."
    ),
    tools=city_tools(),
)


async def run_prompt(prompt: str) -> None:
    print("\n" + RULE)
    try:
        run = await trace_agent_run(agent, prompt, tracing.get_tracer(), on_event=print_event)
    except AgentRunError as exc:
        print(f"Run failed: {exc}")
        return
    if run.calls:
        print()
        print("\n".join(format_summary(run.summary())))
    print("\n")


async def chat() -> None:
    welcome = "\n".join([
        "🚀 Parallel Tool Calling Agent",
        "=" * 60,
        "This agent can call multiple tools simultaneously!",
        "Try asking about multiple cities to see parallel execution.\n",
        'Example: "Tell me about Tokyo, New York, and London"\n',
        "Type your message (Ctrl+C to exit):\n",
    ])
    await create_chat_loop(run_prompt, welcome)


async def main() -> None:
    try:
        await run_agent_with_args(run_prompt, chat)
    finally:
        tracing.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
