"""Agent whose weather tool streams progress updates before its result.

Spans go to Phoenix.
"""

import asyncio
import logging
import random

from traced_agents import PhoenixTracing, ToolLoopAgent, tool
from traced_agents.telemetry import TelemetrySettings
from traced_agents.runner import create_chat_loop, print_event, run_agent_with_args

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

tracing = PhoenixTracing()
state = tracing.init("agent-streaming-tool")
if not state.available:
    logging.warning("Running without tracing: %s", state.reason)


@tool(name="getWeather")
async def get_weather(city: str):
    """Get the weather in a location (with streaming progress)"""
    yield {"status": "connecting", "message": "Connecting to weather service..."}
    await asyncio.sleep(0.8)

    yield {"status": "fetching", "message": "Fetching weather data...", "progress": 30}
    await asyncio.sleep(0.8)

    yield {"status": "processing", "message": "Processing data...", "progress": 70}
    await asyncio.sleep(0.8)

    yield {
        "status": "complete",
        "data": {
            "city": city,
            "temperature": random.randint(10, 39),
            "condition": random.choice(["sunny", "cloudy", "rainy"]),
            "humidity": random.randint(40, 79),
        },
    }


agent = ToolLoopAgent(
    model="gpt-4o",
    instructions="You are a helpful assistant that can fetch weather data.",
    tools=[get_weather],
    telemetry=TelemetrySettings(
        is_enabled=state.available,
        function_id="agent-streaming-tool",
        tracer_provider=tracing.provider,
    ),
)


async def run_prompt(prompt: str) -> None:
    async for event in agent.stream(prompt):
        print_event(event)
    print("\n")


async def chat() -> None:
    await create_chat_loop(run_prompt, "Streaming Tool Agent ready. Type your message (Ctrl+C to exit):\n")


async def main() -> None:
    try:
        await run_agent_with_args(run_prompt, chat)
    finally:
        tracing.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
