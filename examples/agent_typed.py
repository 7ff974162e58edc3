"""Minimal untraced agent with one tool."""

import asyncio
import random

from traced_agents import ToolLoopAgent, tool
from traced_agents.runner import create_chat_loop, print_event, run_agent_with_args


@tool(name="getWeather")
def get_weather(city: str) -> dict:
    """Get the weather in a location"""
    return {
        "city": city,
        "temperature": random.randint(10, 39),
        "condition": random.choice(["sunny", "cloudy", "rainy"]),
    }


agent = ToolLoopAgent(
    model="gpt-4o",
    instructions="You are a helpful assistant.",
    tools=[get_weather],
)


async def run_prompt(prompt: str) -> None:
    async for event in agent.stream(prompt):
        print_event(event)
    print("\n")


async def chat() -> None:
    await create_chat_loop(run_prompt, "Agent ready. Type your message (Ctrl+C to exit):\n")


if __name__ == "__main__":
    asyncio.run(run_agent_with_args(run_prompt, chat))
