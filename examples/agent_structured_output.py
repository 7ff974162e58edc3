"""Agent that must answer with a pydantic-validated weather report."""

import asyncio
import random
from typing import List, Literal

from pydantic import BaseModel

from traced_agents import AgentRunError, ToolLoopAgent, tool
from traced_agents.runner import create_chat_loop


class CityWeather(BaseModel):
    name: str
    temperature: float
    condition: Literal["sunny", "cloudy", "rainy"]
    humidity: float


class WeatherReport(BaseModel):
    """Structured weather data for one or more cities."""

    cities: List[CityWeather]
    summary: str


@tool(name="getWeather")
def get_weather(city: str) -> dict:
    """Get the weather in a location"""
    return {
        "city": city,
        "temperature": random.randint(10, 39),
        "condition": random.choice(["sunny", "cloudy", "rainy"]),
        "humidity": random.randint(40, 79),
    }


agent = ToolLoopAgent(
    model="gpt-4o",
    instructions="You are a weather assistant. Always provide structured weather data.",
    tools=[get_weather],
    output_type=WeatherReport,
)


async def run_prompt(prompt: str) -> None:
    try:
        result = await agent.generate(prompt)
    except AgentRunError as exc:
        print(f"[❌ Error: {exc}]")
        return
    print("\n[✅ Final Object]:")
    print(result.output.model_dump_json(indent=2))
    print(f"Usage: {result.usage}")
    print(f"Provider calls: {result.provider_calls}\n")


if __name__ == "__main__":
    asyncio.run(create_chat_loop(run_prompt, "Structured Output Agent ready. Type your message (Ctrl+C to exit):\n"))
