"""Mock city data tools shared by the examples. Each sleeps to simulate I/O."""

import asyncio
import random
from typing import Annotated, Any, Callable, Dict, List, Optional

from traced_agents import tool

POPULATIONS = {
    "Tokyo": 13960000,
    "New York": 8336000,
    "London": 8982000,
    "Paris": 2161000,
    "Sydney": 5312000,
}

TIMEZONES = {
    "Tokyo": "Asia/Tokyo (UTC+9)",
    "New York": "America/New_York (UTC-5)",
    "London": "Europe/London (UTC+0)",
    "Paris": "Europe/Paris (UTC+1)",
    "Sydney": "Australia/Sydney (UTC+11)",
}

CURRENCIES = {
    "Tokyo": "JPY (Japanese Yen)",
    "New York": "USD (US Dollar)",
    "London": "GBP (British Pound)",
    "Paris": "EUR (Euro)",
    "Sydney": "AUD (Australian Dollar)",
}

CONDITIONS = ["sunny", "cloudy", "rainy", "partly cloudy"]

# Seconds each tool takes
PARALLEL_DELAYS = {"weather": 1.0, "population": 1.2, "timezone": 0.8, "currency": 0.9}
BENCHMARK_DELAYS = {"weather": 0.8, "population": 0.9, "timezone": 0.7, "currency": 0.6}

City = Annotated[str, "City name"]


def city_tools(delays: Optional[Dict[str, float]] = None) -> List[Callable[..., Any]]:
    delays = delays or PARALLEL_DELAYS

    @tool(name="getWeather")
    async def get_weather(city: City) -> dict:
        """Get the current weather for a city"""
        await asyncio.sleep(delays["weather"])
        return {
            "city": city,
            "temperature": random.randint(10, 39),
            "condition": random.choice(CONDITIONS),
            "humidity": random.randint(40, 79),
        }

    @tool(name="getPopulation")
    async def get_population(city: City) -> dict:
        """Get the population of a city"""
        await asyncio.sleep(delays["population"])
        return {"city": city, "population": POPULATIONS.get(city, random.randint(1000000, 5999999))}

    @tool(name="getTimeZone")
    async def get_time_zone(city: City) -> dict:
        """Get the timezone of a city"""
        await asyncio.sleep(delays["timezone"])
        return {"city": city, "timezone": TIMEZONES.get(city, "UTC+0")}

    @tool(name="getCurrency")
    async def get_currency(city: City) -> dict:
        """Get the currency used in a city"""
        await asyncio.sleep(delays["currency"])
        return {"city": city, "currency": CURRENCIES.get(city, "USD")}

    return [get_weather, get_population, get_time_zone, get_currency]
