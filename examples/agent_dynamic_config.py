"""One agent, reconfigured per call: language, verbosity, tools, temperature, model."""

import asyncio
import dataclasses
import logging
import random
from typing import Literal, Optional

from pydantic import BaseModel, Field

from traced_agents import OpenLumixTracing, TracedAgentFactory, tool
from traced_agents.agent import AgentSettings, StepResult

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


@tool
def weather(location: str) -> dict:
    """Get the weather in a location"""
    return {
        "location": location,
        "temperature": 15 + random.randint(0, 19),
        "condition": random.choice(["sunny", "cloudy", "rainy", "partly cloudy"]),
        "unit": "celsius",
    }


@tool
def translate(text: str, target_language: str) -> dict:
    """Translate text to a target language"""
    return {
        "original": text,
        "translated": f"[Translated to {target_language}]: {text}",
        "targetLanguage": target_language,
    }


class CallOptions(BaseModel):
    model: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    language: Literal["en", "zh", "ja", "es"] = "en"
    enable_translation: bool = False
    verbosity: Literal["brief", "normal", "detailed"] = "normal"


LANGUAGE_INSTRUCTIONS = {
    "en": "Respond in English.",
    "zh": "Respond in Traditional Chinese (繁體中文).",
    "ja": "Respond in Japanese.",
    "es": "Respond in Spanish.",
}

VERBOSITY_INSTRUCTIONS = {
    "brief": "Be very concise and brief in your responses.",
    "normal": "Provide balanced, informative responses.",
    "detailed": "Provide detailed, comprehensive explanations.",
}


def prepare_call(options: CallOptions, settings: AgentSettings) -> AgentSettings:
    instructions = (
        "You are a helpful weather assistant. "
        f"{LANGUAGE_INSTRUCTIONS[options.language]} "
        f"{VERBOSITY_INSTRUCTIONS[options.verbosity]}"
    )
    tools = [weather, translate] if options.enable_translation else [weather]
    changes = {
        "instructions": instructions,
        "tools": tools,
        "temperature": options.temperature if options.temperature is not None else 0.7,
    }
    if options.model:
        changes["model"] = options.model
    return dataclasses.replace(settings, **changes)


def on_step_finish(step: StepResult) -> None:
    print("\n--- Step Finished ---")
    print("Model:", step.model)
    print("Temperature:", step.temperature)
    print("Tokens used:", step.usage.total_tokens)


tracing = OpenLumixTracing()
dynamic_agent = TracedAgentFactory(tracing).create(
    __file__,
    call_options_model=CallOptions,
    prepare_call=prepare_call,
    on_step_finish=on_step_finish,
)

SCENARIOS = [
    (
        "📍 Scenario 1: English, Brief",
        "What's the weather like in Tokyo?",
        CallOptions(language="en", verbosity="brief", temperature=0.5),
    ),
    (
        "📍 Scenario 2: Chinese, Detailed, With Translation",
        "What's the weather in Paris and London?",
        CallOptions(language="zh", verbosity="detailed", enable_translation=True, temperature=0.8),
    ),
    (
        "📍 Scenario 3: Using GPT-4o (Smarter Model)",
        "Compare the weather patterns in San Francisco and New York",
        CallOptions(model="gpt-4o", language="en", verbosity="detailed", temperature=0.3),
    ),
]


async def main() -> None:
    print("=" * 60)
    print("🤖 Dynamic Agent Configuration Example")
    print("=" * 60)
    try:
        for title, prompt, options in SCENARIOS:
            print(f"\n{title}")
            print("-" * 60)
            result = await dynamic_agent.generate(prompt, options=options)
            print(result.output)
            print()
    finally:
        tracing.shutdown()
    print("=" * 60)
    print("✅ All scenarios completed!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
