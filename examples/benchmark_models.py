"""Benchmark parallel tool calling across models, then read the traces back from Phoenix."""

import asyncio
import logging
import sys

from city_tools import BENCHMARK_DELAYS, city_tools

from traced_agents import PhoenixTracing, TracedAgentFactory
from traced_agents.benchmark import (
    analyze_phoenix_data,
    benchmark_model,
    compare_results,
    fetch_phoenix_metrics,
    format_results_table,
)
from traced_agents.events import TextDeltaEvent
from traced_agents.runner import RULE

logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

MODELS = ["gpt-5-nano", "gpt-4.1-nano"]

PROMPT = "Tell me about Tokyo, Paris, and London - their weather, population, timezone, and currency."

INSTRUCTIONS = (
    "You are a helpful assistant that can fetch information from multiple sources "
    "simultaneously. When asked about multiple things, use all relevant tools in "
    "parallel for efficiency."
)


def show_progress(event, call) -> None:
    if isinstance(event, TextDeltaEvent):
        sys.stdout.write(".")
        sys.stdout.flush()


async def main() -> None:
    tracing = PhoenixTracing()
    factory = TracedAgentFactory(tracing)
    tools = city_tools(BENCHMARK_DELAYS)

    print("╔════════════════════════════════════════════════════════════╗")
    print("║          MODEL BENCHMARK - Parallel Tool Calling           ║")
    print("╚════════════════════════════════════════════════════════════╝")
    print()
    print("Test Scenario: Multi-city information retrieval")
    print("Tools: getWeather, getPopulation, getTimeZone, getCurrency")
    print("Expected: All tools called in parallel for each city")
    print()
    print("Models under test:")
    for i, model_id in enumerate(MODELS, 1):
        print(f"  {i}. {model_id}")
    print()
    print(RULE)

    results = []
    for model_id in MODELS:
        print(f"\n🔬 Testing {model_id}...")
        sys.stdout.write("   Progress: ")
        result = await benchmark_model(
            factory,
            __file__,
            model_id,
            PROMPT,
            tools=tools,
            instructions=INSTRUCTIONS,
            on_event=show_progress,
        )
        results.append(result)
        print(" ✓")

        if result.success:
            print(f"   ⏱️  Execution time: {result.execution_time_ms:.0f}ms")
            if result.token_usage:
                usage = result.token_usage
                print(f"   🪙  Tokens: {usage.total} (in: {usage.input}, out: {usage.output})")
            if result.parallelism and result.parallelism.has_savings:
                print(f"   🚀 Tool time saved by parallelism: {result.parallelism.saved_ms:.0f}ms")
        else:
            print(f"   ❌ Error: {result.error}")

        await asyncio.sleep(2)

    print("\n" + RULE)
    print("\n📊 BENCHMARK RESULTS\n")
    print("\n".join(format_results_table(results)))

    comparison = compare_results(results)
    if comparison:
        print(f"\n🏆 Fastest: {comparison.fastest.model_id} ({comparison.fastest.execution_time_ms:.0f}ms)")
        print(f"🐌 Slowest: {comparison.slowest.model_id} ({comparison.slowest.execution_time_ms:.0f}ms)")
        print(f"⚡ Speed difference: {comparison.speed_difference_pct:.1f}% faster")

    print("\n" + RULE)
    print("\n🔍 Fetching Phoenix metrics...\n")

    tracing.shutdown()
    await asyncio.sleep(2)

    metrics = analyze_phoenix_data(await fetch_phoenix_metrics(tracing.settings))
    if metrics:
        print("📈 Phoenix Trace Analysis:\n")
        for model_id, m in metrics.items():
            print(f"\n{model_id}:")
            print(f"  Spans recorded: {m.span_count}")
            print(f"  Avg latency: {m.avg_latency_ms:.2f}ms")
            print(f"  Min/Max latency: {m.min_latency_ms:.0f}ms / {m.max_latency_ms:.0f}ms")
            print(f"  Total tokens from traces: {m.total_tokens}")
    else:
        print("⚠️  Could not fetch Phoenix metrics")
        print(f"   Make sure Phoenix is running at http://localhost:{tracing.settings.phoenix_port}")

    print("\n" + RULE)
    print("\n✅ Benchmark complete!")
    print(f"\n📊 View detailed traces: {tracing.settings.phoenix_ui_url}\n")


if __name__ == "__main__":
    asyncio.run(main())
