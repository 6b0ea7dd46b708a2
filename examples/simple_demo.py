#!/usr/bin/env python
"""Simple demonstration of ripple network simulation."""

from pathlib import Path
import sys

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ripple_network.config import SimulationParameters
from ripple_network.engine import run_simulation
from ripple_network.metrics import (
    MetricsCollector,
    describe_end_reason,
    initiator_stats,
    new_per_year,
)
from ripple_network.viz import plot_growth, plot_multi_growth, plot_ring


def demo_two_people():
    """Demonstrate the small isolated ring."""
    print("\n" + "=" * 60)
    print("DEMO 1: Ring of 50 people, 8 connections each")
    print("=" * 60)

    params = SimulationParameters.two_people()
    result = run_simulation(params)

    print(f"Yearly waves: {new_per_year(result)}")
    print(f"Start node reached directly: {initiator_stats(result).total_influenced}")
    plot_ring(result, output_path=Path("runs/demo/two_people_ring.png"))


def demo_bridges():
    """Compare a closed ring with one that has a few bridges."""
    print("\n" + "=" * 60)
    print("DEMO 2: What 1% of bridges does")
    print("=" * 60)

    closed = SimulationParameters.within_ratio_demo()
    bridged = SimulationParameters.bridges_demo()
    results = [run_simulation(closed), run_simulation(bridged)]

    for params, result in zip([closed, bridged], results):
        headline, _ = describe_end_reason(result, params)
        print(f"within_ratio={params.within_ratio}: {headline}, reached {result.people_reached}")

    plot_multi_growth(
        results,
        labels=["no bridges", "1% bridges"],
        output_path=Path("runs/demo/bridges.html"),
    )


def demo_large_population():
    """Demonstrate a million-person network."""
    print("\n" + "=" * 60)
    print("DEMO 3: 1,000,000 people, 150 connections each")
    print("=" * 60)

    params = SimulationParameters(
        total_population=1_000_000,
        avg_connections=150,
        within_ratio=0.95,
        influence_per_year=2,
        max_years=12,
        seed=7,
    )

    def on_progress(year: int, reached: int) -> None:
        print(f"  year {year}: {reached:,} influenced", end="\r")

    result = run_simulation(params, on_progress=on_progress)
    print()

    headline, explanation = describe_end_reason(result, params)
    print(f"{headline}: {explanation}")
    print(f"Reached {result.people_reached:,} people ({result.population_included:.1%}) "
          f"in {result.years} years")
    plot_growth(result, output_path=Path("runs/demo/large_growth.png"))


def demo_seed_sweep():
    """Demonstrate run-to-run variation."""
    print("\n" + "=" * 60)
    print("DEMO 4: Seed sweep over the bridged ring")
    print("=" * 60)

    base = SimulationParameters.bridges_demo()
    collector = MetricsCollector(base.total_population)
    for seed in range(50):
        collector.add_run(run_simulation(base.replace(seed=seed)))

    for key, value in collector.compute_aggregate_metrics().items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    demo_two_people()
    demo_bridges()
    demo_large_population()
    demo_seed_sweep()
