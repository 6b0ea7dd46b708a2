"""Command-line interface using Typer."""

import typer
from pathlib import Path
from typing import Optional
import json
from loguru import logger

from ripple_network.config import PRESETS, ConfigurationError, SimulationParameters
from ripple_network.engine import SimulationResult, run_simulation
from ripple_network.metrics import MetricsCollector, describe_end_reason
from ripple_network.viz import (
    MAX_RING_POPULATION,
    plot_growth,
    plot_reach_distribution,
    plot_ring,
)

app = typer.Typer(help="Ripple Network Simulation CLI")


def _build_params(preset: Optional[str], overrides: dict) -> SimulationParameters:
    """Merge CLI overrides onto a preset (or the defaults) and validate."""
    if preset is not None:
        if preset not in PRESETS:
            raise ConfigurationError(
                f"Unknown preset: {preset} (choose from {', '.join(PRESETS)})"
            )
        base = PRESETS[preset]().to_dict()
    else:
        base = SimulationParameters.default().to_dict()
    base.update({k: v for k, v in overrides.items() if v is not None})
    return SimulationParameters.parse(base)


def _log_progress(year: int, reached: int) -> None:
    logger.info(f"Year {year}: {reached:,} influenced")


@app.command()
def run(
    preset: Optional[str] = typer.Option(None, help="Start from a named preset"),
    total_population: Optional[int] = typer.Option(None, help="Number of people"),
    avg_connections: Optional[float] = typer.Option(None, help="Average connections per person"),
    within_ratio: Optional[float] = typer.Option(None, help="Fraction of local connections"),
    influence_per_year: Optional[float] = typer.Option(None, help="New people reached per person per year"),
    max_years: Optional[int] = typer.Option(None, help="Maximum simulated years"),
    track_ancestors: Optional[bool] = typer.Option(None, help="Record who influenced whom"),
    seed: Optional[int] = typer.Option(None, help="Random seed"),
    output_dir: str = typer.Option("runs/exp001", help="Output directory"),
) -> None:
    """Run a single ripple simulation."""
    try:
        params = _build_params(
            preset,
            {
                "total_population": total_population,
                "avg_connections": avg_connections,
                "within_ratio": within_ratio,
                "influence_per_year": influence_per_year,
                "max_years": max_years,
                "track_ancestors": track_ancestors,
                "seed": seed,
            },
        )
    except ConfigurationError as e:
        logger.error(str(e))
        raise typer.Exit(code=2)

    # Create output directory
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    params.save(output_path / "params.json")
    logger.info(f"Saved params to {output_path / 'params.json'}")

    result = run_simulation(params, on_progress=_log_progress)

    with open(output_path / "result.json", "w") as f:
        json.dump(result.to_dict(), f, indent=2)

    headline, explanation = describe_end_reason(result, params)
    logger.info(f"{headline}: {explanation}")
    typer.echo(
        f"{headline}: reached {result.people_reached:,} people "
        f"({result.population_included:.1%}) in {result.years} years"
    )

    _plot_result(result, output_path)


def _plot_result(result: SimulationResult, output_path: Path) -> None:
    plot_growth(result, output_path=output_path / "growth.png")
    tracked = any(s.ancestor_edges is not None for s in result.yearly_state)
    if tracked and result.total_population <= MAX_RING_POPULATION:
        plot_ring(result, output_path=output_path / "ring.png")


@app.command()
def sweep(
    preset: Optional[str] = typer.Option(None, help="Start from a named preset"),
    total_population: Optional[int] = typer.Option(None, help="Number of people"),
    avg_connections: Optional[float] = typer.Option(None, help="Average connections per person"),
    within_ratio: Optional[float] = typer.Option(None, help="Fraction of local connections"),
    influence_per_year: Optional[float] = typer.Option(None, help="New people reached per person per year"),
    max_years: Optional[int] = typer.Option(None, help="Maximum simulated years"),
    runs: int = typer.Option(20, min=1, help="Number of seeded runs"),
    first_seed: int = typer.Option(0, min=0, help="Seed of the first run"),
    output_dir: str = typer.Option("runs/sweep001", help="Output directory"),
) -> None:
    """Repeat a simulation over consecutive seeds and aggregate the results."""
    try:
        params = _build_params(
            preset,
            {
                "total_population": total_population,
                "avg_connections": avg_connections,
                "within_ratio": within_ratio,
                "influence_per_year": influence_per_year,
                "max_years": max_years,
                "track_ancestors": False,
            },
        )
        # Check the whole seed range before any run starts
        params.replace(seed=first_seed + runs - 1)
    except ConfigurationError as e:
        logger.error(str(e))
        raise typer.Exit(code=2)

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    params.save(output_path / "params.json")

    collector = MetricsCollector(params.total_population)
    for run_id in range(runs):
        logger.info(f"Run {run_id + 1}/{runs}")
        run_params = params.replace(seed=first_seed + run_id)
        collector.add_run(run_simulation(run_params))

    aggregate = collector.compute_aggregate_metrics()
    with open(output_path / "aggregate_metrics.json", "w") as f:
        json.dump(aggregate, f, indent=2)

    logger.info(f"Aggregate metrics: {aggregate}")
    typer.echo(
        f"{runs} runs: mean reach {aggregate['mean_people_reached']:,.1f} "
        f"({aggregate['mean_population_included']:.1%})"
    )

    plot_reach_distribution(
        [r.people_reached for r in collector.runs],
        output_path=output_path / "reach_distribution.html",
    )


@app.command()
def plot(
    run_id: str = typer.Option("runs/exp001", help="Run ID (output directory)"),
) -> None:
    """Regenerate plots from a completed run."""
    logger.info(f"Generating plots for run: {run_id}")

    run_path = Path(run_id)
    result_file = run_path / "result.json"
    if not result_file.exists():
        logger.error(f"Result file not found: {result_file}")
        raise typer.Exit(code=1)

    with open(result_file, "r") as f:
        result = SimulationResult.from_dict(json.load(f))

    _plot_result(result, run_path)
    logger.info("Plots generated successfully")


@app.command()
def presets() -> None:
    """List the named presets."""
    for name, factory in PRESETS.items():
        typer.echo(f"{name}: {json.dumps(factory().to_dict())}")


if __name__ == "__main__":
    app()
