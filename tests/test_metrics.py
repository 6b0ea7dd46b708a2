"""Tests for result analysis, plotting, and the CLI."""

import json

import pytest
import networkx as nx
from typer.testing import CliRunner

from ripple_network.cli import app
from ripple_network.config import SimulationParameters
from ripple_network.engine import SimulationResult, run_simulation
from ripple_network.metrics import (
    MetricsCollector,
    build_influence_tree,
    describe_end_reason,
    growth_rates,
    initiator_stats,
    new_per_year,
    years_to_fraction,
)
from ripple_network.viz import (
    plot_growth,
    plot_multi_growth,
    plot_reach_distribution,
    plot_ring,
)


runner = CliRunner()


@pytest.fixture(scope="module")
def linear_result():
    """Ten years on a two-connection ring: two new people per year."""
    return run_simulation(
        SimulationParameters(
            total_population=10000,
            avg_connections=2,
            within_ratio=1.0,
            influence_per_year=2,
            max_years=10,
            seed=5,
        )
    )


@pytest.fixture(scope="module")
def two_people_result():
    return run_simulation(SimulationParameters.two_people())


def make_result(**overrides):
    fields = dict(
        years=0,
        people_reached=0,
        population_included=0.01,
        yearly_state=(),
        end_reason="network_saturation",
        total_population=100,
        start_id=3,
    )
    fields.update(overrides)
    return SimulationResult(**fields)


class TestMetrics:
    """Test per-run metrics."""

    def test_new_per_year(self, linear_result):
        """Test wave sizes on a linear ring."""
        assert new_per_year(linear_result) == [2] * 10

    def test_growth_rates(self, linear_result):
        """Test ratios between consecutive waves."""
        assert growth_rates(linear_result) == [1.0] * 9

    def test_years_to_fraction(self, linear_result):
        """Test time to reach a share of the population."""
        # 0.1% of 10000 is 10 people; cumulative counts go 3, 5, 7, 9, 11
        assert years_to_fraction(linear_result, 0.001) == 5
        assert years_to_fraction(linear_result, 0.5) is None
        with pytest.raises(ValueError):
            years_to_fraction(linear_result, 1.5)

    def test_initiator_stats(self, two_people_result):
        """Test direct reach of the start node."""
        stats = initiator_stats(two_people_result)
        assert stats.total_influenced == 4
        assert stats.last_active_year == 2
        assert stats.to_dict() == {"total_influenced": 4, "last_active_year": 2}

    def test_influence_tree(self, two_people_result):
        """Test that ancestor edges form a tree rooted at the start node."""
        tree = build_influence_tree(two_people_result)

        assert tree.number_of_nodes() == 9
        assert nx.is_arborescence(tree)
        assert tree.nodes[two_people_result.start_id]["year"] == 0
        assert sum(1 for _, year in tree.nodes(data="year") if year == 1) == 2

    def test_influence_tree_without_tracking(self, linear_result):
        """Test that untracked runs give just the root."""
        tree = build_influence_tree(linear_result)
        assert list(tree.nodes) == [linear_result.start_id]

    def test_describe_end_reason(self, two_people_result):
        """Test end-reason text."""
        headline, _ = describe_end_reason(two_people_result)
        assert headline == "Time Limit Reached"

        params = SimulationParameters(total_population=100, within_ratio=0.9)
        headline, explanation = describe_end_reason(make_result(), params)
        assert headline == "Network Saturation"
        assert "90%" in explanation

        headline, _ = describe_end_reason(make_result(end_reason="everyone_reached"))
        assert headline == "Everyone Reached"


class TestMetricsCollector:
    """Test aggregation across runs."""

    def test_aggregate(self):
        """Test aggregate metrics over seeded runs."""
        base = SimulationParameters.within_ratio_demo()
        collector = MetricsCollector(base.total_population)
        for seed in range(4):
            collector.add_run(run_simulation(base.replace(seed=seed)))

        aggregate = collector.compute_aggregate_metrics()
        assert aggregate["num_runs"] == 4
        assert (
            aggregate["min_people_reached"]
            <= aggregate["mean_people_reached"]
            <= aggregate["max_people_reached"]
        )
        assert aggregate["max_years"] <= base.max_years
        assert sum(aggregate["end_reason_rates"].values()) == pytest.approx(1.0)

    def test_empty(self):
        """Test that no runs yields no metrics."""
        assert MetricsCollector(10).compute_aggregate_metrics() == {}

    def test_population_mismatch(self):
        """Test that runs over different populations are rejected."""
        collector = MetricsCollector(10)
        with pytest.raises(ValueError):
            collector.add_run(make_result())


class TestViz:
    """Test plot output."""

    def test_plot_growth(self, two_people_result, tmp_path):
        """Test growth figure is written."""
        path = tmp_path / "plots" / "growth.png"
        plot_growth(two_people_result, output_path=path)
        assert path.exists()

    def test_plot_ring(self, two_people_result, tmp_path):
        """Test ring figure is written."""
        path = tmp_path / "ring.png"
        plot_ring(two_people_result, output_path=path)
        assert path.exists()

    def test_plot_ring_rejects_large_population(self, tmp_path):
        """Test the ring size limit."""
        with pytest.raises(ValueError):
            plot_ring(make_result(total_population=10_000), output_path=tmp_path / "r.png")

    def test_plotly_outputs(self, two_people_result, linear_result, tmp_path):
        """Test interactive charts are written."""
        compare = tmp_path / "compare.html"
        plot_multi_growth(
            [two_people_result, linear_result],
            labels=["ring of 50", "linear"],
            show_growth=True,
            output_path=compare,
        )
        hist = tmp_path / "hist.html"
        plot_reach_distribution([3, 5, 5, 8], output_path=hist)

        assert compare.exists()
        assert hist.exists()


class TestCLI:
    """Test the command-line interface."""

    def test_presets(self):
        """Test listing presets."""
        result = runner.invoke(app, ["presets"])
        assert result.exit_code == 0
        assert "two_people" in result.output

    def test_run_and_plot(self, tmp_path):
        """Test a preset run writes its outputs and can be re-plotted."""
        out = tmp_path / "run"
        result = runner.invoke(
            app, ["run", "--preset", "two_people", "--output-dir", str(out)]
        )
        assert result.exit_code == 0, result.output
        for name in ["params.json", "result.json", "growth.png", "ring.png"]:
            assert (out / name).exists()

        with open(out / "result.json") as f:
            stored = json.load(f)
        assert stored["people_reached"] == 8
        assert SimulationParameters.load(out / "params.json") == SimulationParameters.two_people()

        (out / "growth.png").unlink()
        result = runner.invoke(app, ["plot", "--run-id", str(out)])
        assert result.exit_code == 0, result.output
        assert (out / "growth.png").exists()

    def test_run_overrides(self, tmp_path):
        """Test overriding preset values from the command line."""
        out = tmp_path / "run"
        result = runner.invoke(
            app,
            [
                "run",
                "--preset", "two_people",
                "--max-years", "1",
                "--no-track-ancestors",
                "--output-dir", str(out),
            ],
        )
        assert result.exit_code == 0, result.output
        params = SimulationParameters.load(out / "params.json")
        assert params.max_years == 1
        assert not params.track_ancestors
        assert not (out / "ring.png").exists()

    def test_run_invalid_params(self, tmp_path):
        """Test configuration errors exit with code 2."""
        result = runner.invoke(
            app, ["run", "--total-population", "0", "--output-dir", str(tmp_path / "bad")]
        )
        assert result.exit_code == 2
        assert not (tmp_path / "bad").exists()

        result = runner.invoke(
            app, ["run", "--preset", "nope", "--output-dir", str(tmp_path / "bad")]
        )
        assert result.exit_code == 2

    def test_plot_missing_run(self, tmp_path):
        """Test plotting a run that does not exist."""
        result = runner.invoke(app, ["plot", "--run-id", str(tmp_path / "missing")])
        assert result.exit_code == 1

    def test_sweep(self, tmp_path):
        """Test a seed sweep writes aggregate metrics."""
        out = tmp_path / "sweep"
        result = runner.invoke(
            app,
            ["sweep", "--preset", "within_ratio_demo", "--runs", "3", "--output-dir", str(out)],
        )
        assert result.exit_code == 0, result.output

        with open(out / "aggregate_metrics.json") as f:
            aggregate = json.load(f)
        assert aggregate["num_runs"] == 3
        assert (out / "reach_distribution.html").exists()

    def test_sweep_seed_out_of_range(self, tmp_path):
        """Test a sweep whose last seed overflows exits before running."""
        out = tmp_path / "sweep"
        result = runner.invoke(
            app,
            [
                "sweep",
                "--preset", "two_people",
                "--runs", "2",
                "--first-seed", str(2**32 - 1),
                "--output-dir", str(out),
            ],
        )
        assert result.exit_code == 2
        assert not out.exists()
