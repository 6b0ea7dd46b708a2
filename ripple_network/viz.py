"""Visualization utilities."""

import matplotlib.pyplot as plt
import networkx as nx
import plotly.graph_objects as go
from typing import List, Optional, Sequence
from pathlib import Path
from loguru import logger

from ripple_network.engine import SimulationResult
from ripple_network.metrics import build_influence_tree, cumulative_counts, new_per_year


# Ring diagrams stop being readable past this many nodes
MAX_RING_POPULATION = 500


def _save_or_show(output_path: Optional[Path], what: str) -> None:
    plt.tight_layout()
    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(output_path, dpi=150, bbox_inches="tight")
        logger.info(f"Saved {what} to {output_path}")
    else:
        plt.show()
    plt.close()


def plot_growth(
    result: SimulationResult,
    title: str = "Influence Growth",
    output_path: Optional[Path] = None,
) -> None:
    """
    Plot cumulative reach and yearly wave sizes.

    Args:
        result: Simulation result
        title: Plot title
        output_path: Path to save figure
    """
    years = list(range(1, result.years + 1))
    cumulative = cumulative_counts(result)
    waves = new_per_year(result)

    fig, axes = plt.subplots(1, 2, figsize=(12, 4.5))

    axes[0].plot(years, cumulative, "g-", linewidth=2, label="Cumulative")
    axes[0].set_xlabel("Year")
    axes[0].set_ylabel("People Influenced")
    axes[0].set_title("Cumulative Reach")
    axes[0].grid(True, alpha=0.3)
    axes[0].legend()

    axes[1].bar(years, waves, color="tab:blue", alpha=0.8, label="New this year")
    axes[1].set_xlabel("Year")
    axes[1].set_ylabel("Newly Influenced")
    axes[1].set_title("Yearly Wave")
    axes[1].grid(True, alpha=0.3)
    axes[1].legend()

    fig.suptitle(
        f"{title} ({result.end_reason}, {result.population_included:.1%} reached)",
        fontsize=14,
        fontweight="bold",
    )
    _save_or_show(output_path, "growth plot")


def plot_ring(
    result: SimulationResult,
    title: str = "Influence Around the Ring",
    output_path: Optional[Path] = None,
) -> None:
    """
    Draw the population as a ring with influence edges coloured by year.

    Only meaningful for small populations and runs with ancestor tracking.

    Args:
        result: Simulation result with ancestor edges
        title: Plot title
        output_path: Path to save figure
    """
    N = result.total_population
    if N > MAX_RING_POPULATION:
        raise ValueError(
            f"Ring plot supports at most {MAX_RING_POPULATION} nodes, got {N}"
        )

    tree = build_influence_tree(result)
    ring = nx.cycle_graph(N)
    pos = nx.circular_layout(ring)

    fig, ax = plt.subplots(figsize=(7, 7))
    nx.draw_networkx_nodes(ring, pos, node_size=30, node_color="lightgray", ax=ax)

    cmap = plt.get_cmap("viridis")
    max_year = max(result.years, 1)
    reached = [n for n in tree.nodes if n != result.start_id]
    nx.draw_networkx_nodes(
        tree,
        pos,
        nodelist=reached,
        node_size=45,
        node_color=[tree.nodes[n]["year"] for n in reached],
        cmap=cmap,
        vmin=0,
        vmax=max_year,
        ax=ax,
    )
    nx.draw_networkx_nodes(
        tree, pos, nodelist=[result.start_id], node_size=90, node_color="red", ax=ax
    )
    nx.draw_networkx_edges(
        tree,
        pos,
        edge_color=[tree.nodes[v]["year"] for _, v in tree.edges],
        edge_cmap=cmap,
        edge_vmin=0,
        edge_vmax=max_year,
        arrows=False,
        ax=ax,
    )

    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.set_axis_off()
    _save_or_show(output_path, "ring plot")


def plot_multi_growth(
    results: Sequence[SimulationResult],
    labels: Optional[List[str]] = None,
    show_growth: bool = False,
    title: str = "Growth Comparison",
    output_path: Optional[Path] = None,
) -> None:
    """
    Compare several runs on one interactive chart.

    Args:
        results: Results to compare
        labels: Series labels (default: "Run i")
        show_growth: Plot yearly wave sizes instead of cumulative counts
        title: Plot title
        output_path: Path to save (HTML)
    """
    if labels is None:
        labels = [f"Run {i + 1}" for i in range(len(results))]

    fig = go.Figure()
    for label, result in zip(labels, results):
        values = new_per_year(result) if show_growth else cumulative_counts(result)
        fig.add_trace(
            go.Scatter(
                x=list(range(1, len(values) + 1)),
                y=values,
                mode="lines+markers",
                name=label,
                hovertemplate=f"year=%{{x}}<br>people=%{{y}}<extra>{label}</extra>",
            )
        )

    fig.update_layout(
        title=title,
        xaxis_title="Year",
        yaxis_title="New People per Year" if show_growth else "People Influenced",
        height=550,
        width=900,
        hovermode="x unified",
    )

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.write_html(str(output_path))
        logger.info(f"Saved comparison plot to {output_path}")
    else:
        fig.show()


def plot_reach_distribution(
    people_reached: List[int],
    title: str = "Distribution of People Reached",
    output_path: Optional[Path] = None,
) -> None:
    """
    Plot distribution of reach across runs.

    Args:
        people_reached: People reached in each run
        title: Plot title
        output_path: Path to save (HTML)
    """
    fig = go.Figure(
        data=[
            go.Histogram(
                x=people_reached,
                nbinsx=max(10, len(set(people_reached))),
                name="People Reached",
            )
        ]
    )

    fig.update_layout(
        title=title,
        xaxis_title="People Reached",
        yaxis_title="Frequency",
        height=500,
        width=800,
    )

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.write_html(str(output_path))
        logger.info(f"Saved distribution plot to {output_path}")
    else:
        fig.show()
