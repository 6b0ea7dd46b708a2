"""Metrics collection and analysis."""

import numpy as np
import networkx as nx
from collections import Counter
from typing import List, Dict, Optional, Tuple
from dataclasses import dataclass, asdict
from loguru import logger

from ripple_network.config import SimulationParameters
from ripple_network.engine import SimulationResult


@dataclass
class InitiatorStats:
    """Direct reach of the start node."""

    total_influenced: int
    last_active_year: int  # 0 if it never influenced anyone

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)


def cumulative_counts(result: SimulationResult) -> List[int]:
    """Cumulative influenced count at the end of each year."""
    return [s.cumulative_influenced for s in result.yearly_state]


def new_per_year(result: SimulationResult) -> List[int]:
    """
    Size of each year's wave of newly influenced people.

    The first year is measured against the start node alone.
    """
    waves = []
    previous = 1
    for count in cumulative_counts(result):
        waves.append(count - previous)
        previous = count
    return waves


def growth_rates(result: SimulationResult) -> List[float]:
    """
    Ratio of each wave to the one before it.

    Years following an empty wave are skipped.
    """
    waves = new_per_year(result)
    return [waves[t + 1] / waves[t] for t in range(len(waves) - 1) if waves[t] > 0]


def years_to_fraction(result: SimulationResult, fraction: float) -> Optional[int]:
    """First year (1-based) by which ``fraction`` of the population was reached."""
    if not 0.0 <= fraction <= 1.0:
        raise ValueError(f"fraction must be in [0, 1], got {fraction}")
    threshold = fraction * result.total_population
    for year, count in enumerate(cumulative_counts(result), start=1):
        if count >= threshold:
            return year
    return None


def initiator_stats(result: SimulationResult) -> InitiatorStats:
    """
    Count the people the start node influenced directly.

    Needs a run with ancestor tracking; years without edges count as zero.
    """
    total = 0
    last_year = 0
    for year, state in enumerate(result.yearly_state, start=1):
        direct = sum(1 for influencer, _ in state.ancestor_edges or () if influencer == result.start_id)
        if direct:
            total += direct
            last_year = year
    return InitiatorStats(total_influenced=total, last_active_year=last_year)


def build_influence_tree(result: SimulationResult) -> nx.DiGraph:
    """
    Build the who-influenced-whom tree from ancestor edges.

    Every node carries a ``year`` attribute: 0 for the start node, otherwise
    the year it was reached.

    Args:
        result: Result of a run with ``track_ancestors`` enabled

    Returns:
        Directed tree rooted at ``result.start_id``
    """
    tree = nx.DiGraph()
    tree.add_node(result.start_id, year=0)
    for year, state in enumerate(result.yearly_state, start=1):
        if state.ancestor_edges is None:
            logger.warning(f"Year {year} has no ancestor edges; was track_ancestors off?")
            continue
        for influencer, influenced in state.ancestor_edges:
            tree.add_node(influenced, year=year)
            tree.add_edge(influencer, influenced)
    return tree


def describe_end_reason(
    result: SimulationResult, params: Optional[SimulationParameters] = None
) -> Tuple[str, str]:
    """
    Human-readable headline and explanation for why a run stopped.

    Returns:
        (headline, explanation)
    """
    if result.end_reason == "everyone_reached":
        return (
            "Everyone Reached",
            "The influence rippled through the entire network. "
            "Every single person was reached.",
        )
    if result.end_reason == "network_saturation":
        explanation = (
            "All reachable connections have been influenced. The people reached "
            "have no remaining un-influenced friends to spread to."
        )
        if params is not None:
            explanation += (
                f" Communities are tightly connected internally "
                f"({params.within_ratio * 100:.0f}% of relationships), with only about "
                f"{(1 - params.within_ratio) * 100:.0f}% acting as bridges between groups."
            )
        return "Network Saturation", explanation
    return (
        "Time Limit Reached",
        "The simulation reached its maximum duration while the ripple was still "
        "spreading. Increase max_years to see how much further it could go.",
    )


class MetricsCollector:
    """Collects and aggregates metrics from many runs."""

    def __init__(self, total_population: int):
        """
        Initialize metrics collector.

        Args:
            total_population: Population size shared by all runs
        """
        self.total_population = total_population
        self.runs: List[SimulationResult] = []

    def add_run(self, result: SimulationResult) -> None:
        """Add the result of a single run."""
        if result.total_population != self.total_population:
            raise ValueError(
                f"Run has population {result.total_population}, "
                f"collector expects {self.total_population}"
            )
        self.runs.append(result)

    def compute_aggregate_metrics(self) -> Dict:
        """
        Compute aggregate metrics across all runs.

        Returns:
            Dictionary of aggregate metrics
        """
        if not self.runs:
            return {}

        reached = np.array([r.people_reached for r in self.runs])
        fractions = np.array([r.population_included for r in self.runs])
        years = np.array([r.years for r in self.runs])
        reasons = Counter(r.end_reason for r in self.runs)

        aggregate = {
            "num_runs": len(self.runs),
            "mean_people_reached": float(np.mean(reached)),
            "median_people_reached": float(np.median(reached)),
            "std_people_reached": float(np.std(reached)),
            "min_people_reached": int(reached.min()),
            "max_people_reached": int(reached.max()),
            "mean_population_included": float(np.mean(fractions)),
            "mean_years": float(np.mean(years)),
            "max_years": int(years.max()),
            "end_reason_rates": {
                reason: count / len(self.runs) for reason, count in sorted(reasons.items())
            },
        }

        return aggregate
