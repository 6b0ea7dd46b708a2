"""Year-stepped diffusion over a lazily materialized network."""

import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Tuple

from loguru import logger

from ripple_network.config import SimulationParameters
from ripple_network.network import NetworkModel
from ripple_network.rounding import RandomSource, make_rng, probabilistic_round


EndReason = Literal["everyone_reached", "network_saturation", "max_time"]
ProgressCallback = Callable[[int, int], None]

DEFAULT_PROGRESS_INTERVAL = 0.1  # seconds of wall time between checkpoints

_RESULT_ALIASES = {
    "people_reached": "peopleReached",
    "population_included": "populationIncluded",
    "yearly_state": "yearlyState",
    "end_reason": "endReason",
    "total_population": "totalPopulation",
    "start_id": "startId",
}
_YEAR_ALIASES = {
    "cumulative_influenced": "cumulativeInfluenced",
    "ancestor_edges": "ancestorEdges",
}


@dataclass(frozen=True)
class YearlyState:
    """Reach at the end of one simulated year."""

    cumulative_influenced: int
    ancestor_edges: Optional[Tuple[Tuple[int, int], ...]] = None  # (influencer, influenced)


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of one diffusion run."""

    years: int
    people_reached: int  # excludes the start node
    population_included: float
    yearly_state: Tuple[YearlyState, ...]
    end_reason: EndReason
    total_population: int
    start_id: int

    def to_dict(self, by_alias: bool = False) -> dict:
        """Convert to a JSON-compatible dictionary."""
        data = asdict(self)
        data["yearly_state"] = [
            {
                "cumulative_influenced": s.cumulative_influenced,
                "ancestor_edges": (
                    [list(edge) for edge in s.ancestor_edges]
                    if s.ancestor_edges is not None
                    else None
                ),
            }
            for s in self.yearly_state
        ]
        if by_alias:
            data["yearly_state"] = [
                {_YEAR_ALIASES[k]: v for k, v in s.items()} for s in data["yearly_state"]
            ]
            data = {_RESULT_ALIASES.get(k, k): v for k, v in data.items()}
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SimulationResult":
        """Rebuild a result from ``to_dict`` output (either key style)."""
        names = {alias: name for name, alias in _RESULT_ALIASES.items()}
        year_names = {alias: name for name, alias in _YEAR_ALIASES.items()}
        fields = {names.get(k, k): v for k, v in data.items()}

        yearly = []
        for raw in fields["yearly_state"]:
            entry = {year_names.get(k, k): v for k, v in raw.items()}
            edges = entry.get("ancestor_edges")
            yearly.append(
                YearlyState(
                    cumulative_influenced=int(entry["cumulative_influenced"]),
                    ancestor_edges=(
                        tuple((int(a), int(b)) for a, b in edges) if edges is not None else None
                    ),
                )
            )
        fields["yearly_state"] = tuple(yearly)
        return cls(**fields)


class ProgressTimer:
    """Fires once per elapsed interval of wall time."""

    def __init__(self, interval: float = DEFAULT_PROGRESS_INTERVAL):
        self.interval = interval
        self._start = time.perf_counter()

    def __call__(self) -> bool:
        now = time.perf_counter()
        if now - self._start >= self.interval:
            self._start = now
            return True
        return False


class DiffusionEngine:
    """
    Spreads influence through a NetworkModel one year at a time.

    Each year every active node, in random order, influences up to
    ``influence_per_year`` of its not-yet-influenced neighbors. A node that
    had more available neighbors than it could use stays active for the
    next year; one that used them all up is retired and its adjacency is
    evicted from the network cache.

    An engine runs exactly once.
    """

    def __init__(
        self,
        params: "SimulationParameters | Mapping[str, Any]",
        on_progress: Optional[ProgressCallback] = None,
        rng: Optional[RandomSource] = None,
        network: Optional[NetworkModel] = None,
        progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
    ):
        """
        Initialize diffusion engine.

        Args:
            params: Simulation parameters (re-validated here)
            on_progress: Called with (year, influenced count) at checkpoints
            rng: Random source shared with the network (default: seeded from params)
            network: Network to spread over (default: built from params)
            progress_interval: Seconds of wall time between progress checkpoints
        """
        self.params = params = SimulationParameters.coerce(params)
        self.on_progress = on_progress
        self.rng = rng if rng is not None else make_rng(params.seed)
        self.network = network if network is not None else NetworkModel(
            params.total_population,
            params.avg_connections,
            params.within_ratio,
            rng=self.rng,
        )
        self.progress_interval = progress_interval
        self._used = False

    def _checkpoint(self, year: int, reached: int) -> None:
        # Let host threads run before reporting
        time.sleep(0)
        if self.on_progress is not None:
            self.on_progress(year, reached)

    def run(self) -> SimulationResult:
        """
        Run the simulation to completion.

        Returns:
            SimulationResult for this run

        Raises:
            RuntimeError: If the engine has already been run
        """
        if self._used:
            raise RuntimeError("DiffusionEngine instances are single-use")
        self._used = True

        params = self.params
        N = params.total_population
        m = params.influence_per_year
        rng = self.rng
        network = self.network
        tick = ProgressTimer(self.progress_interval)

        start_id = int(rng.randint(0, N))
        influenced = {start_id}
        active = [start_id]
        year = 0
        yearly_state: List[YearlyState] = []
        end_reason: EndReason = "everyone_reached"

        logger.info(
            f"Starting diffusion: N={N}, avg_connections={params.avg_connections}, "
            f"within_ratio={params.within_ratio}, influence_per_year={m}, "
            f"start_id={start_id}"
        )

        while active and len(influenced) < N:
            year += 1
            next_active: Dict[int, None] = {}
            ancestors: Optional[List[Tuple[int, int]]] = (
                [] if params.track_ancestors else None
            )
            exhausted = True

            order = list(active)
            rng.shuffle(order)

            for influencer in order:
                if len(influenced) >= N:
                    break

                if tick():
                    self._checkpoint(year, len(influenced))

                connections = network.neighbors_of(influencer)
                available = [c for c in connections if c not in influenced]
                if available and m > 0:
                    exhausted = False

                # Strictly more than capacity means it can keep going next year
                if len(available) > m:
                    rng.shuffle(available)
                    next_active[influencer] = None
                else:
                    network.evict(influencer)

                to_influence = probabilistic_round(min(m, len(available)), rng)
                for person in available[:to_influence]:
                    influenced.add(person)
                    next_active[person] = None
                    if ancestors is not None:
                        ancestors.append((influencer, person))

            if exhausted:
                end_reason = "network_saturation"
                logger.debug(f"Year {year}: no active node has anyone left to reach")
                break

            yearly_state.append(
                YearlyState(
                    cumulative_influenced=len(influenced),
                    ancestor_edges=tuple(ancestors) if ancestors is not None else None,
                )
            )
            logger.debug(
                f"Year {year}: influenced={len(influenced)}, active={len(next_active)}, "
                f"cached={network.cached_count}"
            )
            if self.on_progress is not None:
                self.on_progress(year, len(influenced))

            active = list(next_active)
            if year >= params.max_years:
                end_reason = "max_time"
                break

        result = SimulationResult(
            years=len(yearly_state),
            people_reached=len(influenced) - 1,
            population_included=len(influenced) / N,
            yearly_state=tuple(yearly_state),
            end_reason=end_reason,
            total_population=N,
            start_id=start_id,
        )

        logger.info(
            f"Diffusion ended ({end_reason}) after {result.years} years: "
            f"reached {result.people_reached} people "
            f"({result.population_included:.2%} of population)"
        )
        return result


def run_simulation(
    params: "SimulationParameters | Mapping[str, Any]",
    on_progress: Optional[ProgressCallback] = None,
    rng: Optional[RandomSource] = None,
) -> SimulationResult:
    """
    Validate parameters and run one diffusion simulation.

    Args:
        params: SimulationParameters or a mapping of them (either key style)
        on_progress: Called with (year, influenced count) during the run
        rng: Random source override (default: seeded from params.seed)

    Returns:
        SimulationResult

    Raises:
        ConfigurationError: If params are invalid; raised before any work
    """
    return DiffusionEngine(params, on_progress=on_progress, rng=rng).run()
