"""Configuration management for ripple simulations."""

from typing import Any, Callable, Dict, Mapping, Optional
from pathlib import Path
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from loguru import logger
import json
import math


# Above this size, per-year ancestor edge lists get expensive to hold in memory
ANCESTOR_TRACKING_SOFT_LIMIT = 1_000_000


class ConfigurationError(ValueError):
    """Raised when simulation parameters are malformed."""


class SimulationParameters(BaseModel):
    """Static inputs of a single diffusion run."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    # Network shape
    total_population: int = Field(
        default=1_500_000, ge=1, description="Number of addressable nodes, IDs 0..N-1"
    )
    avg_connections: float = Field(
        default=150.0, ge=0.0, description="Mean relationships per node"
    )
    within_ratio: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Fraction of connections that stay in the local neighborhood",
    )

    # Dynamics
    influence_per_year: float = Field(
        default=2.0, ge=0.0, description="Mean new people one active node reaches per year"
    )
    max_years: int = Field(default=10, ge=1, description="Hard cap on simulated years")

    # Output
    track_ancestors: bool = Field(
        default=False, description="Record who-influenced-whom edges per year"
    )

    # Random seed
    seed: Optional[int] = Field(
        default=None,
        ge=0,
        le=2**32 - 1,
        description="Random seed for reproducibility (None = fresh entropy)",
    )

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid simulation parameters: {e}") from e

    @field_validator("avg_connections", "within_ratio", "influence_per_year")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        """Reject NaN and infinities."""
        if not math.isfinite(v):
            raise ValueError("must be a finite number")
        return v

    @classmethod
    def parse(cls, data: Mapping[str, Any]) -> "SimulationParameters":
        """Validate a mapping (snake_case or camelCase keys) into parameters."""
        try:
            params = cls.model_validate(dict(data))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid simulation parameters: {e}") from e

        if params.track_ancestors and params.total_population > ANCESTOR_TRACKING_SOFT_LIMIT:
            logger.warning(
                f"Ancestor tracking enabled for N={params.total_population}; "
                "edge lists may use a lot of memory"
            )
        return params

    @classmethod
    def coerce(
        cls, params: "SimulationParameters | Mapping[str, Any]"
    ) -> "SimulationParameters":
        """Validate params, re-checking instances built without validation."""
        if isinstance(params, cls):
            return cls.parse(params.to_dict())
        if isinstance(params, Mapping):
            return cls.parse(params)
        raise ConfigurationError(
            f"Expected SimulationParameters or a mapping, got {type(params).__name__}"
        )

    def replace(self, **changes: Any) -> "SimulationParameters":
        """Copy with some fields changed, validating the result."""
        return type(self).parse({**self.to_dict(), **changes})

    def to_dict(self, by_alias: bool = False) -> dict:
        """Convert parameters to dictionary."""
        return self.model_dump(by_alias=by_alias)

    def to_json(self, by_alias: bool = False) -> str:
        """Convert parameters to JSON string."""
        return self.model_dump_json(indent=2, by_alias=by_alias)

    def save(self, path: Path | str) -> None:
        """Save parameters to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            f.write(self.to_json())

    @classmethod
    def load(cls, path: Path | str) -> "SimulationParameters":
        """Load parameters from JSON file."""
        path = Path(path)
        with open(path, "r") as f:
            data = json.load(f)
        return cls.parse(data)

    @classmethod
    def default(cls) -> "SimulationParameters":
        """Create the interactive defaults."""
        return cls()

    @classmethod
    def two_people(cls) -> "SimulationParameters":
        """Small isolated ring: growth is predictable year over year."""
        return cls(
            influence_per_year=2,
            total_population=50,
            avg_connections=8,
            within_ratio=1.0,
            max_years=2,
            track_ancestors=True,
            seed=42,
        )

    @classmethod
    def limited_connections(cls) -> "SimulationParameters":
        """Same ring with only two connections per person."""
        return cls.two_people().replace(avg_connections=2.0)

    @classmethod
    def within_ratio_demo(cls) -> "SimulationParameters":
        """All connections are local; no bridges whatsoever."""
        return cls(
            influence_per_year=2,
            total_population=20,
            avg_connections=3,
            within_ratio=1.0,
            max_years=5,
            track_ancestors=True,
            seed=42,
        )

    @classmethod
    def bridges_demo(cls) -> "SimulationParameters":
        """One percent of connections are long-range bridges."""
        return cls.within_ratio_demo().replace(within_ratio=0.99, seed=63882010)

    @classmethod
    def continue_running(cls) -> "SimulationParameters":
        """The bridges setup on a large population over a decade."""
        return cls.bridges_demo().replace(
            total_population=100_000, avg_connections=20.0, max_years=10
        )


PRESETS: Dict[str, Callable[[], SimulationParameters]] = {
    "default": SimulationParameters.default,
    "two_people": SimulationParameters.two_people,
    "limited_connections": SimulationParameters.limited_connections,
    "within_ratio_demo": SimulationParameters.within_ratio_demo,
    "bridges_demo": SimulationParameters.bridges_demo,
    "continue_running": SimulationParameters.continue_running,
}
