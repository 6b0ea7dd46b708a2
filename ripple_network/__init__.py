"""
Ripple Network Simulation Package

A Python package for simulating how an idea spreads year by year through a
large small-world social network (a ring of local communities joined by
random bridges). The network is materialized lazily, so populations in the
millions fit in bounded memory.
"""

__version__ = "0.1.0"

from ripple_network.config import ConfigurationError, SimulationParameters
from ripple_network.network import NetworkModel
from ripple_network.engine import (
    DiffusionEngine,
    SimulationResult,
    YearlyState,
    run_simulation,
)
from ripple_network.metrics import MetricsCollector

__all__ = [
    "ConfigurationError",
    "SimulationParameters",
    "NetworkModel",
    "DiffusionEngine",
    "SimulationResult",
    "YearlyState",
    "run_simulation",
    "MetricsCollector",
]
