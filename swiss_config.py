"""
Configuration for the Swiss stage engine.

Tournament shape constants, the pairing policy used by the opponent
estimators, the optional Monte Carlo cross-check toggle and the random
source factory.
"""

import logging
import os
import random
from dataclasses import dataclass
from typing import Optional

# Tournament shape
NUM_TEAMS = 16
MAX_ROUNDS = 5
WINS_TO_QUALIFY = 3
LOSSES_TO_ELIMINATE = 3
MATCHES_PER_ROUND = NUM_TEAMS // 2
FINISHED_ROUND = MAX_ROUNDS + 1

TBD = "TBD"

BO1 = "Bo1"
BO3 = "Bo3"

# Pairing policy
SAME_REGION_DISCOUNT = 0.3
ADJACENT_GROUP_WEIGHT = 0.5
# Cross-group weights: 0.5 times 1/n, or a flat 0.1 split over n
ADJACENT_GROUP_WEIGHT_CANDIDATES = (0.5, 0.1)

DEFAULT_VALIDATION_SIMULATIONS = 1000

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class PairingPolicy:
    """Weights applied to candidate opponents by the closed-form estimator."""

    same_region_discount: float = SAME_REGION_DISCOUNT
    adjacent_group_weight: float = ADJACENT_GROUP_WEIGHT

    def __post_init__(self):
        for name in ("same_region_discount", "adjacent_group_weight"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{name} must be in (0, 1], got {value}")


DEFAULT_POLICY = PairingPolicy()


@dataclass(frozen=True)
class MonteCarloValidation:
    """Toggle for the secondary Monte Carlo cross-check of closed-form results."""

    enabled: bool = False
    simulations: int = DEFAULT_VALIDATION_SIMULATIONS

    @classmethod
    def from_env(cls, environ=None) -> "MonteCarloValidation":
        environ = os.environ if environ is None else environ
        enabled = environ.get("MONTE_CARLO_VALIDATION_ENABLED", "").strip().lower() in _TRUE_VALUES
        raw = environ.get("MONTE_CARLO_VALIDATION_SIMULATIONS")
        try:
            simulations = int(raw) if raw else DEFAULT_VALIDATION_SIMULATIONS
        except ValueError:
            raise ValueError(f"MONTE_CARLO_VALIDATION_SIMULATIONS must be an integer, got {raw!r}")
        if simulations < 1:
            raise ValueError("MONTE_CARLO_VALIDATION_SIMULATIONS must be at least 1")
        return cls(enabled=enabled, simulations=simulations)


def make_rng(seed: Optional[int] = None) -> random.Random:
    """Create a random source. Pass a seed for reproducible draws."""
    return random.Random(seed)


def configure_logging(level=logging.INFO):
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
