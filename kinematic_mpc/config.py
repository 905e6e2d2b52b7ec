"""
Immutable controller configuration.
"""

import dataclasses
import math
import numbers
from dataclasses import dataclass, field
from typing import Dict, Optional

from .exceptions import ConfigurationError

# Smallest ratio between the steering-smoothness weight and every other cost
# weight that still suppresses oscillating steering commands.
MIN_STEERING_RATE_RATIO = 100.0


@dataclass(frozen=True)
class CostWeights:
    """
    Weights of the quadratic cost terms.

    Tracking terms apply to every timestep, effort terms to every control
    sample and rate terms to every pair of consecutive control samples.
    """
    cte: float = 1.0
    epsi: float = 1.0
    velocity: float = 1.0
    steering: float = 1.0
    acceleration: float = 1.0
    steering_rate: float = 500.0   # tuned in simulation, keeps steering from oscillating
    acceleration_rate: float = 1.0

    def as_dict(self) -> Dict[str, float]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class MPCConfig:
    """
    Parameters shared read-only by every solve of one controller.

    Args:
        horizon: Number of predicted timesteps N
        dt: Discretization step [s]
        ref_v: Reference speed the cost pulls towards
        lf: Distance from the front axle to the centre of gravity [m]. Tuned
            until the simulated turning radius matched the vehicle at constant
            steering and speed.
        max_steering: Symmetric steering bound [rad] (default 25 degrees)
        min_acceleration: Lower bound of the normalized throttle/brake command
        max_acceleration: Upper bound of the normalized throttle/brake command
        state_bound: Magnitude used as "no bound" for state variables
        latency_steps: Control sample returned as the command. The command
            issued now is applied one dt later, so sample 1 is used by default.
        time_budget: CPU and wall-clock limit handed to IPOPT [s]
        max_iterations: IPOPT iteration limit
        tolerance: IPOPT convergence tolerance (None keeps the IPOPT default)
        weights: Cost weights
    """
    horizon: int = 10
    dt: float = 0.1
    ref_v: float = 30.0
    lf: float = 2.67
    max_steering: float = 0.436332
    min_acceleration: float = -1.0
    max_acceleration: float = 1.0
    state_bound: float = 1.0e19
    latency_steps: int = 1
    time_budget: float = 0.5
    max_iterations: int = 3000
    tolerance: Optional[float] = None
    weights: CostWeights = field(default_factory=CostWeights)

    def __post_init__(self):
        if isinstance(self.weights, dict):
            # frozen: bypass __setattr__ for the dict -> CostWeights coercion
            object.__setattr__(self, 'weights', CostWeights(**self.weights))
        for name in ('horizon', 'latency_steps', 'max_iterations'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
            object.__setattr__(self, name, int(value))
        self._validate()

    def _validate(self):
        if self.horizon < 2:
            raise ConfigurationError(f"horizon must be >= 2, got {self.horizon}")
        if self.latency_steps < 0 or self.latency_steps > self.horizon - 2:
            raise ConfigurationError(
                f"latency_steps must lie in [0, {self.horizon - 2}] for horizon {self.horizon}, "
                f"got {self.latency_steps}")

        for name in ('dt', 'lf', 'max_steering', 'state_bound', 'time_budget'):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be positive and finite, got {value}")
        if not math.isfinite(self.ref_v):
            raise ConfigurationError(f"ref_v must be finite, got {self.ref_v}")
        if not self.min_acceleration < self.max_acceleration:
            raise ConfigurationError(
                f"min_acceleration ({self.min_acceleration}) must be below "
                f"max_acceleration ({self.max_acceleration})")
        if self.max_iterations < 1:
            raise ConfigurationError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.tolerance is not None and self.tolerance <= 0:
            raise ConfigurationError(f"tolerance must be positive, got {self.tolerance}")

        weights = self.weights.as_dict()
        if any(w < 0 or not math.isfinite(w) for w in weights.values()):
            raise ConfigurationError(f"cost weights must be finite and non-negative: {weights}")
        others = max(w for name, w in weights.items() if name != 'steering_rate')
        if self.weights.steering_rate < MIN_STEERING_RATE_RATIO * others:
            raise ConfigurationError(
                f"steering_rate weight {self.weights.steering_rate} must be at least "
                f"{MIN_STEERING_RATE_RATIO:g}x the largest other weight ({others})")

    @classmethod
    def from_dict(cls, params: Dict) -> 'MPCConfig':
        """
        Build a configuration from a plain dictionary.

        Args:
            params: Field values; ``weights`` may itself be a dictionary

        Returns:
            MPCConfig with defaults for every missing field
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(params) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**params)

    def replace(self, **overrides) -> 'MPCConfig':
        """Return a copy with some fields changed."""
        return dataclasses.replace(self, **overrides)

    def solver_options(self) -> Dict:
        """Options for ``casadi.nlpsol`` with the IPOPT plugin."""
        options = {
            'print_time': False,
            'error_on_fail': False,
            'ipopt.print_level': 0,
            'ipopt.sb': 'yes',
            'ipopt.max_iter': int(self.max_iterations),
            'ipopt.max_cpu_time': float(self.time_budget),
            'ipopt.max_wall_time': float(self.time_budget),
        }
        if self.tolerance is not None:
            options['ipopt.tol'] = float(self.tolerance)
        return options
