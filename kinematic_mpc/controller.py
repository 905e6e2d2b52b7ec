import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .config import MPCConfig
from .exceptions import InvalidInputError, SolverDivergenceError, TimeBudgetExceededError
from .layout import DecisionLayout, STATE_NAMES
from .solver import NLPSolver, SolverResult, SolverStatus
from .vehicle_model import VehicleModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ControlOutput:
    """
    Actuation selected by one solve, with the prediction behind it.

    Attributes:
        steering: Steering command [rad], within the configured bound
        acceleration: Normalized throttle/brake command, within its bound
        x_points: Predicted x positions for every timestep of the horizon
        y_points: Predicted y positions for every timestep of the horizon
        states: (N, 6) optimized state trajectory
        controls: (N-1, 2) optimized [delta, a] sequence
        solver_result: Raw solver outcome
    """
    steering: float
    acceleration: float
    x_points: np.ndarray
    y_points: np.ndarray
    states: np.ndarray
    controls: np.ndarray
    solver_result: SolverResult

    @property
    def status(self) -> SolverStatus:
        return self.solver_result.status

    @property
    def success(self) -> bool:
        return self.solver_result.success

    @property
    def cost(self) -> float:
        return self.solver_result.cost

    @property
    def predicted_trajectory(self) -> np.ndarray:
        """(N, 2) array of predicted [x, y] points."""
        return np.column_stack([self.x_points, self.y_points])

    def raise_for_status(self) -> 'ControlOutput':
        """
        Raise if the solve did not succeed, otherwise return self.

        Raises:
            TimeBudgetExceededError: the solver ran out of time
            SolverDivergenceError: any other non-success outcome
        """
        if self.success:
            return self
        if self.status is SolverStatus.TIME_LIMIT:
            raise TimeBudgetExceededError(self.solver_result)
        raise SolverDivergenceError(self.solver_result)


class MPC:
    """
    Model predictive controller for polynomial path tracking.

    Each call to :meth:`solve` is independent: the controller keeps only its
    configuration and the prebuilt solver, so it may be reused every cycle.

    Args:
        config: Controller configuration (defaults to MPCConfig())
    """

    def __init__(self, config: Optional[MPCConfig] = None):
        self.config = config if config is not None else MPCConfig()
        self.layout = DecisionLayout(self.config.horizon)
        self.vehicle_model = VehicleModel.from_config(self.config)
        self.solver = NLPSolver(self.config)

    def solve(self, state: Sequence[float], coeffs: Sequence[float],
              initial_guess: Optional[Sequence[float]] = None) -> ControlOutput:
        """
        Compute the actuation for the current cycle.

        Args:
            state: [x, y, psi, v, cte, epsi] in the vehicle frame
            coeffs: Degree-3 path polynomial coefficients, lowest order first
            initial_guess: Optional warm start, e.g. the previous cycle's
                ``solver_result.x``

        Returns:
            ControlOutput; check ``success`` before trusting the command

        Raises:
            InvalidInputError: state, coeffs or initial_guess of wrong length
                or non-finite
        """
        state = self._validate(state, len(STATE_NAMES), 'state')
        coeffs = self._validate(coeffs, 4, 'coeffs')
        if initial_guess is not None:
            initial_guess = self._validate(initial_guess, self.layout.n_vars, 'initial_guess')

        result = self.solver.solve(state, coeffs, initial_guess)
        logger.debug("Cost %.6g (%s, %d iterations, %.1f ms)",
                     result.cost, result.return_status, result.iterations, 1e3 * result.solve_time)
        if not result.success:
            logger.warning("MPC solve returned %s (%s) after %d iterations",
                           result.status.value, result.return_status, result.iterations)

        return self._extract(result)

    def _extract(self, result: SolverResult) -> ControlOutput:
        cfg = self.config
        states, controls = self.layout.unpack(result.x)

        # The command reaches the actuators one dt late, so apply the
        # sample planned for that instant instead of the first one.
        delta, a = controls[cfg.latency_steps]

        return ControlOutput(
            steering=float(np.clip(delta, -cfg.max_steering, cfg.max_steering)),
            acceleration=float(np.clip(a, cfg.min_acceleration, cfg.max_acceleration)),
            x_points=states[:, 0].copy(),
            y_points=states[:, 1].copy(),
            states=states,
            controls=controls,
            solver_result=result,
        )

    @staticmethod
    def _validate(values, size: int, name: str) -> np.ndarray:
        try:
            array = np.asarray(values, dtype=float).reshape(-1)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"{name} must be a sequence of {size} numbers: {e}") from e
        if array.size != size:
            raise InvalidInputError(f"{name} must have {size} entries, got {array.size}")
        if not np.all(np.isfinite(array)):
            raise InvalidInputError(f"{name} contains non-finite values: {array}")
        return array
