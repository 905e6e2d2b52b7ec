"""
IPOPT invocation for the MPC nonlinear program.
"""

import enum
import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import casadi as ca

from .config import MPCConfig
from .evaluator import CostConstraintEvaluator
from .layout import STATE_NAMES

logger = logging.getLogger(__name__)


class SolverStatus(enum.Enum):
    SUCCESS = 'success'
    ACCEPTABLE = 'acceptable'
    TIME_LIMIT = 'time_limit'
    MAX_ITERATIONS = 'max_iterations'
    INFEASIBLE = 'infeasible'
    DIVERGED = 'diverged'
    ERROR = 'error'

    @classmethod
    def from_return_status(cls, return_status: str) -> 'SolverStatus':
        """Map an IPOPT return status string onto the status taxonomy."""
        return _IPOPT_STATUS.get(return_status, cls.ERROR)

    @property
    def success(self) -> bool:
        return self in (SolverStatus.SUCCESS, SolverStatus.ACCEPTABLE)


_IPOPT_STATUS = {
    'Solve_Succeeded': SolverStatus.SUCCESS,
    'Solved_To_Acceptable_Level': SolverStatus.ACCEPTABLE,
    'Feasible_Point_Found': SolverStatus.ACCEPTABLE,
    'Maximum_CpuTime_Exceeded': SolverStatus.TIME_LIMIT,
    'Maximum_WallTime_Exceeded': SolverStatus.TIME_LIMIT,
    'Maximum_Iterations_Exceeded': SolverStatus.MAX_ITERATIONS,
    'Infeasible_Problem_Detected': SolverStatus.INFEASIBLE,
    'Diverging_Iterates': SolverStatus.DIVERGED,
    'Search_Direction_Becomes_Too_Small': SolverStatus.DIVERGED,
    'Restoration_Failed': SolverStatus.DIVERGED,
    'User_Requested_Stop': SolverStatus.ERROR,
    'Error_In_Step_Computation': SolverStatus.ERROR,
    'Invalid_Number_Detected': SolverStatus.ERROR,
    'Not_Enough_Degrees_Of_Freedom': SolverStatus.ERROR,
    'Invalid_Problem_Definition': SolverStatus.ERROR,
    'Invalid_Option': SolverStatus.ERROR,
    'Unrecoverable_Exception': SolverStatus.ERROR,
    'Insufficient_Memory': SolverStatus.ERROR,
    'Internal_Error': SolverStatus.ERROR,
}


@dataclass(frozen=True)
class SolverResult:
    """
    Outcome of one NLP solve.

    ``x`` is the last iterate IPOPT produced, also when the solve failed.
    """
    status: SolverStatus
    return_status: str
    cost: float
    x: np.ndarray
    g: np.ndarray
    iterations: int
    solve_time: float

    @property
    def success(self) -> bool:
        return self.status.success

    @property
    def max_constraint_violation(self) -> float:
        """Largest residual magnitude of the model constraints (t >= 1)."""
        defects = np.delete(self.g, self._initial_indices())
        if defects.size == 0:
            return 0.0
        return float(np.max(np.abs(defects)))

    def _initial_indices(self):
        horizon = self.g.size // len(STATE_NAMES)
        return [i * horizon for i in range(len(STATE_NAMES))]


class NLPSolver:
    """
    Builds the casadi/IPOPT solver once and runs it for each new state.

    The NLP is expressed with casadi SX symbols, so IPOPT receives exact
    sparse Jacobians and Hessians of the banded dynamics constraints.

    Args:
        config: Controller configuration
    """

    def __init__(self, config: MPCConfig):
        self.config = config
        self.evaluator = CostConstraintEvaluator(config)
        self.layout = self.evaluator.layout

        self._lbx, self._ubx = self.variable_bounds()
        self._solver = ca.nlpsol('kinematic_mpc', 'ipopt', self.evaluator.build_nlp(),
                                 config.solver_options())

    def variable_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Lower and upper bounds of the decision vector.

        States are effectively free; steering and acceleration are bounded by
        the actuator limits.
        """
        lay = self.layout
        cfg = self.config

        lower = np.full(lay.n_vars, -cfg.state_bound)
        upper = np.full(lay.n_vars, cfg.state_bound)

        lower[lay.slice('delta')] = -cfg.max_steering
        upper[lay.slice('delta')] = cfg.max_steering

        lower[lay.slice('a')] = cfg.min_acceleration
        upper[lay.slice('a')] = cfg.max_acceleration

        return lower, upper

    def constraint_bounds(self, state: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
        """
        Bounds of the constraint vector.

        Every model defect must be zero; the t=0 entries are pinned to the
        current state on both sides, which is how the initial condition
        enters the otherwise free problem.
        """
        lower = np.zeros(self.layout.n_constraints)
        upper = np.zeros(self.layout.n_constraints)
        for start, value in zip(self.layout.state_starts, state):
            lower[start] = value
            upper[start] = value
        return lower, upper

    def initial_guess(self, state: Sequence[float],
                      guess: Optional[Sequence[float]] = None) -> np.ndarray:
        """
        Starting point for IPOPT.

        Args:
            state: Current vehicle state, always written to the t=0 entries
            guess: Optional warm start of length n_vars; zeros otherwise

        Returns:
            Decision vector
        """
        if guess is None:
            x0 = np.zeros(self.layout.n_vars)
        else:
            x0 = np.array(guess, dtype=float).reshape(-1)
            if x0.size != self.layout.n_vars:
                raise ValueError(f"initial guess must have {self.layout.n_vars} entries, got {x0.size}")
        for start, value in zip(self.layout.state_starts, state):
            x0[start] = value
        return x0

    def solve(self, state: Sequence[float], coeffs: Sequence[float],
              initial_guess: Optional[Sequence[float]] = None) -> SolverResult:
        """
        Solve the NLP for one control cycle.

        Args:
            state: Validated vehicle state (6 finite values)
            coeffs: Validated polynomial coefficients (4 finite values)
            initial_guess: Optional warm start

        Returns:
            SolverResult; failures are reported through its status
        """
        x0 = self.initial_guess(state, initial_guess)
        lbg, ubg = self.constraint_bounds(state)

        start = time.perf_counter()
        try:
            sol = self._solver(x0=x0, lbx=self._lbx, ubx=self._ubx,
                               lbg=lbg, ubg=ubg, p=np.asarray(coeffs, dtype=float))
        except RuntimeError as e:
            logger.warning("IPOPT raised during solve: %s", e)
            return SolverResult(
                status=SolverStatus.ERROR,
                return_status=str(e),
                cost=float('nan'),
                x=x0,
                g=np.full(self.layout.n_constraints, np.nan),
                iterations=0,
                solve_time=time.perf_counter() - start,
            )
        elapsed = time.perf_counter() - start

        stats = self._solver.stats()
        return_status = stats.get('return_status', 'Unknown')
        status = SolverStatus.from_return_status(return_status)

        return SolverResult(
            status=status,
            return_status=return_status,
            cost=float(sol['f']),
            x=np.array(sol['x']).flatten(),
            g=np.array(sol['g']).flatten(),
            iterations=int(stats.get('iter_count', 0)),
            solve_time=elapsed,
        )
