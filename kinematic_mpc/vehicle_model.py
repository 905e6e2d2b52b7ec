import math
from typing import NamedTuple, Callable, Sequence, Tuple

import numpy as np
import casadi as ca


class NumericBackend(NamedTuple):
    """
    Elementary functions used by the model equations.

    Arithmetic goes through the ordinary Python operators, so the same
    equations evaluate plain floats (NUMPY) or casadi symbols (CASADI) whose
    derivatives IPOPT needs.
    """
    name: str
    sin: Callable
    cos: Callable
    atan: Callable


NUMPY = NumericBackend('numpy', np.sin, np.cos, np.arctan)
CASADI = NumericBackend('casadi', ca.sin, ca.cos, ca.atan)


class VehicleState(NamedTuple):
    """Vehicle state in the local frame, with tracking errors against the path."""
    x: float
    y: float
    psi: float
    v: float
    cte: float
    epsi: float


class PathPolynomial(NamedTuple):
    """
    Degree-3 reference path ``y = c0 + c1*x + c2*x**2 + c3*x**3`` in the vehicle frame.
    """
    c0: float
    c1: float
    c2: float
    c3: float

    def __call__(self, x):
        return polyeval(self, x)

    def derivative(self, x):
        return polyeval_derivative(self, x)

    def heading(self, x, backend: NumericBackend = NUMPY):
        """Reference heading at x, i.e. atan(dy/dx)."""
        return backend.atan(polyeval_derivative(self, x))


def polyeval(coeffs, x):
    """Evaluate the cubic with lowest-order coefficient first."""
    return coeffs[0] + coeffs[1] * x + coeffs[2] * x * x + coeffs[3] * x * x * x


def polyeval_derivative(coeffs, x):
    return coeffs[1] + 2 * coeffs[2] * x + 3 * coeffs[3] * x * x


def predict(state: Sequence, controls: Sequence, coeffs: Sequence,
            dt: float, lf: float, backend: NumericBackend = NUMPY) -> Tuple:
    """
    Advance the kinematic bicycle model and its tracking errors by one step.

    The tracking errors are recomputed against the reference polynomial at
    the previous position rather than integrated.

    Args:
        state: (x, y, psi, v, cte, epsi) at t-1
        controls: (delta, a) applied over [t-1, t)
        coeffs: Reference polynomial coefficients, lowest order first
        dt: Time step
        lf: Front axle to centre of gravity distance
        backend: Elementary functions for the value type in use

    Returns:
        (x, y, psi, v, cte, epsi) at t
    """
    x0, y0, psi0, v0, cte0, epsi0 = state
    delta0, a0 = controls

    f0 = polyeval(coeffs, x0)
    psides0 = backend.atan(polyeval_derivative(coeffs, x0))

    return (
        x0 + v0 * backend.cos(psi0) * dt,
        y0 + v0 * backend.sin(psi0) * dt,
        psi0 + v0 / lf * delta0 * dt,
        v0 + a0 * dt,
        (f0 - y0) + v0 * backend.sin(epsi0) * dt,
        (psi0 - psides0) + v0 * delta0 / lf * dt,
    )


class VehicleModel:
    """
    Discrete kinematic bicycle model with path tracking errors.

    State: [x, y, psi, v, cte, epsi], input: [delta, a].

    Args:
        lf: Distance relating yaw rate to steering angle and speed [m]
        dt: Discretization step [s]
    """

    def __init__(self, lf: float = 2.67, dt: float = 0.1):
        self.lf = lf
        self.dt = dt

        self.n_states = 6
        self.n_inputs = 2

    @classmethod
    def from_config(cls, config) -> 'VehicleModel':
        return cls(lf=config.lf, dt=config.dt)

    def predict(self, state, controls, coeffs, backend: NumericBackend = NUMPY) -> Tuple:
        return predict(state, controls, coeffs, self.dt, self.lf, backend)

    def simulate_step(self, state: np.ndarray, input: np.ndarray, coeffs: Sequence) -> np.ndarray:
        """
        Simulate one step of the model with plain floats.

        Args:
            state: Current state [x, y, psi, v, cte, epsi]
            input: Control input [delta, a]
            coeffs: Reference polynomial coefficients

        Returns:
            Next state
        """
        return np.array(self.predict(np.asarray(state, dtype=float), input, coeffs), dtype=float)

    def simulate(self, initial_state: Sequence, controls: Sequence, coeffs: Sequence) -> np.ndarray:
        """
        Roll the model forward over a control sequence.

        Args:
            initial_state: State at t=0
            controls: (M, 2) array of [delta, a]
            coeffs: Reference polynomial coefficients

        Returns:
            (M+1, 6) array of states, starting with initial_state
        """
        controls = np.asarray(controls, dtype=float).reshape(-1, self.n_inputs)
        states = np.empty((len(controls) + 1, self.n_states))
        states[0] = np.asarray(initial_state, dtype=float)
        for t, u in enumerate(controls):
            states[t + 1] = self.simulate_step(states[t], u, coeffs)
        return states

    def get_discrete_dynamics(self) -> ca.Function:
        """
        Symbolic one-step dynamics.

        Returns:
            CasADi function (state[6], input[2], coeffs[4]) -> next state[6]
        """
        state = ca.SX.sym('state', self.n_states)
        u = ca.SX.sym('u', self.n_inputs)
        coeffs = ca.SX.sym('coeffs', 4)

        state_next = ca.vertcat(*self.predict(
            [state[i] for i in range(self.n_states)],
            [u[0], u[1]],
            coeffs,
            backend=CASADI))

        return ca.Function('discrete_dynamics', [state, u, coeffs], [state_next])

    def turning_radius(self, delta: float) -> float:
        """Steady-state turning radius for a constant steering angle."""
        if delta == 0:
            return math.inf
        return self.lf / abs(delta)
