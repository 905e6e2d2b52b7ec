"""
Objective and constraint functions of the MPC nonlinear program.

Both functions are written once against a NumericBackend so they can be
checked with floats and handed to IPOPT as casadi expressions.
"""

from typing import Dict, List, Tuple

import numpy as np
import casadi as ca

from .config import MPCConfig
from .layout import DecisionLayout
from .vehicle_model import NumericBackend, NUMPY, CASADI, predict


class CostConstraintEvaluator:
    """
    Computes the cost and equality-constraint residuals of a decision vector.

    Args:
        config: Controller configuration
    """

    def __init__(self, config: MPCConfig):
        self.config = config
        self.layout = DecisionLayout(config.horizon)

    def cost(self, vars, coeffs, backend: NumericBackend = NUMPY):
        """
        Sum of tracking, effort and smoothness terms.

        Args:
            vars: Decision vector (floats or casadi symbols)
            coeffs: Reference polynomial coefficients
            backend: Elementary functions matching the value type of vars

        Returns:
            Scalar cost of the same value type as vars
        """
        lay = self.layout
        w = self.config.weights
        ref_v = self.config.ref_v
        N = lay.horizon

        cost = 0
        # reference state: zero tracking errors at the reference speed
        for t in range(N):
            cost += w.cte * vars[lay.cte_start + t] ** 2
            cost += w.epsi * vars[lay.epsi_start + t] ** 2
            cost += w.velocity * (vars[lay.v_start + t] - ref_v) ** 2

        # actuator effort
        for t in range(N - 1):
            cost += w.steering * vars[lay.delta_start + t] ** 2
            cost += w.acceleration * vars[lay.a_start + t] ** 2

        # change between sequential actuations
        for t in range(N - 2):
            cost += w.steering_rate * (vars[lay.delta_start + t + 1] - vars[lay.delta_start + t]) ** 2
            cost += w.acceleration_rate * (vars[lay.a_start + t + 1] - vars[lay.a_start + t]) ** 2

        return cost

    def constraints(self, vars, coeffs, backend: NumericBackend = NUMPY) -> List:
        """
        Equality-constraint residuals, one per state variable per timestep.

        Entries at t=0 repeat the initial state so it can be pinned through
        equal lower and upper bounds; entries at t>0 are the model defects.

        Returns:
            List of length 6N ordered like the state part of the decision vector
        """
        lay = self.layout
        N = lay.horizon
        g = [None] * lay.n_constraints

        for start in lay.state_starts:
            g[start] = vars[start]

        for t in range(1, N):
            current = lay.state_at(vars, t)
            predicted = predict(lay.state_at(vars, t - 1), lay.control_at(vars, t - 1), coeffs,
                                self.config.dt, self.config.lf, backend)
            for start, value, model in zip(lay.state_starts, current, predicted):
                g[start + t] = value - model

        return g

    def evaluate(self, vars, coeffs) -> Tuple[float, np.ndarray]:
        """Numeric cost and residuals of a concrete decision vector."""
        vars = np.asarray(vars, dtype=float).reshape(-1)
        if vars.size != self.layout.n_vars:
            raise ValueError(f"Decision vector must have {self.layout.n_vars} entries, got {vars.size}")
        coeffs = np.asarray(coeffs, dtype=float)
        return float(self.cost(vars, coeffs)), np.array(self.constraints(vars, coeffs), dtype=float)

    def build_nlp(self) -> Dict[str, ca.SX]:
        """
        Symbolic NLP for ``casadi.nlpsol``.

        The polynomial coefficients are the NLP parameter so the solver is
        built once and reused every cycle.

        Returns:
            Dictionary with keys 'x', 'p', 'f', 'g'
        """
        w = ca.SX.sym('w', self.layout.n_vars)
        coeffs = ca.SX.sym('coeffs', 4)

        f = self.cost(w, coeffs, CASADI)
        g = ca.vertcat(*self.constraints(w, coeffs, CASADI))

        return {'x': w, 'p': coeffs, 'f': f, 'g': g}
