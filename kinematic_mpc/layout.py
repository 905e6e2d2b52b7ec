"""
Index arithmetic for the flat decision and constraint vectors.

The decision vector holds six state trajectories of length N followed by two
control trajectories of length N-1:

    [x_0..x_{N-1}, y_.., psi_.., v_.., cte_.., epsi_.., delta_0..delta_{N-2}, a_0..a_{N-2}]

The constraint vector mirrors the state part of that layout.
"""

from typing import Sequence, Tuple

import numpy as np

STATE_NAMES = ('x', 'y', 'psi', 'v', 'cte', 'epsi')
CONTROL_NAMES = ('delta', 'a')


class DecisionLayout:
    """
    Offsets of every named trajectory inside the decision vector.

    Args:
        horizon: Number of predicted timesteps N
    """

    n_states = len(STATE_NAMES)
    n_controls = len(CONTROL_NAMES)

    def __init__(self, horizon: int):
        if horizon < 2:
            raise ValueError(f"horizon must be >= 2, got {horizon}")
        self.horizon = horizon
        self.n_steps = horizon - 1  # zero-order hold: one control less than states

        self.x_start = 0
        self.y_start = self.x_start + horizon
        self.psi_start = self.y_start + horizon
        self.v_start = self.psi_start + horizon
        self.cte_start = self.v_start + horizon
        self.epsi_start = self.cte_start + horizon
        self.delta_start = self.epsi_start + horizon
        self.a_start = self.delta_start + self.n_steps

        self.n_vars = self.n_states * horizon + self.n_controls * self.n_steps
        self.n_constraints = self.n_states * horizon

        self._lengths = {name: horizon for name in STATE_NAMES}
        self._lengths.update({name: self.n_steps for name in CONTROL_NAMES})

    def __repr__(self):
        return f"DecisionLayout(horizon={self.horizon}, n_vars={self.n_vars})"

    def start(self, name: str) -> int:
        """Offset of the first sample of the named trajectory."""
        if name not in self._lengths:
            raise KeyError(f"Unknown variable {name!r}; expected one of {STATE_NAMES + CONTROL_NAMES}")
        return getattr(self, f"{name}_start")

    def slice(self, name: str) -> slice:
        start = self.start(name)
        return slice(start, start + self._lengths[name])

    @property
    def state_starts(self) -> Tuple[int, ...]:
        return tuple(self.start(name) for name in STATE_NAMES)

    @property
    def control_starts(self) -> Tuple[int, ...]:
        return tuple(self.start(name) for name in CONTROL_NAMES)

    def state_index(self, name: str, t: int) -> int:
        self._check_step(t, self.horizon)
        return self.start(name) + t

    def control_index(self, name: str, t: int) -> int:
        self._check_step(t, self.n_steps)
        return self.start(name) + t

    def state_at(self, vector, t: int) -> Tuple:
        """Return (x, y, psi, v, cte, epsi) at timestep t."""
        self._check_step(t, self.horizon)
        return tuple(vector[start + t] for start in self.state_starts)

    def control_at(self, vector, t: int) -> Tuple:
        """Return (delta, a) at control sample t."""
        self._check_step(t, self.n_steps)
        return tuple(vector[start + t] for start in self.control_starts)

    def segment(self, vector, name: str) -> np.ndarray:
        """Whole trajectory of one named variable as a float array."""
        return np.asarray(vector, dtype=float)[self.slice(name)]

    def unpack(self, vector) -> Tuple[np.ndarray, np.ndarray]:
        """
        Split a numeric decision vector into trajectories.

        Returns:
            (states, controls) of shape (N, 6) and (N-1, 2)
        """
        vector = np.asarray(vector, dtype=float).reshape(-1)
        if vector.size != self.n_vars:
            raise ValueError(f"Decision vector must have {self.n_vars} entries, got {vector.size}")
        states = np.column_stack([vector[self.slice(name)] for name in STATE_NAMES])
        controls = np.column_stack([vector[self.slice(name)] for name in CONTROL_NAMES])
        return states, controls

    def pack(self, states: Sequence, controls: Sequence) -> np.ndarray:
        """Inverse of :meth:`unpack`."""
        states = np.asarray(states, dtype=float)
        controls = np.asarray(controls, dtype=float)
        if states.shape != (self.horizon, self.n_states):
            raise ValueError(f"states must have shape {(self.horizon, self.n_states)}, got {states.shape}")
        if controls.shape != (self.n_steps, self.n_controls):
            raise ValueError(f"controls must have shape {(self.n_steps, self.n_controls)}, got {controls.shape}")

        vector = np.empty(self.n_vars)
        for i, name in enumerate(STATE_NAMES):
            vector[self.slice(name)] = states[:, i]
        for i, name in enumerate(CONTROL_NAMES):
            vector[self.slice(name)] = controls[:, i]
        return vector

    def shift(self, vector, steps: int = 1) -> np.ndarray:
        """
        Advance a solution by whole timesteps for use as the next warm start.

        Every trajectory drops its first ``steps`` samples and repeats its
        last sample to keep the length.

        Args:
            vector: Decision vector of a previous solve
            steps: Number of timesteps to advance

        Returns:
            New decision vector
        """
        if steps < 0:
            raise ValueError(f"steps must be >= 0, got {steps}")
        states, controls = self.unpack(vector)
        return self.pack(self._advance(states, steps), self._advance(controls, steps))

    @staticmethod
    def _advance(trajectory: np.ndarray, steps: int) -> np.ndarray:
        steps = min(steps, len(trajectory) - 1)
        return np.concatenate([trajectory[steps:], np.repeat(trajectory[-1:], steps, axis=0)])

    @staticmethod
    def _check_step(t: int, limit: int):
        if not 0 <= t < limit:
            raise IndexError(f"step {t} outside [0, {limit})")
