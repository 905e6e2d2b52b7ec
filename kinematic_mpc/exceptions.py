"""
Exceptions raised by the MPC core.
"""


class MPCError(Exception):
    """Base class for all controller errors."""


class ConfigurationError(MPCError, ValueError):
    """Raised when an MPCConfig is constructed with inconsistent parameters."""


class InvalidInputError(MPCError, ValueError):
    """Raised when the vehicle state or path coefficients cannot be solved for."""


class SolverDivergenceError(MPCError):
    """
    The NLP solver terminated without reaching a successful status.

    Never raised by the solve itself; ``ControlOutput.raise_for_status()``
    raises it for callers that prefer exceptions over status checks.

    Args:
        result: SolverResult holding the status and the best iterate
    """

    def __init__(self, result, message: str = None):
        self.result = result
        if message is None:
            message = f"MPC solve did not succeed: {result.return_status} ({result.status.value})"
        super().__init__(message)


class TimeBudgetExceededError(SolverDivergenceError):
    """The solver hit its configured CPU/wall-clock time limit."""
