from .config import MPCConfig, CostWeights
from .controller import MPC, ControlOutput
from .evaluator import CostConstraintEvaluator
from .exceptions import (MPCError, ConfigurationError, InvalidInputError,
                         SolverDivergenceError, TimeBudgetExceededError)
from .layout import DecisionLayout, STATE_NAMES, CONTROL_NAMES
from .solver import NLPSolver, SolverResult, SolverStatus
from .vehicle_model import VehicleModel, VehicleState, PathPolynomial, NUMPY, CASADI

__version__ = "0.1.0"

__all__ = ['MPC', 'ControlOutput', 'MPCConfig', 'CostWeights', 'CostConstraintEvaluator',
           'DecisionLayout', 'STATE_NAMES', 'CONTROL_NAMES', 'NLPSolver', 'SolverResult',
           'SolverStatus', 'VehicleModel', 'VehicleState', 'PathPolynomial', 'NUMPY', 'CASADI',
           'MPCError', 'ConfigurationError', 'InvalidInputError', 'SolverDivergenceError',
           'TimeBudgetExceededError']
