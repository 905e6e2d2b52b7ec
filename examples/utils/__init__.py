"""
Helpers that stand in for the perception/localization side of the loop.
"""

from .waypoint_utils import (
    get_local_waypoints,
    to_vehicle_frame,
    fit_polynomial,
    tracking_errors,
    local_problem
)

__all__ = [
    'get_local_waypoints',
    'to_vehicle_frame',
    'fit_polynomial',
    'tracking_errors',
    'local_problem'
]
