"""
Reference paths for exercising the MPC controller in closed loop.
"""

from .path_generators import (
    create_test_path,
    create_straight_line_path,
    create_oval_track,
    densify_waypoints
)

__all__ = [
    'create_test_path',
    'create_straight_line_path',
    'create_oval_track',
    'densify_waypoints'
]
