import numpy as np
from scipy.interpolate import CubicSpline


def create_test_path():
    """Create an open S-curve test path with waypoints."""
    waypoints = np.array([
        [0, 0],
        [20, 2],
        [40, 6],
        [60, 4],
        [80, -2],
        [100, -4],
        [120, 0],
        [140, 5],
    ], dtype=float)
    return waypoints


def create_straight_line_path(length=200.0, spacing=10.0):
    """Create a straight path along the x axis."""
    x = np.arange(0.0, length + spacing, spacing)
    return np.column_stack([x, np.zeros_like(x)])


def create_oval_track(straight=120.0, radius=40.0, spacing=8.0):
    """
    Create a closed race-track oval: two straights joined by half circles.

    Waypoints run counter-clockwise starting at the beginning of the bottom
    straight. The last waypoint is not a repeat of the first.
    """
    points = []

    # bottom straight
    for x in np.arange(0.0, straight, spacing):
        points.append([x, 0.0])

    # right half circle
    n_arc = max(int(np.pi * radius / spacing), 4)
    for phi in np.linspace(-np.pi / 2, np.pi / 2, n_arc, endpoint=False):
        points.append([straight + radius * np.cos(phi), radius + radius * np.sin(phi)])

    # top straight
    for x in np.arange(straight, 0.0, -spacing):
        points.append([x, 2 * radius])

    # left half circle
    for phi in np.linspace(np.pi / 2, 3 * np.pi / 2, n_arc, endpoint=False):
        points.append([radius * np.cos(phi), radius + radius * np.sin(phi)])

    return np.array(points)


def densify_waypoints(waypoints, spacing=1.0, closed=False):
    """
    Resample sparse waypoints along a chord-length parameterized cubic spline.

    Args:
        waypoints: (N, 2) array of [x, y]
        spacing: Approximate distance between resampled points [m]
        closed: Treat the waypoints as a loop

    Returns:
        (M, 2) array of resampled waypoints
    """
    waypoints = np.asarray(waypoints, dtype=float)
    if waypoints.ndim != 2 or waypoints.shape[1] != 2:
        raise ValueError("Waypoints must be of shape (N, 2) for [x, y] coordinates")

    if closed:
        waypoints = np.vstack([waypoints, waypoints[:1]])

    ds = np.sqrt(np.sum(np.diff(waypoints, axis=0)**2, axis=1))
    u_values = np.concatenate(([0], np.cumsum(ds)))

    bc_type = 'periodic' if closed else 'natural'
    spline_x = CubicSpline(u_values, waypoints[:, 0], bc_type=bc_type)
    spline_y = CubicSpline(u_values, waypoints[:, 1], bc_type=bc_type)

    n_samples = max(int(u_values[-1] / spacing), 2)
    u_fine = np.linspace(0.0, u_values[-1], n_samples, endpoint=not closed)
    return np.column_stack([spline_x(u_fine), spline_y(u_fine)])
