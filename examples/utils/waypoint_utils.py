import numpy as np


def get_local_waypoints(global_waypoints, current_position, n_behind=2, n_ahead=12, closed=False):
    """
    Select the waypoints around the vehicle used for the polynomial fit.

    Args:
        global_waypoints: Array of global waypoints [N, 2]
        current_position: Current vehicle position [x, y]
        n_behind: Waypoints kept behind the closest one
        n_ahead: Waypoints kept ahead of the closest one
        closed: Wrap around the end of a looped track

    Returns:
        Array of waypoints around the current position, in driving order
    """
    global_waypoints = np.asarray(global_waypoints, dtype=float)
    dists = np.linalg.norm(global_waypoints - np.asarray(current_position, dtype=float), axis=1)
    closest_idx = int(np.argmin(dists))

    if closed:
        indices = np.arange(closest_idx - n_behind, closest_idx + n_ahead + 1) % len(global_waypoints)
        return global_waypoints[indices]

    start_idx = max(closest_idx - n_behind, 0)
    end_idx = min(closest_idx + n_ahead + 1, len(global_waypoints))
    return global_waypoints[start_idx:end_idx]


def to_vehicle_frame(waypoints, x, y, psi):
    """
    Express global waypoints in the vehicle frame (x forward, y left).

    Args:
        waypoints: (N, 2) array of global [x, y]
        x, y, psi: Vehicle pose in the global frame

    Returns:
        (N, 2) array of local [x, y]
    """
    shifted = np.asarray(waypoints, dtype=float) - np.array([x, y])
    cos_psi, sin_psi = np.cos(psi), np.sin(psi)
    local_x = shifted[:, 0] * cos_psi + shifted[:, 1] * sin_psi
    local_y = -shifted[:, 0] * sin_psi + shifted[:, 1] * cos_psi
    return np.column_stack([local_x, local_y])


def fit_polynomial(local_waypoints, order=3):
    """
    Least-squares polynomial through local waypoints.

    Returns:
        Coefficients lowest order first, as the controller expects
    """
    local_waypoints = np.asarray(local_waypoints, dtype=float)
    if len(local_waypoints) <= order:
        raise ValueError(f"Need more than {order} waypoints for an order {order} fit, got {len(local_waypoints)}")
    # np.polyfit returns highest order first
    return np.polyfit(local_waypoints[:, 0], local_waypoints[:, 1], order)[::-1]


def tracking_errors(coeffs):
    """
    Cross-track and heading error of a vehicle at the local origin facing +x.

    Returns:
        (cte, epsi)
    """
    cte = coeffs[0]
    epsi = -np.arctan(coeffs[1])
    return cte, epsi


def local_problem(global_waypoints, x, y, psi, v, **window):
    """
    Build the controller inputs for a vehicle at a global pose.

    Args:
        global_waypoints: Reference path in the global frame
        x, y, psi, v: Vehicle pose and speed
        **window: Forwarded to get_local_waypoints

    Returns:
        (state, coeffs) in the vehicle frame
    """
    nearby = get_local_waypoints(global_waypoints, [x, y], **window)
    coeffs = fit_polynomial(to_vehicle_frame(nearby, x, y, psi))
    cte, epsi = tracking_errors(coeffs)
    state = np.array([0.0, 0.0, 0.0, v, cte, epsi])
    return state, coeffs
