#!/usr/bin/env python3
"""
Closed-loop demonstration of the kinematic MPC on an oval track.

Every cycle this script:
1. Picks the waypoints near the vehicle and moves them into the vehicle frame
2. Fits the degree-3 reference polynomial and computes cte/epsi
3. Solves the MPC and queues the returned command
4. Advances the simulated vehicle with the command issued one cycle earlier,
   which is the actuation delay the controller compensates for
"""

import argparse
import logging
import os
import sys

import numpy as np
import matplotlib.pyplot as plt

# Add parent directory to path to import modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kinematic_mpc import MPC, MPCConfig
from examples.paths import create_oval_track, densify_waypoints
from examples.utils import local_problem

logger = logging.getLogger("closed_loop_demo")


def global_step(pose, command, dt, lf):
    """Advance [X, Y, psi, v] in the global frame with [delta, a]."""
    X, Y, psi, v = pose
    delta, a = command
    return np.array([
        X + v * np.cos(psi) * dt,
        Y + v * np.sin(psi) * dt,
        psi + v / lf * delta * dt,
        v + a * dt,
    ])


def run(n_steps, config):
    track = densify_waypoints(create_oval_track(), spacing=4.0, closed=True)
    controller = MPC(config)

    pose = np.array([track[0, 0], track[0, 1] + 1.5, 0.05, 0.8 * config.ref_v])
    pending = np.zeros(2)  # command issued last cycle, applied this cycle
    warm_start = None

    history = {'pose': [pose.copy()], 'steering': [], 'acceleration': [], 'cte': [], 'success': []}

    for step in range(n_steps):
        state, coeffs = local_problem(track, *pose, n_behind=2, n_ahead=12, closed=True)
        output = controller.solve(state, coeffs, initial_guess=warm_start)
        warm_start = controller.layout.shift(output.solver_result.x) if output.success else None

        pose = global_step(pose, pending, config.dt, config.lf)
        pending = np.array([output.steering, output.acceleration])

        history['pose'].append(pose.copy())
        history['steering'].append(output.steering)
        history['acceleration'].append(output.acceleration)
        history['cte'].append(state[4])
        history['success'].append(output.success)

        if step % 20 == 0:
            logger.info("step %3d: X=%.1f Y=%.1f psi=%.2f v=%.2f cte=%.3f delta=%.3f a=%.2f (%s, %.1f ms)",
                        step, *pose, state[4], output.steering, output.acceleration,
                        output.status.value, 1e3 * output.solver_result.solve_time)

    return track, {key: np.array(value) for key, value in history.items()}


def plot(track, history):
    poses = history['pose']

    plt.figure(figsize=(14, 8))

    plt.subplot(2, 2, (1, 3))
    plt.plot(track[:, 0], track[:, 1], 'b-', linewidth=2, label='Reference')
    plt.plot(poses[:, 0], poses[:, 1], 'r--', linewidth=2, label='Vehicle')
    plt.plot(poses[0, 0], poses[0, 1], 'go', markersize=10, label='Start')
    plt.xlabel('X [m]')
    plt.ylabel('Y [m]')
    plt.title('Closed-loop tracking')
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.axis('equal')

    plt.subplot(2, 2, 2)
    plt.plot(history['steering'], 'b-', label='Steering δ [rad]')
    plt.plot(history['acceleration'], 'r-', label='Acceleration a')
    plt.xlabel('Cycle')
    plt.title('Commands')
    plt.legend()
    plt.grid(True, alpha=0.3)

    plt.subplot(2, 2, 4)
    plt.plot(history['cte'], 'g-', label='Cross-track error [m]')
    plt.plot(poses[:, 3], 'm-', label='Speed [m/s]')
    plt.xlabel('Cycle')
    plt.legend()
    plt.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.show()


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument('--steps', type=int, default=400, help='Number of control cycles')
    parser.add_argument('--ref-v', type=float, default=10.0, help='Reference speed [m/s]')
    parser.add_argument('--no-plot', action='store_true', help='Skip the matplotlib figure')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')

    config = MPCConfig(ref_v=args.ref_v)
    track, history = run(args.steps, config)

    failures = int(np.sum(~history['success']))
    logger.info("Finished %d cycles, %d non-success solves, max |cte| %.3f m",
                args.steps, failures, np.max(np.abs(history['cte'])))

    if not args.no_plot:
        plot(track, history)


if __name__ == "__main__":
    main()
