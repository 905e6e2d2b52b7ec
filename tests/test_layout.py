import numpy as np
import pytest

from kinematic_mpc.layout import DecisionLayout, STATE_NAMES, CONTROL_NAMES


@pytest.mark.parametrize("horizon", [2, 3, 10, 25])
def test_vector_sizes(horizon):
    layout = DecisionLayout(horizon)
    assert layout.n_vars == 6 * horizon + 2 * (horizon - 1)
    assert layout.n_constraints == 6 * horizon


def test_offsets_for_default_horizon():
    layout = DecisionLayout(10)
    assert layout.state_starts == (0, 10, 20, 30, 40, 50)
    assert layout.delta_start == 60
    assert layout.a_start == 69
    assert layout.slice('a') == slice(69, 78)


@pytest.mark.parametrize("horizon", [2, 7])
def test_segments_partition_the_vector(horizon):
    layout = DecisionLayout(horizon)
    covered = np.zeros(layout.n_vars, dtype=int)
    for name in STATE_NAMES + CONTROL_NAMES:
        covered[layout.slice(name)] += 1
    assert np.all(covered == 1)


def test_typed_accessors_read_the_right_entries():
    layout = DecisionLayout(4)
    vector = np.arange(layout.n_vars, dtype=float)

    assert layout.state_at(vector, 0) == (0, 4, 8, 12, 16, 20)
    assert layout.state_at(vector, 3) == (3, 7, 11, 15, 19, 23)
    assert layout.control_at(vector, 0) == (24, 27)
    assert layout.control_at(vector, 2) == (26, 29)
    np.testing.assert_array_equal(layout.segment(vector, 'psi'), [8, 9, 10, 11])
    assert layout.state_index('v', 2) == 14
    assert layout.control_index('a', 1) == 28


def test_accessors_reject_out_of_range_steps():
    layout = DecisionLayout(4)
    vector = np.zeros(layout.n_vars)
    with pytest.raises(IndexError):
        layout.state_at(vector, 4)
    with pytest.raises(IndexError):
        layout.control_at(vector, 3)
    with pytest.raises(IndexError):
        layout.state_at(vector, -1)


def test_unknown_variable_name():
    with pytest.raises(KeyError):
        DecisionLayout(5).start('omega')


def test_pack_unpack():
    layout = DecisionLayout(5)
    states = np.arange(30, dtype=float).reshape(5, 6)
    controls = -np.arange(8, dtype=float).reshape(4, 2)

    vector = layout.pack(states, controls)
    assert vector[layout.y_start + 2] == states[2, 1]
    assert vector[layout.a_start + 3] == controls[3, 1]

    unpacked_states, unpacked_controls = layout.unpack(vector)
    np.testing.assert_array_equal(unpacked_states, states)
    np.testing.assert_array_equal(unpacked_controls, controls)


def test_unpack_rejects_wrong_length():
    layout = DecisionLayout(5)
    with pytest.raises(ValueError):
        layout.unpack(np.zeros(layout.n_vars + 1))


def test_horizon_too_short():
    with pytest.raises(ValueError):
        DecisionLayout(1)


def test_shift_advances_every_trajectory():
    layout = DecisionLayout(4)
    states = np.arange(24, dtype=float).reshape(4, 6)
    controls = 100 + np.arange(6, dtype=float).reshape(3, 2)
    vector = layout.pack(states, controls)

    shifted_states, shifted_controls = layout.unpack(layout.shift(vector))
    np.testing.assert_array_equal(shifted_states, states[[1, 2, 3, 3]])
    np.testing.assert_array_equal(shifted_controls, controls[[1, 2, 2]])
    np.testing.assert_array_equal(layout.shift(vector, 0), vector)

    # shifting past the horizon holds the last sample everywhere
    far_states, far_controls = layout.unpack(layout.shift(vector, 10))
    np.testing.assert_array_equal(far_states, states[[3, 3, 3, 3]])
    np.testing.assert_array_equal(far_controls, controls[[2, 2, 2]])

    with pytest.raises(ValueError):
        layout.shift(vector, -1)
