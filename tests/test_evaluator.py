import numpy as np
import casadi as ca
import pytest

from kinematic_mpc import MPCConfig, CostWeights, CostConstraintEvaluator, VehicleModel


@pytest.fixture
def config():
    return MPCConfig(horizon=8, dt=0.1, ref_v=20.0)


@pytest.fixture
def evaluator(config):
    return CostConstraintEvaluator(config)


def consistent_vector(config, evaluator, initial_state, controls, coeffs):
    """Decision vector whose states follow the model exactly."""
    states = VehicleModel.from_config(config).simulate(initial_state, controls, coeffs)
    return evaluator.layout.pack(states, controls)


def test_sizes(config, evaluator):
    cost, g = evaluator.evaluate(np.zeros(evaluator.layout.n_vars), np.zeros(4))
    assert np.isscalar(cost)
    assert g.shape == (6 * config.horizon,)


def test_initial_entries_repeat_the_state(evaluator):
    rng = np.random.default_rng(0)
    vector = rng.normal(size=evaluator.layout.n_vars)
    _, g = evaluator.evaluate(vector, [0.1, 0.2, 0.0, 0.0])
    for start in evaluator.layout.state_starts:
        assert g[start] == vector[start]


def test_model_consistent_vector_has_zero_defects(config, evaluator):
    coeffs = np.array([0.5, 0.05, -0.01, 0.0005])
    controls = np.column_stack([np.linspace(-0.2, 0.2, config.horizon - 1),
                                np.linspace(0.5, -0.5, config.horizon - 1)])
    vector = consistent_vector(config, evaluator, [0, 0, 0.05, 15, 0.5, -0.05], controls, coeffs)

    _, g = evaluator.evaluate(vector, coeffs)
    defects = np.delete(g, evaluator.layout.state_starts)
    np.testing.assert_allclose(defects, 0.0, atol=1e-12)


def test_defect_measures_model_mismatch(config, evaluator):
    coeffs = np.zeros(4)
    controls = np.zeros((config.horizon - 1, 2))
    vector = consistent_vector(config, evaluator, [0, 0, 0, 10, 0, 0], controls, coeffs)
    vector[evaluator.layout.state_index('y', 3)] += 0.25

    _, g = evaluator.evaluate(vector, coeffs)
    assert g[evaluator.layout.y_start + 3] == pytest.approx(0.25)
    # y[3] also feeds the t=4 predictions of y and cte
    assert g[evaluator.layout.y_start + 4] == pytest.approx(-0.25)
    assert g[evaluator.layout.cte_start + 4] == pytest.approx(0.25)


def test_cost_is_zero_at_reference(config, evaluator):
    controls = np.zeros((config.horizon - 1, 2))
    vector = consistent_vector(config, evaluator, [0, 0, 0, config.ref_v, 0, 0], controls, np.zeros(4))
    cost, _ = evaluator.evaluate(vector, np.zeros(4))
    assert cost == pytest.approx(0.0, abs=1e-12)


def test_cost_terms(config, evaluator):
    lay = evaluator.layout
    N = config.horizon
    vector = np.zeros(lay.n_vars)
    vector[lay.v_start:lay.v_start + N] = config.ref_v

    vector[lay.cte_start + 2] = 2.0
    cost, _ = evaluator.evaluate(vector, np.zeros(4))
    assert cost == pytest.approx(4.0)

    vector[lay.cte_start + 2] = 0.0
    vector[lay.a_start + 1] = 1.0
    cost, _ = evaluator.evaluate(vector, np.zeros(4))
    # effort plus two rate terms (a1 - a0, a2 - a1)
    assert cost == pytest.approx(1.0 + 1.0 + 1.0)


def test_steering_change_dominates_cost(config, evaluator):
    lay = evaluator.layout
    vector = np.zeros(lay.n_vars)
    vector[lay.v_start:lay.v_start + config.horizon] = config.ref_v

    steering = vector.copy()
    steering[lay.delta_start + 3] = 0.1
    acceleration = vector.copy()
    acceleration[lay.a_start + 3] = 0.1

    steering_cost, _ = evaluator.evaluate(steering, np.zeros(4))
    acceleration_cost, _ = evaluator.evaluate(acceleration, np.zeros(4))
    assert steering_cost == pytest.approx(0.01 + 500 * 0.02)
    assert steering_cost > 100 * acceleration_cost


def test_velocity_weight_is_applied():
    config = MPCConfig(horizon=4, ref_v=10.0, weights=CostWeights(velocity=3.0))
    evaluator = CostConstraintEvaluator(config)
    cost, _ = evaluator.evaluate(np.zeros(evaluator.layout.n_vars), np.zeros(4))
    assert cost == pytest.approx(4 * 3.0 * 100.0)


def test_symbolic_nlp_matches_numeric(config, evaluator):
    nlp = evaluator.build_nlp()
    assert nlp['x'].shape == (evaluator.layout.n_vars, 1)
    assert nlp['g'].shape == (evaluator.layout.n_constraints, 1)
    assert nlp['p'].shape == (4, 1)

    fg = ca.Function('fg', [nlp['x'], nlp['p']], [nlp['f'], nlp['g']])

    rng = np.random.default_rng(42)
    vector = rng.normal(size=evaluator.layout.n_vars)
    coeffs = np.array([0.3, -0.1, 0.02, -0.001])

    f_sym, g_sym = fg(vector, coeffs)
    cost, g = evaluator.evaluate(vector, coeffs)
    assert float(f_sym) == pytest.approx(cost, rel=1e-12)
    np.testing.assert_allclose(np.array(g_sym).flatten(), g, rtol=1e-12, atol=1e-12)


def test_constraint_jacobian_is_sparse(evaluator):
    nlp = evaluator.build_nlp()
    jacobian = ca.jacobian(nlp['g'], nlp['x'])
    density = jacobian.nnz() / (jacobian.shape[0] * jacobian.shape[1])
    assert density < 0.1


def test_evaluate_rejects_wrong_length(evaluator):
    with pytest.raises(ValueError):
        evaluator.evaluate(np.zeros(3), np.zeros(4))
