"""
Integration tests: multi-step advection runs through the public API.

Covers:
- 2-D periodic transport over a full period (conservation, positivity, scheme ranking)
- Accessor adapters driving the operator
- Semi-discrete system integrated with scipy.integrate.solve_ivp
- YAML config -> factory -> splitting simulator
- Threaded sweeps over many steps
"""

import pytest

import numpy as np
from scipy.integrate import solve_ivp

from env_transport import (
    AdvectionOperator,
    PeriodicBC,
    ZeroGradBC,
    create_simulator,
    load_transport_config,
)
from env_transport.geometry import coordinate_spacing, edge_velocity


def gaussian_2d(n: int = 32, sigma: float = 3.0) -> np.ndarray:
    x = np.arange(n, dtype=float)
    gx = np.exp(-0.5 * ((x - n / 2) / sigma) ** 2)
    return np.outer(gx, gx)


def run_full_period(stencil: str, field: np.ndarray) -> np.ndarray:
    """Advect diagonally with Courant number 0.5 until the field returns to its start."""
    op = AdvectionOperator(stencil, bc=PeriodicBC(), dt=0.5)
    n_steps = 2 * field.shape[0]
    current = field
    for k in range(n_steps):
        current = op.step(current, {0: 1.0, 1: 1.0}, {0: 1.0, 1: 1.0}, t=0.5 * k, integrator="ssprk22")
    return current


class TestPeriodicTransport:
    @pytest.mark.integration
    def test_full_period_conserves_mass_and_positivity(self, stencil_name):
        field = gaussian_2d()
        result = run_full_period(stencil_name, field)

        np.testing.assert_allclose(result.sum(), field.sum(), rtol=1e-12)
        if stencil_name in ("upwind1", "l94", "ppm"):
            assert result.min() >= -1e-12

    @pytest.mark.integration
    def test_higher_order_schemes_less_diffusive(self):
        field = gaussian_2d()
        errors = {
            name: np.linalg.norm(run_full_period(name, field) - field) / np.linalg.norm(field)
            for name in ("upwind1", "l94", "ppm")
        }

        assert errors["l94"] < errors["upwind1"]
        assert errors["ppm"] < errors["upwind1"]

    @pytest.mark.integration
    def test_outflow_through_zero_gradient_boundary(self, pulse_field):
        op = AdvectionOperator("upwind1", bc=ZeroGradBC(), dt=0.5)
        current = pulse_field
        masses = []
        for _ in range(30):
            current = op.step(current, {0: 1.0}, {0: 1.0})
            masses.append(current.sum())

        assert all(b <= a + 1e-12 for a, b in zip(masses, masses[1:]))
        assert masses[-1] < 0.5


class TestAccessorPipeline:
    @pytest.mark.integration
    def test_coordinate_accessors_match_constants(self, rng):
        x = np.arange(16) * 1000.0
        y = np.arange(12) * 1000.0
        field = rng.uniform(0.0, 1.0, size=(16, 12))
        op = AdvectionOperator("ppm", bc=PeriodicBC(), dt=60.0)

        velocities = {
            0: edge_velocity(lambda t, xi, yi: 5.0, [x, y], axis=0),
            1: edge_velocity(lambda t, xi, yi: -3.0, [x, y], axis=1),
        }
        from_accessors = op.derivative(field, velocities, {0: coordinate_spacing(x), 1: coordinate_spacing(y)})
        from_constants = op.derivative(field, {0: 5.0, 1: -3.0}, {0: 1000.0, 1: 1000.0})

        np.testing.assert_allclose(from_accessors, from_constants, rtol=1e-12, atol=1e-15)


class TestSolveIvp:
    @pytest.mark.integration
    def test_semi_discrete_system_conserves_mass(self, smooth_field):
        op = AdvectionOperator("l94", bc=PeriodicBC(), dt=0.1)
        f = op.rhs(smooth_field.shape, {0: 1.0}, {0: 1.0})

        sol = solve_ivp(f, (0.0, 5.0), smooth_field, method="RK45", max_step=0.1)

        assert sol.success
        np.testing.assert_allclose(sol.y[:, -1].sum(), smooth_field.sum(), rtol=1e-10)


class TestConfiguredRun:
    @pytest.mark.integration
    def test_yaml_to_simulation(self, tmp_path, rng):
        path = tmp_path / "run.yaml"
        path.write_text(
            "advection:\n"
            "  stencil: ppm\n"
            "  boundary: periodic\n"
            "  dt: 0.5\n"
            "splitting:\n"
            "  interval: 1.0\n"
            "  scheme: strang\n"
            "  rtol: 1.0e-9\n"
            "  atol: 1.0e-12\n"
        )
        config = load_transport_config(path)
        field = rng.uniform(0.5, 1.5, size=(10, 8))
        decay_rate = 0.1

        sim = create_simulator(
            config,
            {0: 0.6, 1: -0.4},
            {0: 1.0, 1: 1.0},
            reaction=lambda t, u: -decay_rate * u,
        )
        result = sim.run(field, 0.0, 5.0)

        np.testing.assert_allclose(result.sum(), field.sum() * np.exp(-0.5), rtol=1e-6)


class TestThreadedPipeline:
    @pytest.mark.integration
    def test_threaded_run_matches_serial(self, field_3d):
        velocities = {0: 0.3, 1: -0.7, 2: 0.5}
        spacings = {0: 1.0, 1: 1.0, 2: 1.0}
        serial = AdvectionOperator("ppm", bc=PeriodicBC(), dt=0.5)
        threaded = AdvectionOperator("ppm", bc=PeriodicBC(), dt=0.5, num_threads=4)

        a = b = field_3d
        for k in range(10):
            a = serial.step(a, velocities, spacings, t=0.5 * k, integrator="ssprk33")
            b = threaded.step(b, velocities, spacings, t=0.5 * k, integrator="ssprk33")

        np.testing.assert_array_equal(a, b)
