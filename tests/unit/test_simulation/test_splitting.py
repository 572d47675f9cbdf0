"""
Unit tests for the operator-splitting driver.
"""

import pytest

import numpy as np

from env_transport.geometry.boundary import PeriodicBC
from env_transport.operators.advection import AdvectionOperator
from env_transport.simulation.splitting import SplittingSimulator
from env_transport.utils.exceptions import ConfigurationError, IntegrationError


def linear_decay(t, u):
    return -0.5 * u


class TestReactionOnly:
    """With zero wind the splitting reduces to the reaction solution."""

    @pytest.mark.unit
    @pytest.mark.parametrize("scheme", ["strang", "lie"])
    def test_zero_velocity_matches_exponential_decay(self, smooth_field, scheme):
        op = AdvectionOperator("l94", bc=PeriodicBC(), dt=0.25)
        sim = SplittingSimulator(
            op, {0: 0.0}, {0: 1.0}, reaction=linear_decay, interval=0.5, scheme=scheme, rtol=1e-10, atol=1e-12
        )

        result = sim.run(smooth_field, 0.0, 2.0)
        np.testing.assert_allclose(result, smooth_field * np.exp(-1.0), rtol=1e-7)

    @pytest.mark.unit
    def test_emission_source(self):
        """Constant emission into one cell with zero wind grows linearly."""
        op = AdvectionOperator("upwind1", dt=1.0)

        def emission(t, u):
            rate = np.zeros_like(u)
            rate[2] = 3.0
            return rate

        sim = SplittingSimulator(op, {0: 0.0}, {0: 1.0}, reaction=emission, interval=1.0)
        result = sim.run(np.zeros(5), 0.0, 4.0)
        np.testing.assert_allclose(result, [0.0, 0.0, 12.0, 0.0, 0.0], atol=1e-10)


class TestAdvectionOnly:
    @pytest.mark.unit
    def test_no_reaction_equals_repeated_steps(self, smooth_field):
        op = AdvectionOperator("ppm", bc=PeriodicBC(), dt=0.25)
        sim = SplittingSimulator(op, {0: 1.0}, {0: 1.0}, interval=0.5, integrator="ssprk22")

        result = sim.run(smooth_field, 0.0, 1.0)
        expected = smooth_field
        for k in range(4):
            expected = op.step(expected, {0: 1.0}, {0: 1.0}, t=0.25 * k, integrator="ssprk22")
        np.testing.assert_allclose(result, expected, rtol=1e-12)

    @pytest.mark.unit
    def test_mass_conserved_periodic(self, smooth_field):
        op = AdvectionOperator("l94", bc=PeriodicBC(), dt=0.4)
        sim = SplittingSimulator(op, {0: 0.9}, {0: 1.0}, interval=1.0)

        result = sim.run(smooth_field, 0.0, 5.0)
        np.testing.assert_allclose(result.sum(), smooth_field.sum(), rtol=1e-12)


class TestRun:
    @pytest.mark.unit
    def test_callback_times_with_short_last_interval(self, smooth_field):
        op = AdvectionOperator("upwind1", bc=PeriodicBC(), dt=0.5)
        sim = SplittingSimulator(op, {0: 0.1}, {0: 1.0}, interval=1.0)
        times = []

        sim.run(smooth_field, 0.0, 2.5, callback=lambda t, u: times.append(t))
        assert times == pytest.approx([1.0, 2.0, 2.5])

    @pytest.mark.unit
    def test_input_not_modified(self, smooth_field):
        original = smooth_field.copy()
        op = AdvectionOperator("upwind1", bc=PeriodicBC(), dt=0.5)
        SplittingSimulator(op, {0: 1.0}, {0: 1.0}, interval=1.0).run(smooth_field, 0.0, 1.0)
        np.testing.assert_array_equal(smooth_field, original)

    @pytest.mark.unit
    def test_zero_length_run(self, smooth_field):
        op = AdvectionOperator("upwind1", dt=0.5)
        result = SplittingSimulator(op, {0: 1.0}, {0: 1.0}).run(smooth_field, 3.0, 3.0)
        np.testing.assert_array_equal(result, smooth_field)

    @pytest.mark.unit
    def test_end_before_start(self, smooth_field):
        op = AdvectionOperator("upwind1", dt=0.5)
        with pytest.raises(ConfigurationError):
            SplittingSimulator(op, {0: 1.0}, {0: 1.0}).run(smooth_field, 1.0, 0.0)

    @pytest.mark.unit
    def test_godunov_alias(self):
        op = AdvectionOperator("upwind1", dt=0.5)
        assert SplittingSimulator(op, {0: 1.0}, {0: 1.0}, scheme="godunov").scheme == "lie"

    @pytest.mark.unit
    def test_unknown_scheme(self):
        op = AdvectionOperator("upwind1", dt=0.5)
        with pytest.raises(ConfigurationError):
            SplittingSimulator(op, {0: 1.0}, {0: 1.0}, scheme="yoshida")


class TestFailures:
    @pytest.mark.unit
    def test_unstable_advection_raises(self):
        """Courant number far above one blows up into non-finite values."""
        op = AdvectionOperator("upwind2", bc=PeriodicBC(), dt=1.0)
        sim = SplittingSimulator(op, {0: 1.0e3}, {0: 1.0}, interval=1.0, integrator="euler")
        field = np.where(np.arange(20) % 2 == 0, 1.0, 0.0)

        with pytest.raises(IntegrationError, match="advection"):
            sim.run(field, 0.0, 200.0)

    @pytest.mark.unit
    def test_reaction_failure_raises(self, smooth_field):
        op = AdvectionOperator("upwind1", bc=PeriodicBC(), dt=0.5)

        def blow_up(t, u):
            return u**3 * 1.0e6

        sim = SplittingSimulator(op, {0: 0.0}, {0: 1.0}, reaction=blow_up, interval=1.0, reaction_method="RK45")
        with pytest.raises(IntegrationError, match="reaction"):
            sim.run(smooth_field, 0.0, 1.0)
