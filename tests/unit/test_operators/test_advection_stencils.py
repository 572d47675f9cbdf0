"""
Unit tests for the 1-D finite-volume advection stencils.

Stencils are evaluated on periodic columns built with np.take so that every
cell sees a full window; the tests check the properties shared by all
flux-form schemes (conservation, zero velocity, direction symmetry) and the
scheme-specific face values.
"""

import pytest

import numpy as np

from env_transport.operators.stencils import (
    available_stencils,
    get_stencil,
    l94_stencil,
    ppm_stencil,
    register_stencil,
    stencil_size,
    upwind1_stencil,
    upwind2_stencil,
    uses_spacing_window,
)
from env_transport.utils.exceptions import StencilError


def periodic_windows(phi, left, right):
    """(left + right + 1, n) windows of a periodic column."""
    n = len(phi)
    offsets = np.arange(-left, right + 1)[:, None]
    return np.take(phi, (np.arange(n)[None, :] + offsets) % n)


def periodic_derivative(stencil, phi, velocity, dt, dz, p=None):
    """dphi/dt of every cell of a periodic column with a uniform edge velocity."""
    left, right = stencil_size(stencil)
    windows = periodic_windows(phi, left, right)
    U = np.full((2, len(phi)), velocity, dtype=float)
    return stencil(windows, U, dt, dz, p)


# =============================================================================
# Registry
# =============================================================================


class TestStencilSize:
    """Window half widths are fixed per stencil."""

    @pytest.mark.unit
    def test_fixed_sizes(self):
        assert stencil_size(upwind1_stencil) == (1, 1)
        assert stencil_size(upwind2_stencil) == (2, 2)
        assert stencil_size(l94_stencil) == (2, 2)
        assert stencil_size(ppm_stencil) == (3, 4)

    @pytest.mark.unit
    def test_unregistered_callable_raises(self):
        def my_stencil(phi, U, dt, dz, p=None):
            return 0.0

        with pytest.raises(StencilError):
            stencil_size(my_stencil)

    @pytest.mark.unit
    def test_get_stencil_by_name(self):
        assert get_stencil("ppm") is ppm_stencil
        assert get_stencil("L94") is l94_stencil
        assert get_stencil("upwind1_stencil") is upwind1_stencil
        assert get_stencil(upwind2_stencil) is upwind2_stencil

    @pytest.mark.unit
    def test_get_stencil_unknown_name(self):
        with pytest.raises(StencilError, match="Unknown stencil"):
            get_stencil("weno5")

    @pytest.mark.unit
    def test_register_stencil(self):
        def centered_stencil(phi, U, dt, dz, p=None):
            phi = np.asarray(phi)
            U = np.asarray(U)
            flux_left = U[0] * 0.5 * (phi[0] + phi[1])
            flux_right = U[1] * 0.5 * (phi[1] + phi[2])
            return -(flux_right - flux_left) / dz

        register_stencil("centered", centered_stencil, (1, 1))
        assert "centered" in available_stencils()
        assert get_stencil("centered") is centered_stencil
        assert stencil_size(centered_stencil) == (1, 1)

    @pytest.mark.unit
    def test_register_stencil_rejects_bad_size(self):
        with pytest.raises(StencilError):
            register_stencil("bad", upwind1_stencil, (0, 1))


# =============================================================================
# Non-uniform spacing
# =============================================================================


class TestSpacingWindow:
    """Edge Courant numbers come from the donor cell when a spacing window is given."""

    @pytest.mark.unit
    @pytest.mark.parametrize("velocity", [0.8, -0.8])
    def test_nonuniform_spacing_conserves_mass(self, stencil_name, rng, velocity):
        stencil = get_stencil(stencil_name)
        left, right = stencil_size(stencil)
        phi = rng.uniform(0.0, 1.0, 20)
        dz = rng.uniform(0.5, 2.0, 20)
        U = np.full((2, 20), velocity)

        dphi = stencil(periodic_windows(phi, left, right), U, 0.2, periodic_windows(dz, left, right))
        assert abs(np.sum(dphi * dz)) < 1e-12

    @pytest.mark.unit
    def test_uniform_window_matches_center_spacing(self, stencil_name, rng):
        stencil = get_stencil(stencil_name)
        left, right = stencil_size(stencil)
        windows = periodic_windows(rng.uniform(0.0, 1.0, 16), left, right)
        U = np.full((2, 16), 0.6)

        np.testing.assert_allclose(
            stencil(windows, U, 0.5, np.full(windows.shape, 0.5)),
            stencil(windows, U, 0.5, 0.5),
            rtol=1e-14,
        )

    @pytest.mark.unit
    def test_negative_spacing_window_equivalence(self, stencil_name, rng):
        stencil = get_stencil(stencil_name)
        left, right = stencil_size(stencil)
        windows = periodic_windows(rng.uniform(0.0, 1.0, 16), left, right)
        dz = periodic_windows(rng.uniform(0.5, 2.0, 16), left, right)
        U = np.full((2, 16), 0.7)

        np.testing.assert_allclose(stencil(windows, U, 0.3, dz), stencil(windows, -U, 0.3, -dz), rtol=1e-13)

    @pytest.mark.unit
    def test_donor_spacing_sets_courant_number(self):
        """L94 face value on a linear profile: only the donor spacing enters."""
        phi = np.array([0.0, 1.0, 2.0, 3.0, 4.0])
        dz = np.array([1.0, 1.0, 2.0, 4.0, 4.0])
        U = np.array([1.0, 1.0])
        # Left edge donor is cell 1 (dz=1, c=0.5): face 1 + 0.25 = 1.25
        # Right edge donor is cell 2 (dz=2, c=0.25): face 2 + 0.375 = 2.375
        expected = -(2.375 - 1.25) / 2.0
        result = l94_stencil(phi, U, 0.5, dz, {"monotonic": False})
        assert float(result) == pytest.approx(expected)

    @pytest.mark.unit
    def test_builtins_take_spacing_windows(self):
        for name in ("upwind1", "upwind2", "l94", "ppm"):
            assert uses_spacing_window(get_stencil(name))

    @pytest.mark.unit
    def test_registered_stencil_defaults_to_center_spacing(self):
        def donor_stencil(phi, U, dt, dz, p=None):
            return upwind1_stencil(phi, U, dt, dz, p)

        register_stencil("donor_center", donor_stencil, (1, 1))
        assert not uses_spacing_window(donor_stencil)

        register_stencil("donor_window", donor_stencil, (1, 1), spacing_window=True)
        assert uses_spacing_window(donor_stencil)


# =============================================================================
# Properties shared by all stencils
# =============================================================================


class TestFluxFormProperties:
    """Conservation, zero velocity and direction symmetry for every stencil."""

    @pytest.mark.unit
    @pytest.mark.parametrize("velocity", [0.7, -0.7])
    def test_mass_conservation_periodic(self, stencil_name, rng, velocity):
        stencil = get_stencil(stencil_name)
        phi = rng.uniform(0.0, 1.0, 32)
        dt, dz = 0.4, 1.0

        dphi = periodic_derivative(stencil, phi, velocity, dt, dz)
        np.testing.assert_allclose(np.sum(phi + dt * dphi), np.sum(phi), rtol=1e-12)

    @pytest.mark.unit
    def test_zero_velocity_gives_zero_derivative(self, stencil_name, rng):
        stencil = get_stencil(stencil_name)
        phi = rng.uniform(0.0, 1.0, 20)

        dphi = periodic_derivative(stencil, phi, 0.0, 0.5, 1.0)
        np.testing.assert_array_equal(dphi, np.zeros(20))

    @pytest.mark.unit
    def test_mirror_symmetry(self, stencil_name, rng):
        """Mirroring the field and reversing the velocity mirrors the derivative."""
        stencil = get_stencil(stencil_name)
        phi = rng.uniform(0.0, 1.0, 24)

        forward = periodic_derivative(stencil, phi, 0.6, 0.5, 1.0)
        mirrored = periodic_derivative(stencil, phi[::-1].copy(), -0.6, 0.5, 1.0)
        np.testing.assert_allclose(mirrored[::-1], forward, atol=1e-14)

    @pytest.mark.unit
    def test_negative_spacing_equivalence(self, stencil_name, rng):
        """advect(phi, U, dt, dz) == advect(phi, -U, dt, -dz)."""
        stencil = get_stencil(stencil_name)
        phi = rng.uniform(0.0, 1.0, 16)

        dphi = periodic_derivative(stencil, phi, 0.3, 0.8, 1.0)
        dphi_negative = periodic_derivative(stencil, phi, -0.3, 0.8, -1.0)
        np.testing.assert_allclose(dphi_negative, dphi, atol=1e-14)

    @pytest.mark.unit
    def test_constant_field_constant_velocity(self, stencil_name):
        stencil = get_stencil(stencil_name)
        phi = np.full(12, 2.5)

        dphi = periodic_derivative(stencil, phi, 0.9, 0.5, 1.0)
        np.testing.assert_allclose(dphi, 0.0, atol=1e-14)

    @pytest.mark.unit
    def test_nan_propagates(self, stencil_name):
        stencil = get_stencil(stencil_name)
        left, right = stencil_size(stencil)
        window = np.ones(left + right + 1)
        window[left] = np.nan

        result = stencil(window, np.array([1.0, 1.0]), 0.1, 1.0)
        assert np.isnan(result)

    @pytest.mark.unit
    def test_scalar_window(self, stencil_name):
        """A single window (no trailing axes) returns a scalar derivative."""
        stencil = get_stencil(stencil_name)
        left, right = stencil_size(stencil)
        window = np.arange(left + right + 1, dtype=float)

        result = stencil(window, [0.5, 0.5], 0.1, 1.0)
        assert np.ndim(result) == 0


# =============================================================================
# Scheme-specific behavior
# =============================================================================


class TestUpwind1:
    @pytest.mark.unit
    def test_positive_velocity(self):
        # F_left = 1 * 1, F_right = 1 * 2
        result = upwind1_stencil([1.0, 2.0, 3.0], [1.0, 1.0], 0.1, 1.0)
        assert result == pytest.approx(-1.0)

    @pytest.mark.unit
    def test_negative_velocity(self):
        # F_left = -1 * 2, F_right = -1 * 3
        result = upwind1_stencil([1.0, 2.0, 3.0], [-1.0, -1.0], 0.1, 1.0)
        assert result == pytest.approx(1.0)

    @pytest.mark.unit
    def test_converging_edges(self):
        # Inflow from both sides: F_left = 1 * 1, F_right = -1 * 3
        result = upwind1_stencil([1.0, 2.0, 3.0], [1.0, -1.0], 0.1, 2.0)
        assert result == pytest.approx(2.0)


class TestUpwind2:
    @pytest.mark.unit
    def test_linear_extrapolation_face(self):
        # Faces: 1.5*1 - 0.5*0 = 1.5 and 1.5*2 - 0.5*1 = 2.5
        result = upwind2_stencil([0.0, 1.0, 2.0, 3.0, 4.0], [1.0, 1.0], 0.1, 1.0)
        assert result == pytest.approx(-1.0)

    @pytest.mark.unit
    def test_negative_velocity_face(self):
        # Faces: 1.5*2 - 0.5*3 = 1.5 and 1.5*3 - 0.5*4 = 2.5
        result = upwind2_stencil([0.0, 1.0, 2.0, 3.0, 4.0], [-1.0, -1.0], 0.1, 1.0)
        assert result == pytest.approx(1.0)


class TestL94:
    @pytest.mark.unit
    def test_linear_profile_unlimited(self):
        """On a linear profile the limiter is inactive and the face is l + 0.5 (1 - c) slope."""
        phi = np.arange(5, dtype=float)
        dt, velocity = 0.5, 1.0
        # slope = 1 in every cell, c = 0.5: faces 1.25 and 2.25
        result = l94_stencil(phi, [velocity, velocity], dt, 1.0)
        assert result == pytest.approx(-1.0)

    @pytest.mark.unit
    def test_limiter_flattens_extremum(self):
        """At a local maximum the limited slope is zero, so the face value is the donor value."""
        phi = np.array([0.0, 0.0, 1.0, 0.0, 0.0])
        result = l94_stencil(phi, [1.0, 1.0], 0.5, 1.0)
        # Left face from cell 1 (flat), right face from cell 2 (extremum): F_right = 1
        assert result == pytest.approx(-1.0)

    @pytest.mark.unit
    def test_unlimited_option(self):
        phi = np.array([0.0, 0.0, 1.0, 0.0, 0.0])
        limited = l94_stencil(phi, [1.0, 1.0], 0.5, 1.0)
        unlimited = l94_stencil(phi, [1.0, 1.0], 0.5, 1.0, {"monotonic": False})
        assert unlimited != pytest.approx(limited)

    @pytest.mark.unit
    def test_positivity_preserving(self, rng):
        """With c <= 1 a forward Euler step keeps a non-negative field non-negative."""
        phi = rng.uniform(0.0, 1.0, 30)
        phi[rng.uniform(size=30) < 0.5] = 0.0
        dt = 0.9

        dphi = periodic_derivative(l94_stencil, phi, 1.0, dt, 1.0)
        assert np.all(phi + dt * dphi >= -1e-14)

    @pytest.mark.unit
    def test_courant_one_is_exact_shift(self, rng):
        phi = rng.uniform(0.0, 1.0, 16)
        dphi = periodic_derivative(l94_stencil, phi, 1.0, 1.0, 1.0)
        np.testing.assert_allclose(phi + dphi, np.roll(phi, 1), atol=1e-14)


class TestPPM:
    @pytest.mark.unit
    def test_linear_profile(self):
        """A linear profile is reproduced exactly: face = edge - 0.5 c slope."""
        phi = np.arange(8, dtype=float)
        dt = 0.5
        # Edge values lie halfway between centers (2.5 and 3.5 around the center 3);
        # swept means over c = 0.5 are 2.25 and 3.25
        result = ppm_stencil(phi, [1.0, 1.0], dt, 1.0)
        assert result == pytest.approx(-1.0)

    @pytest.mark.unit
    def test_last_window_cell_unused(self, rng):
        window = rng.uniform(0.0, 1.0, 8)
        changed = window.copy()
        changed[7] = 100.0

        a = ppm_stencil(window, [0.4, -0.3], 0.5, 1.0)
        b = ppm_stencil(changed, [0.4, -0.3], 0.5, 1.0)
        assert a == b

    @pytest.mark.unit
    def test_courant_one_is_exact_shift(self, rng):
        phi = rng.uniform(0.0, 1.0, 16)
        dphi = periodic_derivative(ppm_stencil, phi, 1.0, 1.0, 1.0)
        np.testing.assert_allclose(phi + dphi, np.roll(phi, 1), atol=1e-13)

    @pytest.mark.unit
    def test_monotonic_step_no_new_extrema(self):
        """A step profile advected with c = 0.5 stays within its original range."""
        phi = np.where(np.arange(30) < 15, 1.0, 0.0)
        dt = 0.5

        dphi = periodic_derivative(ppm_stencil, phi, 1.0, dt, 1.0)
        updated = phi + dt * dphi
        assert updated.min() >= -1e-14
        assert updated.max() <= 1.0 + 1e-14

    @pytest.mark.unit
    def test_unconstrained_option_differs_at_step(self):
        phi = np.where(np.arange(30) < 15, 1.0, 0.0)
        constrained = periodic_derivative(ppm_stencil, phi, 1.0, 0.5, 1.0)
        unconstrained = periodic_derivative(ppm_stencil, phi, 1.0, 0.5, 1.0, {"monotonic": False})
        assert not np.allclose(constrained, unconstrained)
