import chex
import jax.numpy as jnp
import numpy as np
import pytest
from absl.testing import parameterized

from qutility.errors import DomainError, InvalidBroadeningParameterError
from qutility.xrd import (
    broaden,
    gaussian_profile,
    lorentzian_profile,
    make_grid,
    pseudo_voigt_profile,
)

PROFILES = (
    ("gaussian", lambda x, w: gaussian_profile(x, w)),
    ("lorentzian", lambda x, w: lorentzian_profile(x, w)),
    ("pseudo_voigt", lambda x, w: pseudo_voigt_profile(x, w, 0.3)),
)


class TestProfiles(chex.TestCase, parameterized.TestCase):
    @parameterized.named_parameters(*PROFILES)
    def test_half_maximum_at_half_width(self, profile) -> None:
        fwhm = 0.4
        values = profile(jnp.array([0.0, 0.5 * fwhm, -0.5 * fwhm]), fwhm)
        chex.assert_trees_all_close(values[1] / values[0], 0.5, atol=1e-12)
        chex.assert_trees_all_close(values[2], values[1])

    @parameterized.named_parameters(*PROFILES)
    def test_unit_area(self, profile) -> None:
        x = jnp.linspace(-200.0, 200.0, 400001)
        dx = float(x[1] - x[0])
        area = float(jnp.sum(profile(x, 0.1)) * dx)
        assert area == pytest.approx(1.0, abs=5e-4)

    def test_pseudo_voigt_limits(self) -> None:
        x = jnp.linspace(-1.0, 1.0, 11)
        chex.assert_trees_all_close(
            pseudo_voigt_profile(x, 0.2, 0.0), gaussian_profile(x, 0.2)
        )
        chex.assert_trees_all_close(
            pseudo_voigt_profile(x, 0.2, 1.0), lorentzian_profile(x, 0.2)
        )


class TestMakeGrid(chex.TestCase, parameterized.TestCase):
    @parameterized.named_parameters(
        ("default_step", 90.0, 0.02, 4501),
        ("coarse", 10.0, 0.5, 21),
        ("integer_args", 180, 1, 181),
    )
    def test_grid_length(self, max_two_theta, step, expected) -> None:
        grid = make_grid(max_two_theta, step)
        chex.assert_shape(grid, (expected,))
        assert float(grid[0]) == 0.0
        assert float(grid[-1]) == pytest.approx(max_two_theta)

    @parameterized.named_parameters(
        ("step_0_07", 90.0, 0.07, 1286),
        ("step_0_3", 10.0, 0.3, 34),
        ("step_0_7", 180.0, 0.7, 258),
    )
    def test_grid_stops_at_limit(self, max_two_theta, step, expected) -> None:
        grid = make_grid(max_two_theta, step)
        chex.assert_shape(grid, (expected,))
        assert float(grid[-1]) <= max_two_theta
        assert max_two_theta - float(grid[-1]) < step

    @parameterized.named_parameters(
        ("zero_step", 90.0, 0.0),
        ("negative_step", 90.0, -0.1),
        ("zero_range", 0.0, 0.02),
    )
    def test_invalid_grid(self, max_two_theta, step) -> None:
        with pytest.raises(DomainError):
            make_grid(max_two_theta, step)


class TestBroaden(chex.TestCase, parameterized.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.grid = make_grid(90.0, 0.02)
        self.step = 0.02

    @parameterized.named_parameters(
        ("none", "none", 0.1, 0.5),
        ("gaussian", "gaussian", 0.1, 0.5),
        ("lorentzian", "lorentzian", 0.3, 0.5),
        ("pseudo_voigt", "pseudo-voigt", 0.2, 0.4),
        ("wide_gaussian", "gaussian", 5.0, 0.5),
    )
    def test_total_area_matches_sticks(self, kind, fwhm, eta) -> None:
        centres = jnp.array([0.0, 12.345, 45.0, 45.001, 89.99, 90.0])
        intensities = jnp.array([3.0, 100.0, 20.0, 5.0, 7.5, 1.0])
        profile = broaden(centres, intensities, self.grid, kind, fwhm, eta)
        chex.assert_shape(profile, self.grid.shape)
        assert float(jnp.sum(profile) * self.step) == pytest.approx(136.5, rel=1e-9)
        assert bool(jnp.all(profile >= 0.0))

    def test_sticks_land_in_nearest_bin(self) -> None:
        profile = broaden(jnp.array([10.006]), jnp.array([4.0]), self.grid)
        nonzero = np.flatnonzero(np.asarray(profile))
        np.testing.assert_array_equal(nonzero, [500])
        assert float(profile[500]) == pytest.approx(4.0 / self.step)

    def test_gaussian_peak_centred(self) -> None:
        profile = broaden(
            jnp.array([30.0]), jnp.array([1.0]), self.grid, "gaussian", 0.2
        )
        assert int(jnp.argmax(profile)) == 1500

    def test_unresolved_peak_falls_back_to_stick(self) -> None:
        profile = broaden(
            jnp.array([10.01]), jnp.array([2.0]), self.grid, "gaussian", 1e-6
        )
        assert float(jnp.sum(profile) * self.step) == pytest.approx(2.0)
        assert int(jnp.argmax(profile)) in (500, 501)
        assert int(jnp.count_nonzero(profile)) == 1

    def test_empty_centres_give_zero_pattern(self) -> None:
        profile = broaden(jnp.zeros(0), jnp.zeros(0), self.grid, "gaussian", 0.1)
        chex.assert_trees_all_close(profile, jnp.zeros_like(self.grid))

    @parameterized.named_parameters(
        ("zero_fwhm", "gaussian", 0.0, 0.5),
        ("negative_fwhm", "lorentzian", -0.1, 0.5),
        ("eta_above_one", "pseudo-voigt", 0.1, 1.5),
        ("eta_negative", "pseudo-voigt", 0.1, -0.1),
        ("unknown_kind", "triangle", 0.1, 0.5),
    )
    def test_invalid_parameters(self, kind, fwhm, eta) -> None:
        with pytest.raises(InvalidBroadeningParameterError):
            broaden(jnp.array([10.0]), jnp.array([1.0]), self.grid, kind, fwhm, eta)

    def test_stick_mode_ignores_width(self) -> None:
        profile = broaden(jnp.array([10.0]), jnp.array([1.0]), self.grid, "none", 0.0)
        assert float(jnp.sum(profile) * self.step) == pytest.approx(1.0)

    def test_single_point_grid_rejected(self) -> None:
        with pytest.raises(DomainError):
            broaden(jnp.array([0.0]), jnp.array([1.0]), jnp.zeros(1))
