import chex
import jax.numpy as jnp
import pytest
from absl.testing import parameterized
from jax import tree_util

from qutility.errors import DomainError, InvalidBroadeningParameterError
from qutility.types import (
    BroadeningSpec,
    Reflections,
    XRDPattern,
    create_broadening_spec,
    pattern_points,
    validate_broadening_spec,
)


def _pattern() -> XRDPattern:
    return XRDPattern(
        two_theta=jnp.array([0.0, 0.5, 1.0]),
        intensities=jnp.array([0.0, 2.0, 1.0]),
        peak_two_theta=jnp.array([0.5]),
        peak_d_spacing=jnp.array([176.5]),
        peak_intensities=jnp.array([1.0]),
        peak_hkl=jnp.array([[1, 0, 0]]),
        peak_multiplicity=jnp.array([6]),
        wavelength=1.5406,
        name="test",
        hkl_labels=(((1, 0, 0), (0, 1, 0)),),
    )


class TestBroadeningSpec(chex.TestCase, parameterized.TestCase):
    @parameterized.named_parameters(
        ("none", "none", "none"),
        ("gauss_alias", "Gauss", "gaussian"),
        ("lorentz_alias", "lorentz", "lorentzian"),
        ("pv_alias", "pv", "pseudo-voigt"),
        ("underscore", "pseudo_voigt", "pseudo-voigt"),
        ("padded", "  Gaussian ", "gaussian"),
    )
    def test_kind_normalisation(self, raw: str, expected: str) -> None:
        assert create_broadening_spec(raw, 0.1, 0.5).kind == expected

    def test_zero_fwhm_gaussian_rejected(self) -> None:
        with pytest.raises(InvalidBroadeningParameterError, match="FWHM"):
            create_broadening_spec("gaussian", 0.0)

    @parameterized.named_parameters(
        ("negative", "lorentzian", -0.1),
        ("nan", "gaussian", float("nan")),
        ("inf", "pseudo-voigt", float("inf")),
    )
    def test_bad_fwhm_rejected(self, kind: str, fwhm: float) -> None:
        with pytest.raises(InvalidBroadeningParameterError):
            create_broadening_spec(kind, fwhm)

    def test_zero_fwhm_allowed_without_broadening(self) -> None:
        spec = create_broadening_spec("none", 0.0)
        assert not spec.enabled

    @parameterized.named_parameters(("low", -0.01), ("high", 1.01))
    def test_eta_out_of_range_rejected(self, eta: float) -> None:
        with pytest.raises(InvalidBroadeningParameterError, match="eta"):
            create_broadening_spec("pseudo-voigt", 0.1, eta)

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(InvalidBroadeningParameterError, match="Unknown"):
            create_broadening_spec("voigt-ish", 0.1)

    def test_broadening_error_is_domain_error(self) -> None:
        with pytest.raises(DomainError):
            validate_broadening_spec(BroadeningSpec("gaussian", 0.0))

    def test_default_spec_is_valid(self) -> None:
        validate_broadening_spec(BroadeningSpec())


class TestPatternTypes(chex.TestCase):
    def test_pattern_points_in_order(self) -> None:
        assert list(pattern_points(_pattern())) == [(0.0, 0.0), (0.5, 2.0), (1.0, 1.0)]

    def test_pattern_step_and_peak_count(self) -> None:
        pattern = _pattern()
        assert pattern.step == pytest.approx(0.5)
        assert pattern.n_peaks == 1

    def test_pattern_pytree_keeps_aux_data(self) -> None:
        pattern = _pattern()
        leaves, treedef = tree_util.tree_flatten(pattern)
        assert len(leaves) == 7
        rebuilt = tree_util.tree_unflatten(treedef, leaves)
        assert rebuilt.wavelength == pattern.wavelength
        assert rebuilt.name == "test"
        assert rebuilt.hkl_labels == pattern.hkl_labels

    def test_reflections_length(self) -> None:
        reflections = Reflections(
            hkl=jnp.array([[1, 0, 0], [0, 1, 0]]),
            q=jnp.array([1.0, 1.0]),
            d_spacing=jnp.array([6.28, 6.28]),
            two_theta=jnp.array([14.0, 14.0]),
        )
        assert len(reflections) == 2
        leaves = tree_util.tree_leaves(reflections)
        assert len(leaves) == 4
