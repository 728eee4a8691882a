import chex
import pytest
from absl.testing import parameterized

from qutility.errors import DomainError, InvalidWavelengthError
from qutility.xrd import PRESETS, resolve_wavelength


class TestResolveWavelength(chex.TestCase, parameterized.TestCase):
    @parameterized.named_parameters(
        ("cu", "cu-ka", 1.5406),
        ("mo", "mo-ka", 0.7107),
        ("co", "co-ka", 1.7890),
        ("fe", "fe-ka", 1.9360),
        ("cr", "cr-ka", 2.2897),
        ("ag", "ag-ka", 0.5594),
    )
    def test_presets(self, name: str, value: float) -> None:
        assert resolve_wavelength(name) == value
        assert PRESETS[name] == value

    @parameterized.named_parameters(
        ("upper", "CU-KA"),
        ("underscore", "Cu_Ka"),
        ("alpha", "Cu-Kα"),
        ("compact", "CuKa"),
        ("compact_alpha", "CuKα"),
        ("alpha_one", "cu-ka1"),
        ("spelled", "cu-kalpha"),
    )
    def test_preset_spellings(self, name: str) -> None:
        assert resolve_wavelength(name) == 1.5406

    @parameterized.named_parameters(
        ("float", 1.0, 1.0),
        ("int", 2, 2.0),
        ("numeric_string", " 1.2 ", 1.2),
    )
    def test_numeric_values(self, value, expected: float) -> None:
        assert resolve_wavelength(value) == pytest.approx(expected)

    @parameterized.named_parameters(
        ("zero", 0.0),
        ("negative", -1.5406),
        ("nan", float("nan")),
        ("inf", float("inf")),
        ("negative_string", "-1"),
        ("unknown_name", "xx-ka"),
        ("garbage", "copper"),
    )
    def test_invalid_values(self, value) -> None:
        with pytest.raises(InvalidWavelengthError):
            resolve_wavelength(value)

    def test_invalid_wavelength_is_domain_error(self) -> None:
        with pytest.raises(DomainError):
            resolve_wavelength(0)
