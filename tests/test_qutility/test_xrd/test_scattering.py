import threading

import chex
import jax.numpy as jnp
import numpy as np
import pytest
from absl.testing import parameterized

from qutility.errors import DomainError, UnknownElementError
from qutility.xrd import (
    ScatteringParams,
    cromer_mann,
    normalize_element,
    scattering_amplitude,
    scattering_table,
    site_coefficients,
)


class TestScatteringTable(chex.TestCase, parameterized.TestCase):
    def test_table_has_common_elements(self) -> None:
        table = scattering_table()
        for symbol in ("H", "C", "N", "O", "Na", "Cl", "Si", "Fe", "Cu", "Au", "Pb"):
            assert isinstance(table[symbol], ScatteringParams)
        assert len(table) >= 65

    def test_table_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            scattering_table()["Xx"] = ScatteringParams((0,) * 4, (0,) * 4, 0.0)

    def test_table_is_loaded_once_across_threads(self) -> None:
        seen = []
        barrier = threading.Barrier(8)

        def load() -> None:
            barrier.wait()
            seen.append(scattering_table())

        threads = [threading.Thread(target=load) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(seen) == 8
        assert all(table is seen[0] for table in seen)

    @parameterized.named_parameters(
        ("hydrogen", "H", 1),
        ("carbon", "C", 6),
        ("oxygen", "O", 8),
        ("sodium", "Na", 11),
        ("silicon", "Si", 14),
        ("iron", "Fe", 26),
        ("copper", "Cu", 29),
        ("gold", "Au", 79),
    )
    def test_forward_scattering_is_atomic_number(self, symbol: str, z: int) -> None:
        assert scattering_table()[symbol].at_zero() == pytest.approx(z, abs=0.05)
        assert float(scattering_amplitude(symbol, 0.0)) == pytest.approx(z, abs=0.05)

    def test_amplitude_decreases_with_q(self) -> None:
        q = jnp.linspace(0.0, 8.0, 40)
        f = scattering_amplitude("Fe", q)
        chex.assert_shape(f, (40,))
        assert bool(jnp.all(jnp.diff(f) < 0.0))

    def test_amplitude_uses_sin_theta_over_lambda(self) -> None:
        params = scattering_table()["Si"]
        q = 3.0
        s = q / (4.0 * np.pi)
        expected = sum(a * np.exp(-b * s * s) for a, b in zip(params.a, params.b)) + params.c
        assert float(scattering_amplitude("Si", q)) == pytest.approx(expected, rel=1e-12)

    @chex.variants(with_jit=True, without_jit=True)
    def test_cromer_mann_matches_lookup(self) -> None:
        a, b, c = site_coefficients(["Na", "Cl"])
        q = jnp.array([0.0, 1.0, 2.5])
        values = self.variant(cromer_mann)(a[None], b[None], c[None], q[:, None])
        chex.assert_shape(values, (3, 2))
        chex.assert_trees_all_close(values[:, 0], scattering_amplitude("Na", q))
        chex.assert_trees_all_close(values[:, 1], scattering_amplitude("Cl", q))


class TestElementNames(chex.TestCase, parameterized.TestCase):
    @parameterized.named_parameters(
        ("lower", "fe", "Fe"),
        ("upper", "FE", "Fe"),
        ("site_number", "Fe1", "Fe"),
        ("anion", "O2-", "O"),
        ("cation", "Na+", "Na"),
        ("padded", "  Cl ", "Cl"),
        ("single", "c", "C"),
    )
    def test_normalize_element(self, label: str, expected: str) -> None:
        assert normalize_element(label) == expected

    def test_labels_resolve_in_lookup(self) -> None:
        chex.assert_trees_all_close(
            scattering_amplitude("fe2+", 1.0), scattering_amplitude("Fe", 1.0)
        )

    @parameterized.named_parameters(
        ("unknown_symbol", "Xx"),
        ("numeric", "12"),
        ("empty", ""),
    )
    def test_unknown_element_raises(self, label: str) -> None:
        with pytest.raises(UnknownElementError):
            scattering_amplitude(label, 1.0)

    def test_unknown_element_is_domain_error(self) -> None:
        with pytest.raises(DomainError):
            site_coefficients(["Na", "Qq"])
